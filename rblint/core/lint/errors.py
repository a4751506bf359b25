"""
Errors - RbLint 异常定义
"""


class RbLintError(Exception):
    """RbLint 异常基类"""


class ConfigError(RbLintError, ValueError):
    """配置文件无法读取，或配置项（如正则参数）不合法"""


class ClobberingError(RbLintError):
    """同一文件上排队的两个修改区间相互重叠"""
