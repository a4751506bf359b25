"""RbLint Lint 模块

提供命令行检查 / 自动修正的入口。

主要组件:
- RbLint: 主 lint 类
- main: 命令行入口函数
"""
from .linter import RbLint
from .cli import main, parse_args

__all__ = [
    'RbLint',
    'main',
    'parse_args',
]
