"""
RbLint Logger Constants

日志目录、文件名和格式常量（只依赖标准库）
"""
import os
import re
from pathlib import Path


# 全局根目录 ~/.rblint
GLOBAL_DIR = Path.home() / '.rblint'

# 设置后同时输出 INFO 日志到 stderr
ENV_VERBOSE = "RBLINT_VERBOSE"

# 覆盖日志目录（测试、CI）
ENV_LOG_DIR = "RBLINT_LOG_DIR"

# rblint_20260101_093000.log
LOG_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
LOG_FILENAME_FORMAT = "{module}_{timestamp}.log"
LOG_FILENAME_PATTERN = re.compile(r'^(?P<module>.+)_(?P<timestamp>\d{8}_\d{6})\.log$')

CONSOLE_FORMAT = "[%(levelname)s] %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] [%(threadName)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_RETENTION_DAYS = 7


def get_logs_dir() -> Path:
    """日志目录：RBLINT_LOG_DIR 优先，否则 ~/.rblint/logs"""
    override = os.environ.get(ENV_LOG_DIR)
    return Path(override) if override else GLOBAL_DIR / 'logs'


def ensure_logs_dir() -> Path:
    logs_dir = get_logs_dir()
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir
