"""
RbLint Logger Module

日志文件存储在 ~/.rblint/logs/ 目录下（可用 RBLINT_LOG_DIR 覆盖），
设置 RBLINT_VERBOSE 后 INFO 及以上同时输出到 stderr。
"""
from .python_logger import (
    RbLintLogger,
    get_logger,
    reset_session,
    log_lint_start,
    log_lint_end,
)
from .context import LogContext
from .utils import cleanup_old_logs, get_current_log_file
from .constants import GLOBAL_DIR, get_logs_dir

__all__ = [
    'RbLintLogger',
    'get_logger',
    'LogContext',
    'reset_session',
    'log_lint_start',
    'log_lint_end',
    'cleanup_old_logs',
    'get_current_log_file',
    'GLOBAL_DIR',
    'get_logs_dir',
]
