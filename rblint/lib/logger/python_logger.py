"""
RbLint Python Logger

每个名称一个 RbLintLogger，同一次运行的日志写入同一个时间戳文件：
~/.rblint/logs/<name>_<YYYYMMDD_HHMMSS>.log

RbLintLogger 是 logging.LoggerAdapter：处于 LogContext 阶段内时，
消息自动带上阶段前缀，例如 "[python_rules_check] Loaded 1 builtin rules"。

Usage:
    from rblint.lib.logger import get_logger, LogContext

    logger = get_logger("rblint")
    with LogContext(logger, "config_loading"):
        logger.debug("Loading config...")
"""
import logging
import os
import sys
from datetime import datetime
from typing import Dict, List, Optional

from .constants import (
    CONSOLE_FORMAT,
    DATE_FORMAT,
    ENV_VERBOSE,
    FILE_FORMAT,
    LOG_FILENAME_FORMAT,
    LOG_TIMESTAMP_FORMAT,
    ensure_logs_dir,
)


class RbLintLogger(logging.LoggerAdapter):
    """RbLint 日志记录器"""

    _instances: Dict[str, "RbLintLogger"] = {}
    _session_id: Optional[str] = None

    def __init__(self, name: str, log_file: Optional[str] = None):
        super().__init__(logging.getLogger(f"rblint.{name}"), {})
        self.module = name
        self.log_file: Optional[str] = None
        self._phases: List[str] = []
        self._console: Optional[logging.Handler] = None
        self.logger.setLevel(logging.DEBUG)

        existing = [h for h in self.logger.handlers if isinstance(h, logging.FileHandler)]
        if existing:
            self.log_file = existing[0].baseFilename
        else:
            self._attach_file_handler(log_file or self._session_log_file())

        if os.environ.get(ENV_VERBOSE):
            self.enable_console()

    def _session_log_file(self) -> str:
        if RbLintLogger._session_id is None:
            RbLintLogger._session_id = datetime.now().strftime(LOG_TIMESTAMP_FORMAT)
        filename = LOG_FILENAME_FORMAT.format(module=self.module, timestamp=RbLintLogger._session_id)
        return str(ensure_logs_dir() / filename)

    def _attach_file_handler(self, log_file: str):
        handler = logging.FileHandler(log_file, encoding='utf-8')
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        self.logger.addHandler(handler)
        self.log_file = log_file

    def enable_console(self, level: int = logging.INFO):
        """同时输出到 stderr（重复调用只调整级别）"""
        if self._console is None:
            self._console = logging.StreamHandler(sys.stderr)
            self._console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
            self.logger.addHandler(self._console)
        self._console.setLevel(level)

    def process(self, msg, kwargs):
        if self._phases:
            msg = f"[{'/'.join(self._phases)}] {msg}"
        return msg, kwargs

    def push_phase(self, phase: str):
        self._phases.append(phase)

    def pop_phase(self):
        if self._phases:
            self._phases.pop()

    def log_separator(self, title: str = ""):
        self.info(f" {title} ".center(60, '=') if title else '=' * 60)

    def log_list(self, title: str, items: list, level: str = "debug", max_items: int = 20):
        """记录列表，超过 max_items 的部分只记录数量"""
        emit = getattr(self, level, self.debug)
        emit(f"{title} ({len(items)} items):")
        for index, item in enumerate(items[:max_items]):
            emit(f"  [{index}] {item}")
        if len(items) > max_items:
            emit(f"  ... and {len(items) - max_items} more")

    def close(self):
        """关闭并移除所有 handler"""
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)
        self._console = None


def get_logger(name: str, log_file: Optional[str] = None) -> RbLintLogger:
    """按名称获取单例 RbLintLogger；log_file 只在首次创建时生效"""
    if name not in RbLintLogger._instances:
        RbLintLogger._instances[name] = RbLintLogger(name, log_file)
    return RbLintLogger._instances[name]


def reset_session():
    """关闭所有 logger，下次 get_logger 时开启新的会话文件"""
    for instance in RbLintLogger._instances.values():
        instance.close()
    RbLintLogger._instances.clear()
    RbLintLogger._session_id = None


def log_lint_start(project_root: str, files_count: int, autocorrect: bool = False):
    logger = get_logger("rblint")
    logger.log_separator("RbLint Session Start")
    logger.info(f"Project root: {project_root}")
    logger.info(f"Files to check: {files_count}")
    logger.info(f"Autocorrect mode: {autocorrect}")


def log_lint_end(violations_count: int, errors_count: int, warnings_count: int, elapsed: float):
    logger = get_logger("rblint")
    logger.info(f"Lint completed in {elapsed:.2f}s")
    logger.info(f"Total violations: {violations_count} (errors: {errors_count}, warnings: {warnings_count})")
    logger.log_separator("RbLint Session End")
