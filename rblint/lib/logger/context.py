"""
RbLint Logger Context

把一段代码标记为命名阶段：块内日志带上 [phase] 前缀，退出时记录耗时。
"""
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .python_logger import RbLintLogger


class LogContext:
    """
    日志阶段上下文（不抑制异常）

    Usage:
        with LogContext(logger, "file_discovery") as phase:
            files = discover()
        logger.debug(f"took {phase.elapsed:.2f}s")
    """

    def __init__(self, logger: "RbLintLogger", phase: str):
        self.logger = logger
        self.phase = phase
        self.elapsed = 0.0
        self._started = 0.0

    def __enter__(self) -> "LogContext":
        self.logger.push_phase(self.phase)
        self._started = time.perf_counter()
        self.logger.debug("Started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.elapsed = time.perf_counter() - self._started
        try:
            if exc_type is None:
                self.logger.debug(f"Completed in {self.elapsed:.2f}s")
            else:
                self.logger.error(f"Failed after {self.elapsed:.2f}s: {exc_val}",
                                  exc_info=(exc_type, exc_val, exc_tb))
        finally:
            self.logger.pop_phase()
        return False
