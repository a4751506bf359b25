"""
RbLint Logger Utilities

过期日志清理与当前日志文件查询
"""
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from .constants import LOG_FILENAME_PATTERN, LOG_RETENTION_DAYS, LOG_TIMESTAMP_FORMAT, get_logs_dir


def parse_log_timestamp(log_file: Path) -> Optional[datetime]:
    """从 <name>_<YYYYMMDD_HHMMSS>.log 中解析时间；不是 rblint 日志时返回 None"""
    match = LOG_FILENAME_PATTERN.match(log_file.name)
    if not match:
        return None
    try:
        return datetime.strptime(match.group('timestamp'), LOG_TIMESTAMP_FORMAT)
    except ValueError:
        return None


def cleanup_old_logs(max_days: int = LOG_RETENTION_DAYS) -> int:
    """
    删除超过 max_days 天的日志文件（正在写入的日志除外）

    Returns:
        删除的文件数量
    """
    from .python_logger import RbLintLogger

    logs_dir = get_logs_dir()
    if not logs_dir.is_dir():
        return 0

    cutoff = datetime.now() - timedelta(days=max_days)
    active = {instance.log_file for instance in RbLintLogger._instances.values()}

    removed = 0
    for log_file in sorted(logs_dir.glob("*.log")):
        written_at = parse_log_timestamp(log_file)
        if written_at is None or written_at >= cutoff or str(log_file) in active:
            continue
        log_file.unlink(missing_ok=True)
        removed += 1
    return removed


def get_current_log_file(name: str = "rblint") -> Optional[str]:
    """已创建的 logger 的日志文件路径"""
    from .python_logger import RbLintLogger

    instance = RbLintLogger._instances.get(name)
    return instance.log_file if instance else None
