"""
File Content Cache - 文件内容缓存层

条目以 (st_mtime_ns, st_size) 判断是否过期，超出容量时淘汰最久未使用的文件。
读取使用 newline='' 和 surrogateescape，自动修正写回时未改动的字节保持原样。
"""
import os
from collections import OrderedDict
from dataclasses import dataclass
from threading import RLock
from typing import Dict, List, Optional, Tuple

from rblint.lib.logger import get_logger


# 读写源码时使用的编码参数
SOURCE_ENCODING = 'utf-8'
SOURCE_ERRORS = 'surrogateescape'


@dataclass(frozen=True)
class CachedFile:
    content: str
    lines: List[str]
    mtime_ns: int
    size: int


class FileContentCache:
    """线程安全的 LRU 文件内容缓存"""

    def __init__(self, max_size_mb: int = 100):
        self._entries: "OrderedDict[str, CachedFile]" = OrderedDict()
        self._lock = RLock()
        self._max_bytes = max_size_mb * 1024 * 1024
        self._total_bytes = 0
        self._hits = 0
        self._misses = 0
        self.logger = get_logger("rblint")

    def get(self, file_path: str) -> Optional[Tuple[str, List[str]]]:
        """
        Returns:
            (content, lines)；文件不存在或不可读时返回 None
        """
        key = os.path.abspath(file_path)
        try:
            stat = os.stat(key)
        except OSError as e:
            self.logger.debug(f"Cannot stat {file_path}: {e}")
            self.invalidate(key)
            return None

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and (entry.mtime_ns, entry.size) == (stat.st_mtime_ns, stat.st_size):
                self._entries.move_to_end(key)
                self._hits += 1
                return entry.content, entry.lines

            self._misses += 1
            entry = self._load(key, stat)
            if entry is None:
                return None
            self._store(key, entry)
            return entry.content, entry.lines

    def _load(self, key: str, stat: os.stat_result) -> Optional[CachedFile]:
        try:
            with open(key, 'r', encoding=SOURCE_ENCODING, errors=SOURCE_ERRORS, newline='') as f:
                content = f.read()
        except OSError as e:
            self.logger.debug(f"Failed to read file {key}: {e}")
            return None
        return CachedFile(content, content.split('\n'), stat.st_mtime_ns, stat.st_size)

    def _store(self, key: str, entry: CachedFile):
        previous = self._entries.pop(key, None)
        if previous is not None:
            self._total_bytes -= previous.size

        # 单个文件超过总容量时不缓存
        if entry.size > self._max_bytes:
            return

        while self._entries and self._total_bytes + entry.size > self._max_bytes:
            evicted_key, evicted = self._entries.popitem(last=False)
            self._total_bytes -= evicted.size
            self.logger.debug(f"Evicted from cache: {evicted_key}")

        self._entries[key] = entry
        self._total_bytes += entry.size

    def invalidate(self, file_path: str):
        with self._lock:
            entry = self._entries.pop(os.path.abspath(file_path), None)
            if entry is not None:
                self._total_bytes -= entry.size

    def clear(self):
        with self._lock:
            self._entries.clear()
            self._total_bytes = 0
            self._hits = self._misses = 0

    def get_stats(self) -> Dict[str, float]:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "cached_files": len(self._entries),
                "cache_size_mb": self._total_bytes / 1024 / 1024,
                "hit_count": self._hits,
                "miss_count": self._misses,
                "hit_rate": self._hits / lookups * 100 if lookups else 0.0,
            }


_global_cache: Optional[FileContentCache] = None
_global_lock = RLock()


def get_file_cache(max_size_mb: int = 100) -> FileContentCache:
    """进程内共享的缓存；max_size_mb 只在首次创建时生效"""
    global _global_cache
    with _global_lock:
        if _global_cache is None:
            _global_cache = FileContentCache(max_size_mb)
        return _global_cache


def reset_file_cache():
    global _global_cache
    with _global_lock:
        if _global_cache is not None:
            _global_cache.clear()
        _global_cache = None
