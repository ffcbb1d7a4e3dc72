"""
Layer 2 – 缓存层
进程内历史行情缓存：固定 TTL，超出容量时按写入时间整体裁剪（非 LRU，读取不刷新）
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from market_service.config import settings
from market_service.models.market import HistoricalSeries

logger = logging.getLogger(__name__)


def _make_key(symbol: str, asset_type: Optional[str], interval: str, duration: int) -> str:
    """生成规范化缓存键"""
    return f"{symbol}_{asset_type}_{interval}_{duration}"


@dataclass(frozen=True)
class CacheEntry:
    series: HistoricalSeries
    cached_at: float


class HistoricalDataCache:
    """历史数据缓存：get 只返回新鲜条目，put 写入后裁剪到 max_entries 条"""

    def __init__(
        self,
        ttl: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = settings.HISTORY_CACHE_TTL if ttl is None else ttl
        self.max_entries = settings.HISTORY_CACHE_MAX_ENTRIES if max_entries is None else max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[HistoricalSeries]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.cached_at >= self.ttl:
            logger.debug(f"缓存已过期: {key}")
            return None
        logger.debug(f"缓存命中: {key}")
        return entry.series

    def put(self, key: str, series: HistoricalSeries) -> None:
        self._entries[key] = CacheEntry(series=series, cached_at=self._clock())
        logger.debug(f"缓存写入: {key}")
        if len(self._entries) > self.max_entries:
            self._prune()

    def _prune(self) -> None:
        # 按写入时间升序淘汰，直到恰好剩 max_entries 条
        ordered = sorted(self._entries.items(), key=lambda item: item[1].cached_at)
        overflow = len(ordered) - self.max_entries
        for key, _ in ordered[:overflow]:
            del self._entries[key]
        logger.debug(f"缓存裁剪 {overflow} 条，剩余 {len(self._entries)} 条")

    def stats(self) -> dict:
        """返回缓存统计信息"""
        now = self._clock()
        fresh = sum(1 for e in self._entries.values() if now - e.cached_at < self.ttl)
        return {
            "entries": len(self._entries),
            "fresh": fresh,
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl,
        }


# ── 模块级别单例 ──────────────────────────────────────────
_cache: Optional[HistoricalDataCache] = None


def get_cache_layer() -> HistoricalDataCache:
    global _cache
    if _cache is None:
        _cache = HistoricalDataCache()
    return _cache
