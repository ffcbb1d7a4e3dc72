"""
行情数据服务
整合数据获取、缓存、处理、分析四层，对外提供统一的历史行情访问接口
"""

import logging
import random
from typing import List, Optional

from market_service.config import MarketServiceSettings, settings
from market_service.layers.acquisition import (
    AcquisitionLayer,
    ProviderResult,
    get_acquisition_layer,
    select_first,
)
from market_service.layers.analysis import metrics_for_series
from market_service.layers.cache import HistoricalDataCache, _make_key, get_cache_layer
from market_service.layers.symbols import normalize_symbol
from market_service.layers.synthetic import generate_sample_series
from market_service.models.market import HistoricalSeries, SymbolMatch

logger = logging.getLogger(__name__)

_MAX_SEARCH_RESULTS = 10
_MIN_QUERY_LENGTH = 2


class ProviderConfigurationError(Exception):
    """股票查询时未配置任何需要 API Key 的数据源"""


class HistoricalDataUnavailable(Exception):
    """不允许使用示例数据且所有数据源均失败"""


class MarketDataService:
    """历史行情业务服务"""

    def __init__(
        self,
        acquisition: Optional[AcquisitionLayer] = None,
        cache: Optional[HistoricalDataCache] = None,
        config: Optional[MarketServiceSettings] = None,
        rng: Optional[random.Random] = None,
    ):
        self._acq = acquisition if acquisition is not None else get_acquisition_layer()
        self._cache = cache if cache is not None else get_cache_layer()
        self._settings = config or settings
        self._rng = rng

    # ── 历史行情 ──────────────────────────────────────────

    async def get_historical_data(
        self,
        symbol: str,
        asset_type: Optional[str] = None,
        interval: str = "monthly",
        duration: int = 10,
        allow_sample: bool = True,
    ) -> HistoricalSeries:
        """
        获取历史行情（带缓存与多数据源降级）

        Args:
            symbol: 交易代码，允许带 " - 名称" 后缀
            asset_type: 资产类型，crypto 走加密货币数据源，其余走股票数据源
            interval: 周期（仅参与缓存键）
            duration: 期望的数据点数，实际最多 MAX_DATA_POINTS 个
            allow_sample: 所有数据源失败时是否返回模拟数据
        """
        clean = normalize_symbol(symbol)
        key = _make_key(clean, asset_type, interval, duration)

        cached = self._cache.get(key)
        if cached is not None:
            logger.info(f"返回缓存数据: {clean}")
            return cached

        is_crypto = bool(asset_type) and asset_type.lower() == "crypto"
        logger.info(f"获取历史数据: {clean}（type={asset_type}, interval={interval}, duration={duration}）")

        if is_crypto:
            results = await self._acq.fetch_crypto_history(clean, duration)
        else:
            if not self._settings.configured_stock_providers:
                raise ProviderConfigurationError(
                    "Please configure at least one API key. Get free keys from:\n"
                    "- Finnhub: https://finnhub.io/\n"
                    "- Twelve Data: https://twelvedata.com/"
                )
            results = await self._acq.fetch_stock_history(clean, duration)

        series = self._select_series(clean, duration, results)
        if series is None:
            if not allow_sample:
                raise HistoricalDataUnavailable(
                    f'Unable to fetch data for symbol "{clean}". '
                    "Please try a different symbol or check your internet connection."
                )
            reasons = "; ".join(f"{r.provider}: {r.reason}" for r in results)
            logger.info(f"所有数据源均不可用，使用示例数据: {clean}（{reasons}）")
            series = generate_sample_series(clean, duration, rng=self._rng)

        self._cache.put(key, series)
        return series

    def _select_series(
        self, symbol: str, duration: int, results: List[ProviderResult]
    ) -> Optional[HistoricalSeries]:
        chosen = select_first(results)
        if chosen is None:
            return None
        logger.info(f"{chosen.provider} 数据获取成功: {symbol}（{len(chosen.points)} 条）")
        points = chosen.points
        return HistoricalSeries(
            symbol=symbol,
            data=points,
            metrics=metrics_for_series([p.close for p in points], [p.date for p in points]),
            source=chosen.provider,
            requested_duration=duration,
            actual_data_points=len(points),
        )

    # ── 代码搜索 ──────────────────────────────────────────

    async def search_symbols(self, query: Optional[str], asset_type: str = "stocks") -> List[SymbolMatch]:
        """根据关键词搜索交易代码，按代码去重，最多 10 条"""
        if not query or len(query) < _MIN_QUERY_LENGTH:
            return []
        clean = query.strip().upper()
        matches = await self._acq.search_symbols(clean, asset_type)

        seen = set()
        unique: List[SymbolMatch] = []
        for match in matches:
            if match.symbol in seen:
                continue
            seen.add(match.symbol)
            unique.append(match)
        return unique[:_MAX_SEARCH_RESULTS]

    def cache_stats(self) -> dict:
        return self._cache.stats()


# ── 模块级别单例 ──────────────────────────────────────────
_market_data_service: Optional[MarketDataService] = None


def get_market_data_service() -> MarketDataService:
    global _market_data_service
    if _market_data_service is None:
        _market_data_service = MarketDataService()
    return _market_data_service
