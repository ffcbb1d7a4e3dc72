"""
Layer 1 – 数据获取层
从多个行情提供商（Yahoo Finance / Finnhub / Twelve Data / CoinGecko / Binance）拉取原始数据，
统一规范化后向上层提供标准接口。

每个数据源是一个独立的策略：并发发起请求，各自带超时，失败时返回带原因的
ProviderResult 而不是抛出异常，由上层按固定优先级挑选第一个成功的结果。
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from market_service.config import MarketServiceSettings, settings
from market_service.layers.processing import get_processing_layer
from market_service.layers.symbols import get_coingecko_id
from market_service.models.market import PricePoint, SymbolMatch

logger = logging.getLogger(__name__)

_USER_AGENT = "MintMate-Finance-App/1.0"
_SEARCH_LIMIT_PER_PROVIDER = 5
_ONE_YEAR_SECONDS = 365 * 24 * 60 * 60


class ProviderError(Exception):
    """数据源请求失败（超时、非 2xx、非 JSON、业务错误等）"""


@dataclass(frozen=True)
class ProviderResult:
    """单个数据源的请求结果；ok=False 时 reason 记录失败原因"""
    provider: str
    ok: bool
    points: List[PricePoint] = field(default_factory=list)
    reason: str = ""

    @classmethod
    def success(cls, provider: str, points: List[PricePoint]) -> "ProviderResult":
        return cls(provider=provider, ok=True, points=points)

    @classmethod
    def failure(cls, provider: str, reason: str) -> "ProviderResult":
        return cls(provider=provider, ok=False, reason=reason)


def select_first(results: List[ProviderResult]) -> Optional[ProviderResult]:
    """按优先级顺序返回第一个成功的结果"""
    for result in results:
        if result.ok:
            return result
    return None


def _epoch_to_date(seconds: float) -> str:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).date().isoformat()


Fetcher = Callable[[str, int], Awaitable[List[PricePoint]]]


class AcquisitionLayer:
    """数据获取层：封装多数据源，提供统一的数据拉取接口"""

    # 展示用名称，同时作为 HistoricalSeries.source
    COINGECKO = "CoinGecko"
    BINANCE = "Binance"
    YAHOO = "Yahoo Finance"
    FINNHUB = "Finnhub"
    TWELVE_DATA = "Twelve Data"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        config: Optional[MarketServiceSettings] = None,
    ):
        self._client = client
        self._settings = config or settings
        self._proc = get_processing_layer()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(headers={"User-Agent": _USER_AGENT})
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def _max_points(self) -> int:
        return self._settings.MAX_DATA_POINTS

    # ── HTTP ──────────────────────────────────────────────

    async def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        try:
            response = await self.client.get(
                url, params=params, timeout=timeout or self._settings.PROVIDER_TIMEOUT
            )
        except httpx.TimeoutException as exc:
            raise ProviderError(f"timeout: {exc.__class__.__name__}") from exc
        except httpx.InvalidURL as exc:
            raise ProviderError(f"invalid URL: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"request failed: {exc}") from exc

        if not response.is_success:
            raise ProviderError(f"HTTP {response.status_code} {response.reason_phrase}")
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise ProviderError(f"non-JSON response ({content_type or 'no content-type'})")
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(f"JSON parse error: {exc}") from exc

    async def _run(
        self, provider: str, fetch: Fetcher, symbol: str, duration: int
    ) -> ProviderResult:
        try:
            points = await fetch(symbol, duration)
        except ProviderError as exc:
            logger.warning(f"{provider} 获取失败（{symbol}）: {exc}")
            return ProviderResult.failure(provider, str(exc))
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
            logger.warning(f"{provider} 返回数据格式异常（{symbol}）: {exc!r}")
            return ProviderResult.failure(provider, f"malformed payload: {exc!r}")
        if not points:
            logger.warning(f"{provider} 未返回有效数据（{symbol}）")
            return ProviderResult.failure(provider, "no data points")
        logger.debug(f"{provider} 获取成功（{symbol}），共 {len(points)} 条")
        return ProviderResult.success(provider, points)

    async def _gather(
        self, strategies: List[Tuple[str, Fetcher]], symbol: str, duration: int
    ) -> List[ProviderResult]:
        # 所有请求都会等待完成，结果顺序与 strategies 一致
        return list(await asyncio.gather(
            *(self._run(name, fetch, symbol, duration) for name, fetch in strategies)
        ))

    # ── 加密货币 ──────────────────────────────────────────

    def crypto_strategies(self) -> List[Tuple[str, Fetcher]]:
        return [
            (self.COINGECKO, self._coingecko_history),
            (self.BINANCE, self._binance_history),
        ]

    async def fetch_crypto_history(self, symbol: str, duration: int) -> List[ProviderResult]:
        """并发请求 CoinGecko / Binance，按优先级顺序返回结果"""
        return await self._gather(self.crypto_strategies(), symbol, duration)

    async def _coingecko_history(self, symbol: str, duration: int) -> List[PricePoint]:
        coin_id = get_coingecko_id(symbol)
        data = await self._get_json(
            f"{self._settings.COINGECKO_BASE_URL}/coins/{quote(coin_id, safe='')}/market_chart",
            params={"vs_currency": "usd", "days": 365, "interval": "monthly"},
        )
        records = [
            {"date": _epoch_to_date(ts / 1000), "close": price}
            for ts, price in data.get("prices") or []
        ]
        return self._proc.normalize_points(records, min(duration, self._max_points))

    async def _binance_history(self, symbol: str, duration: int) -> List[PricePoint]:
        limit = min(duration, self._max_points)
        data = await self._get_json(
            f"{self._settings.BINANCE_BASE_URL}/klines",
            params={"symbol": symbol, "interval": "1M", "limit": limit},
            timeout=self._settings.BINANCE_TIMEOUT,
        )
        if not isinstance(data, list):
            raise ProviderError(f"unexpected payload: {data!r}"[:200])
        records = [
            {
                "date": _epoch_to_date(kline[0] / 1000),
                "open": kline[1],
                "high": kline[2],
                "low": kline[3],
                "close": kline[4],
                "volume": kline[5],
            }
            for kline in data
        ]
        return self._proc.normalize_points(records, limit)

    # ── 股票 / ETF ────────────────────────────────────────

    def stock_strategies(self) -> List[Tuple[str, Fetcher]]:
        """Yahoo 始终尝试；Finnhub / Twelve Data 仅在配置了 API Key 时启用"""
        strategies: List[Tuple[str, Fetcher]] = [(self.YAHOO, self._yahoo_history)]
        if self._settings.FINNHUB_API_KEY:
            strategies.append((self.FINNHUB, self._finnhub_history))
        if self._settings.TWELVE_DATA_API_KEY:
            strategies.append((self.TWELVE_DATA, self._twelve_data_history))
        return strategies

    async def fetch_stock_history(self, symbol: str, duration: int) -> List[ProviderResult]:
        """并发请求 Yahoo / Finnhub / Twelve Data，按优先级顺序返回结果"""
        return await self._gather(self.stock_strategies(), symbol, duration)

    async def _yahoo_history(self, symbol: str, duration: int) -> List[PricePoint]:
        data = await self._get_json(
            f"{self._settings.YAHOO_BASE_URL}/v8/finance/chart/{quote(symbol, safe='')}",
            params={"interval": "1mo", "range": "1y"},
        )
        chart = data.get("chart") or {}
        if chart.get("error"):
            raise ProviderError(f"chart error: {chart['error']}")
        result = (chart.get("result") or [None])[0]
        if not result:
            return []
        timestamps = result.get("timestamp") or []
        quotes = result["indicators"]["quote"][0]

        def column(name: str) -> list:
            values = quotes.get(name) or []
            return values + [None] * (len(timestamps) - len(values))

        records = [
            {"date": _epoch_to_date(ts), "open": o, "high": h, "low": l, "close": c, "volume": v}
            for ts, o, h, l, c, v in zip(
                timestamps, column("open"), column("high"), column("low"),
                column("close"), column("volume"),
            )
        ]
        return self._proc.normalize_points(records, min(duration, self._max_points))

    async def _finnhub_history(self, symbol: str, duration: int) -> List[PricePoint]:
        now = int(time.time())
        data = await self._get_json(
            f"{self._settings.FINNHUB_BASE_URL}/stock/candle",
            params={
                "symbol": symbol,
                "resolution": "M",
                "from": now - _ONE_YEAR_SECONDS,
                "to": now,
                "token": self._settings.FINNHUB_API_KEY,
            },
        )
        if data.get("error"):
            raise ProviderError(f"API error: {data['error']}")
        if data.get("s") != "ok":
            raise ProviderError(f"status {data.get('s')!r}")
        records = [
            {"date": _epoch_to_date(ts), "open": o, "high": h, "low": l, "close": c, "volume": v}
            for ts, o, h, l, c, v in zip(
                data["t"], data["o"], data["h"], data["l"], data["c"], data["v"]
            )
        ]
        return self._proc.normalize_points(records, min(duration, self._max_points))

    async def _twelve_data_history(self, symbol: str, duration: int) -> List[PricePoint]:
        end = date.today()
        start = end - timedelta(days=365)
        data = await self._get_json(
            f"{self._settings.TWELVE_DATA_BASE_URL}/time_series",
            params={
                "symbol": symbol,
                "interval": "1month",
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "apikey": self._settings.TWELVE_DATA_API_KEY,
            },
        )
        if data.get("status") != "ok" or data.get("code"):
            raise ProviderError(f"API error: {data.get('message') or data.get('code')}")
        # Twelve Data 按时间倒序返回，统一交给处理层排序
        records = [
            {
                "date": value["datetime"],
                "open": value.get("open"),
                "high": value.get("high"),
                "low": value.get("low"),
                "close": value.get("close"),
                "volume": value.get("volume"),
            }
            for value in data.get("values") or []
        ]
        return self._proc.normalize_points(records, min(duration, self._max_points))

    # ── 代码搜索 ──────────────────────────────────────────

    async def search_symbols(self, query: str, asset_type: str = "stocks") -> List[SymbolMatch]:
        """并发调用已配置的搜索接口，Finnhub 结果在前，各取前 5 条"""
        logger.debug(f"搜索交易代码: {query}（type={asset_type}）")
        searches = []
        if self._settings.FINNHUB_API_KEY:
            searches.append(self._finnhub_search(query))
        if self._settings.TWELVE_DATA_API_KEY:
            searches.append(self._twelve_data_search(query))
        if not searches:
            logger.info("未配置任何搜索数据源，返回空结果")
            return []

        matches: List[SymbolMatch] = []
        for batch in await asyncio.gather(*searches):
            matches.extend(batch)
        return matches

    async def _finnhub_search(self, query: str) -> List[SymbolMatch]:
        try:
            data = await self._get_json(
                f"{self._settings.FINNHUB_BASE_URL}/search",
                params={"q": query, "token": self._settings.FINNHUB_API_KEY},
            )
            return [
                SymbolMatch(
                    symbol=item["symbol"],
                    name=item.get("description") or item["symbol"],
                    type=item.get("type") or "stock",
                    exchange=item.get("primaryExchange") or "Unknown",
                    source=self.FINNHUB,
                )
                for item in (data.get("result") or [])[:_SEARCH_LIMIT_PER_PROVIDER]
            ]
        except (ProviderError, KeyError, TypeError, AttributeError) as exc:
            logger.warning(f"Finnhub 代码搜索失败: {exc!r}")
            return []

    async def _twelve_data_search(self, query: str) -> List[SymbolMatch]:
        try:
            data = await self._get_json(
                f"{self._settings.TWELVE_DATA_BASE_URL}/symbol_search",
                params={"symbol": query, "apikey": self._settings.TWELVE_DATA_API_KEY},
            )
            return [
                SymbolMatch(
                    symbol=item["symbol"],
                    name=item.get("instrument_name") or item["symbol"],
                    type=item.get("instrument_type") or "stock",
                    exchange=item.get("exchange") or "Unknown",
                    source=self.TWELVE_DATA,
                )
                for item in (data.get("data") or [])[:_SEARCH_LIMIT_PER_PROVIDER]
            ]
        except (ProviderError, KeyError, TypeError, AttributeError) as exc:
            logger.warning(f"Twelve Data 代码搜索失败: {exc!r}")
            return []


# ── 模块级别单例 ──────────────────────────────────────────
_acquisition: Optional[AcquisitionLayer] = None


def get_acquisition_layer() -> AcquisitionLayer:
    global _acquisition
    if _acquisition is None:
        _acquisition = AcquisitionLayer()
    return _acquisition


async def close_acquisition_layer() -> None:
    global _acquisition
    if _acquisition is not None:
        await _acquisition.aclose()
        _acquisition = None
