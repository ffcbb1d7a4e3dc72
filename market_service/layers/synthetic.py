"""
示例数据生成
所有数据源均不可用时，基于静态基准价生成按月随机游走的模拟行情
"""

import random
from datetime import date
from typing import Optional

from market_service.config import settings
from market_service.layers.analysis import metrics_for_series
from market_service.models.market import HistoricalSeries, PricePoint

SAMPLE_SOURCE = "sample"
SAMPLE_NOTE = "Sample data (API unavailable) - This is simulated data for demonstration purposes"

DEFAULT_BASE_PRICE = 100.0

_BASE_PRICES = {
    "AAPL": 175, "MSFT": 350, "GOOGL": 2800, "GOOG": 2800, "TSLA": 250,
    "AMZN": 150, "META": 300, "NVDA": 500, "NFLX": 400, "BRK.A": 500000,
    "JNJ": 150, "V": 250, "JPM": 150, "PG": 150, "UNH": 500, "HD": 300,
    "MA": 400, "BTCUSDT": 45000, "ETHUSDT": 3000,
}


def base_price(symbol: str) -> float:
    return float(_BASE_PRICES.get(symbol, DEFAULT_BASE_PRICE))


def _month_start(today: date, months_back: int) -> date:
    index = today.year * 12 + (today.month - 1) - months_back
    return date(index // 12, index % 12 + 1, 1)


def generate_sample_series(
    symbol: str,
    duration: int,
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
) -> HistoricalSeries:
    """
    生成 min(duration, MAX_DATA_POINTS) 个月的模拟数据（最旧在前）

    每月收盘价按 (rand - 0.48) * 1% 漂移，下限为 1；
    开盘价在收盘价附近 ±0.5% 浮动，高 / 低价在开收盘基础上再扩 0.5%，
    成交量在 [10000, 110000) 之间均匀分布。
    """
    rng = rng or random.Random()
    today = today or date.today()
    months = max(0, min(duration, settings.MAX_DATA_POINTS))

    price = base_price(symbol)
    points = []
    for i in range(months - 1, -1, -1):
        price = max(price * (1 + (rng.random() - 0.48) * 0.01), 1.0)
        open_price = price * (1 + (rng.random() - 0.5) * 0.01)
        points.append(PricePoint(
            date=_month_start(today, i).isoformat(),
            open=round(open_price, 2),
            high=round(max(open_price, price) * 1.005, 2),
            low=round(min(open_price, price) * 0.995, 2),
            close=round(price, 2),
            volume=float(rng.randrange(10000, 110000)),
        ))

    return HistoricalSeries(
        symbol=symbol,
        data=points,
        metrics=metrics_for_series([p.close for p in points], [p.date for p in points]),
        source=SAMPLE_SOURCE,
        requested_duration=duration,
        actual_data_points=len(points),
        note=SAMPLE_NOTE,
    )
