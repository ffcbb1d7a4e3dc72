"""
Layer 4 – 指标分析层
在价格序列上计算总收益、平均收益、波动率以及最佳 / 最差区间
"""

import logging
import math
from typing import List, Sequence

import pandas as pd

from market_service.models.market import MetricsSummary, PeriodReturn

logger = logging.getLogger(__name__)


def calculate_metrics(prices: Sequence[float], dates: Sequence[str]) -> MetricsSummary:
    """
    计算价格序列指标

    prices / dates 必须按时间倒序排列（索引 0 为最新）。
    区间收益 rate_i = (p[i-1] - p[i]) / p[i] * 100，i = 1..n-1，
    只统计有限值；波动率为这些收益率的总体标准差。
    """
    if len(prices) == 0:
        return MetricsSummary()

    current_price = float(prices[0])
    oldest_price = float(prices[-1])
    total_return = (
        (current_price - oldest_price) / oldest_price * 100 if oldest_price else 0.0
    )

    series = pd.Series(list(prices), dtype=float)
    rates = (series.shift(1) - series) / series * 100
    rates = rates.iloc[1:]
    finite = rates.map(math.isfinite)
    if not finite.all():
        logger.debug(f"跳过 {int((~finite).sum())} 个无效区间收益（价格为 0 或缺失）")
    rates = rates[finite]

    best_period = worst_period = None
    if rates.empty:
        avg_return = 0.0
        volatility = 0.0
    else:
        avg_return = float(rates.mean())
        volatility = float(rates.std(ddof=0))
        # idxmax / idxmin 在并列时取第一个出现的位置
        best_idx = rates.idxmax()
        worst_idx = rates.idxmin()
        best_period = PeriodReturn(date=dates[best_idx], return_=float(rates[best_idx]))
        worst_period = PeriodReturn(date=dates[worst_idx], return_=float(rates[worst_idx]))

    return MetricsSummary(
        current_price=current_price,
        oldest_price=oldest_price,
        total_return=total_return,
        volatility=volatility,
        avg_return=avg_return,
        best_period=best_period,
        worst_period=worst_period,
        data_points=len(prices),
        time_span=f"{len(dates)} periods",
    )


def metrics_for_series(closes: List[float], dates: List[str]) -> MetricsSummary:
    """按升序排列的序列计算指标（内部先反转为最新在前）"""
    return calculate_metrics(closes[::-1], dates[::-1])
