"""
行情领域模型
对外 JSON 字段统一使用 camelCase（与前端约定一致），Python 内部使用 snake_case
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class PricePoint(_CamelModel):
    """单个时间点的价格（CoinGecko 只提供收盘价，其余字段可能为空）"""
    date: str
    close: float
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    volume: Optional[float] = None


class PeriodReturn(_CamelModel):
    date: str
    return_: float = Field(alias="return")


class MetricsSummary(_CamelModel):
    """价格序列统计指标；空序列时所有字段为 None，序列化为 {}"""
    current_price: Optional[float] = None
    oldest_price: Optional[float] = None
    total_return: Optional[float] = None
    volatility: Optional[float] = None
    avg_return: Optional[float] = None
    best_period: Optional[PeriodReturn] = None
    worst_period: Optional[PeriodReturn] = None
    data_points: Optional[int] = None
    time_span: Optional[str] = None


class HistoricalSeries(_CamelModel):
    """历史行情序列，data 按日期升序（最旧在前）"""
    symbol: str
    data: List[PricePoint]
    metrics: MetricsSummary
    source: str
    requested_duration: int
    actual_data_points: int
    note: Optional[str] = None

    @property
    def prices(self) -> List[float]:
        return [p.close for p in self.data]

    @property
    def dates(self) -> List[str]:
        return [p.date for p in self.data]

    def to_response(self) -> dict:
        """转换为前端期望的响应结构"""
        body = {
            "symbol": self.symbol,
            "prices": self.prices,
            "dates": self.dates,
            "metrics": self.metrics.to_dict(),
            "source": self.source,
            "requestedDuration": self.requested_duration,
            "actualDataPoints": self.actual_data_points,
            "data": [p.to_dict() for p in self.data],
        }
        if self.note:
            body["note"] = self.note
        return body


class SymbolMatch(_CamelModel):
    symbol: str
    name: str
    type: str
    exchange: str
    source: str
