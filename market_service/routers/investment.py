"""
投资行情路由
POST /api/investment/historical-data   - 获取历史行情（多数据源 + 缓存 + 示例数据兜底）
GET  /api/investment/search-symbols    - 搜索交易代码
POST /api/investment/forecast          - 复利收益预测
POST /api/investment/ai-forecast       - AI 情景预测
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from market_service.models.response import ApiResponse
from market_service.services.ai_forecast_service import get_ai_forecast_service
from market_service.services.forecast_service import get_forecast_service
from market_service.services.market_data_service import (
    HistoricalDataUnavailable,
    ProviderConfigurationError,
    get_market_data_service,
)

router = APIRouter(prefix="/api/investment", tags=["投资行情"])

_RISK_LEVELS = ("low", "medium", "high")


# ── 请求模型 ──────────────────────────────────────────────

class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HistoricalDataRequest(_CamelRequest):
    symbol: Optional[str] = None
    type: Optional[str] = None
    interval: str = "monthly"
    duration: int = Field(default=10, ge=1)
    allow_sample: bool = True


class ForecastRequest(_CamelRequest):
    investment_amount: Optional[float] = None
    duration: Optional[int] = None
    risk_appetite: Optional[str] = None
    investment_type: Optional[str] = None
    expected_return: Optional[float] = None
    currency: Optional[str] = None


class AIForecastRequest(_CamelRequest):
    amount: float = Field(gt=0)
    duration: float = Field(gt=0)
    duration_type: str = "years"
    investment_type: str
    risk_appetite: str
    expected_return: Optional[float] = None
    currency: str = "USD"
    user_profile: Dict[str, Any] = Field(default_factory=dict)


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


# ── 路由处理器 ────────────────────────────────────────────

@router.post("/historical-data", response_model=ApiResponse)
async def get_historical_data(body: HistoricalDataRequest):
    """
    获取历史行情

    - crypto：CoinGecko → Binance → 示例数据
    - 其他：Yahoo Finance → Finnhub → Twelve Data → 示例数据
    - `allowSample=false` 时不返回示例数据，全部失败返回 500
    """
    if not body.symbol or not body.symbol.strip():
        raise _bad_request("Symbol is required")

    svc = get_market_data_service()
    try:
        series = await svc.get_historical_data(
            symbol=body.symbol,
            asset_type=body.type,
            interval=body.interval,
            duration=body.duration,
            allow_sample=body.allow_sample,
        )
    except ProviderConfigurationError as exc:
        raise _bad_request(str(exc))
    except HistoricalDataUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        )
    return ApiResponse.ok(data=series.to_response())


@router.get("/search-symbols", response_model=ApiResponse)
async def search_symbols(
    query: Optional[str] = Query(default=None, description="交易代码或名称关键词，至少 2 个字符"),
    type: str = Query(default="stocks", description="资产类型"),
):
    """根据关键词搜索交易代码（按代码去重，最多 10 条）"""
    matches = await get_market_data_service().search_symbols(query, type)
    return ApiResponse.ok(data=[m.to_dict() for m in matches])


@router.post("/forecast", response_model=ApiResponse)
async def generate_forecast(body: ForecastRequest):
    """按风险偏好生成逐年复利预测"""
    if not body.investment_amount or body.investment_amount <= 0:
        raise _bad_request("Investment amount must be greater than 0")
    if not body.duration or body.duration <= 0 or body.duration > 30:
        raise _bad_request("Duration must be between 1 and 30 years")
    if not body.risk_appetite or body.risk_appetite.lower() not in _RISK_LEVELS:
        raise _bad_request("Risk appetite must be low, medium, or high")
    if not body.investment_type:
        raise _bad_request("Investment type is required")
    if body.expected_return is None or body.expected_return < 0 or body.expected_return > 100:
        raise _bad_request("Expected return must be between 0 and 100")

    result = get_forecast_service().generate(
        investment_amount=body.investment_amount,
        duration=body.duration,
        risk_appetite=body.risk_appetite,
        investment_type=body.investment_type,
        expected_return=body.expected_return,
        currency=body.currency,
    )
    return ApiResponse.ok(data=result)


@router.post("/ai-forecast", response_model=ApiResponse)
async def generate_ai_forecast(body: AIForecastRequest):
    """AI 情景预测（牛市 / 中性 / 熊市），LLM 不可用时返回公式计算结果"""
    result = await get_ai_forecast_service().generate(body.model_dump())
    return ApiResponse.ok(data=result)
