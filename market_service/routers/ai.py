"""
AI 助手路由（Groq LLM，无持久化）
POST /api/ai/response              - 任意 prompt 问答
POST /api/ai/advice                - 按类别生成理财建议
POST /api/ai/analyze-spending      - 消费模式分析
POST /api/ai/investment-tips       - 投资提示
POST /api/ai/trending-investments  - 热门投资
POST /api/ai/daily-tip             - 每日投资提示
"""

from typing import Any, Awaitable, Dict, List, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from market_service.models.response import ApiResponse
from market_service.services.ai_advice_service import get_ai_advice_service
from market_service.services.groq_client import GroqError

router = APIRouter(prefix="/api/ai", tags=["AI 助手"])


# ── 请求模型 ──────────────────────────────────────────────

class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PromptRequest(_CamelRequest):
    prompt: Optional[str] = None


class AdviceRequest(_CamelRequest):
    category: Optional[str] = None
    context: Optional[str] = None
    user_profile: Optional[Dict[str, Any]] = Field(default_factory=dict)


class SpendingRequest(_CamelRequest):
    transactions: Optional[List[Dict[str, Any]]] = None
    time_frame: Optional[str] = None


class TipsRequest(_CamelRequest):
    context: Optional[str] = None
    user_profile: Optional[Dict[str, Any]] = Field(default_factory=dict)


class TrendingRequest(_CamelRequest):
    market_context: Optional[str] = None
    user_preferences: Optional[Dict[str, Any]] = Field(default_factory=dict)


class DailyTipRequest(_CamelRequest):
    user_context: Optional[str] = None


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


async def _guard(call: Awaitable[Any]) -> Any:
    """LLM 调用失败时统一返回 500"""
    try:
        return await call
    except GroqError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


# ── 路由处理器 ────────────────────────────────────────────

@router.post("/response", response_model=ApiResponse)
async def ai_response(body: PromptRequest):
    """将 prompt 原样发送给 LLM，返回回复文本"""
    if not body.prompt or not body.prompt.strip():
        raise _bad_request("Prompt is required and must be a string")
    answer = await _guard(get_ai_advice_service().respond(body.prompt))
    return ApiResponse.ok(data=answer)


@router.post("/advice", response_model=ApiResponse)
async def financial_advice(body: AdviceRequest):
    if not body.category or not body.category.strip():
        raise _bad_request("Advice category is required")
    result = await _guard(
        get_ai_advice_service().financial_advice(body.category, body.context, body.user_profile)
    )
    return ApiResponse.ok(data=result, message="Financial advice generated successfully")


@router.post("/analyze-spending", response_model=ApiResponse)
async def analyze_spending(body: SpendingRequest):
    if body.transactions is None:
        raise _bad_request("Transactions array is required")
    result = await _guard(
        get_ai_advice_service().analyze_spending(body.transactions, body.time_frame)
    )
    return ApiResponse.ok(data=result, message="Spending pattern analysis completed")


@router.post("/investment-tips", response_model=ApiResponse)
async def investment_tips(body: TipsRequest):
    result = await _guard(get_ai_advice_service().investment_tips(body.context, body.user_profile))
    return ApiResponse.ok(data=result, message="Investment tips generated successfully")


@router.post("/trending-investments", response_model=ApiResponse)
async def trending_investments(body: TrendingRequest):
    result = await _guard(
        get_ai_advice_service().trending_investments(body.market_context, body.user_preferences)
    )
    return ApiResponse.ok(data=result, message="Trending investments analysis completed")


@router.post("/daily-tip", response_model=ApiResponse)
async def daily_tip(body: DailyTipRequest):
    result = await _guard(get_ai_advice_service().daily_tip(body.user_context))
    return ApiResponse.ok(data=result, message="Daily investment tip generated successfully")
