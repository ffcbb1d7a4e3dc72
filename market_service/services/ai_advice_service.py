"""
AI 理财建议服务
无状态的 Groq 调用：自由问答、理财建议、消费分析、投资提示、热门投资、每日提示。
结构化结果（提示 / 热门投资 / 每日提示）优先解析回复中的 JSON，
其次按 "Key: value" 行解析，JSON 损坏时返回内置默认值。
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from market_service.services.groq_client import GroqClient, get_groq_client

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

_DEFAULT_TIPS = [{
    "title": "Diversify Your Portfolio",
    "description": "Consider spreading your investments across different asset classes to reduce risk.",
    "category": "general",
    "risk_level": "medium",
    "action_items": ["Review current portfolio", "Add new asset classes"],
    "expected_impact": "long term",
}]

_DEFAULT_TRENDING = [
    {
        "name": "S&P 500 ETF",
        "description": "Broad market index fund",
        "returns": "+15.2%",
        "risk": "low",
        "category": "stocks",
        "symbol": "SPY",
        "trend_reason": "Market recovery and economic growth",
        "recommendation": "buy",
    },
    {
        "name": "Technology Stocks",
        "description": "Growth technology companies",
        "returns": "+22.8%",
        "risk": "medium",
        "category": "stocks",
        "symbol": "QQQ",
        "trend_reason": "AI and innovation driving growth",
        "recommendation": "buy",
    },
]

_DEFAULT_DAILY_TIP = {
    "title": "Start Investing Early",
    "content": "The earlier you start investing, the more time your money has to grow through compound interest.",
    "category": "general",
    "difficulty": "beginner",
    "time_horizon": "long term",
}


def _now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def _compact(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


# ── Prompt 构建 ───────────────────────────────────────────

def build_advice_prompt(category: str, context: Optional[str] = None, user_profile: Optional[dict] = None) -> str:
    prompt = f"As a financial advisor, provide personalized advice for {category}. "
    if context:
        prompt += f"User context: {context}. "
    if user_profile is not None:
        prompt += f"User profile: {_compact(user_profile)}. "
    return prompt + (
        "Provide practical, actionable advice that is easy to understand and implement. "
        "Keep the response focused and relevant to the user's situation."
    )


def build_spending_prompt(transactions: List[Dict[str, Any]], time_frame: str = "monthly") -> str:
    summary = ", ".join(
        f"{t.get('category')}: ${t.get('amount')} on {t.get('date')}" for t in transactions
    )
    return (
        f"Analyze the following spending transactions for {time_frame} period: {summary}. \n"
        "Provide insights on spending patterns, identify areas for improvement, and suggest "
        "specific actions to optimize spending. \n"
        "Focus on practical recommendations that can help reduce unnecessary expenses and "
        "improve financial health."
    )


def build_tips_prompt(context: Optional[str] = None, user_profile: Optional[dict] = None) -> str:
    prompt = (
        "As a financial advisor, provide 3-5 actionable investment tips that are relevant "
        "for today's market conditions. "
    )
    if context:
        prompt += f"User context: {context}. "
    if user_profile is not None:
        prompt += f"User profile: {_compact(user_profile)}. "
    return prompt + """

Please provide tips in the following JSON format:
{
  "tips": [
    {
      "title": "Tip Title",
      "description": "Detailed explanation of the tip",
      "category": "investment_type",
      "risk_level": "low/medium/high",
      "action_items": ["action1", "action2"],
      "expected_impact": "short/long term benefit"
    }
  ]
}

Focus on practical, actionable advice that considers current market conditions, risk management, and diversification strategies."""


def build_trending_prompt(market_context: Optional[str] = None, user_preferences: Optional[dict] = None) -> str:
    prompt = (
        "Analyze current market trends and provide 4-6 trending investment opportunities "
        "across different asset classes. "
    )
    if market_context:
        prompt += f"Market context: {market_context}. "
    if user_preferences is not None:
        prompt += f"User preferences: {_compact(user_preferences)}. "
    return prompt + """

Please provide trending investments in the following JSON format:
{
  "trendingInvestments": [
    {
      "name": "Investment Name",
      "description": "Brief description",
      "returns": "expected_return_percentage",
      "risk": "low/medium/high",
      "category": "asset_class",
      "symbol": "ticker_symbol",
      "trend_reason": "why it's trending",
      "recommendation": "buy/hold/watch"
    }
  ]
}

Include a mix of stocks, ETFs, bonds, and alternative investments. Consider current market sentiment, sector performance, and economic indicators."""


def build_daily_tip_prompt(user_context: Optional[str] = None) -> str:
    prompt = "Provide one concise, actionable investment tip for today. "
    if user_context:
        prompt += f"User context: {user_context}. "
    return prompt + """

Please provide the tip in the following JSON format:
{
  "tip": {
    "title": "Tip Title",
    "content": "Detailed explanation of the tip",
    "category": "investment_category",
    "difficulty": "beginner/intermediate/advanced",
    "time_horizon": "short/medium/long term"
  }
}

Make it practical, educational, and relevant to current market conditions. Keep it concise but informative."""


# ── 回复解析 ──────────────────────────────────────────────

def _field(line: str, default: str) -> str:
    """取 "Key: value" 中第一个冒号后的部分"""
    parts = line.split(":")
    value = parts[1].strip() if len(parts) > 1 else ""
    return value or default


def _json_section(text: str, key: str, empty: Any) -> Optional[Any]:
    """
    回复中含 JSON 对象时返回其中 key 对应的值（缺失时为 empty）；
    不含 JSON 时返回 None，由调用方按行解析。JSON 损坏时抛出 ValueError。
    """
    match = _JSON_OBJECT.search(text)
    if not match:
        return None
    parsed = json.loads(match.group(0))
    return parsed.get(key) or empty


def _lines(text: str) -> List[str]:
    return [line for line in text.split("\n") if line.strip()]


def parse_investment_tips(text: str) -> List[Dict[str, Any]]:
    try:
        tips = _json_section(text, "tips", [])
    except ValueError as exc:
        logger.error(f"投资提示解析失败，使用默认提示: {exc}")
        return [dict(tip) for tip in _DEFAULT_TIPS]
    if tips is not None:
        return tips

    tips = []
    current: Dict[str, Any] = {}
    for line in _lines(text):
        if "Title:" in line or "title:" in line:
            if current:
                tips.append(current)
            current = {
                "title": _field(line, "Investment Tip"),
                "description": "",
                "category": "general",
                "risk_level": "medium",
                "action_items": [],
                "expected_impact": "long term",
            }
        elif "Description:" in line or "description:" in line:
            current["description"] = _field(line, "")
        elif "Category:" in line or "category:" in line:
            current["category"] = _field(line, "general")
        elif "Risk:" in line or "risk:" in line:
            current["risk_level"] = _field(line, "medium")
    if current:
        tips.append(current)
    return tips


def parse_trending_investments(text: str) -> List[Dict[str, Any]]:
    try:
        investments = _json_section(text, "trendingInvestments", [])
    except ValueError as exc:
        logger.error(f"热门投资解析失败，使用默认列表: {exc}")
        return [dict(item) for item in _DEFAULT_TRENDING]
    if investments is not None:
        return investments

    investments = []
    current: Dict[str, Any] = {}
    for line in _lines(text):
        if "Name:" in line or "name:" in line:
            if current:
                investments.append(current)
            current = {
                "name": _field(line, "Investment"),
                "description": "",
                "returns": "+0.0%",
                "risk": "medium",
                "category": "general",
                "symbol": "",
                "trend_reason": "",
                "recommendation": "watch",
            }
        elif "Description:" in line or "description:" in line:
            current["description"] = _field(line, "")
        elif "Returns:" in line or "returns:" in line:
            current["returns"] = _field(line, "+0.0%")
        elif "Risk:" in line or "risk:" in line:
            current["risk"] = _field(line, "medium")
        elif "Category:" in line or "category:" in line:
            current["category"] = _field(line, "general")
        elif "Symbol:" in line or "symbol:" in line:
            current["symbol"] = _field(line, "")
    if current:
        investments.append(current)
    return investments


def parse_daily_tip(text: str) -> Dict[str, Any]:
    try:
        tip = _json_section(text, "tip", {})
    except ValueError as exc:
        logger.error(f"每日提示解析失败，使用默认提示: {exc}")
        return dict(_DEFAULT_DAILY_TIP)
    if tip is not None:
        return tip

    tip = {
        "title": "Daily Investment Tip",
        "content": text,
        "category": "general",
        "difficulty": "beginner",
        "time_horizon": "medium term",
    }
    for line in _lines(text):
        if "Title:" in line or "title:" in line:
            tip["title"] = _field(line, "Daily Investment Tip")
        elif "Content:" in line or "content:" in line:
            tip["content"] = _field(line, text)
        elif "Category:" in line or "category:" in line:
            tip["category"] = _field(line, "general")
        elif "Difficulty:" in line or "difficulty:" in line:
            tip["difficulty"] = _field(line, "beginner")
        elif "Time Horizon:" in line or "time_horizon:" in line:
            tip["time_horizon"] = _field(line, "medium term")
    return tip


# ── 服务 ─────────────────────────────────────────────────

class AIAdviceService:
    """理财建议类 LLM 调用；Groq 错误（GroqError）直接向上抛出，由路由转换为 HTTP 错误"""

    def __init__(self, groq: Optional[GroqClient] = None):
        self._groq = groq if groq is not None else get_groq_client()

    async def _ask(self, prompt: str) -> str:
        return await self._groq.complete_with_retry(prompt)

    async def respond(self, prompt: str) -> str:
        return await self._ask(prompt)

    async def financial_advice(
        self, category: str, context: Optional[str] = None, user_profile: Optional[dict] = None
    ) -> Dict[str, Any]:
        advice = await self._ask(build_advice_prompt(category, context, user_profile))
        return {"advice": advice, "category": category, "generatedAt": _now()}

    async def analyze_spending(
        self, transactions: List[Dict[str, Any]], time_frame: Optional[str] = None
    ) -> Dict[str, Any]:
        analysis = await self._ask(build_spending_prompt(transactions, time_frame or "monthly"))
        return {
            "analysis": analysis,
            "timeFrame": time_frame,
            "transactionCount": len(transactions),
            "analyzedAt": _now(),
        }

    async def investment_tips(
        self, context: Optional[str] = None, user_profile: Optional[dict] = None
    ) -> Dict[str, Any]:
        reply = await self._ask(build_tips_prompt(context, user_profile))
        return {"tips": parse_investment_tips(reply), "generatedAt": _now(), "source": "Groq AI"}

    async def trending_investments(
        self, market_context: Optional[str] = None, user_preferences: Optional[dict] = None
    ) -> Dict[str, Any]:
        reply = await self._ask(build_trending_prompt(market_context, user_preferences))
        return {
            "trendingInvestments": parse_trending_investments(reply),
            "generatedAt": _now(),
            "source": "Groq AI Market Analysis",
        }

    async def daily_tip(self, user_context: Optional[str] = None) -> Dict[str, Any]:
        reply = await self._ask(build_daily_tip_prompt(user_context))
        return {"tip": parse_daily_tip(reply), "generatedAt": _now(), "source": "Groq AI Daily Tip"}


# ── 模块级别单例 ──────────────────────────────────────────
_ai_advice_service: Optional[AIAdviceService] = None


def get_ai_advice_service() -> AIAdviceService:
    global _ai_advice_service
    if _ai_advice_service is None:
        _ai_advice_service = AIAdviceService()
    return _ai_advice_service
