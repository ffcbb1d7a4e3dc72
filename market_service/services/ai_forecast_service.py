"""
AI 投资预测服务
调用 Groq 生成结构化情景预测；LLM 不可用或返回内容无法解析时使用复利公式兜底
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from market_service.services.groq_client import GroqClient, GroqError, get_groq_client

logger = logging.getLogger(__name__)

_DEFAULT_ANNUAL_RETURN = 0.07
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

_SYSTEM_PROMPT = (
    "You are an expert financial advisor and investment analyst. Provide accurate, "
    "well-reasoned investment forecasts based on the given parameters. Always respond "
    "with valid JSON format."
)

_PROMPT_TEMPLATE = """Analyze the following investment scenario and provide a detailed forecast:

Investment Details:
- Amount: {amount} {currency}
- Duration: {duration} {duration_type}
- Investment Type: {investment_type}
- Risk Appetite: {risk_appetite}
- Expected Return: {expected_return}

User Profile: {user_profile}

Please provide a comprehensive investment forecast including:
1. Projected returns under different market scenarios (bull, bear, neutral)
2. Risk assessment and volatility estimates
3. Recommended investment strategy
4. Key factors that could impact performance
5. Timeline milestones and expected portfolio value at different points
6. Risk mitigation strategies

Format the response as a structured JSON object with the following structure:
{{
  "scenarios": {{
    "bull": {{ "projectedValue": number, "annualReturn": number, "confidence": string }},
    "neutral": {{ "projectedValue": number, "annualReturn": number, "confidence": string }},
    "bear": {{ "projectedValue": number, "annualReturn": number, "confidence": string }}
  }},
  "riskAssessment": {{
    "volatility": string,
    "riskLevel": string,
    "keyRisks": [string],
    "mitigationStrategies": [string]
  }},
  "recommendations": {{
    "strategy": string,
    "diversification": string,
    "timeline": string
  }},
  "milestones": [
    {{ "year": number, "projectedValue": number, "notes": string }}
  ],
  "factors": [string],
  "summary": string
}}"""


def extract_json(text: str) -> Dict[str, Any]:
    """从模型回复中提取第一个 JSON 对象（回复可能夹带说明文字）"""
    match = _JSON_OBJECT.search(text)
    data = json.loads(match.group(0) if match else text)
    if not isinstance(data, dict):
        raise ValueError("AI response is not a JSON object")
    return data


class AIForecastService:
    """基于 LLM 的情景预测"""

    def __init__(self, groq: Optional[GroqClient] = None):
        self._groq = groq if groq is not None else get_groq_client()

    def build_prompt(self, params: Dict[str, Any]) -> str:
        expected = params.get("expected_return")
        return _PROMPT_TEMPLATE.format(
            amount=params["amount"],
            currency=params.get("currency", "USD"),
            duration=params["duration"],
            duration_type=params.get("duration_type", "years"),
            investment_type=params["investment_type"],
            risk_appetite=params["risk_appetite"],
            expected_return=f"{expected * 100:.2f}%" if expected else "Not specified",
            user_profile=json.dumps(params.get("user_profile") or {}),
        )

    async def generate(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """生成预测；任何 LLM / 解析失败都降级为 fallback_forecast"""
        if not self._groq.enabled:
            logger.info("GROQ_API_KEY 未配置，使用兜底预测")
            return self.fallback_forecast(params)

        try:
            reply = await self._groq.complete_with_retry(
                self.build_prompt(params),
                system=_SYSTEM_PROMPT,
                temperature=0.3,
                max_tokens=4000,
            )
            forecast = extract_json(reply)
        except GroqError as exc:
            logger.error(f"AI 预测生成失败，使用兜底预测: {exc}")
            return self.fallback_forecast(params)
        except ValueError as exc:
            logger.error(f"AI 返回内容无法解析为 JSON，使用兜底预测: {exc}")
            return self.fallback_forecast(params)

        forecast["metadata"] = _metadata(params, self._groq.model, "AI-generated")
        return forecast

    @staticmethod
    def fallback_forecast(params: Dict[str, Any]) -> Dict[str, Any]:
        """按预期年化收益（默认 7%）复利计算三种情景"""
        amount = params["amount"]
        duration = params["duration"]
        duration_type = params.get("duration_type", "years")
        investment_type = params["investment_type"]
        risk_appetite = params.get("risk_appetite")
        annual = params.get("expected_return") or _DEFAULT_ANNUAL_RETURN
        years = duration / 12 if duration_type == "months" else duration

        projected = amount * (1 + annual) ** years

        return {
            "scenarios": {
                "bull": {"projectedValue": projected * 1.2, "annualReturn": annual * 1.3, "confidence": "High"},
                "neutral": {"projectedValue": projected, "annualReturn": annual, "confidence": "Medium"},
                "bear": {"projectedValue": projected * 0.8, "annualReturn": annual * 0.7, "confidence": "Low"},
            },
            "riskAssessment": {
                "volatility": "Moderate",
                "riskLevel": risk_appetite or "Medium",
                "keyRisks": ["Market volatility", "Economic downturns", "Interest rate changes"],
                "mitigationStrategies": ["Diversification", "Regular rebalancing", "Long-term perspective"],
            },
            "recommendations": {
                "strategy": f"Invest in {investment_type} with {risk_appetite} risk tolerance",
                "diversification": "Consider spreading investments across different asset classes",
                "timeline": f"{duration} {duration_type} investment horizon",
            },
            "milestones": [
                {"year": 1, "projectedValue": amount * (1 + annual), "notes": "First year milestone"},
                {
                    "year": int(years // 2),
                    "projectedValue": amount * (1 + annual) ** (years / 2),
                    "notes": "Mid-term milestone",
                },
                {"year": years, "projectedValue": projected, "notes": "Target completion"},
            ],
            "factors": ["Market performance", "Economic conditions", "Investment strategy"],
            "summary": (
                f"Based on {annual * 100:g}% annual return, your {amount} investment could grow to "
                f"approximately {projected:.2f} over {years:g} years."
            ),
            "metadata": _metadata(params, "fallback", "Fallback calculation"),
        }


def _metadata(params: Dict[str, Any], model: str, confidence: str) -> Dict[str, Any]:
    return {
        "generatedAt": datetime.now(tz=timezone.utc).isoformat(),
        "inputParameters": params,
        "aiModel": model,
        "confidence": confidence,
    }


# ── 模块级别单例 ──────────────────────────────────────────
_ai_forecast_service: Optional[AIForecastService] = None


def get_ai_forecast_service() -> AIForecastService:
    global _ai_forecast_service
    if _ai_forecast_service is None:
        _ai_forecast_service = AIForecastService()
    return _ai_forecast_service
