"""
投资预测服务
按风险偏好调整收益率与波动率，逐年复利并叠加随机扰动，生成增长曲线与规则化建议
"""

import logging
import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# 风险偏好 → (收益率调整函数, 波动率)
_RISK_PROFILES = {
    "low": (lambda r: min(r, 6.0), 8.0),
    "medium": (lambda r: r, 15.0),
    "high": (lambda r: max(r, 12.0), 25.0),
}

_MIN_ANNUAL_RETURN = -20.0
_MAX_ANNUAL_RETURN = 50.0

_TYPE_INSIGHTS = {
    "stocks": "Stock investments typically offer higher returns but come with market volatility. Consider diversifying across sectors.",
    "mutual funds": "Mutual funds provide diversification and professional management, making them suitable for most investors.",
    "crypto": "Cryptocurrency investments are highly volatile and speculative. Only invest what you can afford to lose.",
    "bonds": "Bonds offer stability and regular income, making them ideal for conservative investors.",
    "etfs": "ETFs combine the benefits of stocks and mutual funds with lower fees and better liquidity.",
    "real estate": "Real estate investments provide tangible assets and potential rental income, but require significant capital.",
}

_RISK_INSIGHTS = {
    "low": "Your conservative approach with {risk} risk appetite provides stability but may limit growth potential.",
    "medium": "Your balanced {risk} risk approach offers a good mix of growth potential and stability.",
    "high": "Your aggressive {risk} risk strategy has higher growth potential but also increased volatility.",
}


class ForecastService:
    """收益预测（随机扰动的复利模型）"""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def generate(
        self,
        investment_amount: float,
        duration: int,
        risk_appetite: str,
        investment_type: str,
        expected_return: float,
        currency: Optional[str] = None,
    ) -> Dict[str, Any]:
        risk = risk_appetite.lower()
        adjust, volatility = _RISK_PROFILES[risk]
        base_return = adjust(expected_return)

        year_wise: List[Dict[str, float]] = []
        value = investment_amount
        for year in range(1, duration + 1):
            annual = base_return + (self._rng.random() - 0.5) * volatility
            annual = min(max(annual, _MIN_ANNUAL_RETURN), _MAX_ANNUAL_RETURN)
            value = value * (1 + annual / 100)
            year_wise.append({
                "year": year,
                "value": value,
                "growth": annual,
                "cumulativeGrowth": (value - investment_amount) / investment_amount * 100,
            })

        projected = year_wise[-1]["value"]
        total_growth = (projected - investment_amount) / investment_amount * 100
        logger.debug(f"预测完成: {investment_amount} → {projected:.2f}（{duration} 年，{risk}）")

        return {
            "forecast": {
                "projectedValue": projected,
                "totalGrowth": total_growth,
                "annualizedReturn": (projected / investment_amount) ** (1.0 / duration) - 1,
                "initialInvestment": investment_amount,
                "duration": duration,
            },
            "yearWiseGrowth": year_wise,
            "insights": build_insights(
                projected_value=projected,
                total_growth=total_growth,
                risk_appetite=risk_appetite,
                investment_type=investment_type,
                duration=duration,
            ),
            "riskAnalysis": {
                "volatility": volatility,
                "expectedReturn": base_return,
                "riskRewardRatio": base_return / volatility,
                "maxDrawdown": volatility * 0.5,
                "sharpeRatio": base_return / volatility,
            },
            "parameters": {
                "investmentAmount": investment_amount,
                "duration": duration,
                "riskAppetite": risk_appetite,
                "investmentType": investment_type,
                "expectedReturn": expected_return,
                "currency": currency,
                "generatedAt": datetime.now(tz=timezone.utc).isoformat(),
            },
        }


def build_insights(
    projected_value: float,
    total_growth: float,
    risk_appetite: str,
    investment_type: str,
    duration: int,
) -> List[str]:
    """根据预测结果生成规则化建议"""
    insights = []
    if total_growth > 0:
        insights.append(
            f"Your investment is projected to grow by {total_growth:.1f}% over {duration} years, "
            f"potentially reaching ${projected_value:.2f}."
        )
    else:
        insights.append(
            f"Based on current market conditions, your investment may experience a decline of "
            f"{abs(total_growth):.1f}% over {duration} years."
        )

    risk_text = _RISK_INSIGHTS.get(risk_appetite.lower())
    if risk_text:
        insights.append(risk_text.format(risk=risk_appetite))

    type_text = _TYPE_INSIGHTS.get(investment_type.lower())
    if type_text:
        insights.append(type_text)

    if duration >= 10:
        insights.append(
            f"Long-term investments ({duration}+ years) typically benefit from compound growth "
            "and can weather market fluctuations."
        )
    elif duration >= 5:
        insights.append(
            f"Medium-term investments ({duration} years) balance growth potential with manageable risk."
        )
    else:
        insights.append(
            f"Short-term investments ({duration} years) may be more suitable for specific financial "
            "goals or if you need liquidity."
        )

    if total_growth > 50:
        insights.append(
            "The power of compound interest is evident in your forecast, showing how small annual "
            "returns can lead to significant long-term growth."
        )

    insights.append(
        "Remember that market timing is difficult. Regular investments (dollar-cost averaging) "
        "often perform better than trying to time the market."
    )
    insights.append(
        "Consider diversifying your portfolio across different asset classes to reduce risk "
        "and improve potential returns."
    )
    return insights


# ── 模块级别单例 ──────────────────────────────────────────
_forecast_service: Optional[ForecastService] = None


def get_forecast_service() -> ForecastService:
    global _forecast_service
    if _forecast_service is None:
        _forecast_service = ForecastService()
    return _forecast_service
