"""健康检查路由"""

import time

from fastapi import APIRouter

from market_service import __version__
from market_service.config import settings
from market_service.layers.cache import get_cache_layer

router = APIRouter(tags=["健康检查"])


@router.get("/health")
async def health():
    """服务健康检查"""
    return {
        "status": "success",
        "data": {
            "status": "ok",
            "version": __version__,
            "timestamp": int(time.time()),
            "service": "MintMate MarketService",
            "providers": {
                "stocks": ["yahoo"] + settings.configured_stock_providers,
                "crypto": ["coingecko", "binance"],
                "llm": bool(settings.GROQ_API_KEY),
            },
            "cache": get_cache_layer().stats(),
        },
        "message": "服务运行正常",
    }


@router.get("/healthz")
async def healthz():
    """存活检查（Kubernetes liveness）"""
    return {"status": "ok"}


@router.get("/readyz")
async def readyz():
    """就绪检查（Kubernetes readiness）"""
    return {"ready": True}
