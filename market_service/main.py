"""
MintMate 行情数据服务
独立 FastAPI 应用程序入口

启动方式:
    uvicorn market_service.main:app --host 0.0.0.0 --port 8001
    python -m market_service.main
"""

import logging
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from market_service import __version__
from market_service.config import settings
from market_service.layers.acquisition import close_acquisition_layer
from market_service.models.response import ApiResponse
from market_service.routers import ai, cache, health, investment
from market_service.services.groq_client import close_groq_client

# ── 日志配置 ──────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── 生命周期管理 ──────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用启动/关闭生命周期钩子"""
    logger.info("=" * 60)
    logger.info(f"🚀 MintMate MarketService v{__version__} 启动中")
    logger.info(f"   Finnhub     : {'已配置' if settings.FINNHUB_API_KEY else '未配置'}")
    logger.info(f"   Twelve Data : {'已配置' if settings.TWELVE_DATA_API_KEY else '未配置'}")
    logger.info(f"   Groq        : {'已配置' if settings.GROQ_API_KEY else '未配置'}")
    logger.info("=" * 60)

    if not settings.configured_stock_providers:
        logger.warning("⚠️ 未配置 Finnhub / Twelve Data API Key，股票历史数据接口将返回 400")

    yield

    logger.info("🔄 行情数据服务正在关闭...")
    await close_acquisition_layer()
    await close_groq_client()
    logger.info("✅ 行情数据服务已关闭")


# ── 应用实例 ──────────────────────────────────────────────
app = FastAPI(
    title="MintMate 行情数据服务",
    description=(
        "个人理财应用的行情微服务，提供以下功能：\n"
        "- 📊 历史行情（股票 / ETF / 加密货币）\n"
        "- 🌐 多数据源（Yahoo Finance / Finnhub / Twelve Data / CoinGecko / Binance）\n"
        "- 🗄️ 进程内缓存（5 分钟，最多 100 条）\n"
        "- 📈 收益 / 波动率指标与复利预测\n"
        "- 🤖 Groq LLM 情景预测\n"
        "- 💬 AI 理财助手（理财建议 / 消费分析 / 投资提示）\n\n"
        "**分层架构**\n"
        "```\n"
        "Acquisition Layer  ← 并发请求行情提供商\n"
        "Cache Layer        ← 进程内历史数据缓存\n"
        "Processing Layer   ← 数据清洗、格式化、标准化\n"
        "Analysis Layer     ← 指标计算\n"
        "```"
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS 中间件 ───────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── 请求计时中间件 ─────────────────────────────────────────
@app.middleware("http")
async def add_process_time(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = f"{(time.time() - start) * 1000:.1f}ms"
    return response


# ── 异常处理：统一输出 {status: "error", message} ─────────
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ApiResponse.fail(str(exc.detail)).model_dump(exclude_none=True),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
        for err in errors
    ) or "Invalid request"
    return JSONResponse(
        status_code=400,
        content=ApiResponse.fail(message).model_dump(exclude_none=True),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"未处理的异常: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=ApiResponse.fail("Internal server error").model_dump(exclude_none=True),
    )


# ── 注册路由 ──────────────────────────────────────────────
app.include_router(health.router)
app.include_router(investment.router)
app.include_router(ai.router)
app.include_router(cache.router)


# ── 根路由 ───────────────────────────────────────────────
@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "MintMate MarketService",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


# ── 直接运行入口 ──────────────────────────────────────────
if __name__ == "__main__":
    uvicorn.run(
        "market_service.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
