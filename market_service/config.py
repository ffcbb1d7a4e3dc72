"""
行情数据服务配置模块
支持从环境变量及 .env 文件读取配置
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MarketServiceSettings(BaseSettings):
    """行情数据服务配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── 基础配置 ──────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8001)
    DEBUG: bool = Field(default=False)
    ALLOWED_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"]
    )

    # ── 行情数据源配置 ─────────────────────────────────────
    FINNHUB_API_KEY: str = Field(default="")
    TWELVE_DATA_API_KEY: str = Field(default="")
    FINNHUB_BASE_URL: str = Field(default="https://finnhub.io/api/v1")
    TWELVE_DATA_BASE_URL: str = Field(default="https://api.twelvedata.com")
    YAHOO_BASE_URL: str = Field(default="https://query1.finance.yahoo.com")
    COINGECKO_BASE_URL: str = Field(default="https://api.coingecko.com/api/v3")
    BINANCE_BASE_URL: str = Field(default="https://api.binance.com/api/v3")
    PROVIDER_TIMEOUT: float = Field(default=3.0)   # 秒
    BINANCE_TIMEOUT: float = Field(default=2.0)    # 秒
    MAX_DATA_POINTS: int = Field(default=12)       # 单次返回的最大数据点数

    # ── Groq LLM 配置 ─────────────────────────────────────
    GROQ_API_KEY: str = Field(default="")
    GROQ_MODEL: str = Field(default="meta-llama/llama-4-scout-17b-16e-instruct")
    GROQ_BASE_URL: str = Field(default="https://api.groq.com/openai/v1")
    GROQ_TIMEOUT: float = Field(default=30.0)
    GROQ_MAX_RETRIES: int = Field(default=2)
    GROQ_RETRY_DELAY: float = Field(default=1.0)

    # ── 缓存配置 ──────────────────────────────────────────
    HISTORY_CACHE_TTL: int = Field(default=300)          # 历史数据缓存 TTL（秒）
    HISTORY_CACHE_MAX_ENTRIES: int = Field(default=100)  # 超出后按写入时间裁剪

    # ── 日志配置 ──────────────────────────────────────────
    LOG_LEVEL: str = Field(default="INFO")

    @property
    def configured_stock_providers(self) -> List[str]:
        """已配置 API Key 的股票数据源"""
        providers = []
        if self.FINNHUB_API_KEY:
            providers.append("finnhub")
        if self.TWELVE_DATA_API_KEY:
            providers.append("twelve_data")
        return providers


@lru_cache
def get_settings() -> MarketServiceSettings:
    """获取全局配置（单例）"""
    return MarketServiceSettings()


settings = get_settings()
