"""
Groq LLM 客户端
调用 OpenAI 兼容的 chat/completions 接口，支持失败重试（线性退避，认证错误不重试）
"""

import logging
from typing import Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from market_service.config import MarketServiceSettings, settings

logger = logging.getLogger(__name__)


class GroqError(Exception):
    """Groq 调用失败"""


class GroqAuthenticationError(GroqError):
    """API Key 无效或未配置"""


class GroqRateLimitError(GroqError):
    pass


class GroqServerError(GroqError):
    pass


class GroqClient:
    """Groq chat/completions 异步客户端"""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        config: Optional[MarketServiceSettings] = None,
    ):
        self._settings = config or settings
        self._client = client

    @property
    def model(self) -> str:
        return self._settings.GROQ_MODEL

    @property
    def enabled(self) -> bool:
        return bool(self._settings.GROQ_API_KEY)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(headers={"User-Agent": "MintMate-Finance-App/1.0"})
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> str:
        """发送单次请求，返回模型回复文本"""
        if not prompt or not isinstance(prompt, str):
            raise ValueError("Invalid prompt: must be a non-empty string")
        if not self.enabled:
            raise GroqAuthenticationError("GROQ_API_KEY is not configured")

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        logger.info(f"发送 Groq 请求（model={self.model}, prompt 长度={len(prompt)}）")
        try:
            response = await self.client.post(
                f"{self._settings.GROQ_BASE_URL}/chat/completions",
                json={
                    "model": self.model,
                    "messages": messages,
                    "temperature": temperature,
                    "max_tokens": max_tokens,
                    "top_p": 1,
                    "stream": False,
                },
                headers={"Authorization": f"Bearer {self._settings.GROQ_API_KEY}"},
                timeout=self._settings.GROQ_TIMEOUT,
            )
        except httpx.TimeoutException as exc:
            raise GroqError("Request timeout: Please try again") from exc
        except httpx.HTTPError as exc:
            raise GroqError(f"Request failed: {exc}") from exc

        status_code = response.status_code
        if status_code == 401:
            raise GroqAuthenticationError("Authentication failed: Invalid API key")
        if status_code == 429:
            raise GroqRateLimitError("Rate limit exceeded: Please try again later")
        if status_code >= 500:
            raise GroqServerError("Server error: Please try again later")
        if status_code != 200:
            raise GroqError(f"API request failed with status {status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise GroqError("Failed to parse API response") from exc

        choices = body.get("choices") or []
        if not choices:
            raise GroqError("No choices in API response")
        content = (choices[0].get("message") or {}).get("content")
        if not content:
            raise GroqError("No content in AI response")

        logger.info(f"Groq 响应成功（长度={len(content)}, usage={body.get('usage')}）")
        return content

    async def complete_with_retry(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        **kwargs,
    ) -> str:
        """失败后按 retry_delay * (attempt + 1) 等待重试；认证错误与非法输入直接抛出"""
        max_retries = self._settings.GROQ_MAX_RETRIES if max_retries is None else max_retries
        retry_delay = self._settings.GROQ_RETRY_DELAY if retry_delay is None else retry_delay

        def log_retry(retry_state: RetryCallState) -> None:
            logger.warning(
                f"Groq 请求失败，{retry_state.next_action.sleep:g} 秒后重试"
                f"（{retry_state.attempt_number}/{max_retries}）: {retry_state.outcome.exception()}"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_retries + 1),
            wait=wait_incrementing(start=retry_delay, increment=retry_delay),
            retry=(
                retry_if_exception_type(GroqError)
                & retry_if_not_exception_type(GroqAuthenticationError)
            ),
            before_sleep=log_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self.complete(prompt, system=system, **kwargs)
        except GroqAuthenticationError:
            raise
        except GroqError as exc:
            logger.error(f"Groq 请求重试 {max_retries} 次后仍失败: {exc}")
            raise


# ── 模块级别单例 ──────────────────────────────────────────
_groq_client: Optional[GroqClient] = None


def get_groq_client() -> GroqClient:
    global _groq_client
    if _groq_client is None:
        _groq_client = GroqClient()
    return _groq_client


async def close_groq_client() -> None:
    global _groq_client
    if _groq_client is not None:
        await _groq_client.aclose()
        _groq_client = None
