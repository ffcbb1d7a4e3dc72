"""统一 API 响应模型"""

from typing import Any, Optional
from pydantic import BaseModel


class ApiResponse(BaseModel):
    """标准 API 响应封装：{status, data, message}"""
    status: str = "success"
    data: Optional[Any] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ApiResponse":
        return cls(status="success", data=data, message=message)

    @classmethod
    def fail(cls, message: str) -> "ApiResponse":
        return cls(status="error", message=message)
