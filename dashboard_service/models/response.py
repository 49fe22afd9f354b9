"""统一 API 响应模型"""

import time
from typing import Any, Optional

from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    """管理类接口的响应封装；看板数据接口直接返回数据本身"""
    success: bool = True
    data: Optional[Any] = None
    message: str = ""
    error: Optional[str] = None
    timestamp: int = Field(default_factory=lambda: int(time.time()))

    @classmethod
    def ok(cls, data: Any = None, message: str = "success") -> "ApiResponse":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str, message: str = "failed") -> "ApiResponse":
        return cls(success=False, error=error, message=message)
