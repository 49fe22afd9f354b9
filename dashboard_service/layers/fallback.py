"""
降级包装
所有适配器统一通过 with_fallback 调用外部数据源：超时、异常或字段缺失时返回模拟数据
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from dashboard_service.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_fallback(
    live_fetch: Callable[[], Awaitable[Optional[T]]],
    synthetic: Callable[[], T],
    timeout: Optional[float] = None,
    label: str = "",
) -> T:
    """
    调用 live_fetch，失败时返回 synthetic()

    Args:
        live_fetch: 无参协程函数，返回 None 视为数据缺失
        synthetic: 无参函数，生成模拟数据
        timeout: 超时秒数，默认 settings.HTTP_TIMEOUT
        label: 日志中标识数据源
    """
    if timeout is None:
        timeout = settings.HTTP_TIMEOUT
    try:
        result = await asyncio.wait_for(live_fetch(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{label} 请求超时（{timeout}s），使用模拟数据")
        return synthetic()
    except Exception as exc:
        logger.warning(f"{label} 获取失败，使用模拟数据: {exc}")
        return synthetic()
    if result is None:
        logger.warning(f"{label} 返回数据缺失，使用模拟数据")
        return synthetic()
    return result
