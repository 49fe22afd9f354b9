"""
Layer 1 – 数据获取层
从 Alpha Vantage / Frankfurter / RSS 源拉取原始数据。
本层只负责请求与解析，任何失败都直接抛出，由上层的降级包装统一处理。
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import feedparser
import httpx

from dashboard_service.config import settings
from dashboard_service.instruments import HISTORY_MAX_POINTS

logger = logging.getLogger(__name__)


class UpstreamDataError(ValueError):
    """上游返回了 2xx，但内容缺少必要字段"""


def _to_float(value: Any) -> float:
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    return float(value)


class AcquisitionLayer:
    """数据获取层：封装各外部数据源，提供统一的异步拉取接口"""

    def __init__(self, timeout: Optional[float] = None):
        self._timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT

    async def _get_json(self, url: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
            return resp.json()

    async def _alpha_vantage(self, function: str, **params: str) -> Dict[str, Any]:
        query = {"function": function, "apikey": settings.ALPHA_VANTAGE_KEY, **params}
        data = await self._get_json(settings.ALPHA_VANTAGE_BASE_URL, query)
        # 限流 / 无效代码时 Alpha Vantage 仍返回 200，正文带 Note / Information
        for marker in ("Note", "Information", "Error Message"):
            if marker in data:
                raise UpstreamDataError(f"Alpha Vantage {function}: {data[marker]}")
        return data

    # ── 股票报价 ──────────────────────────────────────────

    async def get_global_quote(self, symbol: str) -> Optional[Dict[str, float]]:
        """
        Alpha Vantage GLOBAL_QUOTE

        Returns:
            {price, change, change_percent, open, high, low, previous_close}，
            报价字段缺失时返回 None
        """
        data = await self._alpha_vantage("GLOBAL_QUOTE", symbol=symbol)
        quote = data.get("Global Quote") or {}
        if not quote.get("05. price"):
            return None
        return {
            "price": _to_float(quote["05. price"]),
            "change": _to_float(quote.get("09. change", 0)),
            "change_percent": _to_float(quote.get("10. change percent", 0)),
            "open": _to_float(quote.get("02. open", 0)),
            "high": _to_float(quote.get("03. high", 0)),
            "low": _to_float(quote.get("04. low", 0)),
            "previous_close": _to_float(quote["08. previous close"]),
        }

    # ── 贵金属 ────────────────────────────────────────────

    async def get_metal_rate(self, metal: str = "XAU", currency: str = "USD") -> Optional[float]:
        """Alpha Vantage CURRENCY_EXCHANGE_RATE，返回每金衡盎司价格"""
        data = await self._alpha_vantage(
            "CURRENCY_EXCHANGE_RATE", from_currency=metal, to_currency=currency
        )
        rate = (data.get("Realtime Currency Exchange Rate") or {}).get("5. Exchange Rate")
        if not rate:
            return None
        value = _to_float(rate)
        if value <= 0:
            raise UpstreamDataError(f"{metal}/{currency} 汇率非法: {value}")
        return value

    # ── 历史 K 线 ─────────────────────────────────────────

    async def get_daily_series(
        self, symbol: str, limit: int = HISTORY_MAX_POINTS
    ) -> List[Dict[str, Any]]:
        """Alpha Vantage TIME_SERIES_DAILY，返回最近 limit 个交易日（最新在前）"""
        data = await self._alpha_vantage("TIME_SERIES_DAILY", symbol=symbol)
        series = data.get("Time Series (Daily)") or {}
        records = []
        for day, values in list(series.items())[:limit]:
            ts = datetime.strptime(day, "%Y-%m-%d").replace(tzinfo=timezone.utc)
            records.append({
                "time": int(ts.timestamp()),
                "open": values.get("1. open"),
                "high": values.get("2. high"),
                "low": values.get("3. low"),
                "close": values.get("4. close"),
            })
        return records

    # ── 汇率 ──────────────────────────────────────────────

    async def get_exchange_rate(self, base: str = "USD", target: str = "CNY") -> float:
        """Frankfurter 最新汇率（免费，无需认证）"""
        data = await self._get_json(
            f"{settings.FRANKFURTER_BASE_URL}/latest",
            {"from": base, "to": target},
        )
        try:
            rate = _to_float(data["rates"][target])
        except (KeyError, TypeError) as exc:
            raise UpstreamDataError(f"Frankfurter 返回缺少 {target} 汇率") from exc
        if rate <= 0:
            raise UpstreamDataError(f"{base}/{target} 汇率非法: {rate}")
        return rate

    # ── RSS ───────────────────────────────────────────────

    async def get_feed(self, url: str) -> feedparser.FeedParserDict:
        """拉取并解析 RSS；HTTP 由 httpx 完成以获得超时控制"""
        async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
            resp = await client.get(url)
            resp.raise_for_status()
        feed = feedparser.parse(resp.content)
        if feed.get("bozo") and not feed.entries:
            raise UpstreamDataError(f"RSS 解析失败: {url}: {feed.get('bozo_exception')}")
        return feed


# ── 模块级别单例 ──────────────────────────────────────────
_acquisition: Optional[AcquisitionLayer] = None


def get_acquisition_layer() -> AcquisitionLayer:
    global _acquisition
    if _acquisition is None:
        _acquisition = AcquisitionLayer()
    return _acquisition
