"""
Layer 2 – 缓存层
进程内快照缓存：每个字段独立加锁、整体替换，读取总能看到某次完整写入的值。
不做持久化，进程重启后从默认值重新预热。
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from dashboard_service.config import settings
from dashboard_service.models.market import (
    AnalysisBrief,
    ExchangeRate,
    MarketSnapshot,
    MetalTable,
    NewsItem,
    StockTable,
)

logger = logging.getLogger(__name__)

FIELDS = ("stocks", "gold", "news", "analysis", "exchange_rate")


class MarketCache:
    """看板缓存，字段级原子替换，不提供跨字段事务"""

    def __init__(self, default_rate: Optional[float] = None):
        rate = settings.DEFAULT_EXCHANGE_RATE if default_rate is None else default_rate
        self._values: Dict[str, Any] = {
            "stocks": {},
            "gold": {},
            "news": [],
            "analysis": AnalysisBrief(),
            "exchange_rate": ExchangeRate(rate=rate),
        }
        self._updated_at: Dict[str, Optional[datetime]] = {f: None for f in FIELDS}
        self._locks = {f: threading.Lock() for f in FIELDS}

    def _get(self, field: str) -> Any:
        with self._locks[field]:
            return self._values[field]

    def _set(self, field: str, value: Any) -> None:
        with self._locks[field]:
            self._values[field] = value
            self._updated_at[field] = datetime.now(tz=timezone.utc)
        logger.debug(f"缓存写入: {field}")

    # ── 读取 ──────────────────────────────────────────────

    @property
    def stocks(self) -> StockTable:
        return {region: dict(quotes) for region, quotes in self._get("stocks").items()}

    @property
    def gold(self) -> MetalTable:
        return {region: list(quotes) for region, quotes in self._get("gold").items()}

    @property
    def news(self) -> List[NewsItem]:
        return list(self._get("news"))

    @property
    def analysis(self) -> AnalysisBrief:
        return self._get("analysis")

    @property
    def exchange_rate(self) -> ExchangeRate:
        return self._get("exchange_rate")

    def updated_at(self, field: str) -> Optional[datetime]:
        with self._locks[field]:
            return self._updated_at[field]

    def is_populated(self, field: str) -> bool:
        return self.updated_at(field) is not None

    def snapshot(self) -> MarketSnapshot:
        return MarketSnapshot(
            stocks=self.stocks,
            gold=self.gold,
            news=self.news,
            analysis=self.analysis,
            exchange_rate=self.exchange_rate,
        )

    # ── 写入（整体替换） ──────────────────────────────────

    def set_stocks(self, stocks: StockTable) -> None:
        self._set("stocks", {region: dict(quotes) for region, quotes in stocks.items()})

    def set_gold(self, gold: MetalTable) -> None:
        self._set("gold", {region: list(quotes) for region, quotes in gold.items()})

    def set_news(self, news: List[NewsItem]) -> None:
        self._set("news", list(news))

    def set_analysis(self, brief: AnalysisBrief) -> None:
        self._set("analysis", brief)

    def set_exchange_rate(self, rate: ExchangeRate) -> None:
        self._set("exchange_rate", rate)

    # ── 统计 ──────────────────────────────────────────────

    def stats(self) -> Dict[str, Any]:
        """返回各字段最近更新时间与模拟数据占比"""
        stocks = [q for quotes in self.stocks.values() for q in quotes.values()]
        metals = [q for quotes in self.gold.values() for q in quotes]
        return {
            "updated_at": {f: self.updated_at(f) for f in FIELDS},
            "stocks": {
                "count": len(stocks),
                "synthetic": sum(1 for q in stocks if q.is_synthetic),
            },
            "gold": {
                "count": len(metals),
                "synthetic": sum(1 for q in metals if q.is_synthetic),
            },
            "news": {"count": len(self.news)},
            "analysis": {"available": bool(self.analysis.text)},
            "exchange_rate": {"rate": self.exchange_rate.rate},
        }


# ── 模块级别单例 ──────────────────────────────────────────
_cache: Optional[MarketCache] = None


def get_market_cache() -> MarketCache:
    global _cache
    if _cache is None:
        _cache = MarketCache()
    return _cache
