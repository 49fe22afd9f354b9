"""
Layer 3 – 数据处理层
把原始数据规范化为看板模型：报价构建、新闻合并排序、K 线清洗
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from dashboard_service.instruments import HISTORY_MAX_POINTS, MetalInstrument, ounce_to_kg
from dashboard_service.models.market import Candle, MetalQuote, NewsItem, Quote

logger = logging.getLogger(__name__)


class ProcessingLayer:
    """数据处理层：构建 + 清洗 + 排序"""

    # ── 报价 ──────────────────────────────────────────────

    def build_quote(
        self,
        instrument_id: str,
        display_name: str,
        currency: str,
        raw: Dict[str, float],
    ) -> Quote:
        """
        由 GLOBAL_QUOTE 原始字段构建报价

        涨跌额与涨跌幅按 price / previous_close 重新计算，
        与上游给出的值只在舍入误差内不同。
        """
        price = raw["price"]
        previous_close = raw["previous_close"]
        if previous_close:
            change = price - previous_close
            change_percent = change / previous_close * 100
        else:
            change = raw.get("change", 0.0)
            change_percent = raw.get("change_percent", 0.0)
        return Quote(
            instrument_id=instrument_id,
            display_name=display_name,
            price=price,
            change=change,
            change_percent=change_percent,
            currency=currency,
            previous_close=previous_close,
            open=raw.get("open") or price,
            high=raw.get("high") or price,
            low=raw.get("low") or price,
            captured_at=datetime.now(tz=timezone.utc),
            source="live",
        )

    def build_metal_quote(
        self,
        metal: MetalInstrument,
        price_per_ounce: float,
        reference: Optional[MetalQuote] = None,
        now: Optional[datetime] = None,
    ) -> MetalQuote:
        """
        由每盎司价格构建贵金属报价（每公斤）

        数据源只提供即时价，没有昨收。previous_close 取当日（UTC）的参考价：
        - 参考报价来自更早的一天：其最后价格即为今日参考价
        - 参考报价来自同一天：沿用它的参考价，开盘 / 最高 / 最低随当日累积
        - 没有真实参考报价（或参考为模拟数据）：以当前价作为参考，涨跌为 0
        """
        now = now or datetime.now(tz=timezone.utc)
        per_kg = ounce_to_kg(price_per_ounce)
        if reference is None or reference.is_synthetic or not reference.price:
            previous_close = open_ = high = low = per_kg
        elif reference.captured_at.astimezone(timezone.utc).date() < now.astimezone(timezone.utc).date():
            previous_close = open_ = high = low = reference.price
        else:
            previous_close = reference.previous_close
            open_, high, low = reference.open, reference.high, reference.low
        change = per_kg - previous_close
        return MetalQuote(
            instrument_id=metal.instrument_id,
            display_name=metal.name,
            price=per_kg,
            price_per_ounce=price_per_ounce,
            change=change,
            change_percent=change / previous_close * 100 if previous_close else 0.0,
            currency=metal.currency,
            previous_close=previous_close,
            open=open_,
            high=max(per_kg, high),
            low=min(per_kg, low),
            captured_at=now,
            source="live",
        )

    # ── 新闻 ──────────────────────────────────────────────

    def normalize_feed_entries(
        self,
        feed: Any,
        limit: int,
        language: str,
        now: Optional[datetime] = None,
    ) -> List[NewsItem]:
        """取 RSS 源前 limit 条（保持源内顺序），缺少发布时间的按当前时间处理"""
        now = now or datetime.now(tz=timezone.utc)
        source = (feed.get("feed") or {}).get("title") or f"{language.title()} News"
        items = []
        for entry in list(feed.get("entries") or [])[:limit]:
            items.append(NewsItem(
                title=entry.get("title") or "",
                link=entry.get("link") or "",
                published_at=self._entry_time(entry) or now,
                source=source,
                language=language,
            ))
        return items

    @staticmethod
    def _entry_time(entry: Any) -> Optional[datetime]:
        for key in ("published_parsed", "updated_parsed"):
            parsed = entry.get(key)
            if parsed:
                return datetime(*parsed[:6], tzinfo=timezone.utc)
        return None

    def merge_news(
        self, batches: Iterable[List[NewsItem]], total_limit: int
    ) -> List[NewsItem]:
        """合并各源新闻，按发布时间稳定倒序并截断"""
        merged = [item for batch in batches for item in batch]
        merged.sort(key=lambda item: item.published_at, reverse=True)
        return merged[:total_limit]

    # ── K 线 ──────────────────────────────────────────────

    def normalize_candles(
        self, records: List[Dict[str, Any]], limit: int = HISTORY_MAX_POINTS
    ) -> List[Candle]:
        """
        日 K 记录标准化

        数值列强制转换，丢弃无法解析的行，按时间去重后升序，保留最近 limit 条
        """
        if not records:
            return []

        df = pd.DataFrame(records)
        required = ["time", "open", "high", "low", "close"]
        for col in required:
            if col not in df.columns:
                df[col] = None

        for col in required:
            df[col] = pd.to_numeric(df[col], errors="coerce")
        df = df.dropna(subset=required)

        df = df.drop_duplicates(subset=["time"], keep="last")
        df = df.sort_values("time").tail(limit).reset_index(drop=True)
        df["time"] = df["time"].astype("int64")

        return [Candle(**row) for row in df[required].to_dict(orient="records")]


# ── 模块级别单例 ──────────────────────────────────────────
_processor: Optional[ProcessingLayer] = None


def get_processing_layer() -> ProcessingLayer:
    global _processor
    if _processor is None:
        _processor = ProcessingLayer()
    return _processor
