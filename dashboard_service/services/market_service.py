"""
看板数据服务
整合数据获取、降级、处理、缓存、AI 简评各层，对外提供刷新与读取接口
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Union

from dashboard_service.config import settings
from dashboard_service.instruments import (
    DEFAULT_METAL,
    HISTORY_ALIASES,
    METALS,
    METALS_BY_ID,
    STOCKS,
    stock_currency,
)
from dashboard_service.layers.acquisition import AcquisitionLayer, get_acquisition_layer
from dashboard_service.layers.analysis import NarrativeSummarizer, fallback_text, get_summarizer
from dashboard_service.layers.cache import MarketCache, get_market_cache
from dashboard_service.layers.fallback import with_fallback
from dashboard_service.layers.processing import ProcessingLayer, get_processing_layer
from dashboard_service.layers.synthetic import (
    synthetic_candles,
    synthetic_metal_quote,
    synthetic_quote,
)
from dashboard_service.models.market import (
    AnalysisBrief,
    ExchangeRate,
    HistoryResponse,
    MarketSnapshot,
    MetalQuote,
    MetalTable,
    NewsItem,
    Quote,
    StockTable,
)

logger = logging.getLogger(__name__)

FeedConfig = Union[Dict[str, List[str]], Sequence[str]]


class MarketService:
    """看板数据业务服务"""

    def __init__(
        self,
        acquisition: Optional[AcquisitionLayer] = None,
        processing: Optional[ProcessingLayer] = None,
        cache: Optional[MarketCache] = None,
        summarizer: Optional[NarrativeSummarizer] = None,
    ):
        self._acq = acquisition or get_acquisition_layer()
        self._proc = processing or get_processing_layer()
        self._cache = cache or get_market_cache()
        self._summarizer = summarizer or get_summarizer()

    @property
    def cache(self) -> MarketCache:
        return self._cache

    # ── 股票报价 ──────────────────────────────────────────

    async def fetch_quote(self, instrument_id: str, display_name: str = "") -> Quote:
        """拉取单个品种报价，失败时返回模拟报价，从不抛出"""
        display_name = display_name or instrument_id
        currency = stock_currency(instrument_id)

        async def live() -> Optional[Quote]:
            raw = await self._acq.get_global_quote(instrument_id)
            if raw is None:
                return None
            return self._proc.build_quote(instrument_id, display_name, currency, raw)

        return await with_fallback(
            live,
            lambda: synthetic_quote(instrument_id, display_name),
            label=f"报价 {instrument_id}",
        )

    async def fetch_all_quotes(self) -> StockTable:
        """并发拉取全部指数，各品种写入互不相交的位置"""
        jobs = [
            (region, name, symbol)
            for region, names in STOCKS.items()
            for name, symbol in names.items()
        ]
        quotes = await asyncio.gather(
            *(self.fetch_quote(symbol, name) for _, name, symbol in jobs)
        )
        table: StockTable = {region: {} for region in STOCKS}
        for (region, name, _), quote in zip(jobs, quotes):
            table[region][name] = quote
        return table

    # ── 贵金属 ────────────────────────────────────────────

    async def fetch_metal_quote(self, instrument_id: str) -> MetalQuote:
        """拉取贵金属报价（每公斤），失败时返回模拟报价，从不抛出"""
        metal = METALS_BY_ID.get(instrument_id) or DEFAULT_METAL._replace(
            instrument_id=instrument_id
        )
        reference = self._cached_metal(instrument_id)

        async def live() -> Optional[MetalQuote]:
            if not metal.live_symbol:
                return None
            usd_per_ounce = await self._acq.get_metal_rate(metal.live_symbol, "USD")
            if usd_per_ounce is None:
                return None
            per_ounce = usd_per_ounce
            if metal.currency == "CNY":
                per_ounce = usd_per_ounce * self._cache.exchange_rate.rate
            return self._proc.build_metal_quote(metal, per_ounce, reference)

        return await with_fallback(
            live,
            lambda: synthetic_metal_quote(metal),
            label=f"贵金属 {instrument_id}",
        )

    def _cached_metal(self, instrument_id: str) -> Optional[MetalQuote]:
        for quotes in self._cache.gold.values():
            for q in quotes:
                if q.instrument_id == instrument_id:
                    return q
        return None

    async def fetch_all_metals(self) -> MetalTable:
        quotes = await asyncio.gather(
            *(self.fetch_metal_quote(m.instrument_id) for m in METALS)
        )
        table: MetalTable = {}
        for metal, quote in zip(METALS, quotes):
            table.setdefault(metal.region, []).append(quote)
        return table

    # ── 汇率 ──────────────────────────────────────────────

    async def refresh_exchange_rate(self) -> bool:
        """刷新 USD→CNY 汇率；失败时保留原值，从不抛出"""
        try:
            rate = await asyncio.wait_for(
                self._acq.get_exchange_rate("USD", "CNY"), timeout=settings.HTTP_TIMEOUT
            )
        except Exception as exc:
            logger.error(f"Frankfurter 汇率获取失败，沿用 {self._cache.exchange_rate.rate}: {exc!r}")
            return False
        self._cache.set_exchange_rate(
            ExchangeRate(rate=rate, captured_at=datetime.now(tz=timezone.utc))
        )
        logger.info(f"Frankfurter 汇率: 1 USD = {rate} CNY")
        return True

    # ── 新闻 ──────────────────────────────────────────────

    async def fetch_news(
        self,
        feeds: Optional[FeedConfig] = None,
        per_feed_limit: Optional[int] = None,
        total_limit: Optional[int] = None,
    ) -> List[NewsItem]:
        """
        聚合多个 RSS 源

        Args:
            feeds: {语言标签: [url, ...]} 或 url 列表（标签记为 general）
            per_feed_limit: 每个源最多取几条
            total_limit: 合并排序后保留条数
        """
        if feeds is None:
            feeds = settings.NEWS_FEEDS
        if not isinstance(feeds, dict):
            feeds = {"general": list(feeds)}
        if per_feed_limit is None:
            per_feed_limit = settings.NEWS_PER_FEED_LIMIT
        if total_limit is None:
            total_limit = settings.NEWS_TOTAL_LIMIT

        sources = [(language, url) for language, urls in feeds.items() for url in urls]
        results = await asyncio.gather(
            *(
                asyncio.wait_for(self._acq.get_feed(url), timeout=settings.HTTP_TIMEOUT)
                for _, url in sources
            ),
            return_exceptions=True,
        )

        batches = []
        for (language, url), result in zip(sources, results):
            if isinstance(result, BaseException):
                logger.error(f"RSS 源获取失败 {url}: {result!r}")
                continue
            batches.append(self._proc.normalize_feed_entries(result, per_feed_limit, language))
        return self._proc.merge_news(batches, total_limit)

    # ── 历史 K 线 ─────────────────────────────────────────

    async def get_history(self, symbol: str) -> HistoryResponse:
        """识别的别名先请求真实日 K，其余直接生成模拟随机游走"""
        alias = symbol.lower()

        def mock() -> HistoryResponse:
            return HistoryResponse(source="mock", symbol=symbol, candles=synthetic_candles(alias))

        av_symbol = HISTORY_ALIASES.get(alias)
        if av_symbol is None:
            return mock()

        async def live() -> Optional[HistoryResponse]:
            candles = self._proc.normalize_candles(await self._acq.get_daily_series(av_symbol))
            if not candles:
                return None
            return HistoryResponse(source="live", symbol=symbol, candles=candles)

        return await with_fallback(live, mock, label=f"历史 K 线 {av_symbol}")

    # ── 刷新周期 ──────────────────────────────────────────

    async def refresh_quotes(self) -> None:
        """刷新股票与贵金属报价"""
        self._cache.set_stocks(await self.fetch_all_quotes())
        self._cache.set_gold(await self.fetch_all_metals())
        logger.info("行情与贵金属缓存已刷新")

    async def refresh_news(self) -> None:
        self._cache.set_news(await self.fetch_news())
        logger.info("新闻缓存已刷新")

    async def refresh_analysis(self) -> AnalysisBrief:
        """
        用当前缓存内容生成 AI 简评

        使用会抛出异常的 generate：成功时整体替换缓存中的简评；失败时缓存不变，
        返回与 summarize 相同的降级文案（generated_at 为上一次成功生成的时间）。
        """
        previous = self._cache.analysis
        try:
            text = await self._summarizer.generate(
                self._cache.stocks, self._cache.gold, self._cache.news
            )
        except Exception as exc:
            logger.error(f"AI 分析生成失败，保留上一次结果: {exc!r}")
            return AnalysisBrief(
                text=fallback_text(), generated_at=previous.generated_at
            )
        brief = AnalysisBrief(text=text, generated_at=datetime.now(tz=timezone.utc))
        self._cache.set_analysis(brief)
        logger.info("AI 市场简评已更新")
        return brief

    async def _step(self, name: str, func: Callable[[], Awaitable]) -> None:
        try:
            await func()
        except Exception as exc:
            logger.error(f"刷新步骤失败 [{name}]: {exc!r}", exc_info=True)

    async def regenerate(self) -> AnalysisBrief:
        """
        完整刷新周期：汇率 → 行情 → 贵金属 → 新闻 → 简评

        各步骤独立容错，失败步骤的缓存保持原值，后续步骤照常执行。
        """
        await self._step("exchange_rate", self.refresh_exchange_rate)
        await self._step("quotes", self.refresh_quotes)
        await self._step("news", self.refresh_news)
        try:
            return await self.refresh_analysis()
        except Exception as exc:
            logger.error(f"刷新步骤失败 [analysis]: {exc!r}", exc_info=True)
            return self.current_analysis()

    async def warm_up(self) -> None:
        """启动预热，尽力而为"""
        logger.info("🔄 缓存预热开始")
        await self.regenerate()
        logger.info("✅ 缓存预热完成")

    # ── 读取（缓存优先） ──────────────────────────────────

    async def get_stocks(self) -> StockTable:
        if not self._cache.is_populated("stocks"):
            self._cache.set_stocks(await self.fetch_all_quotes())
        return self._cache.stocks

    async def get_gold(self) -> MetalTable:
        if not self._cache.is_populated("gold"):
            self._cache.set_gold(await self.fetch_all_metals())
        return self._cache.gold

    async def get_news(self) -> List[NewsItem]:
        if not self._cache.is_populated("news"):
            self._cache.set_news(await self.fetch_news())
        return self._cache.news

    async def get_snapshot(self) -> MarketSnapshot:
        """全部看板数据；各字段可能来自不同的刷新周期"""
        await self.get_stocks()
        await self.get_gold()
        await self.get_news()
        return self._cache.snapshot().model_copy(update={"analysis": self.current_analysis()})

    def current_analysis(self) -> AnalysisBrief:
        """尚未生成过简评时返回降级文案"""
        brief = self._cache.analysis
        if not brief.text:
            return AnalysisBrief(text=fallback_text(), generated_at=None)
        return brief


# ── 模块级别单例 ──────────────────────────────────────────
_market_service: Optional[MarketService] = None


def get_market_service() -> MarketService:
    global _market_service
    if _market_service is None:
        _market_service = MarketService()
    return _market_service
