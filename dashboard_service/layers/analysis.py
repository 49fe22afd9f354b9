"""
Layer 4 – AI 简评层
把行情 / 黄金 / 新闻快照组装成固定模板的中文提示词，调用大模型生成简短市场分析
"""

import asyncio
import logging
from typing import List, Optional

from openai import AsyncOpenAI

from dashboard_service.config import settings
from dashboard_service.models.market import MetalTable, NewsItem, StockTable

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "你是专业金融分析师"

REGION_LABELS = {
    "china": "A股",
    "usa": "美股",
    "international": "国际",
}


def _signed(value: float) -> str:
    return f"{'+' if value >= 0 else ''}{value:.2f}"


def format_stock_block(stocks: StockTable) -> str:
    """按地区分组：名称: 价格 (±涨跌幅%)"""
    sections = []
    for region, quotes in stocks.items():
        lines = [
            f"{name}: {q.price:.2f} ({_signed(q.change_percent)}%)"
            for name, q in quotes.items()
        ]
        if lines:
            sections.append(f"{REGION_LABELS.get(region, region)}:\n" + "\n".join(lines))
    return "\n\n".join(sections) or "暂无数据"


def format_metal_block(gold: MetalTable) -> str:
    """每盎司与每公斤价格并列展示"""
    lines = []
    for quotes in gold.values():
        for q in quotes:
            lines.append(
                f"{q.display_name}: {q.price_per_ounce:.2f} {q.currency}/盎司 "
                f"({q.price:.0f} {q.currency}/公斤, {_signed(q.change_percent)}%)"
            )
    return "\n".join(lines) or "暂无数据"


def format_news_block(news: List[NewsItem], count: int) -> str:
    return "\n".join(f"- {item.title}" for item in news[:count]) or "暂无新闻"


def fallback_text() -> str:
    """简评不可用时展示的固定文案"""
    return settings.ANALYSIS_FALLBACK_TEXT


def build_prompt(
    stocks: StockTable,
    gold: MetalTable,
    news: List[NewsItem],
    length_limit: Optional[int] = None,
    news_count: Optional[int] = None,
) -> str:
    length_limit = length_limit or settings.ANALYSIS_LENGTH_LIMIT
    news_count = news_count or settings.ANALYSIS_NEWS_COUNT
    return (
        f"请用简体中文分析以下市场数据（{length_limit}字以内）：\n\n"
        f"【股票】\n{format_stock_block(stocks)}\n\n"
        f"【黄金】\n{format_metal_block(gold)}\n\n"
        f"【新闻】\n{format_news_block(news, news_count)}\n\n"
        "请简要分析：1. 市场整体走势 2. 黄金与美股关系 3. 风险提示与投资建议"
    )


class NarrativeSummarizer:
    """
    调用 OpenAI 兼容接口生成市场简评

    两个入口：
    - generate: 失败时抛出异常。刷新周期用它判断是否替换缓存中的简评
    - summarize: 只要文本、从不抛出的调用方使用，失败时返回 fallback_text()
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise RuntimeError("OPENAI_API_KEY 未配置")
            self._client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL or None,
                timeout=settings.ANALYSIS_TIMEOUT,
                max_retries=0,
            )
        return self._client

    async def generate(
        self, stocks: StockTable, gold: MetalTable, news: List[NewsItem]
    ) -> str:
        """生成简评，失败时抛出异常"""
        prompt = build_prompt(stocks, gold, news)
        client = self._get_client()
        resp = await asyncio.wait_for(
            client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=settings.ANALYSIS_MAX_TOKENS,
                temperature=settings.ANALYSIS_TEMPERATURE,
            ),
            timeout=settings.ANALYSIS_TIMEOUT,
        )
        text = (resp.choices[0].message.content or "").strip()
        if not text:
            raise ValueError("大模型返回空内容")
        return text

    async def summarize(
        self, stocks: StockTable, gold: MetalTable, news: List[NewsItem]
    ) -> str:
        """生成简评，任何失败都返回固定的降级文案"""
        try:
            return await self.generate(stocks, gold, news)
        except Exception as exc:
            logger.error(f"AI 分析生成失败: {exc}")
            return fallback_text()


# ── 模块级别单例 ──────────────────────────────────────────
_summarizer: Optional[NarrativeSummarizer] = None


def get_summarizer() -> NarrativeSummarizer:
    global _summarizer
    if _summarizer is None:
        _summarizer = NarrativeSummarizer()
    return _summarizer
