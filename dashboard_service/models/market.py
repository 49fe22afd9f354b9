"""看板数据模型"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

QuoteSource = Literal["live", "synthetic"]


class Quote(BaseModel):
    """单个品种的最新报价，每次拉取整体替换，不做原地修改"""

    model_config = ConfigDict(frozen=True)

    instrument_id: str
    display_name: str
    price: float
    change: float
    change_percent: float
    currency: str
    previous_close: float
    open: float
    high: float
    low: float
    captured_at: datetime
    source: QuoteSource = "live"

    @property
    def is_synthetic(self) -> bool:
        return self.source == "synthetic"


class MetalQuote(Quote):
    """
    贵金属报价，price 为每公斤价格

    上游只有即时价：previous_close 是当日（UTC）参考价，即前一天最后一次真实报价；
    当天第一次拿到真实报价且没有前一天数据时，以该报价为参考。
    change / change_percent 因此是相对当日参考价的日内涨跌。
    """

    price_per_ounce: float
    unit: str = "kg"


class NewsItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    link: str
    published_at: datetime
    source: str
    language: str


class ExchangeRate(BaseModel):
    model_config = ConfigDict(frozen=True)

    rate: float
    base: str = "USD"
    target: str = "CNY"
    source: str = "Frankfurter"
    captured_at: Optional[datetime] = None


class AnalysisBrief(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""
    generated_at: Optional[datetime] = None


class Candle(BaseModel):
    time: int
    open: float
    high: float
    low: float
    close: float


class HistoryResponse(BaseModel):
    source: Literal["live", "mock"]
    symbol: str
    candles: List[Candle] = Field(default_factory=list)


StockTable = Dict[str, Dict[str, Quote]]
MetalTable = Dict[str, List[MetalQuote]]


class MarketSnapshot(BaseModel):
    """某一时刻读取到的缓存快照，各字段可能来自不同刷新周期"""

    stocks: StockTable = Field(default_factory=dict)
    gold: MetalTable = Field(default_factory=dict)
    news: List[NewsItem] = Field(default_factory=list)
    analysis: AnalysisBrief = Field(default_factory=AnalysisBrief)
    exchange_rate: ExchangeRate
