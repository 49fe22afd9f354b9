"""
模拟数据生成
外部数据源不可用时，基于基准价格加有界随机扰动生成看起来合理的数据，统一标记 source="synthetic"
"""

import random
import time
from datetime import datetime, timezone
from typing import List, Optional

from dashboard_service.instruments import (
    DEFAULT_HISTORY_BASE_PRICE,
    GRAMS_PER_KG,
    HISTORY_BASE_PRICES,
    HISTORY_MAX_POINTS,
    MetalInstrument,
    kg_to_ounce,
    ounce_to_kg,
    stock_base_price,
    stock_currency,
)
from dashboard_service.models.market import Candle, MetalQuote, Quote

_PRICE_NOISE = 50.0
_CHANGE_NOISE = 25.0
_SECONDS_PER_DAY = 86400


def _noise(width: float, rng: random.Random) -> float:
    return rng.uniform(-width, width)


def synthetic_quote(
    instrument_id: str,
    display_name: str,
    rng: Optional[random.Random] = None,
) -> Quote:
    """
    生成模拟股票报价

    价格 = 基准价 ±50，涨跌额 ±25，昨收由价格与涨跌额反推，
    保证 change_percent 与 change / previous_close 一致（基准价 3000 时约 ±1%）。
    """
    rng = rng or random
    base = stock_base_price(instrument_id)
    price = base + _noise(_PRICE_NOISE, rng)
    change = _noise(_CHANGE_NOISE, rng)
    previous_close = price - change
    open_ = previous_close + _noise(10, rng)
    return Quote(
        instrument_id=instrument_id,
        display_name=display_name,
        price=price,
        change=change,
        change_percent=change / previous_close * 100,
        currency=stock_currency(instrument_id),
        previous_close=previous_close,
        open=open_,
        high=max(price, open_) + rng.uniform(0, 30),
        low=min(price, open_) - rng.uniform(0, 30),
        captured_at=datetime.now(tz=timezone.utc),
        source="synthetic",
    )


def synthetic_metal_quote(
    metal: MetalInstrument,
    rng: Optional[random.Random] = None,
) -> MetalQuote:
    """
    生成模拟贵金属报价（每公斤）

    基准价按数据源报价单位给出：盎司类 ±1%，克类（上海金）±0.5%。
    """
    rng = rng or random
    spread = 0.005 if metal.quote_unit == "g" else 0.01
    unit_price = metal.base_price * (1 + _noise(spread, rng))
    unit_change = metal.base_price * _noise(spread, rng)
    if metal.quote_unit == "g":
        per_kg = unit_price * GRAMS_PER_KG
        change = unit_change * GRAMS_PER_KG
    else:
        per_kg = ounce_to_kg(unit_price)
        change = ounce_to_kg(unit_change)
    previous_close = per_kg - change
    return MetalQuote(
        instrument_id=metal.instrument_id,
        display_name=metal.name,
        price=per_kg,
        price_per_ounce=kg_to_ounce(per_kg),
        change=change,
        change_percent=change / previous_close * 100,
        currency=metal.currency,
        previous_close=previous_close,
        open=previous_close,
        high=max(per_kg, previous_close),
        low=min(per_kg, previous_close),
        captured_at=datetime.now(tz=timezone.utc),
        source="synthetic",
    )


def synthetic_candles(
    alias: str,
    points: int = HISTORY_MAX_POINTS,
    rng: Optional[random.Random] = None,
    now: Optional[int] = None,
) -> List[Candle]:
    """按品种基准价生成带轻微上行漂移的随机游走日 K，时间升序"""
    rng = rng or random
    now = int(time.time()) if now is None else now
    base = HISTORY_BASE_PRICES.get(alias, DEFAULT_HISTORY_BASE_PRICE)
    candles = []
    for i in range(points - 1, -1, -1):
        step = points - 1 - i
        open_ = base + _noise(100, rng) + step * 5
        close = open_ + _noise(25, rng)
        candles.append(Candle(
            time=now - i * _SECONDS_PER_DAY,
            open=open_,
            high=max(open_, close) + rng.uniform(0, 30),
            low=min(open_, close) - rng.uniform(0, 30),
            close=close,
        ))
    return candles
