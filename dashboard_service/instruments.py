"""
看板跟踪的品种配置
地区 → 显示名称 → 代码，以及模拟数据所用的基准价格
"""

from typing import Dict, NamedTuple, Optional

# 1 公斤 = 32.1507 金衡盎司，所有盎司 / 公斤换算统一使用该常量
TROY_OUNCES_PER_KG = 32.1507
GRAMS_PER_KG = 1000.0


# ── 股票指数 ──────────────────────────────────────────────
STOCKS: Dict[str, Dict[str, str]] = {
    "china": {
        "上证指数": "000001.SS",
        "深证成指": "399001.SZ",
    },
    "usa": {
        "标普500": "SPX",
        "道琼斯": "DJI",
        "纳斯达克": "IXIC",
    },
}

STOCK_CURRENCY: Dict[str, str] = {
    "china": "CNY",
    "usa": "USD",
}

STOCK_BASE_PRICES: Dict[str, float] = {
    "SPX": 5000.0,
    "DJI": 38000.0,
    "IXIC": 15000.0,
    "000001.SS": 3200.0,
    "399001.SZ": 10000.0,
}
DEFAULT_STOCK_BASE_PRICE = 3000.0


# ── 贵金属 ────────────────────────────────────────────────
class MetalInstrument(NamedTuple):
    instrument_id: str
    name: str
    region: str
    currency: str
    quote_unit: str          # 数据源报价单位：oz / g
    base_price: float        # 模拟基准价（按 quote_unit 计）
    live_symbol: Optional[str] = None


METALS = [
    MetalInstrument("GOLD", "黄金期货", "international", "USD", "oz", 2050.0, "XAU"),
    MetalInstrument("XAU", "现货黄金", "international", "USD", "oz", 2045.0, "XAU"),
    MetalInstrument("SHAU", "上海金", "china", "CNY", "g", 450.0, "XAU"),
]

METALS_BY_ID: Dict[str, MetalInstrument] = {m.instrument_id: m for m in METALS}
DEFAULT_METAL = MetalInstrument("UNKNOWN", "贵金属", "international", "USD", "oz", 2045.0)


# ── 历史 K 线 ─────────────────────────────────────────────
HISTORY_ALIASES: Dict[str, str] = {
    "sp500": "SPX",
    "nasdaq": "IXIC",
    "gold": "XAUUSD",
    "shanghai": "000001.SS",
}

HISTORY_BASE_PRICES: Dict[str, float] = {
    "gold": 2000.0,
    "sp500": 5000.0,
    "nasdaq": 15000.0,
    "shanghai": 3200.0,
}
DEFAULT_HISTORY_BASE_PRICE = 3000.0
HISTORY_MAX_POINTS = 90


def stock_base_price(instrument_id: str) -> float:
    return STOCK_BASE_PRICES.get(instrument_id, DEFAULT_STOCK_BASE_PRICE)


def stock_currency(instrument_id: str) -> str:
    for region, names in STOCKS.items():
        if instrument_id in names.values():
            return STOCK_CURRENCY.get(region, "USD")
    return "USD"


def ounce_to_kg(price_per_ounce: float) -> float:
    """每盎司价格 → 每公斤价格"""
    return price_per_ounce * TROY_OUNCES_PER_KG


def kg_to_ounce(price_per_kg: float) -> float:
    """每公斤价格 → 每盎司价格"""
    return price_per_kg / TROY_OUNCES_PER_KG
