"""
公共测试夹具：伪造数据获取层与大模型，不访问任何外部网络
"""

import os
import sys
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

# 确保仓库根目录（dashboard_service/ 的父目录）在 sys.path
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


def make_feed(title: str, timestamps: list, prefix: str = "") -> dict:
    """构造 feedparser 风格的解析结果"""
    return {
        "feed": {"title": title},
        "entries": [
            {
                "title": f"{prefix or title} #{i}",
                "link": f"https://example.com/{prefix or title}/{i}",
                "published_parsed": time.gmtime(ts),
            }
            for i, ts in enumerate(timestamps)
        ],
    }


def make_completion(text: str) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))]
    )


@pytest.fixture
def fake_acquisition():
    """所有上游默认失败，测试按需覆盖"""
    acq = MagicMock()
    acq.get_global_quote = AsyncMock(side_effect=ConnectionError("offline"))
    acq.get_metal_rate = AsyncMock(side_effect=ConnectionError("offline"))
    acq.get_daily_series = AsyncMock(side_effect=ConnectionError("offline"))
    acq.get_exchange_rate = AsyncMock(side_effect=ConnectionError("offline"))
    acq.get_feed = AsyncMock(side_effect=ConnectionError("offline"))
    return acq


@pytest.fixture
def fake_summarizer():
    summarizer = MagicMock()
    summarizer.generate = AsyncMock(return_value="市场整体平稳，黄金走强。")
    return summarizer


@pytest.fixture
def cache():
    from dashboard_service.layers.cache import MarketCache
    return MarketCache(default_rate=7.2)


@pytest.fixture
def service(fake_acquisition, fake_summarizer, cache):
    from dashboard_service.layers.processing import ProcessingLayer
    from dashboard_service.services.market_service import MarketService
    return MarketService(
        acquisition=fake_acquisition,
        processing=ProcessingLayer(),
        cache=cache,
        summarizer=fake_summarizer,
    )
