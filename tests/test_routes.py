"""
HTTP 路由测试（TestClient，上游全部伪造；除生命周期测试外不启动预热与定时任务）
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from conftest import make_feed


@pytest.fixture
def client(service):
    from dashboard_service.config import settings
    with patch.object(settings, "WARMUP_ON_STARTUP", False), \
         patch.object(settings, "SCHEDULER_ENABLED", False), \
         patch("dashboard_service.services.market_service._market_service", service):
        from dashboard_service.main import app
        with TestClient(app, raise_server_exceptions=False) as c:
            yield c


class TestLifespan:
    def test_pending_warm_up_is_cancelled_and_awaited(self, service):
        import asyncio
        import threading

        from dashboard_service.config import settings
        started = threading.Event()
        state = {"cancelled": False}

        async def slow_warm_up():
            started.set()
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                state["cancelled"] = True
                raise

        with patch.object(settings, "WARMUP_ON_STARTUP", True), \
             patch.object(settings, "SCHEDULER_ENABLED", False), \
             patch.object(service, "warm_up", slow_warm_up), \
             patch("dashboard_service.services.market_service._market_service", service):
            from dashboard_service.main import app
            with TestClient(app, raise_server_exceptions=False) as c:
                assert c.get("/healthz").status_code == 200
                assert started.wait(timeout=5)
            # 关闭阶段已经等待被取消的预热任务结束
            assert state["cancelled"] is True


class TestHealthRoutes:
    def test_health_endpoint(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["scheduler"] == "stopped"
        assert body["data"]["cache"]["stocks"] is False

    def test_liveness_and_readiness(self, client):
        assert client.get("/healthz").json()["status"] == "ok"
        assert client.get("/readyz").json()["ready"] is True

    def test_root_endpoint(self, client):
        body = client.get("/").json()
        assert "version" in body
        assert "X-Process-Time" in client.get("/").headers


class TestMarketRoutes:
    def test_stocks_fallback_shape(self, client):
        resp = client.get("/api/stocks")
        assert resp.status_code == 200
        body = resp.json()
        assert set(body) == {"china", "usa"}
        spx = body["usa"]["标普500"]
        assert spx["instrument_id"] == "SPX"
        assert spx["source"] == "synthetic"
        assert spx["change_percent"] == pytest.approx(spx["change"] / spx["previous_close"] * 100)

    def test_stocks_served_from_cache(self, client, fake_acquisition):
        client.get("/api/stocks")
        count = fake_acquisition.get_global_quote.await_count
        client.get("/api/stocks")
        assert fake_acquisition.get_global_quote.await_count == count

    def test_gold(self, client, fake_acquisition):
        fake_acquisition.get_metal_rate = AsyncMock(return_value=2000.0)
        body = client.get("/api/gold").json()
        xau = [q for q in body["international"] if q["instrument_id"] == "XAU"][0]
        assert xau["price"] == pytest.approx(64301.4)
        assert xau["unit"] == "kg"
        assert body["china"][0]["currency"] == "CNY"

    def test_news(self, client, fake_acquisition):
        fake_acquisition.get_feed = AsyncMock(return_value=make_feed("Feed", [1_700_000_000, 1_700_000_100]))
        body = client.get("/api/news").json()
        assert body
        assert body[0]["published_at"] >= body[-1]["published_at"]
        assert {"title", "link", "published_at", "source", "language"} <= set(body[0])

    def test_analysis_placeholder(self, client):
        from dashboard_service.config import settings
        body = client.get("/api/analysis").json()
        assert body["text"] == settings.ANALYSIS_FALLBACK_TEXT
        assert body["generated_at"] is None

    def test_exchange_rate_default(self, client):
        body = client.get("/api/exchange-rate").json()
        assert body["rate"] == 7.2
        assert body["source"] == "Frankfurter"

    def test_generate_analysis(self, client, fake_acquisition):
        fake_acquisition.get_exchange_rate = AsyncMock(return_value=7.15)
        resp = client.post("/api/generate-analysis")
        assert resp.status_code == 200
        assert resp.json()["text"] == "市场整体平稳，黄金走强。"
        assert client.get("/api/analysis").json()["text"] == "市场整体平稳，黄金走强。"
        assert client.get("/api/exchange-rate").json()["rate"] == 7.15

    def test_all(self, client, fake_summarizer):
        body = client.get("/api/all").json()
        assert set(body) == {"stocks", "gold", "news", "analysis", "exchange_rate"}
        fake_summarizer.generate.assert_not_called()

    def test_all_with_refresh(self, client, fake_summarizer):
        body = client.get("/api/all", params={"refresh": "true"}).json()
        assert body["analysis"]["text"] == "市场整体平稳，黄金走强。"
        fake_summarizer.generate.assert_awaited_once()

    def test_internal_error(self, client, service):
        with patch.object(service, "get_stocks", AsyncMock(side_effect=RuntimeError("kaboom"))):
            resp = client.get("/api/stocks")
        assert resp.status_code == 500
        body = resp.json()
        assert body["success"] is False
        assert body["message"] == "kaboom"


class TestHistoryRoutes:
    def test_unknown_symbol(self, client):
        body = client.get("/api/history/whatever").json()
        assert body["source"] == "mock"
        assert len(body["candles"]) == 90
        assert set(body["candles"][0]) == {"time", "open", "high", "low", "close"}

    def test_live_symbol(self, client, fake_acquisition):
        fake_acquisition.get_daily_series = AsyncMock(return_value=[
            {"time": 1_700_000_000, "open": 1, "high": 2, "low": 0.5, "close": 1.5},
        ])
        body = client.get("/api/history/nasdaq").json()
        assert body["source"] == "live"
        assert body["candles"][0]["time"] == 1_700_000_000


class TestCacheRoutes:
    def test_stats(self, client):
        client.get("/api/stocks")
        body = client.get("/api/cache/stats").json()
        assert body["success"] is True
        assert body["data"]["stocks"]["count"] == 5
        assert body["data"]["stocks"]["synthetic"] == 5
        assert body["data"]["scheduler"]["running"] is False
