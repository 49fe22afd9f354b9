"""
市场看板数据服务
独立 FastAPI 应用程序入口

启动方式:
    uvicorn dashboard_service.main:app --host 0.0.0.0 --port 8001
    python -m dashboard_service.main
"""

import asyncio
import contextlib
import logging
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dashboard_service import __version__
from dashboard_service.config import settings
from dashboard_service.models.response import ApiResponse
from dashboard_service.routers import cache, health, history, market
from dashboard_service.services.market_service import get_market_service
from dashboard_service.services.scheduler import get_refresh_scheduler

# ── 日志配置 ──────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── 生命周期管理 ──────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用启动/关闭生命周期钩子"""
    logger.info("=" * 60)
    logger.info(f"🚀 Market Dashboard Service v{__version__} 启动中")
    logger.info(f"   行情      : Alpha Vantage ({'demo key' if settings.ALPHA_VANTAGE_KEY == 'demo' else 'configured'})")
    logger.info("   汇率      : Frankfurter")
    logger.info(f"   新闻源    : {settings.news_feed_count} 个")
    logger.info(f"   AI 简评   : {settings.OPENAI_MODEL} ({'已配置' if settings.OPENAI_API_KEY else '未配置，使用降级文案'})")
    logger.info("=" * 60)

    # 预热在后台执行，外部数据源缓慢时不阻塞启动
    warmup_task = None
    if settings.WARMUP_ON_STARTUP:
        warmup_task = asyncio.create_task(get_market_service().warm_up())

    scheduler = get_refresh_scheduler()
    if settings.SCHEDULER_ENABLED:
        scheduler.start()
    else:
        logger.warning("⚠️ 定时刷新未启用，缓存只在启动预热与手动刷新时更新")

    yield

    logger.info("🔄 看板服务正在关闭...")
    scheduler.shutdown()
    if warmup_task is not None and not warmup_task.done():
        warmup_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await warmup_task
    logger.info("✅ 看板服务已关闭")


# ── 应用实例 ──────────────────────────────────────────────
app = FastAPI(
    title="市场看板数据服务",
    description=(
        "市场看板后端，提供以下功能：\n"
        "- 📊 A股 / 美股主要指数行情\n"
        "- 🥇 黄金价格（每公斤）\n"
        "- 💱 USD/CNY 汇率\n"
        "- 📰 财经新闻聚合（RSS）\n"
        "- 🤖 AI 市场简评（定时生成）\n\n"
        "**分层架构**\n"
        "```\n"
        "Acquisition Layer  ← Alpha Vantage / Frankfurter / RSS\n"
        "Fallback           ← 超时与失败降级为模拟数据\n"
        "Cache Layer        ← 进程内快照，按字段原子替换\n"
        "Processing Layer   ← 报价构建、新闻排序、K 线清洗\n"
        "Analysis Layer     ← 大模型市场简评\n"
        "```"
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS 中间件 ───────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── 请求计时中间件 ─────────────────────────────────────────
@app.middleware("http")
async def add_process_time(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = f"{(time.time() - start) * 1000:.1f}ms"
    return response


# ── 全局异常处理 ──────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"未处理的异常: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=ApiResponse.fail(error="内部服务错误", message=str(exc)).model_dump(),
    )


# ── 注册路由 ──────────────────────────────────────────────
app.include_router(health.router)
app.include_router(market.router)
app.include_router(history.router)
app.include_router(cache.router)


# ── 根路由 ───────────────────────────────────────────────
@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "Market Dashboard Service",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


# ── 直接运行入口 ──────────────────────────────────────────
if __name__ == "__main__":
    uvicorn.run(
        "dashboard_service.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
