"""
定时刷新
相互独立的周期任务：汇率、行情 + 贵金属、新闻、AI 简评。
每次执行都被单独捕获异常，一次失败不会影响后续触发。
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from dashboard_service.config import settings
from dashboard_service.services.market_service import MarketService, get_market_service

logger = logging.getLogger(__name__)


async def run_safely(job_id: str, func: Callable[[], Awaitable[Any]]) -> None:
    try:
        await func()
    except Exception as exc:
        logger.error(f"定时任务执行失败 [{job_id}]: {exc!r}", exc_info=True)


class RefreshScheduler:
    """基于 APScheduler 的缓存刷新调度器"""

    def __init__(
        self,
        service: Optional[MarketService] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self._service = service or get_market_service()
        self._scheduler = scheduler or AsyncIOScheduler(timezone=settings.TZ)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def _add(self, job_id: str, func: Callable[[], Awaitable[Any]], trigger: IntervalTrigger) -> None:
        self._scheduler.add_job(
            run_safely,
            trigger,
            args=[job_id, func],
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    def register_jobs(self) -> None:
        svc = self._service
        self._add(
            "exchange_rate_refresh",
            svc.refresh_exchange_rate,
            IntervalTrigger(minutes=settings.EXCHANGE_RATE_REFRESH_MINUTES),
        )
        self._add(
            "quotes_refresh",
            svc.refresh_quotes,
            IntervalTrigger(minutes=settings.QUOTES_REFRESH_MINUTES),
        )
        self._add(
            "news_refresh",
            svc.refresh_news,
            IntervalTrigger(minutes=settings.NEWS_REFRESH_MINUTES),
        )
        self._add(
            "analysis_refresh",
            svc.refresh_analysis,
            IntervalTrigger(hours=settings.ANALYSIS_REFRESH_HOURS),
        )

    def start(self) -> None:
        if self._scheduler.running:
            return
        self.register_jobs()
        self._scheduler.start()
        logger.info(
            f"⏰ 定时刷新已启动：汇率 {settings.EXCHANGE_RATE_REFRESH_MINUTES} 分钟 / "
            f"行情 {settings.QUOTES_REFRESH_MINUTES} 分钟 / "
            f"新闻 {settings.NEWS_REFRESH_MINUTES} 分钟 / "
            f"简评 {settings.ANALYSIS_REFRESH_HOURS} 小时"
        )

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("定时刷新已停止")

    def jobs(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": job.id,
                "next_run_time": getattr(job, "next_run_time", None),
                "trigger": str(job.trigger),
            }
            for job in self._scheduler.get_jobs()
        ]


# ── 模块级别单例 ──────────────────────────────────────────
_scheduler: Optional[RefreshScheduler] = None


def get_refresh_scheduler() -> RefreshScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = RefreshScheduler()
    return _scheduler
