"""健康检查路由"""

import time

from fastapi import APIRouter

from dashboard_service import __version__
from dashboard_service.layers.cache import FIELDS
from dashboard_service.services.market_service import get_market_service
from dashboard_service.services.scheduler import get_refresh_scheduler

router = APIRouter(tags=["健康检查"])


@router.get("/health")
async def health():
    """服务健康检查，附带缓存是否已预热"""
    cache = get_market_service().cache
    return {
        "success": True,
        "data": {
            "status": "ok",
            "version": __version__,
            "timestamp": int(time.time()),
            "service": "Market Dashboard Service",
            "scheduler": "running" if get_refresh_scheduler().running else "stopped",
            "cache": {
                field: cache.is_populated(field)
                for field in FIELDS
            },
        },
        "message": "服务运行正常",
    }


@router.get("/healthz")
async def healthz():
    """Kubernetes 存活检查"""
    return {"status": "ok"}


@router.get("/readyz")
async def readyz():
    """Kubernetes 就绪检查"""
    return {"ready": True}
