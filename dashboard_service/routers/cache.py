"""
缓存管理路由
GET /api/cache/stats     - 缓存统计与定时任务状态
"""

from fastapi import APIRouter

from dashboard_service.models.response import ApiResponse
from dashboard_service.services.market_service import get_market_service
from dashboard_service.services.scheduler import get_refresh_scheduler

router = APIRouter(prefix="/api/cache", tags=["缓存管理"])


@router.get("/stats", response_model=ApiResponse)
async def cache_stats():
    """各字段更新时间、模拟数据数量及定时任务"""
    stats = get_market_service().cache.stats()
    stats["scheduler"] = {
        "running": get_refresh_scheduler().running,
        "jobs": get_refresh_scheduler().jobs(),
    }
    return ApiResponse.ok(data=stats)
