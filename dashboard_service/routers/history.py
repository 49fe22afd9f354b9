"""
历史 K 线路由
GET /api/history/{symbol}   - 日 K（sp500 / nasdaq / gold / shanghai，其余返回模拟数据）
"""

from fastapi import APIRouter

from dashboard_service.models.market import HistoryResponse
from dashboard_service.services.market_service import get_market_service

router = APIRouter(prefix="/api/history", tags=["历史 K 线"])


@router.get("/{symbol}", response_model=HistoryResponse)
async def get_history(symbol: str):
    """最近约 90 个交易日的日 K，时间升序"""
    return await get_market_service().get_history(symbol)
