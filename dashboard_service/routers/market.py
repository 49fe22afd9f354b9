"""
看板数据路由
GET  /api/stocks               - 股票指数报价（地区 → 名称 → 报价）
GET  /api/gold                 - 贵金属报价（地区 → 报价列表）
GET  /api/news                 - 财经新闻
GET  /api/analysis             - AI 市场简评
GET  /api/exchange-rate        - USD/CNY 汇率
GET  /api/all                  - 以上全部
POST /api/generate-analysis    - 立即刷新全部数据并重新生成简评
"""

from fastapi import APIRouter, Query

from dashboard_service.services.market_service import get_market_service

router = APIRouter(prefix="/api", tags=["看板数据"])


@router.get("/stocks")
async def get_stocks():
    """股票指数报价；缓存为空时先拉取一次"""
    return await get_market_service().get_stocks()


@router.get("/gold")
async def get_gold():
    """
    贵金属报价（每公斤）

    previous_close 为当日（UTC）参考价：前一天最后一次真实报价，
    若没有则为当天第一次真实报价；涨跌相对该参考价计算
    """
    return await get_market_service().get_gold()


@router.get("/news")
async def get_news():
    """财经新闻，按发布时间倒序"""
    return await get_market_service().get_news()


@router.get("/analysis")
async def get_analysis():
    """最近一次生成的 AI 简评"""
    return get_market_service().current_analysis()


@router.get("/exchange-rate")
async def get_exchange_rate():
    """最近一次成功获取的汇率"""
    return get_market_service().cache.exchange_rate


@router.get("/all")
async def get_all(
    refresh: bool = Query(default=False, description="是否先同步刷新全部数据并重新生成简评"),
):
    """合并返回全部看板数据"""
    svc = get_market_service()
    if refresh:
        await svc.regenerate()
    return await svc.get_snapshot()


@router.post("/generate-analysis")
async def generate_analysis():
    """强制执行一次完整刷新周期，返回新的简评"""
    return await get_market_service().regenerate()
