"""
缓存状态路由
GET  /api/cache/stats     - 历史数据缓存统计
"""

from fastapi import APIRouter

from market_service.models.response import ApiResponse
from market_service.services.market_data_service import get_market_data_service

router = APIRouter(prefix="/api/cache", tags=["缓存管理"])


@router.get("/stats", response_model=ApiResponse)
async def cache_stats():
    """获取缓存统计信息（条目数、新鲜条目数、容量、TTL）"""
    return ApiResponse.ok(data=get_market_data_service().cache_stats())
