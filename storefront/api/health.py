from fastapi import APIRouter, Request
import logging

from storefront.core.config import settings
from storefront.core.redis import redis_manager
from storefront.core.database import database

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["健康检查"])


@router.get("")
async def health_check():
    """基础健康检查接口"""
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment
    }


@router.get("/database")
async def database_health():
    """数据库和Redis连接健康检查"""
    health_status = {
        "database": False,
        "redis": False,
        "overall": False,
        "details": {}
    }

    db_status = await database.health_check()
    health_status["database"] = db_status["status"] == "healthy"
    health_status["details"]["database"] = db_status["message"]

    redis_status = await redis_manager.health_check()
    health_status["redis"] = redis_status["status"] == "healthy"
    health_status["details"]["redis"] = redis_status["message"]

    # Redis只用于缓存，不影响整体状态
    health_status["overall"] = health_status["database"]

    if not health_status["overall"]:
        logger.warning(f"数据库连接检查失败: {health_status['details']}")
    return health_status


@router.get("/sweeper")
async def sweeper_health(request: Request):
    """折扣码清理任务运行统计"""
    sweeper = getattr(request.app.state, "discount_sweeper", None)
    if sweeper is None:
        return {"enabled": False}
    return sweeper.stats()
