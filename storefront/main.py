from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from storefront.core.config import settings
from storefront.core.redis import redis_manager
from storefront.core.database import database
from storefront.core.exceptions import BusinessException
from storefront.services.common_cache import discount_cache
from storefront.services.discount_sweeper import DiscountSweeper
from storefront.api.health import router as health_router
from storefront.api.cart import router as cart_router
from storefront.api.checkout import router as checkout_router
from storefront.api.discounts import router as discounts_router, admin_router as admin_discounts_router
from storefront.api.wallet import router as wallet_router
from storefront.api.rankings import router as rankings_router
from storefront.api.exceptions import (
    validation_exception_handler,
    http_exception_handler,
    database_exception_handler,
    general_exception_handler,
    business_exception_handler
)

# 简化日志配置
import logging

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("正在启动游戏商城服务")

    try:
        await database.init_database()
        logger.info("数据库初始化成功")
    except Exception as e:
        logger.error(f"应用启动失败: {e}")
        raise

    # Redis只用于缓存，不可用时降级为无缓存
    if settings.redis_enabled:
        discount_cache.bind(await redis_manager.init_redis())
    if not discount_cache.enabled:
        logger.warning("Redis不可用，折扣码缓存已停用")

    sweeper = DiscountSweeper(
        database.session_maker,
        cache=discount_cache,
        interval_seconds=settings.discount_sweep_interval_seconds
    )
    if settings.discount_sweep_enabled:
        sweeper.start()
    app.state.discount_sweeper = sweeper

    logger.info("应用启动完成")

    yield

    logger.info("正在关闭应用")
    sweeper.stop()
    discount_cache.bind(None)
    await redis_manager.close_redis()
    await database.close_database()
    logger.info("应用关闭完成")


# 创建FastAPI应用
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="游戏商城后端 - 购物车、钱包、结账与折扣码",
    debug=settings.debug,
    lifespan=lifespan
)

# CORS中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# 注册路由
app.include_router(health_router)
app.include_router(cart_router)
app.include_router(checkout_router)
app.include_router(discounts_router)
app.include_router(admin_discounts_router)
app.include_router(wallet_router)
app.include_router(rankings_router)

# 注册异常处理器
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(SQLAlchemyError, database_exception_handler)
app.add_exception_handler(BusinessException, business_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)


@app.get("/")
async def root():
    """根路径"""
    return {
        "message": f"欢迎使用 {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    uvicorn.run(
        "storefront.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
