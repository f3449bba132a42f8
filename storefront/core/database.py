from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from sqlalchemy import text
from typing import AsyncGenerator, Optional
import logging

from storefront.core.config import settings

logger = logging.getLogger(__name__)

# 创建基础模型类
Base = declarative_base()


class Database:
    """数据库连接管理器，持有进程级引擎和session工厂"""

    def __init__(self):
        self.engine: Optional[AsyncEngine] = None
        self.session_maker: Optional[async_sessionmaker] = None

    async def init_database(self, url: Optional[str] = None) -> None:
        """初始化数据库连接"""
        try:
            engine_kwargs = {
                "echo": settings.debug,  # 调试模式下打印SQL
                "pool_pre_ping": True,  # 连接前ping检查
                "pool_recycle": 3600,   # 连接回收时间1小时
            }
            if settings.is_testing:
                engine_kwargs["poolclass"] = NullPool

            self.engine = create_async_engine(url or settings.database_url_computed, **engine_kwargs)

            # 创建异步session工厂
            self.session_maker = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False
            )

            logger.info("数据库连接初始化成功")

        except Exception as e:
            logger.error(f"数据库连接初始化失败: {e}")
            raise

    async def close_database(self) -> None:
        """关闭数据库连接"""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_maker = None
            logger.info("数据库连接已关闭")

    async def health_check(self) -> dict:
        """数据库健康检查"""
        try:
            if not self.engine:
                return {"status": "error", "message": "数据库引擎未初始化"}

            # 执行简单查询测试连接
            async with self.engine.begin() as conn:
                result = await conn.execute(text("SELECT 1"))
                row = result.fetchone()

            return {
                "status": "healthy",
                "message": "数据库连接正常",
                "test_query_result": row[0] if row else None
            }

        except Exception as e:
            return {
                "status": "error",
                "message": f"数据库连接失败: {str(e)}"
            }


# 全局数据库实例，仅在应用生命周期和依赖注入入口处使用
database = Database()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """获取数据库会话依赖注入函数"""
    if not database.session_maker:
        raise RuntimeError("数据库未初始化，请先调用 init_database()")

    async with database.session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
