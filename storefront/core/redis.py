import redis.asyncio as aioredis
from typing import Optional
from storefront.core.config import settings
import structlog

"Redis连接管理器，连接只供折扣码缓存使用，不可用时服务照常运行"

logger = structlog.get_logger()


class RedisManager:
    """Redis连接管理器"""

    def __init__(self):
        self.redis_pool: Optional[aioredis.Redis] = None

    @property
    def connected(self) -> bool:
        return self.redis_pool is not None

    async def init_redis(self, url: Optional[str] = None) -> Optional[aioredis.Redis]:
        """建立连接并ping一次，失败时关闭连接并返回None"""
        client = aioredis.from_url(
            url or settings.redis_url_computed,
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
            socket_connect_timeout=5,
            retry_on_timeout=True
        )
        try:
            await client.ping()
        except Exception as e:
            logger.warning("Redis不可用", url=url or settings.redis_url_computed, error=str(e))
            await client.close()
            return None

        self.redis_pool = client
        logger.info("Redis连接初始化成功")
        return client

    async def close_redis(self) -> None:
        if self.redis_pool:
            await self.redis_pool.close()
            self.redis_pool = None
            logger.info("Redis连接已关闭")

    async def health_check(self) -> dict:
        """Redis健康检查"""
        if not self.connected:
            return {"status": "not_initialized", "message": "Redis未连接，缓存已停用"}
        try:
            await self.redis_pool.ping()
            return {"status": "healthy", "message": "连接正常"}
        except Exception as e:
            logger.error("Redis健康检查失败", error=str(e))
            return {"status": "error", "message": f"连接失败: {str(e)}"}


redis_manager = RedisManager()
