"""
折扣码缓存
值以JSON保存在Redis中，未绑定连接或Redis出错时读取视为未命中、写入直接放弃
"""

import json
import logging
from typing import Optional, Any
import redis.asyncio as redis

logger = logging.getLogger(__name__)


class SimpleCache:
    """带key前缀的JSON缓存"""

    def __init__(self, redis_client: Optional[redis.Redis] = None, key_prefix: str = ""):
        self.redis_client = redis_client
        self.key_prefix = key_prefix

    def bind(self, redis_client: Optional[redis.Redis]) -> None:
        """绑定Redis连接，传入None表示停用缓存"""
        self.redis_client = redis_client

    @property
    def enabled(self) -> bool:
        return self.redis_client is not None

    def _key(self, key: str) -> str:
        return self.key_prefix + key

    async def get(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None

        try:
            raw = await self.redis_client.get(self._key(key))
        except Exception as e:
            logger.error(f"读取缓存失败 key={self._key(key)}: {e}")
            return None

        return json.loads(raw) if raw else None

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        if not self.enabled:
            return False

        try:
            payload = json.dumps(value, default=str, ensure_ascii=False)
            await self.redis_client.set(self._key(key), payload, ex=ttl)
            return True
        except Exception as e:
            logger.error(f"写入缓存失败 key={self._key(key)}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """删除缓存，折扣码有任何写入后调用"""
        if not self.enabled:
            return False

        try:
            return await self.redis_client.delete(self._key(key)) > 0
        except Exception as e:
            logger.error(f"删除缓存失败 key={self._key(key)}: {e}")
            return False


# 管理端折扣码列表（含使用次数）
DISCOUNT_LIST_KEY = "list"
discount_cache = SimpleCache(key_prefix="discount:")
