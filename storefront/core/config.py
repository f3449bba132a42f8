from pydantic import validator
from pydantic_settings import BaseSettings
from typing import List, Optional
from enum import Enum


class Environment(str, Enum):

    """运行环境枚举"""
    TESTING = "testing"
    PRODUCTION = "production"


# 结账事务允许设置的隔离级别
ISOLATION_LEVELS = {"READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE"}


class Settings(BaseSettings):
    """商城服务配置，从环境变量和 .env 读取"""

    app_name: str = "Game Storefront"
    app_version: str = "1.0.0"
    environment: Environment = Environment.TESTING
    debug: bool = True
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # PostgreSQL，设置 database_url 时忽略其余字段
    database_url: Optional[str] = None
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "storefront_db"
    db_user: str = "storefront_user"
    db_password: str = "storefront_password"

    # Redis只缓存折扣码列表
    redis_enabled: bool = True
    redis_url: Optional[str] = None
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    # 为空时使用数据库默认隔离级别
    checkout_isolation_level: Optional[str] = None

    discount_sweep_enabled: bool = True
    discount_sweep_interval_seconds: int = 300
    discount_cache_ttl: int = 600

    @validator("checkout_isolation_level")
    def validate_isolation_level(cls, v):
        if v is None or not v.strip():
            return None
        level = " ".join(v.upper().replace("_", " ").split())
        if level not in ISOLATION_LEVELS:
            raise ValueError(f"不支持的隔离级别: {v}")
        return level

    @validator("discount_sweep_interval_seconds", "discount_cache_ttl")
    def validate_positive_seconds(cls, v):
        if v <= 0:
            raise ValueError("时间间隔必须大于0")
        return v

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING

    @property
    def database_url_computed(self) -> str:
        if self.database_url:
            return self.database_url
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def redis_url_computed(self) -> str:
        if self.redis_url:
            return self.redis_url
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
