"""
测试配置文件 - pytest fixtures和共用配置
"""

import pytest
import pytest_asyncio
from decimal import Decimal
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.core.database import Base
from storefront.models.database import (
    UserDB, GameDB, PurchasedGameDB, RankingDB, CartDB, CartItemDB,
    DiscountCodeDB, DiscountUsageDB
)
from storefront.services.common_cache import SimpleCache


# 配置pytest-asyncio
pytest_plugins = ('pytest_asyncio',)


@pytest_asyncio.fixture(scope="function")
async def test_db_engine():
    """测试数据库引擎 - 内存SQLite，所有session共享同一个连接"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,  # 设为True可以看到SQL语句
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )

    # 创建表结构
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_db_engine):
    """测试session工厂"""
    return async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncSession:
    """测试数据库会话"""
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


@pytest.fixture
def no_cache():
    """未绑定Redis的缓存，所有操作为空操作"""
    return SimpleCache(key_prefix="discount:")


@pytest.fixture
def make_user(db_session):
    """创建用户"""
    async def _make_user(username: str = "player1", balance: str = "100.00", role: str = "user") -> UserDB:
        user = UserDB(username=username, wallet_balance=Decimal(balance), role=role)
        db_session.add(user)
        await db_session.commit()
        return user
    return _make_user


@pytest.fixture
def make_game(db_session):
    """创建游戏及其排行记录"""
    async def _make_game(name: str, price: str, game_id: Optional[int] = None, sales_count: int = 0) -> GameDB:
        game = GameDB(id=game_id, name=name, price=Decimal(price))
        db_session.add(game)
        await db_session.flush()
        db_session.add(RankingDB(game_id=game.id, sales_count=sales_count))
        await db_session.commit()
        return game
    return _make_game


@pytest.fixture
def add_to_cart(db_session):
    """向购物车写入一行"""
    async def _add_to_cart(user_id: int, game_id: int, quantity: int = 1) -> CartItemDB:
        result = await db_session.execute(select(CartDB).where(CartDB.user_id == user_id))
        cart = result.scalar_one_or_none()
        if cart is None:
            cart = CartDB(user_id=user_id)
            db_session.add(cart)
            await db_session.flush()
        item = CartItemDB(cart_id=cart.id, game_id=game_id, quantity=quantity)
        db_session.add(item)
        await db_session.commit()
        return item
    return _add_to_cart


@pytest.fixture
def own_game(db_session):
    """将游戏加入用户游戏库"""
    async def _own_game(user_id: int, game_id: int) -> None:
        db_session.add(PurchasedGameDB(user_id=user_id, game_id=game_id))
        await db_session.commit()
    return _own_game


@pytest.fixture
def make_discount(db_session):
    """创建折扣码"""
    async def _make_discount(code: str = "SAVE10", **kwargs) -> DiscountCodeDB:
        values = {
            "type": "percent",
            "value": Decimal("10"),
            "min_total": Decimal("0"),
            "single_use_per_user": False,
            "active": True,
        }
        values.update(kwargs)
        discount = DiscountCodeDB(code=code, **values)
        db_session.add(discount)
        await db_session.commit()
        return discount
    return _make_discount


@pytest.fixture
def add_usages(db_session):
    """写入折扣码使用记录"""
    async def _add_usages(discount_id: int, user_ids) -> None:
        for user_id in user_ids:
            db_session.add(DiscountUsageDB(user_id=user_id, discount_code_id=discount_id))
        await db_session.commit()
    return _add_usages
