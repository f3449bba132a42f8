"""
并发结账测试 - 文件SQLite，多个session同时结账

SQLite不支持 SELECT ... FOR UPDATE，这里让每个事务以 BEGIN IMMEDIATE 开始，
事务一开始就持有写锁，并发结账因此按顺序串行执行。
"""

import asyncio
import pytest
import pytest_asyncio
from decimal import Decimal
from datetime import datetime
from sqlalchemy import event, select, func
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from storefront.core.database import Base
from storefront.core.exceptions import EmptyCartError
from storefront.models.checkout import CheckoutResult
from storefront.models.database import (
    UserDB, PurchaseDB, PurchasedGameDB, DiscountCodeDB, DiscountUsageDB, WalletTransactionDB
)
from storefront.services.checkout_service import CheckoutService


NOW = datetime(2024, 6, 15, 12, 0, 0)


@pytest_asyncio.fixture(scope="function")
async def test_db_engine(tmp_path):
    """文件SQLite引擎，每个session使用独立连接"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30}
    )

    @event.listens_for(engine.sync_engine, "connect")
    def disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


async def checkout(session_maker, cache, user_id, code=None):
    async with session_maker() as session:
        return await CheckoutService(session, cache=cache).checkout(user_id, code, now=NOW)


async def count_rows(session_maker, model, *conditions) -> int:
    async with session_maker() as session:
        result = await session.execute(select(func.count()).select_from(model).where(*conditions))
        return result.scalar()


async def get_balance(session_maker, user_id: int) -> Decimal:
    async with session_maker() as session:
        result = await session.execute(select(UserDB.wallet_balance).where(UserDB.id == user_id))
        return result.scalar_one()


@pytest.mark.asyncio
class TestConcurrentCheckout:
    """并发结账测试类"""

    async def test_two_buyers_race_for_last_use(
        self, session_maker, no_cache, make_user, make_game, add_to_cart, make_discount, add_usages
    ):
        """折扣码只剩一次：只有一个买家拿到折扣，另一个按原价结账"""
        code = await make_discount("LAST1", usage_limit=2)
        await add_usages(code.id, [999])
        game = await make_game("Alpha", "50.00")
        buyers = [await make_user(f"buyer{index}", "100.00") for index in range(2)]
        for buyer in buyers:
            await add_to_cart(buyer.id, game.id)

        results = await asyncio.gather(
            *[checkout(session_maker, no_cache, buyer.id, "LAST1") for buyer in buyers],
            return_exceptions=True
        )

        assert all(isinstance(result, CheckoutResult) for result in results)
        assert sorted(result.final_amount for result in results) == [Decimal("45.00"), Decimal("50.00")]
        assert [result.discount_code_id for result in results].count(code.id) == 1
        assert await count_rows(session_maker, DiscountUsageDB, DiscountUsageDB.discount_code_id == code.id) == 2

        async with session_maker() as session:
            assert (await session.get(DiscountCodeDB, code.id)).active is False

        for buyer, result in zip(buyers, results):
            assert await get_balance(session_maker, buyer.id) == Decimal("100.00") - result.final_amount

    @pytest.mark.parametrize("buyers_count,usage_limit", [(3, 1), (5, 3)])
    async def test_usage_cap_holds_under_contention(
        self, session_maker, no_cache, make_user, make_game, add_to_cart, make_discount,
        buyers_count, usage_limit
    ):
        code = await make_discount("CAPPED", usage_limit=usage_limit)
        game = await make_game("Alpha", "20.00")
        buyers = [await make_user(f"buyer{index}", "100.00") for index in range(buyers_count)]
        for buyer in buyers:
            await add_to_cart(buyer.id, game.id)

        results = await asyncio.gather(
            *[checkout(session_maker, no_cache, buyer.id, "CAPPED") for buyer in buyers],
            return_exceptions=True
        )

        assert all(isinstance(result, CheckoutResult) for result in results)
        discounted = [result for result in results if result.discount_code_id == code.id]
        assert len(discounted) == usage_limit
        assert await count_rows(
            session_maker, DiscountUsageDB, DiscountUsageDB.discount_code_id == code.id
        ) == usage_limit
        assert await count_rows(session_maker, PurchaseDB) == buyers_count

    async def test_same_user_checks_out_twice_at_once(
        self, session_maker, no_cache, make_user, make_game, add_to_cart
    ):
        """同一用户同时提交两次结账：只生成一笔购买，余额只扣一次"""
        buyer = await make_user("buyer", "100.00")
        game = await make_game("Alpha", "60.00")
        await add_to_cart(buyer.id, game.id)

        results = await asyncio.gather(
            checkout(session_maker, no_cache, buyer.id),
            checkout(session_maker, no_cache, buyer.id),
            return_exceptions=True
        )

        succeeded = [result for result in results if isinstance(result, CheckoutResult)]
        rejected = [result for result in results if isinstance(result, EmptyCartError)]
        assert len(succeeded) == 1
        assert len(rejected) == 1

        assert await get_balance(session_maker, buyer.id) == Decimal("40.00")
        assert await count_rows(session_maker, PurchaseDB) == 1
        assert await count_rows(session_maker, PurchasedGameDB, PurchasedGameDB.user_id == buyer.id) == 1
        assert await count_rows(session_maker, WalletTransactionDB) == 1

