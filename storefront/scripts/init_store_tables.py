"""
商城数据库表初始化脚本

运行方式:
python -m storefront.scripts.init_store_tables [create|seed|drop|check]
"""

import argparse
import asyncio
import logging
from decimal import Decimal
from sqlalchemy import inspect, select, text
from sqlalchemy.ext.asyncio import create_async_engine

from storefront.core.config import settings
from storefront.core.database import Base, database
from storefront.models.database import GameDB, RankingDB, DiscountCodeDB

logger = logging.getLogger(__name__)

EXPECTED_TABLES = [
    "users", "user_transactions", "games", "purchased_games", "ranking",
    "carts", "cart_items", "discount_codes", "user_discount_codes",
    "purchases", "purchase_items"
]

# PostgreSQL检查约束，金额和数量规则在数据库层再兜底一次
CHECK_CONSTRAINTS = [
    ("users", "chk_wallet_balance", "wallet_balance >= 0"),
    ("games", "chk_game_price", "price > 0"),
    ("cart_items", "chk_cart_quantity", "quantity >= 1"),
    ("discount_codes", "chk_discount_value", "value > 0"),
    ("discount_codes", "chk_discount_type", "type IN ('percent', 'fixed')"),
]


EXTRA_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_purchases_user_date ON purchases(user_id, purchase_date)",
    "CREATE INDEX IF NOT EXISTS idx_discount_usage_code_user ON user_discount_codes(discount_code_id, user_id)",
    "CREATE INDEX IF NOT EXISTS idx_ranking_sales ON ranking(sales_count DESC)",
]

SAMPLE_GAMES = [
    ("Starfall Odyssey", "59.99", "开放世界太空探索"),
    ("Kingdom of Ash", "39.99", "回合制策略"),
    ("Pixel Drift", "14.99", "复古赛车"),
    ("Hollow Lantern", "24.99", "类银河恶魔城"),
]


async def create_database_if_not_exists():
    """创建数据库（如果不存在），仅PostgreSQL"""
    server_url = settings.database_url_computed.replace(f"/{settings.db_name}", "/postgres")
    engine = create_async_engine(server_url, isolation_level="AUTOCOMMIT")

    try:
        async with engine.connect() as conn:
            result = await conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :db_name"),
                {"db_name": settings.db_name}
            )
            if result.first():
                logger.info(f"数据库 '{settings.db_name}' 已存在")
            else:
                await conn.execute(text(f'CREATE DATABASE "{settings.db_name}"'))
                logger.info(f"数据库 '{settings.db_name}' 创建成功")
    finally:
        await engine.dispose()


async def create_store_tables():
    """创建商城数据表"""
    try:
        if settings.database_url_computed.startswith("postgresql"):
            await create_database_if_not_exists()

        await database.init_database()

        logger.info("开始创建商城数据表...")
        async with database.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("商城数据表创建成功")

            for index_sql in EXTRA_INDEXES:
                await conn.execute(text(index_sql))
            logger.info("索引创建成功")

            if conn.dialect.name == "postgresql":
                await _create_check_constraints(conn)

        logger.info("商城数据库初始化完成")

    except Exception as e:
        logger.error(f"创建商城数据表失败: {e}")
        raise
    finally:
        await database.close_database()


async def _create_check_constraints(conn):
    """创建检查约束，已存在时跳过"""
    for table, name, condition in CHECK_CONSTRAINTS:
        exists = await conn.execute(
            text("SELECT 1 FROM pg_constraint WHERE conname = :name"),
            {"name": name}
        )
        if exists.first():
            logger.info(f"约束已存在，跳过: {name}")
            continue

        await conn.execute(text(f"ALTER TABLE {table} ADD CONSTRAINT {name} CHECK ({condition})"))
        logger.info(f"约束创建成功: {name}")


async def insert_sample_data():
    """插入示例游戏、排行记录和折扣码，已存在时跳过"""
    try:
        await database.init_database()

        async with database.session_maker() as session:
            for name, price, description in SAMPLE_GAMES:
                existing = await session.execute(select(GameDB.id).where(GameDB.name == name))
                if existing.first():
                    logger.info(f"游戏已存在: {name}")
                    continue

                game = GameDB(name=name, price=Decimal(price), description=description)
                session.add(game)
                await session.flush()
                session.add(RankingDB(game_id=game.id, sales_count=0))
                logger.info(f"插入游戏: {name}")

            existing = await session.execute(select(DiscountCodeDB.id).where(DiscountCodeDB.code == "WELCOME10"))
            if not existing.first():
                session.add(DiscountCodeDB(
                    code="WELCOME10",
                    type="percent",
                    value=Decimal("10"),
                    min_total=Decimal("20"),
                    usage_limit=100,
                    single_use_per_user=True
                ))
                logger.info("插入折扣码: WELCOME10")

            await session.commit()

    except Exception as e:
        logger.error(f"插入示例数据失败: {e}")
        raise
    finally:
        await database.close_database()


async def drop_store_tables():
    """删除商城数据表（谨慎使用）"""
    try:
        await database.init_database()

        logger.warning("开始删除商城数据表...")
        async with database.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        logger.warning("商城数据表删除完成")

    except Exception as e:
        logger.error(f"删除商城数据表失败: {e}")
        raise
    finally:
        await database.close_database()


async def check_tables_exist() -> bool:
    """检查表是否存在"""
    try:
        await database.init_database()

        async with database.engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

        missing_tables = set(EXPECTED_TABLES) - set(tables)
        if missing_tables:
            logger.warning(f"缺少表: {sorted(missing_tables)}")
            return False

        logger.info("所有商城表都存在")
        return True

    except Exception as e:
        logger.error(f"检查表存在性失败: {e}")
        return False
    finally:
        await database.close_database()


if __name__ == "__main__":
    # 设置日志
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    parser = argparse.ArgumentParser(description="商城数据库表管理")
    parser.add_argument("command", nargs="?", default="create", choices=["create", "seed", "drop", "check"])
    args = parser.parse_args()

    if args.command == "create":
        asyncio.run(create_store_tables())
    elif args.command == "seed":
        asyncio.run(insert_sample_data())
    elif args.command == "drop":
        asyncio.run(drop_store_tables())
    else:
        asyncio.run(check_tables_exist())
