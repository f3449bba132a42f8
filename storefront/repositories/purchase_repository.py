"""
购买记录与销量排行数据库操作层
"""

from typing import List, Optional, Iterable, Tuple
from decimal import Decimal

from sqlalchemy import select, update, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.checkout import CartLine
from storefront.models.purchase import Purchase, PurchaseItem
from storefront.models.database.purchase_db import PurchaseDB, PurchaseItemDB
from storefront.models.database.game_db import GameDB, PurchasedGameDB, RankingDB

# 支持 INSERT ... ON CONFLICT 的方言
UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class PurchaseRepository:
    """购买记录数据库操作类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_purchase(
        self,
        user_id: int,
        total_amount: Decimal,
        discount_amount: Decimal,
        final_amount: Decimal,
        discount_code_id: Optional[int] = None
    ) -> PurchaseDB:
        """创建购买记录"""
        db_purchase = PurchaseDB(
            user_id=user_id,
            total_amount=total_amount,
            discount_amount=discount_amount,
            final_amount=final_amount,
            discount_code_id=discount_code_id
        )
        self.db.add(db_purchase)
        await self.db.flush()
        return db_purchase

    async def add_purchase_items(self, purchase_id: int, lines: Iterable[CartLine]) -> List[PurchaseItemDB]:
        """写入购买项目，记录当前价格"""
        items = [
            PurchaseItemDB(purchase_id=purchase_id, game_id=line.game_id, price_at_purchase=line.price)
            for line in lines
        ]
        self.db.add_all(items)
        await self.db.flush()
        return items

    async def grant_ownership(self, user_id: int, game_ids: Iterable[int]) -> None:
        """将游戏加入用户游戏库，重复拥有由主键约束拒绝"""
        self.db.add_all([
            PurchasedGameDB(user_id=user_id, game_id=game_id)
            for game_id in game_ids
        ])
        await self.db.flush()

    async def increment_sales(self, game_id: int, quantity: int) -> None:
        """增加游戏销量，排行记录不存在时插入，并发插入由唯一主键合并"""
        insert = UPSERT_INSERTS[self.db.get_bind().dialect.name]
        stmt = insert(RankingDB).values(game_id=game_id, sales_count=quantity)
        stmt = stmt.on_conflict_do_update(
            index_elements=[RankingDB.game_id],
            set_={"sales_count": RankingDB.sales_count + stmt.excluded.sales_count}
        )
        await self.db.execute(stmt)

    async def recompute_rank_positions(self) -> None:
        """按销量降序重新计算密集排名"""
        ranked = (
            select(
                RankingDB.game_id.label("game_id"),
                func.dense_rank().over(order_by=RankingDB.sales_count.desc()).label("rnk")
            )
            .subquery()
        )

        await self.db.execute(
            update(RankingDB)
            .values(
                rank_position=select(ranked.c.rnk)
                .where(ranked.c.game_id == RankingDB.game_id)
                .scalar_subquery()
            )
            .execution_options(synchronize_session=False)
        )

    async def get_rankings(self, limit: Optional[int] = None) -> List[Tuple[RankingDB, GameDB]]:
        """获取销量排行，未排名的游戏排在最后"""
        stmt = (
            select(RankingDB, GameDB)
            .join(GameDB, GameDB.id == RankingDB.game_id)
            .order_by(
                RankingDB.rank_position.is_(None),
                RankingDB.rank_position,
                RankingDB.sales_count.desc(),
                RankingDB.game_id
            )
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.db.execute(stmt)
        return [(row.RankingDB, row.GameDB) for row in result.all()]

    def _with_details(self, stmt):
        return stmt.options(
            selectinload(PurchaseDB.items).selectinload(PurchaseItemDB.game),
            selectinload(PurchaseDB.discount_code)
        ).execution_options(populate_existing=True)

    async def get_by_id(self, purchase_id: int) -> Optional[PurchaseDB]:
        """获取购买记录及项目"""
        result = await self.db.execute(
            self._with_details(select(PurchaseDB).where(PurchaseDB.id == purchase_id))
        )
        return result.scalar_one_or_none()

    async def get_user_purchases(self, user_id: int, limit: int = 50, offset: int = 0) -> List[PurchaseDB]:
        """获取用户购买记录，最近的在前"""
        result = await self.db.execute(
            self._with_details(
                select(PurchaseDB)
                .where(PurchaseDB.user_id == user_id)
                .order_by(PurchaseDB.purchase_date.desc(), PurchaseDB.id.desc())
                .limit(limit)
                .offset(offset)
            )
        )
        return result.scalars().all()

    def to_model(self, db_purchase: PurchaseDB) -> Purchase:
        """转换为Pydantic模型"""
        return Purchase(
            id=db_purchase.id,
            total_amount=db_purchase.total_amount,
            discount_amount=db_purchase.discount_amount,
            final_amount=db_purchase.final_amount,
            discount_code=db_purchase.discount_code.code if db_purchase.discount_code else None,
            purchase_date=db_purchase.purchase_date,
            items=[
                PurchaseItem(
                    game_id=item.game_id,
                    name=item.game.name if item.game else None,
                    price_at_purchase=item.price_at_purchase
                )
                for item in db_purchase.items
            ]
        )
