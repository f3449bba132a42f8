"""
购物车数据库操作层
"""

from typing import List, Optional, Set, Iterable

from sqlalchemy import select, update, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import EmptyCartError
from storefront.models.checkout import CartLine, CartSnapshot
from storefront.models.database.cart_db import CartDB, CartItemDB
from storefront.models.database.game_db import GameDB, PurchasedGameDB


class CartRepository:
    """购物车数据库操作类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_game(self, game_id: int) -> Optional[GameDB]:
        """根据ID获取游戏"""
        result = await self.db.execute(
            select(GameDB).where(GameDB.id == game_id)
        )
        return result.scalar_one_or_none()

    async def get_cart(self, user_id: int) -> Optional[CartDB]:
        """获取用户购物车"""
        result = await self.db.execute(
            select(CartDB).where(CartDB.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_or_create_cart(self, user_id: int) -> CartDB:
        """获取用户购物车，不存在则创建"""
        cart = await self.get_cart(user_id)
        if cart is None:
            cart = CartDB(user_id=user_id)
            self.db.add(cart)
            await self.db.flush()
        return cart

    async def get_cart_lines(self, user_id: int) -> List[CartLine]:
        """读取购物车行，价格取游戏当前价格"""
        result = await self.db.execute(
            select(GameDB.id, GameDB.name, GameDB.price, CartItemDB.quantity)
            .join(CartItemDB, CartItemDB.game_id == GameDB.id)
            .join(CartDB, CartItemDB.cart_id == CartDB.id)
            .where(CartDB.user_id == user_id)
            .order_by(CartItemDB.id)
        )
        return [
            CartLine(game_id=row.id, name=row.name, price=row.price, quantity=row.quantity)
            for row in result.fetchall()
        ]

    async def get_owned_game_ids(self, user_id: int, game_ids: Iterable[int]) -> Set[int]:
        """获取指定游戏中用户已拥有的部分"""
        game_ids = list(game_ids)
        if not game_ids:
            return set()

        result = await self.db.execute(
            select(PurchasedGameDB.game_id).where(
                and_(
                    PurchasedGameDB.user_id == user_id,
                    PurchasedGameDB.game_id.in_(game_ids)
                )
            )
        )
        return set(result.scalars().all())

    async def load_cart(self, user_id: int) -> CartSnapshot:
        """加载购物车快照，购物车为空时抛出 EmptyCartError"""
        lines = await self.get_cart_lines(user_id)
        if not lines:
            raise EmptyCartError()

        owned = await self.get_owned_game_ids(user_id, [line.game_id for line in lines])
        return CartSnapshot(user_id=user_id, lines=lines, owned_game_ids=owned)

    async def add_item(self, user_id: int, game_id: int) -> CartItemDB:
        """加入购物车，已存在则数量加一"""
        cart = await self.get_or_create_cart(user_id)

        result = await self.db.execute(
            update(CartItemDB)
            .where(
                and_(
                    CartItemDB.cart_id == cart.id,
                    CartItemDB.game_id == game_id
                )
            )
            .values(quantity=CartItemDB.quantity + 1)
        )

        if result.rowcount == 0:
            self.db.add(CartItemDB(cart_id=cart.id, game_id=game_id, quantity=1))
            await self.db.flush()

        item = await self.db.execute(
            select(CartItemDB).where(
                and_(
                    CartItemDB.cart_id == cart.id,
                    CartItemDB.game_id == game_id
                )
            ).execution_options(populate_existing=True)
        )
        return item.scalar_one()

    async def remove_item(self, user_id: int, game_id: int) -> bool:
        """从购物车移除游戏"""
        cart = await self.get_cart(user_id)
        if cart is None:
            return False

        result = await self.db.execute(
            delete(CartItemDB).where(
                and_(
                    CartItemDB.cart_id == cart.id,
                    CartItemDB.game_id == game_id
                )
            )
        )
        return result.rowcount > 0

    async def clear_cart(self, user_id: int) -> int:
        """清空购物车，返回删除的行数"""
        cart_ids = select(CartDB.id).where(CartDB.user_id == user_id).scalar_subquery()
        result = await self.db.execute(
            delete(CartItemDB).where(CartItemDB.cart_id == cart_ids)
        )
        return result.rowcount
