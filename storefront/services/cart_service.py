"""
购物车业务服务层
"""

import logging

from storefront.core.exceptions import AlreadyOwnedError, NotFoundError
from storefront.models.checkout import CartResponse, CartSnapshot
from storefront.repositories.cart_repository import CartRepository

logger = logging.getLogger(__name__)


class CartService:
    """购物车业务服务"""

    def __init__(self, cart_repo: CartRepository):
        self.cart_repo = cart_repo

    async def get_cart(self, user_id: int) -> CartResponse:
        """获取购物车，空购物车返回空列表"""
        lines = await self.cart_repo.get_cart_lines(user_id)
        return CartResponse.from_snapshot(CartSnapshot(user_id=user_id, lines=lines))

    async def add_game(self, user_id: int, game_id: int) -> CartResponse:
        """加入购物车，已拥有的游戏不能加入"""
        game = await self.cart_repo.get_game(game_id)
        if game is None:
            raise NotFoundError(f"Game {game_id} not found")

        owned = await self.cart_repo.get_owned_game_ids(user_id, [game_id])
        if game_id in owned:
            raise AlreadyOwnedError(game.id, game.name)

        await self.cart_repo.add_item(user_id, game_id)
        logger.info(f"加入购物车: user={user_id}, game={game_id}")
        return await self.get_cart(user_id)

    async def remove_game(self, user_id: int, game_id: int) -> CartResponse:
        """从购物车移除游戏"""
        if not await self.cart_repo.remove_item(user_id, game_id):
            raise NotFoundError(f"Game {game_id} is not in the cart")

        logger.info(f"移出购物车: user={user_id}, game={game_id}")
        return await self.get_cart(user_id)
