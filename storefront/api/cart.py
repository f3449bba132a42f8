from fastapi import APIRouter, Depends

from storefront.api.deps import get_current_user_id, get_cart_service
from storefront.models.checkout import CartItemRequest, CartResponse
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["购物车"])


@router.get("", response_model=CartResponse)
async def get_cart(
    user_id: int = Depends(get_current_user_id),
    cart_service: CartService = Depends(get_cart_service)
):
    return await cart_service.get_cart(user_id)


@router.post("/add", response_model=CartResponse)
async def add_to_cart(
    item: CartItemRequest,
    user_id: int = Depends(get_current_user_id),
    cart_service: CartService = Depends(get_cart_service)
):
    """加入购物车"""
    return await cart_service.add_game(user_id, item.game_id)


@router.post("/remove", response_model=CartResponse)
async def remove_from_cart(
    item: CartItemRequest,
    user_id: int = Depends(get_current_user_id),
    cart_service: CartService = Depends(get_cart_service)
):
    """移出购物车"""
    return await cart_service.remove_game(user_id, item.game_id)
