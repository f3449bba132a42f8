from fastapi import APIRouter, Depends

from storefront.api.deps import get_current_user_id, get_checkout_service
from storefront.models.checkout import CheckoutRequest, CheckoutResult
from storefront.services.checkout_service import CheckoutService

router = APIRouter(prefix="/checkout", tags=["结账"])


@router.post("", response_model=CheckoutResult)
async def checkout(
    request: CheckoutRequest,
    user_id: int = Depends(get_current_user_id),
    checkout_service: CheckoutService = Depends(get_checkout_service)
):
    """结账：购物车全部游戏一次性购买"""
    return await checkout_service.checkout(user_id, request.discount_code)
