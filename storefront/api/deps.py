"""
API依赖注入
调用方身份由上游认证层通过 User-ID 和 Role 请求头传入
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.database import get_db_session
from storefront.repositories.cart_repository import CartRepository
from storefront.repositories.discount_repository import DiscountRepository
from storefront.repositories.purchase_repository import PurchaseRepository
from storefront.repositories.wallet_repository import WalletRepository
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.services.discount_service import DiscountService
from storefront.services.ranking_service import RankingService
from storefront.services.wallet_service import WalletService


async def get_current_user_id(user_id: Optional[str] = Header(None, alias="User-ID")) -> int:
    """读取当前用户ID"""
    if user_id is None or not user_id.strip().isdigit():
        raise HTTPException(status_code=401, detail="Missing or invalid User-ID header")
    return int(user_id)


async def require_admin(
    role: Optional[str] = Header(None, alias="Role"),
    user_id: int = Depends(get_current_user_id)
) -> int:
    """要求管理员角色"""
    if (role or "").lower() != "admin":
        raise HTTPException(status_code=403, detail="Admin role required")
    return user_id


def get_sweeper(request: Request):
    return getattr(request.app.state, "discount_sweeper", None)


async def get_discount_service(
    request: Request,
    db: AsyncSession = Depends(get_db_session)
) -> DiscountService:
    return DiscountService(DiscountRepository(db), sweeper=get_sweeper(request))


async def get_checkout_service(db: AsyncSession = Depends(get_db_session)) -> CheckoutService:
    return CheckoutService(db)


async def get_cart_service(db: AsyncSession = Depends(get_db_session)) -> CartService:
    return CartService(CartRepository(db))


async def get_wallet_service(db: AsyncSession = Depends(get_db_session)) -> WalletService:
    return WalletService(WalletRepository(db), PurchaseRepository(db))


async def get_ranking_service(db: AsyncSession = Depends(get_db_session)) -> RankingService:
    return RankingService(PurchaseRepository(db))
