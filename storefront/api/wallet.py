from typing import List

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_current_user_id, get_wallet_service
from storefront.models.purchase import Purchase
from storefront.models.wallet import DepositRequest, WalletBalance, WalletTransaction
from storefront.services.wallet_service import WalletService

router = APIRouter(prefix="/wallet", tags=["钱包"])


@router.get("", response_model=WalletBalance)
async def get_wallet(
    user_id: int = Depends(get_current_user_id),
    wallet_service: WalletService = Depends(get_wallet_service)
):
    return await wallet_service.get_balance(user_id)


@router.post("/deposit", response_model=WalletBalance)
async def deposit(
    request: DepositRequest,
    user_id: int = Depends(get_current_user_id),
    wallet_service: WalletService = Depends(get_wallet_service)
):
    """钱包充值"""
    return await wallet_service.deposit(user_id, request.amount)


@router.get("/transactions", response_model=List[WalletTransaction])
async def get_transactions(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_current_user_id),
    wallet_service: WalletService = Depends(get_wallet_service)
):
    """钱包流水，按时间倒序"""
    return await wallet_service.get_transactions(user_id, limit=limit, offset=offset)


@router.get("/purchases", response_model=List[Purchase])
async def get_purchases(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_current_user_id),
    wallet_service: WalletService = Depends(get_wallet_service)
):
    """购买历史，最近的在前"""
    return await wallet_service.get_purchases(user_id, limit=limit, offset=offset)


@router.get("/purchases/{purchase_id}", response_model=Purchase)
async def get_purchase(
    purchase_id: int,
    user_id: int = Depends(get_current_user_id),
    wallet_service: WalletService = Depends(get_wallet_service)
):
    return await wallet_service.get_purchase(user_id, purchase_id)
