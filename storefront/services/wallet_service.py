"""
钱包业务服务层
"""

import logging
from typing import List
from decimal import Decimal

from storefront.core.exceptions import NotFoundError, UserNotFoundError
from storefront.models.purchase import Purchase
from storefront.models.wallet import WalletBalance, WalletTransaction, TransactionType
from storefront.repositories.purchase_repository import PurchaseRepository
from storefront.repositories.wallet_repository import WalletRepository

logger = logging.getLogger(__name__)


class WalletService:
    """钱包业务服务"""

    def __init__(self, wallet_repo: WalletRepository, purchase_repo: PurchaseRepository):
        self.wallet_repo = wallet_repo
        self.purchase_repo = purchase_repo

    async def get_balance(self, user_id: int) -> WalletBalance:
        """查询余额"""
        balance = await self.wallet_repo.get_balance(user_id)
        if balance is None:
            raise UserNotFoundError(user_id)
        return WalletBalance(balance=balance)

    async def deposit(self, user_id: int, amount: Decimal) -> WalletBalance:
        """充值：入账和流水在同一事务中写入"""
        if not await self.wallet_repo.credit(user_id, amount):
            raise UserNotFoundError(user_id)

        await self.wallet_repo.add_transaction(
            user_id,
            TransactionType.DEPOSIT,
            amount,
            "Wallet deposit"
        )

        balance = await self.wallet_repo.get_balance(user_id)
        logger.info(f"钱包充值: user={user_id}, amount={amount}, balance={balance}")
        return WalletBalance(balance=balance)

    async def get_transactions(self, user_id: int, limit: int = 50, offset: int = 0) -> List[WalletTransaction]:
        """查询钱包流水"""
        transactions = await self.wallet_repo.get_transactions(user_id, limit=limit, offset=offset)
        return [self.wallet_repo.to_model(t) for t in transactions]

    async def get_purchases(self, user_id: int, limit: int = 50, offset: int = 0) -> List[Purchase]:
        """查询购买历史，含购买项目和使用的折扣码"""
        purchases = await self.purchase_repo.get_user_purchases(user_id, limit=limit, offset=offset)
        return [self.purchase_repo.to_model(p) for p in purchases]

    async def get_purchase(self, user_id: int, purchase_id: int) -> Purchase:
        """查询单笔购买，只能查看自己的记录"""
        db_purchase = await self.purchase_repo.get_by_id(purchase_id)
        if db_purchase is None or db_purchase.user_id != user_id:
            raise NotFoundError(f"Purchase {purchase_id} not found")
        return self.purchase_repo.to_model(db_purchase)
