"""
钱包数据库操作层
"""

from typing import List, Optional
from decimal import Decimal

from sqlalchemy import select, update, and_, desc
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.wallet import WalletTransaction, TransactionType
from storefront.models.database.user_db import UserDB, WalletTransactionDB


class WalletRepository:
    """钱包数据库操作类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_balance(self, user_id: int, for_update: bool = False) -> Optional[Decimal]:
        """获取钱包余额，for_update 时对用户行加锁直到事务结束"""
        query = select(UserDB.wallet_balance).where(UserDB.id == user_id)
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def debit(self, user_id: int, amount: Decimal) -> bool:
        """扣款：余额不足时不更新任何行并返回False"""
        result = await self.db.execute(
            update(UserDB)
            .where(
                and_(
                    UserDB.id == user_id,
                    UserDB.wallet_balance >= amount
                )
            )
            .values(wallet_balance=UserDB.wallet_balance - amount)
        )
        return result.rowcount > 0

    async def credit(self, user_id: int, amount: Decimal) -> bool:
        """入账"""
        result = await self.db.execute(
            update(UserDB)
            .where(UserDB.id == user_id)
            .values(wallet_balance=UserDB.wallet_balance + amount)
        )
        return result.rowcount > 0

    async def add_transaction(
        self,
        user_id: int,
        transaction_type: TransactionType,
        amount: Decimal,
        description: Optional[str] = None
    ) -> WalletTransactionDB:
        """追加钱包流水"""
        db_transaction = WalletTransactionDB(
            user_id=user_id,
            type=transaction_type.value,
            amount=amount,
            description=description
        )
        self.db.add(db_transaction)
        await self.db.flush()
        return db_transaction

    async def get_transactions(
        self,
        user_id: int,
        limit: int = 50,
        offset: int = 0
    ) -> List[WalletTransactionDB]:
        """获取用户钱包流水"""
        result = await self.db.execute(
            select(WalletTransactionDB)
            .where(WalletTransactionDB.user_id == user_id)
            .order_by(desc(WalletTransactionDB.id))
            .limit(limit)
            .offset(offset)
        )
        return result.scalars().all()

    def to_model(self, db_transaction: WalletTransactionDB) -> WalletTransaction:
        """转换为Pydantic模型"""
        return WalletTransaction(
            id=db_transaction.id,
            user_id=db_transaction.user_id,
            type=db_transaction.type,
            amount=db_transaction.amount,
            description=db_transaction.description,
            created_at=db_transaction.created_at
        )
