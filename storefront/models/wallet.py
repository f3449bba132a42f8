"""
钱包相关数据模型
"""

from decimal import Decimal
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from enum import Enum


class TransactionType(str, Enum):
    """钱包流水类型"""
    DEPOSIT = "deposit"
    PURCHASE = "purchase"


class WalletTransaction(BaseModel):
    """钱包流水"""

    id: int
    user_id: int
    type: TransactionType
    amount: Decimal
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class DepositRequest(BaseModel):
    """充值请求"""

    amount: Decimal = Field(..., gt=0, description="充值金额")


class WalletBalance(BaseModel):
    balance: Decimal
