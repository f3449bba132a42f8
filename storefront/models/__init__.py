"""
数据模型包初始化文件
"""

from .discount import (
    DiscountType,
    DiscountRejection,
    DiscountCode,
    DiscountCreate,
    DiscountUpdate,
    DiscountApplication,
    DiscountDecision,
    DiscountApplyResponse
)
from .checkout import (
    CheckoutState,
    CartLine,
    CartSnapshot,
    CheckoutRequest,
    CheckoutResult
)
from .wallet import TransactionType, WalletTransaction
from .purchase import Purchase, PurchaseItem, RankingEntry

__all__ = [
    "DiscountType",
    "DiscountRejection",
    "DiscountCode",
    "DiscountCreate",
    "DiscountUpdate",
    "DiscountApplication",
    "DiscountDecision",
    "DiscountApplyResponse",
    "CheckoutState",
    "CartLine",
    "CartSnapshot",
    "CheckoutRequest",
    "CheckoutResult",
    "TransactionType",
    "WalletTransaction",
    "Purchase",
    "PurchaseItem",
    "RankingEntry"
]
