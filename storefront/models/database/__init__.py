"""
数据库模型包初始化文件
"""

from .user_db import UserDB, WalletTransactionDB
from .game_db import GameDB, PurchasedGameDB, RankingDB
from .cart_db import CartDB, CartItemDB
from .discount_db import DiscountCodeDB, DiscountUsageDB
from .purchase_db import PurchaseDB, PurchaseItemDB

__all__ = [
    "UserDB",
    "WalletTransactionDB",
    "GameDB",
    "PurchasedGameDB",
    "RankingDB",
    "CartDB",
    "CartItemDB",
    "DiscountCodeDB",
    "DiscountUsageDB",
    "PurchaseDB",
    "PurchaseItemDB"
]
