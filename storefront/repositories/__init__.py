"""
仓库包初始化文件 - 数据库访问层
"""

from .cart_repository import CartRepository
from .discount_repository import DiscountRepository
from .purchase_repository import PurchaseRepository
from .wallet_repository import WalletRepository

__all__ = [
    "CartRepository",
    "DiscountRepository",
    "PurchaseRepository",
    "WalletRepository"
]
