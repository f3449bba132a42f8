"""
服务包初始化文件
"""

from .common_cache import SimpleCache, discount_cache
from .discount_evaluator import evaluate_discount
from .discount_service import DiscountService
from .discount_sweeper import DiscountSweeper
from .checkout_service import CheckoutService
from .cart_service import CartService
from .wallet_service import WalletService
from .ranking_service import RankingService

__all__ = [
    "SimpleCache",
    "discount_cache",
    "evaluate_discount",
    "DiscountService",
    "DiscountSweeper",
    "CheckoutService",
    "CartService",
    "WalletService",
    "RankingService"
]
