"""
购物车与结账相关数据模型
"""

from decimal import Decimal
from typing import List, Optional, Set
from pydantic import BaseModel, Field
from enum import Enum


class CheckoutState(str, Enum):
    """结账状态机状态"""
    BEGIN = "begin"
    CART_LOADED = "cart_loaded"
    OWNERSHIP_CHECKED = "ownership_checked"
    DISCOUNT_RESOLVED = "discount_resolved"
    FUNDS_VERIFIED = "funds_verified"
    COMMITTED = "committed"
    FAILED = "failed"


class CartLine(BaseModel):
    """购物车行"""

    game_id: int = Field(..., description="游戏ID")
    name: str = Field(..., description="游戏名称")
    price: Decimal = Field(..., gt=0, description="当前单价")
    quantity: int = Field(default=1, ge=1, description="数量")

    @property
    def subtotal(self) -> Decimal:
        """小计"""
        return self.price * self.quantity


class CartSnapshot(BaseModel):
    """购物车快照"""

    user_id: int
    lines: List[CartLine] = Field(default_factory=list)
    owned_game_ids: Set[int] = Field(default_factory=set, description="购物车中用户已拥有的游戏")

    @property
    def total(self) -> Decimal:
        """总金额 = Σ(单价×数量)"""
        return sum((line.subtotal for line in self.lines), Decimal("0"))

    @property
    def is_empty(self) -> bool:
        return not self.lines


class CartItemRequest(BaseModel):
    """购物车增删请求"""

    game_id: int = Field(..., gt=0, description="游戏ID")


class CartLineResponse(BaseModel):
    game_id: int
    name: str
    price: Decimal
    quantity: int
    subtotal: Decimal


class CartResponse(BaseModel):
    """购物车响应模型"""

    items: List[CartLineResponse]
    total: Decimal
    item_count: int

    @classmethod
    def from_snapshot(cls, snapshot: CartSnapshot) -> "CartResponse":
        return cls(
            items=[
                CartLineResponse(
                    game_id=line.game_id,
                    name=line.name,
                    price=line.price,
                    quantity=line.quantity,
                    subtotal=line.subtotal
                )
                for line in snapshot.lines
            ],
            total=snapshot.total,
            item_count=len(snapshot.lines)
        )


class CheckoutRequest(BaseModel):
    """结账请求"""

    discount_code: Optional[str] = Field(None, max_length=50, description="折扣码")


class CheckoutResult(BaseModel):
    """结账成功结果"""

    purchase_id: int = Field(..., description="购买ID")
    total: Decimal = Field(..., ge=0, description="原始总金额")
    discount: Decimal = Field(default=Decimal("0"), ge=0, description="折扣金额")
    final_amount: Decimal = Field(..., ge=0, description="实付金额")
    games_count: int = Field(..., ge=1, description="购买游戏数")
    discount_code_id: Optional[int] = Field(None, description="使用的折扣码ID")
    message: str = "Purchase completed successfully"
