"""
购买记录与销量排行数据模型
"""

from decimal import Decimal
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class PurchaseItem(BaseModel):
    """购买项目，价格为购买时快照"""

    game_id: int
    name: Optional[str] = None
    price_at_purchase: Decimal


class Purchase(BaseModel):
    """购买记录"""

    id: int
    total_amount: Decimal = Field(..., description="原始总金额")
    discount_amount: Decimal = Field(..., description="折扣金额")
    final_amount: Decimal = Field(..., description="实付金额")
    discount_code: Optional[str] = Field(None, description="使用的折扣码，折扣码删除后为空")
    purchase_date: Optional[datetime] = None
    items: List[PurchaseItem] = Field(default_factory=list)


class RankingEntry(BaseModel):
    """销量排行项"""

    game_id: int
    name: str
    price: Decimal
    sales_count: int
    rank_position: Optional[int] = None
