"""
购买记录数据库模型
"""

from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from storefront.core.database import Base


class PurchaseDB(Base):
    """购买记录主表，写入后不可修改"""

    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True, autoincrement=True, comment="购买ID")
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True, comment="用户ID")

    # 金额信息
    total_amount = Column(Numeric(12, 2), nullable=False, comment="原始总金额")
    discount_amount = Column(Numeric(12, 2), default=0, nullable=False, comment="折扣金额")
    final_amount = Column(Numeric(12, 2), nullable=False, comment="实付金额")

    # 删除折扣码时置空
    discount_code_id = Column(Integer, ForeignKey("discount_codes.id"), nullable=True, comment="使用的折扣码ID")

    purchase_date = Column(DateTime(timezone=True), server_default=func.now(), index=True, comment="购买时间")

    # 关系映射
    items = relationship("PurchaseItemDB", back_populates="purchase", cascade="all, delete-orphan")
    discount_code = relationship("DiscountCodeDB")

    __table_args__ = (
        {'comment': '购买记录表'}
    )


class PurchaseItemDB(Base):
    """购买项目表，记录购买时价格快照"""

    __tablename__ = "purchase_items"

    id = Column(Integer, primary_key=True, autoincrement=True, comment="项目ID")
    purchase_id = Column(Integer, ForeignKey("purchases.id"), nullable=False, index=True, comment="购买ID")
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, comment="游戏ID")
    price_at_purchase = Column(Numeric(10, 2), nullable=False, comment="购买时价格")

    purchase = relationship("PurchaseDB", back_populates="items")
    game = relationship("GameDB")

    __table_args__ = (
        {'comment': '购买项目表'}
    )
