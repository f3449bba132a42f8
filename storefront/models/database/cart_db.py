"""
购物车数据库模型
"""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from storefront.core.database import Base


class CartDB(Base):
    """购物车表，每个用户一个"""

    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, autoincrement=True, comment="购物车ID")
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True, comment="用户ID")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), comment="创建时间")

    # 关系映射
    items = relationship("CartItemDB", back_populates="cart", cascade="all, delete-orphan")

    __table_args__ = (
        {'comment': '购物车表'}
    )


class CartItemDB(Base):
    """购物车项目表"""

    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, autoincrement=True, comment="项目ID")
    cart_id = Column(Integer, ForeignKey("carts.id"), nullable=False, index=True, comment="购物车ID")
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, comment="游戏ID")
    quantity = Column(Integer, default=1, nullable=False, comment="数量")

    cart = relationship("CartDB", back_populates="items")

    __table_args__ = (
        UniqueConstraint("cart_id", "game_id", name="uq_cart_items_cart_game"),
        {'comment': '购物车项目表'}
    )
