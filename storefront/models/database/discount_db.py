"""
折扣码相关数据库模型
"""

from sqlalchemy import Column, String, Integer, Numeric, Boolean, Date, DateTime, ForeignKey
from sqlalchemy.sql import func
from storefront.core.database import Base


class DiscountCodeDB(Base):
    """折扣码表"""

    __tablename__ = "discount_codes"

    # 主键和基本信息
    id = Column(Integer, primary_key=True, autoincrement=True, comment="折扣码ID")
    code = Column(String(50), nullable=False, unique=True, index=True, comment="折扣码")
    type = Column(String(20), nullable=False, comment="折扣类型: percent, fixed")

    # 折扣信息
    value = Column(Numeric(10, 2), nullable=False, comment="折扣值")
    min_total = Column(Numeric(10, 2), default=0, nullable=False, comment="最低订单金额")

    # 有效期，为空表示不限制
    start_date = Column(Date, comment="生效日期")
    end_date = Column(Date, comment="截止日期")

    # 使用限制
    usage_limit = Column(Integer, comment="总使用次数限制")
    single_use_per_user = Column(Boolean, default=False, nullable=False, comment="每个用户仅限使用一次")

    # 状态和时间
    active = Column(Boolean, default=True, nullable=False, index=True, comment="是否启用")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), comment="创建时间")

    __table_args__ = (
        {'comment': '折扣码表'}
    )


class DiscountUsageDB(Base):
    """折扣码使用记录表"""

    __tablename__ = "user_discount_codes"

    id = Column(Integer, primary_key=True, autoincrement=True, comment="使用记录ID")
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True, comment="用户ID")
    discount_code_id = Column(Integer, ForeignKey("discount_codes.id"), nullable=False, index=True, comment="折扣码ID")
    used_at = Column(DateTime(timezone=True), server_default=func.now(), comment="使用时间")

    __table_args__ = (
        {'comment': '折扣码使用记录表'}
    )
