"""
用户与钱包流水数据库模型
"""

from sqlalchemy import Column, String, Integer, Numeric, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from storefront.core.database import Base


class UserDB(Base):
    """用户数据库表"""

    __tablename__ = "users"

    # 主键和基本信息
    id = Column(Integer, primary_key=True, autoincrement=True, comment="用户ID")
    username = Column(String(100), nullable=False, unique=True, comment="用户名")
    email = Column(String(200), comment="邮箱")
    role = Column(String(20), default="user", nullable=False, comment="角色")

    # 钱包余额，提交后不可为负
    wallet_balance = Column(Numeric(12, 2), default=0, nullable=False, comment="钱包余额")

    # 时间戳
    created_at = Column(DateTime(timezone=True), server_default=func.now(), comment="创建时间")

    __table_args__ = (
        {'comment': '用户表'}
    )


class WalletTransactionDB(Base):
    """钱包流水表（只追加）"""

    __tablename__ = "user_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True, comment="流水ID")
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True, comment="用户ID")
    type = Column(String(20), nullable=False, comment="流水类型: deposit, purchase")
    amount = Column(Numeric(12, 2), nullable=False, comment="金额")
    description = Column(Text, comment="描述")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True, comment="创建时间")

    __table_args__ = (
        {'comment': '钱包流水表'}
    )
