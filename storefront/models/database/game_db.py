"""
游戏、拥有关系与销量排行数据库模型
"""

from sqlalchemy import Column, String, Integer, Numeric, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from storefront.core.database import Base


class GameDB(Base):
    """游戏数据库表"""

    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True, comment="游戏ID")
    name = Column(String(200), nullable=False, comment="游戏名称")
    price = Column(Numeric(10, 2), nullable=False, comment="当前价格")
    description = Column(Text, comment="游戏描述")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), comment="创建时间")

    __table_args__ = (
        {'comment': '游戏信息表'}
    )


class PurchasedGameDB(Base):
    """用户已拥有游戏表"""

    __tablename__ = "purchased_games"

    # 复合主键保证同一用户不会重复拥有同一游戏
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True, comment="用户ID")
    game_id = Column(Integer, ForeignKey("games.id"), primary_key=True, comment="游戏ID")
    purchased_at = Column(DateTime(timezone=True), server_default=func.now(), comment="购买时间")

    __table_args__ = (
        {'comment': '用户游戏库'}
    )


class RankingDB(Base):
    """游戏销量排行表"""

    __tablename__ = "ranking"

    game_id = Column(Integer, ForeignKey("games.id"), primary_key=True, comment="游戏ID")
    sales_count = Column(Integer, default=0, nullable=False, comment="销量")
    rank_position = Column(Integer, comment="按销量的密集排名")

    __table_args__ = (
        {'comment': '销量排行表'}
    )
