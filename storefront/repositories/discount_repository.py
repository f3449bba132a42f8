"""
折扣码数据库操作层
"""

from typing import List, Optional, Dict, Any, Tuple
from datetime import date

from sqlalchemy import select, update, delete, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.discount import DiscountCode, DiscountCreate
from storefront.models.database.discount_db import DiscountCodeDB, DiscountUsageDB
from storefront.models.database.purchase_db import PurchaseDB


class DiscountRepository:
    """折扣码数据库操作层"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, discount_id: int, for_update: bool = False) -> Optional[DiscountCodeDB]:
        """根据ID获取折扣码"""
        query = (
            select(DiscountCodeDB)
            .where(DiscountCodeDB.id == discount_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_code(self, code: str) -> Optional[DiscountCodeDB]:
        """根据折扣码获取记录（不限状态）"""
        result = await self.db.execute(
            select(DiscountCodeDB).where(DiscountCodeDB.code == code)
        )
        return result.scalar_one_or_none()

    async def get_active_by_code(self, code: str, for_update: bool = False) -> Optional[DiscountCodeDB]:
        """获取启用中的折扣码，for_update 时锁定该行直到事务结束"""
        query = select(DiscountCodeDB).where(
            and_(
                DiscountCodeDB.code == code,
                DiscountCodeDB.active == True
            )
        )
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def count_usages(self, discount_id: int) -> int:
        """统计折扣码已使用次数"""
        result = await self.db.execute(
            select(func.count(DiscountUsageDB.id)).where(
                DiscountUsageDB.discount_code_id == discount_id
            )
        )
        return result.scalar() or 0

    async def has_user_used(self, discount_id: int, user_id: int) -> bool:
        """检查用户是否使用过该折扣码"""
        result = await self.db.execute(
            select(func.count(DiscountUsageDB.id)).where(
                and_(
                    DiscountUsageDB.discount_code_id == discount_id,
                    DiscountUsageDB.user_id == user_id
                )
            )
        )
        return (result.scalar() or 0) > 0

    async def record_usage(self, discount_id: int, user_id: int) -> DiscountUsageDB:
        """记录一次折扣码使用"""
        usage = DiscountUsageDB(user_id=user_id, discount_code_id=discount_id)
        self.db.add(usage)
        await self.db.flush()
        return usage

    async def deactivate(self, discount_id: int) -> bool:
        """停用折扣码，已停用时返回False"""
        result = await self.db.execute(
            update(DiscountCodeDB)
            .where(
                and_(
                    DiscountCodeDB.id == discount_id,
                    DiscountCodeDB.active == True
                )
            )
            .values(active=False)
        )
        return result.rowcount > 0

    async def list_with_usage_counts(self) -> List[Tuple[DiscountCodeDB, int]]:
        """获取全部折扣码及各自使用次数"""
        usage_counts = (
            select(
                DiscountUsageDB.discount_code_id,
                func.count(DiscountUsageDB.id).label("usage_count")
            )
            .group_by(DiscountUsageDB.discount_code_id)
            .subquery()
        )

        result = await self.db.execute(
            select(DiscountCodeDB, func.coalesce(usage_counts.c.usage_count, 0))
            .outerjoin(usage_counts, usage_counts.c.discount_code_id == DiscountCodeDB.id)
            .order_by(DiscountCodeDB.id)
        )
        return [(row[0], int(row[1])) for row in result.all()]

    async def create(self, discount_data: DiscountCreate) -> DiscountCodeDB:
        """创建折扣码"""
        db_discount = DiscountCodeDB(
            code=discount_data.code,
            type=discount_data.type.value,
            value=discount_data.value,
            min_total=discount_data.min_total,
            start_date=discount_data.start_date,
            end_date=discount_data.end_date,
            usage_limit=discount_data.usage_limit,
            single_use_per_user=discount_data.single_use_per_user,
            active=discount_data.active
        )
        self.db.add(db_discount)
        await self.db.flush()
        await self.db.refresh(db_discount)
        return db_discount

    async def update_fields(self, discount_id: int, patch: Dict[str, Any]) -> bool:
        """按字段更新折扣码"""
        if not patch:
            return True

        result = await self.db.execute(
            update(DiscountCodeDB)
            .where(DiscountCodeDB.id == discount_id)
            .values(**patch)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount > 0

    async def reset_usage(self, discount_id: int) -> int:
        """清空折扣码的使用记录，返回删除条数"""
        result = await self.db.execute(
            delete(DiscountUsageDB).where(DiscountUsageDB.discount_code_id == discount_id)
        )
        return result.rowcount

    async def detach_from_purchases(self, discount_id: int) -> int:
        """解除购买记录对折扣码的引用"""
        result = await self.db.execute(
            update(PurchaseDB)
            .where(PurchaseDB.discount_code_id == discount_id)
            .values(discount_code_id=None)
        )
        return result.rowcount

    async def delete(self, discount_id: int) -> bool:
        """删除折扣码记录"""
        result = await self.db.execute(
            delete(DiscountCodeDB).where(DiscountCodeDB.id == discount_id)
        )
        return result.rowcount > 0

    async def find_exhausted_codes(self) -> List[int]:
        """查找使用次数已达上限但仍启用的折扣码"""
        usage_counts = (
            select(
                DiscountUsageDB.discount_code_id,
                func.count(DiscountUsageDB.id).label("usage_count")
            )
            .group_by(DiscountUsageDB.discount_code_id)
            .subquery()
        )

        result = await self.db.execute(
            select(DiscountCodeDB.id)
            .join(usage_counts, usage_counts.c.discount_code_id == DiscountCodeDB.id)
            .where(
                and_(
                    DiscountCodeDB.active == True,
                    DiscountCodeDB.usage_limit.is_not(None),
                    usage_counts.c.usage_count >= DiscountCodeDB.usage_limit
                )
            )
            .order_by(DiscountCodeDB.id)
        )
        return list(result.scalars().all())

    async def find_expired_codes(self, today: date) -> List[int]:
        """查找已到截止日期但仍启用的折扣码"""
        result = await self.db.execute(
            select(DiscountCodeDB.id)
            .where(
                and_(
                    DiscountCodeDB.active == True,
                    DiscountCodeDB.end_date.is_not(None),
                    DiscountCodeDB.end_date <= today
                )
            )
            .order_by(DiscountCodeDB.id)
        )
        return list(result.scalars().all())

    async def commit(self) -> None:
        """提交当前事务"""
        await self.db.commit()

    def to_model(self, db_discount: DiscountCodeDB, usage_count: Optional[int] = None) -> DiscountCode:
        """转换为Pydantic模型"""
        return DiscountCode(
            id=db_discount.id,
            code=db_discount.code,
            type=db_discount.type,
            value=db_discount.value,
            min_total=db_discount.min_total,
            start_date=db_discount.start_date,
            end_date=db_discount.end_date,
            usage_limit=db_discount.usage_limit,
            single_use_per_user=db_discount.single_use_per_user,
            active=db_discount.active,
            usage_count=usage_count,
            created_at=db_discount.created_at
        )
