"""
折扣码业务服务层
折扣码预览、结账时的折扣解析以及后台管理的增删改查
"""

import logging
from typing import List, Optional, TYPE_CHECKING
from decimal import Decimal
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from storefront.core.config import settings
from storefront.core.exceptions import BusinessException, ConflictError, DiscountRejectedError, NotFoundError
from storefront.models.discount import (
    DiscountCode, DiscountCreate, DiscountUpdate, DiscountApplication,
    DiscountApplyResponse, DiscountDecision, DiscountUpdateResult
)
from storefront.repositories.discount_repository import DiscountRepository
from storefront.services.common_cache import SimpleCache, discount_cache, DISCOUNT_LIST_KEY
from storefront.services.discount_evaluator import evaluate_discount

if TYPE_CHECKING:
    from storefront.services.discount_sweeper import DiscountSweeper

logger = logging.getLogger(__name__)


class DiscountService:
    """折扣码业务服务"""

    LIST_CACHE_KEY = DISCOUNT_LIST_KEY

    def __init__(
        self,
        discount_repo: DiscountRepository,
        cache: SimpleCache = discount_cache,
        sweeper: Optional["DiscountSweeper"] = None
    ):
        self.discount_repo = discount_repo
        self.cache = cache
        self.sweeper = sweeper
        self.cache_ttl = settings.discount_cache_ttl

    async def evaluate_code(
        self,
        code: str,
        total: Decimal,
        user_id: int,
        now: Optional[datetime] = None,
        for_update: bool = False
    ) -> DiscountDecision:
        """
        查询并校验折扣码

        for_update 为 True 时锁定折扣码行，结账事务内使用，
        使用次数的统计和后续写入都在同一把锁内完成。
        """
        now = now or datetime.now()

        db_discount = await self.discount_repo.get_active_by_code(code, for_update=for_update)
        if db_discount is None:
            return evaluate_discount(None, total, now)

        discount = self.discount_repo.to_model(db_discount)

        usage_count = 0
        if discount.usage_limit is not None:
            usage_count = await self.discount_repo.count_usages(discount.id)

        already_used = False
        if discount.single_use_per_user:
            already_used = await self.discount_repo.has_user_used(discount.id, user_id)

        return evaluate_discount(
            discount,
            total,
            now,
            usage_count=usage_count,
            already_used=already_used
        )

    async def preview(self, application: DiscountApplication) -> DiscountApplyResponse:
        """预览折扣码效果，不写入任何数据"""
        decision = await self.evaluate_code(
            application.code,
            application.total_amount,
            application.user_id
        )

        if not decision.is_valid:
            logger.info(
                f"折扣码预览被拒绝: code={application.code}, user={application.user_id}, "
                f"reason={decision.rejection.value}"
            )
            # 预览不提交事务，已满额的折扣码交给后台任务停用
            if decision.should_deactivate and self.sweeper is not None:
                self.sweeper.request_sweep()
            raise DiscountRejectedError(decision.rejection.value, decision.message)

        return DiscountApplyResponse.from_decision(decision)

    async def list_discounts(self, use_cache: bool = True) -> List[DiscountCode]:
        """获取全部折扣码（含使用次数），并触发一次后台清理"""
        if self.sweeper is not None:
            self.sweeper.request_sweep()

        if use_cache:
            cached = await self.cache.get(self.LIST_CACHE_KEY)
            if cached:
                return [DiscountCode(**item) for item in cached]

        rows = await self.discount_repo.list_with_usage_counts()
        discounts = [self.discount_repo.to_model(db_discount, usage_count) for db_discount, usage_count in rows]

        if use_cache:
            await self.cache.set(
                self.LIST_CACHE_KEY,
                [discount.model_dump(mode="json") for discount in discounts],
                ttl=self.cache_ttl
            )

        return discounts

    async def get_discount(self, discount_id: int) -> DiscountCode:
        """获取单个折扣码"""
        db_discount = await self.discount_repo.get_by_id(discount_id)
        if db_discount is None:
            raise NotFoundError(f"Discount code {discount_id} not found")

        usage_count = await self.discount_repo.count_usages(discount_id)
        return self.discount_repo.to_model(db_discount, usage_count)

    async def create_discount(self, discount_data: DiscountCreate) -> DiscountCode:
        """创建折扣码"""
        if await self.discount_repo.get_by_code(discount_data.code) is not None:
            raise ConflictError(f"Discount code '{discount_data.code}' already exists")

        try:
            db_discount = await self.discount_repo.create(discount_data)
            await self.discount_repo.commit()
        except IntegrityError:
            raise ConflictError(f"Discount code '{discount_data.code}' already exists")

        await self.invalidate_cache()
        logger.info(f"创建折扣码: id={db_discount.id}, code={db_discount.code}")
        return self.discount_repo.to_model(db_discount, 0)

    async def update_discount(self, discount_id: int, update_data: DiscountUpdate) -> DiscountUpdateResult:
        """
        更新折扣码，只更新显式提供的字段

        折扣码从停用变为启用时清空其使用记录。
        """
        db_discount = await self.discount_repo.get_by_id(discount_id, for_update=True)
        if db_discount is None:
            raise NotFoundError(f"Discount code {discount_id} not found")

        patch = update_data.to_patch()
        self._validate_patch(db_discount, patch)

        if "code" in patch and patch["code"] != db_discount.code:
            existing = await self.discount_repo.get_by_code(patch["code"])
            if existing is not None and existing.id != discount_id:
                raise ConflictError(f"Discount code '{patch['code']}' already exists")

        reset_usage = patch.get("active") is True and not db_discount.active

        try:
            await self.discount_repo.update_fields(discount_id, patch)
            if reset_usage:
                removed = await self.discount_repo.reset_usage(discount_id)
                logger.info(f"折扣码重新启用，清空使用记录: id={discount_id}, removed={removed}")
            await self.discount_repo.commit()
        except IntegrityError:
            raise ConflictError("Discount code update violates a uniqueness constraint")

        await self.invalidate_cache()
        return DiscountUpdateResult(
            discount=await self.get_discount(discount_id),
            reset_usage=reset_usage
        )

    async def delete_discount(self, discount_id: int) -> None:
        """删除折扣码，先解除历史购买记录的引用并删除使用记录"""
        db_discount = await self.discount_repo.get_by_id(discount_id, for_update=True)
        if db_discount is None:
            raise NotFoundError(f"Discount code {discount_id} not found")

        detached = await self.discount_repo.detach_from_purchases(discount_id)
        removed = await self.discount_repo.reset_usage(discount_id)
        await self.discount_repo.delete(discount_id)
        await self.discount_repo.commit()

        await self.invalidate_cache()
        logger.info(
            f"删除折扣码: id={discount_id}, code={db_discount.code}, "
            f"detached_purchases={detached}, removed_usages={removed}"
        )

    async def invalidate_cache(self) -> None:
        """清除折扣码列表缓存"""
        await self.cache.delete(self.LIST_CACHE_KEY)

    def _validate_patch(self, db_discount, patch: dict) -> None:
        """校验合并后的有效期"""
        start_date = patch.get("start_date", db_discount.start_date)
        end_date = patch.get("end_date", db_discount.end_date)
        if start_date is not None and end_date is not None and end_date < start_date:
            raise BusinessException(
                "end_date must not be earlier than start_date",
                code="validation_error"
            )
