"""
结账业务服务层
结账状态机：购物车加载 → 拥有校验 → 折扣解析 → 余额校验 → 提交
所有写入在同一个事务中完成，任一步骤失败整体回滚
"""

import logging
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.exceptions import (
    BusinessException, AlreadyOwnedError, DiscountRejectedError,
    InsufficientFundsError, UserNotFoundError
)
from storefront.models.checkout import CartSnapshot, CheckoutResult, CheckoutState
from storefront.models.discount import DiscountDecision, DiscountRejection
from storefront.models.wallet import TransactionType
from storefront.repositories.cart_repository import CartRepository
from storefront.repositories.discount_repository import DiscountRepository
from storefront.repositories.purchase_repository import PurchaseRepository
from storefront.repositories.wallet_repository import WalletRepository
from storefront.services.common_cache import SimpleCache, discount_cache
from storefront.services.discount_service import DiscountService

logger = logging.getLogger(__name__)


class CheckoutService:
    """结账服务，每个请求使用独立实例"""

    def __init__(
        self,
        db: AsyncSession,
        cache: SimpleCache = discount_cache,
        isolation_level: Optional[str] = None
    ):
        self.db = db
        self.cart_repo = CartRepository(db)
        self.discount_repo = DiscountRepository(db)
        self.purchase_repo = PurchaseRepository(db)
        self.wallet_repo = WalletRepository(db)
        self.discount_service = DiscountService(self.discount_repo, cache)
        self.isolation_level = isolation_level if isolation_level is not None else settings.checkout_isolation_level

        self.state = CheckoutState.BEGIN
        self.history: List[CheckoutState] = [CheckoutState.BEGIN]

    def _transition(self, state: CheckoutState, user_id: int) -> None:
        logger.debug(f"结账状态: user={user_id}, {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    async def checkout(
        self,
        user_id: int,
        discount_code: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> CheckoutResult:
        """
        执行结账

        Args:
            user_id: 用户ID
            discount_code: 折扣码，不存在或已停用时按无折扣处理
            now: 当前时间，用于折扣码有效期判断

        Returns:
            CheckoutResult: 购买ID和金额明细

        Raises:
            BusinessException: 购物车为空、已拥有、折扣码无效或余额不足
            SQLAlchemyError: 存储失败
        """
        now = now or datetime.now()

        try:
            result = await self._run(user_id, discount_code, now)
            await self.db.commit()

        except BusinessException as e:
            await self.db.rollback()
            self._transition(CheckoutState.FAILED, user_id)
            logger.info(f"结账被拒绝: user={user_id}, reason={e.code}, message={e.message}")

            if isinstance(e, DiscountRejectedError) and e.deactivate_discount_id is not None:
                await self._deactivate_after_rollback(e.deactivate_discount_id)
            raise

        except SQLAlchemyError as e:
            await self.db.rollback()
            self._transition(CheckoutState.FAILED, user_id)
            logger.error(f"结账存储失败: user={user_id}, error={e}")
            raise

        self._transition(CheckoutState.COMMITTED, user_id)

        if result.discount_code_id is not None:
            await self.discount_service.invalidate_cache()

        logger.info(
            f"结账完成: user={user_id}, purchase={result.purchase_id}, "
            f"total={result.total}, final={result.final_amount}"
        )
        return result

    async def _run(self, user_id: int, discount_code: Optional[str], now: datetime) -> CheckoutResult:
        if self.isolation_level:
            await self.db.connection(execution_options={"isolation_level": self.isolation_level})

        # 先锁用户行再锁折扣码行，所有结账按相同顺序加锁
        balance = await self.wallet_repo.get_balance(user_id, for_update=True)
        if balance is None:
            raise UserNotFoundError(user_id)

        snapshot = await self.cart_repo.load_cart(user_id)
        self._transition(CheckoutState.CART_LOADED, user_id)

        self._check_ownership(snapshot)
        self._transition(CheckoutState.OWNERSHIP_CHECKED, user_id)

        total = snapshot.total
        decision = await self._resolve_discount(user_id, discount_code, total, now)
        self._transition(CheckoutState.DISCOUNT_RESOLVED, user_id)

        discount_amount = decision.discount_amount if decision else Decimal("0")
        final_amount = decision.final_amount if decision else total
        discount_id = decision.discount_id if decision else None

        if balance < final_amount:
            raise InsufficientFundsError()
        self._transition(CheckoutState.FUNDS_VERIFIED, user_id)

        purchase_id = await self._commit_purchase(
            snapshot, total, discount_amount, final_amount, discount_id
        )

        return CheckoutResult(
            purchase_id=purchase_id,
            total=total,
            discount=discount_amount,
            final_amount=final_amount,
            games_count=len(snapshot.lines),
            discount_code_id=discount_id
        )

    def _check_ownership(self, snapshot: CartSnapshot) -> None:
        for line in snapshot.lines:
            if line.game_id in snapshot.owned_game_ids:
                raise AlreadyOwnedError(line.game_id, line.name)

    async def _resolve_discount(
        self,
        user_id: int,
        discount_code: Optional[str],
        total: Decimal,
        now: datetime
    ) -> Optional[DiscountDecision]:
        """解析折扣码，返回None表示不使用折扣"""
        if not discount_code or not discount_code.strip():
            return None

        decision = await self.discount_service.evaluate_code(
            discount_code.strip(), total, user_id, now=now, for_update=True
        )

        if decision.rejection == DiscountRejection.CODE_NOT_FOUND:
            logger.info(f"折扣码不存在或已停用，按无折扣结账: user={user_id}, code={discount_code}")
            return None

        if not decision.is_valid:
            raise DiscountRejectedError(
                decision.rejection.value,
                decision.message,
                deactivate_discount_id=decision.discount_id if decision.should_deactivate else None
            )

        return decision

    async def _commit_purchase(
        self,
        snapshot: CartSnapshot,
        total: Decimal,
        discount_amount: Decimal,
        final_amount: Decimal,
        discount_id: Optional[int]
    ) -> int:
        """按顺序写入购买记录、库存、排行、折扣使用、钱包和购物车"""
        user_id = snapshot.user_id

        purchase = await self.purchase_repo.create_purchase(
            user_id=user_id,
            total_amount=total,
            discount_amount=discount_amount,
            final_amount=final_amount,
            discount_code_id=discount_id
        )
        await self.purchase_repo.add_purchase_items(purchase.id, snapshot.lines)

        for line in snapshot.lines:
            try:
                await self.purchase_repo.grant_ownership(user_id, [line.game_id])
            except IntegrityError:
                raise AlreadyOwnedError(line.game_id, line.name)

        for line in snapshot.lines:
            await self.purchase_repo.increment_sales(line.game_id, line.quantity)
        await self.purchase_repo.recompute_rank_positions()

        if discount_id is not None:
            await self._record_discount_usage(user_id, discount_id)

        if not await self.wallet_repo.debit(user_id, final_amount):
            raise InsufficientFundsError()

        await self.wallet_repo.add_transaction(
            user_id,
            TransactionType.PURCHASE,
            final_amount,
            f"Purchase #{purchase.id}"
        )
        await self.cart_repo.clear_cart(user_id)

        return purchase.id

    async def _record_discount_usage(self, user_id: int, discount_id: int) -> None:
        """记录折扣使用，达到次数上限时停用折扣码"""
        await self.discount_repo.record_usage(discount_id, user_id)

        db_discount = await self.discount_repo.get_by_id(discount_id)
        if db_discount.usage_limit is None:
            return

        usage_count = await self.discount_repo.count_usages(discount_id)
        if usage_count >= db_discount.usage_limit:
            await self.discount_repo.deactivate(discount_id)
            logger.info(f"折扣码使用次数已满，已停用: discount={discount_id}, usage={usage_count}")

    async def _deactivate_after_rollback(self, discount_id: int) -> None:
        """回滚后单独提交折扣码停用，失败只记录日志"""
        try:
            if await self.discount_repo.deactivate(discount_id):
                await self.db.commit()
                await self.discount_service.invalidate_cache()
                logger.info(f"折扣码使用次数已满，已停用: discount={discount_id}")
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"停用折扣码失败: discount={discount_id}, error={e}")
