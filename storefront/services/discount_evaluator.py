"""
折扣码校验逻辑
纯函数，不访问数据库，预览和结账共用同一套规则
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from storefront.models.discount import DiscountCode, DiscountDecision, DiscountRejection


REJECTION_MESSAGES = {
    DiscountRejection.CODE_NOT_FOUND: "Discount code not found or inactive",
    DiscountRejection.NOT_YET_VALID: "Discount code is not yet valid",
    DiscountRejection.EXPIRED: "Discount code has expired",
    DiscountRejection.BELOW_MINIMUM: "Order total is below the minimum for this discount code",
    DiscountRejection.USAGE_LIMIT_REACHED: "Discount code usage limit reached",
    DiscountRejection.ALREADY_USED: "You have already used this discount code",
}


def compute_final_amount(total: Decimal, discount_amount: Decimal) -> Decimal:
    """最终金额 = max(0, 总额 - 折扣)"""
    return max(Decimal("0"), total - discount_amount)


def reject(
    rejection: DiscountRejection,
    total: Decimal,
    discount: Optional[DiscountCode] = None,
    should_deactivate: bool = False
) -> DiscountDecision:
    return DiscountDecision(
        is_valid=False,
        rejection=rejection,
        message=REJECTION_MESSAGES[rejection],
        discount=discount,
        original_amount=total,
        final_amount=total,
        should_deactivate=should_deactivate
    )


def evaluate_discount(
    discount: Optional[DiscountCode],
    total: Decimal,
    now: datetime,
    usage_count: int = 0,
    already_used: bool = False
) -> DiscountDecision:
    """
    按顺序校验折扣码，第一个失败的规则决定拒绝原因

    Args:
        discount: 启用中的折扣码，None 表示不存在或已停用
        total: 折扣前订单总额
        now: 当前时间，只比较日期部分
        usage_count: 该折扣码当前已使用次数
        already_used: 当前用户是否已使用过该折扣码

    Returns:
        DiscountDecision: 校验结果，成功时包含折扣金额和最终金额
    """
    if discount is None or not discount.active:
        return reject(DiscountRejection.CODE_NOT_FOUND, total)

    today = now.date()

    if discount.start_date is not None and today < discount.start_date:
        return reject(DiscountRejection.NOT_YET_VALID, total, discount)

    # 截止日期按当天零点计算，当天起即过期
    if discount.end_date is not None and today >= discount.end_date:
        return reject(DiscountRejection.EXPIRED, total, discount)

    if discount.min_total > 0 and total < discount.min_total:
        return reject(DiscountRejection.BELOW_MINIMUM, total, discount)

    if discount.usage_limit is not None and usage_count >= discount.usage_limit:
        return reject(DiscountRejection.USAGE_LIMIT_REACHED, total, discount, should_deactivate=True)

    if discount.single_use_per_user and already_used:
        return reject(DiscountRejection.ALREADY_USED, total, discount)

    discount_amount = discount.calculate_discount(total)
    return DiscountDecision(
        is_valid=True,
        message="Discount applied successfully",
        discount=discount,
        original_amount=total,
        discount_amount=discount_amount,
        final_amount=compute_final_amount(total, discount_amount)
    )
