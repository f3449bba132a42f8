"""
折扣码相关数据模型
"""

from decimal import Decimal, ROUND_HALF_UP
from datetime import date, datetime
from typing import Optional, Dict, Any, ClassVar, Tuple
from pydantic import BaseModel, Field, validator
from enum import Enum


class DiscountType(str, Enum):
    """折扣类型枚举"""
    PERCENT = "percent"  # 百分比折扣
    FIXED = "fixed"  # 固定金额折扣


class DiscountRejection(str, Enum):
    """折扣码拒绝原因，按校验顺序排列"""
    CODE_NOT_FOUND = "code_not_found"
    NOT_YET_VALID = "not_yet_valid"
    EXPIRED = "expired"
    BELOW_MINIMUM = "below_minimum"
    USAGE_LIMIT_REACHED = "usage_limit_reached"
    ALREADY_USED = "already_used"


class DiscountCode(BaseModel):
    """折扣码基础模型"""

    id: int = Field(..., description="折扣码ID")
    code: str = Field(..., description="折扣码")
    type: DiscountType = Field(..., description="折扣类型")
    value: Decimal = Field(..., gt=0, description="折扣值")
    min_total: Decimal = Field(default=Decimal("0"), ge=0, description="最低订单金额")
    start_date: Optional[date] = Field(None, description="生效日期")
    end_date: Optional[date] = Field(None, description="截止日期")
    usage_limit: Optional[int] = Field(None, description="总使用次数限制")
    single_use_per_user: bool = Field(default=False, description="每个用户仅限一次")
    active: bool = Field(default=True, description="是否启用")
    usage_count: Optional[int] = Field(None, ge=0, description="已使用次数")
    created_at: Optional[datetime] = None

    def calculate_discount(self, order_total: Decimal) -> Decimal:
        """计算折扣金额（不做上限截断，最终金额另行取 max(0, ...)）"""
        if self.type == DiscountType.PERCENT:
            amount = order_total * self.value / Decimal("100")
        else:
            amount = self.value
        return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class DiscountCreate(BaseModel):
    """创建折扣码模型"""

    code: str = Field(..., min_length=1, max_length=50)
    type: DiscountType = Field(...)
    value: Decimal = Field(..., gt=0)
    min_total: Decimal = Field(default=Decimal("0"), ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    usage_limit: Optional[int] = Field(None, ge=1)
    single_use_per_user: bool = False
    active: bool = True

    @validator("end_date")
    def validate_validity_period(cls, v, values):
        """验证有效期"""
        start = values.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("end_date must not be earlier than start_date")
        return v


class DiscountUpdate(BaseModel):
    """更新折扣码模型，只更新显式提供的字段"""

    code: Optional[str] = Field(None, min_length=1, max_length=50)
    type: Optional[DiscountType] = None
    value: Optional[Decimal] = Field(None, gt=0)
    min_total: Optional[Decimal] = Field(None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    usage_limit: Optional[int] = Field(None, ge=1)
    single_use_per_user: Optional[bool] = None
    active: Optional[bool] = None

    # 允许显式置空的字段，其余字段传 null 视为未提供
    NULLABLE_FIELDS: ClassVar[Tuple[str, ...]] = ("start_date", "end_date", "usage_limit")

    def to_patch(self) -> Dict[str, Any]:
        """转换为参数化UPDATE使用的字段字典"""
        patch = {}
        for field, value in self.model_dump(exclude_unset=True).items():
            if value is None and field not in self.NULLABLE_FIELDS:
                continue
            if isinstance(value, Enum):
                value = value.value
            patch[field] = value
        return patch


class DiscountApplication(BaseModel):
    """折扣码预览请求"""

    code: str = Field(..., min_length=1, description="折扣码")
    total_amount: Decimal = Field(..., ge=0, description="折扣前总金额")
    user_id: int = Field(..., description="用户ID")


class DiscountDecision(BaseModel):
    """折扣码校验结果"""

    is_valid: bool = Field(..., description="是否有效")
    rejection: Optional[DiscountRejection] = Field(None, description="拒绝原因")
    message: str = Field(default="", description="提示信息")
    discount: Optional[DiscountCode] = Field(None, description="折扣码信息")
    original_amount: Decimal = Field(..., ge=0, description="原始金额")
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0, description="折扣金额")
    final_amount: Decimal = Field(..., ge=0, description="最终金额")
    should_deactivate: bool = Field(default=False, description="是否需要停用该折扣码")

    @property
    def discount_id(self) -> Optional[int]:
        return self.discount.id if self.discount else None


class DiscountApplyResponse(BaseModel):
    """折扣码预览响应"""

    valid: bool
    discount_id: int
    code: str
    type: DiscountType
    value: Decimal
    min_total: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    original_amount: Decimal
    message: str = "Discount applied successfully"

    @classmethod
    def from_decision(cls, decision: DiscountDecision) -> "DiscountApplyResponse":
        """从校验结果创建响应对象"""
        discount = decision.discount
        return cls(
            valid=decision.is_valid,
            discount_id=discount.id,
            code=discount.code,
            type=discount.type,
            value=discount.value,
            min_total=discount.min_total,
            discount_amount=decision.discount_amount,
            final_amount=decision.final_amount,
            original_amount=decision.original_amount
        )


class DiscountUpdateResult(BaseModel):
    """折扣码更新结果"""

    discount: DiscountCode
    reset_usage: bool = False


class SweepReport(BaseModel):
    """一次清理任务的结果"""

    deactivated_ids: list = Field(default_factory=list, description="被停用的折扣码ID")
    failed_ids: list = Field(default_factory=list, description="停用失败的折扣码ID")
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
