"""
业务异常定义
业务规则拒绝统一抛出 BusinessException 子类，由API层映射为HTTP响应
"""

from typing import Optional


class BusinessException(Exception):
    """业务异常基类"""

    code: str = "business_error"
    status_code: int = 400

    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code


class EmptyCartError(BusinessException):
    """购物车为空"""

    code = "empty_cart"

    def __init__(self):
        super().__init__("Cart is empty")


class AlreadyOwnedError(BusinessException):
    """用户已拥有该游戏"""

    code = "already_owned"

    def __init__(self, game_id: int, game_name: str):
        super().__init__(f"You already own: {game_name}")
        self.game_id = game_id
        self.game_name = game_name


class InsufficientFundsError(BusinessException):
    """钱包余额不足"""

    code = "insufficient_funds"

    def __init__(self):
        super().__init__("Insufficient wallet balance")


class DiscountRejectedError(BusinessException):
    """折扣码校验失败"""

    def __init__(self, reason: str, message: str, deactivate_discount_id: Optional[int] = None):
        super().__init__(message, code=reason)
        self.reason = reason
        # 使用次数已满时需要在回滚后单独停用的折扣码
        self.deactivate_discount_id = deactivate_discount_id


class UserNotFoundError(BusinessException):
    """用户不存在"""

    code = "user_not_found"
    status_code = 404

    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found")


class NotFoundError(BusinessException):
    """资源不存在"""

    code = "not_found"
    status_code = 404


class ConflictError(BusinessException):
    """资源冲突"""

    code = "conflict"
    status_code = 409
