"""
自定义异常类
提供更精确的错误处理和异常信息

结算相关的品牌级失败（解析/定价）都继承 BrandGroupError，
由订单拆分器收集后统一以 CheckoutRejectedError 抛出。
"""

from typing import Any, Dict, List, Optional


class BaseApplicationError(Exception):
    """应用基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class DatabaseError(BaseApplicationError):
    """数据库相关异常"""
    pass


class PersistenceError(DatabaseError):
    """订单持久化失败（事务已回滚）"""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, "PERSISTENCE_ERROR", details)


class AuthenticationError(BaseApplicationError):
    """认证相关异常"""

    def __init__(self, message: str = "需要登录"):
        super().__init__(message, "AUTHENTICATION_REQUIRED")


class ForbiddenError(BaseApplicationError):
    """无权操作该资源"""

    def __init__(self, message: str = "无权操作该订单", details: Dict[str, Any] = None):
        super().__init__(message, "FORBIDDEN", details)


class NotFoundError(BaseApplicationError):
    """资源不存在"""
    pass


class OrderNotFoundError(NotFoundError):
    """订单不存在"""

    def __init__(self, order_id: Any = None):
        super().__init__("订单不存在", "ORDER_NOT_FOUND", {"order_id": order_id})


class AddressNotFoundError(NotFoundError):
    """收货地址不存在或不属于当前用户"""

    def __init__(self, address_id: Any = None):
        super().__init__("收货地址不存在", "ADDRESS_NOT_FOUND", {"address_id": address_id})


class BrandGroupError(BaseApplicationError):
    """单个品牌分组的结算失败"""

    def __init__(self, brand_id: str, message: str, error_code: str,
                 details: Dict[str, Any] = None):
        self.brand_id = brand_id
        super().__init__(message, error_code, details)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "brand_id": self.brand_id,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class BrandNotServedAtOutletError(BrandGroupError):
    """门店不提供该品牌"""

    def __init__(self, brand_id: str, outlet_id: Optional[str] = None):
        if outlet_id:
            message = f"门店 {outlet_id} 不提供品牌 {brand_id}"
        else:
            message = f"品牌 {brand_id} 没有可用门店"
        super().__init__(brand_id, message, "BRAND_NOT_SERVED_AT_OUTLET",
                         {"outlet_id": outlet_id})


class NoOutletInRangeError(BrandGroupError):
    """配送范围内没有可用门店"""

    def __init__(self, brand_id: str, outlet_id: Optional[str] = None,
                 distance_km: Optional[float] = None):
        super().__init__(brand_id, f"品牌 {brand_id} 在配送范围内没有门店",
                         "NO_OUTLET_IN_RANGE",
                         {"outlet_id": outlet_id, "distance_km": distance_km})


class OutletInactiveError(BrandGroupError):
    """指定门店已停业或暂停配送"""

    def __init__(self, brand_id: str, outlet_id: str):
        super().__init__(brand_id, f"门店 {outlet_id} 暂不营业", "OUTLET_INACTIVE",
                         {"outlet_id": outlet_id})


class BelowMinimumOrderError(BrandGroupError):
    """未达到门店起送金额"""

    def __init__(self, brand_id: str, outlet_id: str, subtotal, minimum_order_amount):
        super().__init__(
            brand_id,
            f"品牌 {brand_id} 小计 {subtotal} 未达到起送金额 {minimum_order_amount}",
            "BELOW_MINIMUM_ORDER",
            {
                "outlet_id": outlet_id,
                "subtotal": str(subtotal),
                "minimum_order_amount": str(minimum_order_amount),
            },
        )


class MenuItemUnavailableError(BrandGroupError):
    """菜品已下架或不属于该品牌"""

    def __init__(self, brand_id: str, menu_item_ids: List[str]):
        super().__init__(brand_id, f"品牌 {brand_id} 有菜品已下架",
                         "MENU_ITEM_UNAVAILABLE", {"menu_item_ids": menu_item_ids})


class CheckoutRejectedError(BaseApplicationError):
    """结算被拒绝，包含所有品牌分组的失败原因"""

    def __init__(self, failures: List[BrandGroupError]):
        self.failures = failures
        super().__init__(
            f"{len(failures)} 个品牌无法下单",
            "CHECKOUT_REJECTED",
            {"failures": [f.to_dict() for f in failures]},
        )


class IllegalTransitionError(BaseApplicationError):
    """非法的订单状态流转"""

    def __init__(self, order_id: Any, current_status: str, target_status: str):
        self.current_status = current_status
        super().__init__(
            f"订单状态不能从 {current_status} 变更为 {target_status}",
            "ILLEGAL_TRANSITION",
            {
                "order_id": order_id,
                "current_status": current_status,
                "target_status": target_status,
            },
        )
