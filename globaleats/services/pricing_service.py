"""
定价服务
按门店自己的费用配置为单个品牌分组计算小计、配送费、税费和总价

- 单价使用加入购物车时记录的价格，不重新读取目录价格
- 金额统一保留两位小数，四舍五入（half-up）
"""

import logging
from decimal import Decimal
from typing import Iterable, List, Optional

from ..config.settings import settings
from ..core.exceptions import BelowMinimumOrderError
from ..models.base import money
from ..models.cart import CartLine
from ..models.catalog import OutletCandidate, ResolvedAssignment
from ..models.order import IntentLine, PricedOrderIntent

logger = logging.getLogger(__name__)

MINIMUM_POLICY_REJECT = "reject"
MINIMUM_POLICY_WARN = "warn"


class PricingCalculator:
    """门店级定价计算器（无状态）"""

    def __init__(self, tax_rate: Optional[Decimal] = None,
                 minimum_order_policy: Optional[str] = None):
        self.tax_rate = Decimal(str(tax_rate if tax_rate is not None else settings.tax_rate))
        self.minimum_order_policy = minimum_order_policy or settings.minimum_order_policy
        if self.minimum_order_policy not in (MINIMUM_POLICY_REJECT, MINIMUM_POLICY_WARN):
            raise ValueError(f"unknown minimum_order_policy: {self.minimum_order_policy}")

    def price(self, outlet: OutletCandidate, lines: Iterable[CartLine],
              assignment: Optional[ResolvedAssignment] = None) -> PricedOrderIntent:
        """
        计算单个分组的价格

        Raises:
            BelowMinimumOrderError: 小计低于门店起送金额（reject 策略）
        """
        priced_lines: List[IntentLine] = []
        for line in lines:
            # 单价最多两位小数（CartLine 校验），按原价相乘只取整一次
            priced_lines.append(IntentLine(
                menu_item_id=line.menu_item_id,
                quantity=line.quantity,
                unit_price=money(line.unit_price_at_add_time),
                line_total=money(line.unit_price_at_add_time * line.quantity),
                special_instructions=line.special_instructions,
            ))

        subtotal = money(sum((pl.line_total for pl in priced_lines), Decimal("0")))

        warnings = []
        minimum = money(outlet.minimum_order_amount)
        if subtotal < minimum:
            if self.minimum_order_policy == MINIMUM_POLICY_REJECT:
                raise BelowMinimumOrderError(outlet.brand_id, outlet.outlet_id, subtotal, minimum)
            logger.warning("Outlet %s subtotal %s below minimum %s, accepted by policy",
                           outlet.outlet_id, subtotal, minimum)
            warnings.append("BELOW_MINIMUM_ORDER")

        delivery_fee = self.delivery_fee(outlet, subtotal)
        tax_amount = money(subtotal * self.tax_rate)

        return PricedOrderIntent(
            brand_id=outlet.brand_id,
            outlet_id=outlet.outlet_id,
            lines=priced_lines,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            tax_amount=tax_amount,
            total_amount=subtotal + delivery_fee + tax_amount,
            distance_km=assignment.distance_km if assignment else 0.0,
            preparation_time_minutes=outlet.preparation_time_minutes,
            warnings=warnings,
        )

    @staticmethod
    def delivery_fee(outlet: OutletCandidate, subtotal: Decimal) -> Decimal:
        """配送费：设置了免配送门槛且小计达到门槛时为0"""
        threshold = outlet.free_delivery_threshold
        if threshold is not None and subtotal >= money(threshold):
            return money(0)
        return money(outlet.base_delivery_fee)
