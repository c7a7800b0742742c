"""
订单拆分服务
把一个多品牌购物车拆成若干 (品牌, 门店) 订单意图

- 分组按购物车中出现的顺序处理，保证订单号和展示顺序稳定
- 单个分组失败不会中断处理，所有失败汇总后一次性抛出
- 只要有任何分组失败，整个结算失败，不产生任何待落库订单
"""

import logging
from typing import List

from ..core.exceptions import BrandGroupError, CheckoutRejectedError, MenuItemUnavailableError
from ..models.cart import BrandGroup, CartSnapshot
from ..models.catalog import Coordinate
from ..models.order import PricedOrderIntent
from .catalog_service import CatalogService
from .outlet_resolver import OutletResolver
from .pricing_service import PricingCalculator

logger = logging.getLogger(__name__)


class OrderDecomposer:
    """购物车 -> 订单意图"""

    def __init__(self, catalog: CatalogService, pricing: PricingCalculator,
                 resolver: OutletResolver = None):
        self.catalog = catalog
        self.pricing = pricing
        self.resolver = resolver or OutletResolver(catalog)

    def decompose(self, cart: CartSnapshot, delivery: Coordinate) -> List[PricedOrderIntent]:
        """
        拆分购物车

        Returns:
            list: 与购物车分组顺序一致的订单意图

        Raises:
            CheckoutRejectedError: 任一品牌分组解析、校验或定价失败
        """
        intents: List[PricedOrderIntent] = []
        failures: List[BrandGroupError] = []

        for group in cart.groups:
            group_failures = self._check_menu_items(group)
            try:
                assignment, outlet = self.resolver.resolve_outlet(
                    group.brand_id, delivery, group.outlet_id)
            except BrandGroupError as e:
                failures.append(e)
                failures.extend(group_failures)
                continue

            if group_failures:
                failures.extend(group_failures)
                continue

            try:
                intents.append(self.pricing.price(outlet, group.lines, assignment))
            except BrandGroupError as e:
                failures.append(e)

        if failures:
            logger.info("Checkout rejected: %s",
                        ", ".join(f"{f.brand_id}:{f.error_code}" for f in failures))
            raise CheckoutRejectedError(failures)

        return intents

    def _check_menu_items(self, group: BrandGroup) -> List[BrandGroupError]:
        missing = self.catalog.unavailable_menu_items(
            group.brand_id, [line.menu_item_id for line in group.lines])
        if missing:
            return [MenuItemUnavailableError(group.brand_id, missing)]
        return []
