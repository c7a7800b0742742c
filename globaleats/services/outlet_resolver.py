"""
门店解析服务
为购物车中的每个品牌选出负责出餐的门店

规则：
- 指定门店优先：校验营业状态、品牌关联和配送半径，通过即直接使用
- 否则在品牌的可用门店中取配送半径内距离最近的一家
- 距离相同按出餐时间短者优先，仍相同按门店ID字典序
"""

import logging
from typing import Optional, Tuple

from ..core.exceptions import (
    BrandNotServedAtOutletError,
    NoOutletInRangeError,
    OutletInactiveError,
)
from ..models.catalog import Coordinate, OutletCandidate, ResolvedAssignment
from ..utils.geo import distance_km
from .catalog_service import CatalogService

logger = logging.getLogger(__name__)


class OutletResolver:
    """门店解析器，不缓存任何门店数据"""

    def __init__(self, catalog: CatalogService):
        self.catalog = catalog

    def resolve(self, brand_id: str, customer: Coordinate,
                pinned_outlet_id: Optional[str] = None) -> ResolvedAssignment:
        """
        解析品牌对应的门店

        Raises:
            OutletInactiveError: 指定门店停业或暂停配送
            BrandNotServedAtOutletError: 门店不提供该品牌 / 品牌没有可用门店
            NoOutletInRangeError: 配送半径内没有门店
        """
        assignment, _ = self.resolve_outlet(brand_id, customer, pinned_outlet_id)
        return assignment

    def resolve_outlet(self, brand_id: str, customer: Coordinate,
                       pinned_outlet_id: Optional[str] = None
                       ) -> Tuple[ResolvedAssignment, OutletCandidate]:
        """同 resolve，同时返回选中门店的费用配置供定价使用"""
        if pinned_outlet_id:
            return self._resolve_pinned(brand_id, customer, pinned_outlet_id)

        candidates = self.catalog.outlet_candidates(brand_id)
        if not candidates:
            raise BrandNotServedAtOutletError(brand_id)

        measured = [(distance_km(c.coordinate, customer), c) for c in candidates]
        in_range = [(d, c) for d, c in measured if d <= c.delivery_radius_km]
        if not in_range:
            nearest, outlet = min(measured, key=lambda item: (item[0], item[1].outlet_id))
            raise NoOutletInRangeError(brand_id, outlet.outlet_id, round(nearest, 3))

        distance, chosen = min(in_range, key=_selection_key)
        logger.debug("Brand %s resolved to outlet %s at %.2f km",
                     brand_id, chosen.outlet_id, distance)
        assignment = ResolvedAssignment(brand_id=brand_id, outlet_id=chosen.outlet_id,
                                        distance_km=distance)
        return assignment, chosen

    def _resolve_pinned(self, brand_id: str, customer: Coordinate,
                        outlet_id: str) -> Tuple[ResolvedAssignment, OutletCandidate]:
        pinned = self.catalog.outlet_candidate(outlet_id, brand_id)
        if pinned is None:
            raise BrandNotServedAtOutletError(brand_id, outlet_id)

        candidate = pinned.candidate
        if not candidate.is_active or not pinned.delivery_available:
            raise OutletInactiveError(brand_id, outlet_id)
        if not pinned.serves_brand:
            raise BrandNotServedAtOutletError(brand_id, outlet_id)

        distance = distance_km(candidate.coordinate, customer)
        if distance > candidate.delivery_radius_km:
            raise NoOutletInRangeError(brand_id, outlet_id, round(distance, 3))

        assignment = ResolvedAssignment(brand_id=brand_id, outlet_id=outlet_id,
                                        distance_km=distance)
        return assignment, candidate


def _selection_key(item):
    distance, candidate = item
    return (distance, candidate.preparation_time_minutes, candidate.outlet_id)
