"""
目录相关数据模型
坐标、门店候选以及门店解析结果
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class Coordinate(BaseModel):
    """经纬度坐标"""
    latitude: float = Field(..., ge=-90, le=90, allow_inf_nan=False, description="纬度")
    longitude: float = Field(..., ge=-180, le=180, allow_inf_nan=False, description="经度")

    model_config = {"frozen": True}


class OutletCandidate(BaseModel):
    """可为某品牌供餐的门店视图（门店属性 + 门店-品牌关联上的费用配置）"""
    outlet_id: str
    brand_id: str
    coordinate: Coordinate
    delivery_radius_km: float = Field(..., ge=0)
    is_active: bool = True
    base_delivery_fee: Decimal = Decimal("0")
    minimum_order_amount: Decimal = Decimal("0")
    preparation_time_minutes: int = 30
    free_delivery_threshold: Optional[Decimal] = None

    model_config = {"frozen": True}


class PinnedOutlet(BaseModel):
    """指定门店的查询结果，包含关联是否存在"""
    candidate: OutletCandidate
    serves_brand: bool
    delivery_available: bool = True


class ResolvedAssignment(BaseModel):
    """品牌 -> 门店 的解析结果"""
    brand_id: str
    outlet_id: str
    distance_km: float = Field(..., ge=0)
