"""
购物车快照模型
由上游购物车服务校验后传入，结算只读不改
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class CartLine(BaseModel):
    """购物车行"""
    menu_item_id: str = Field(..., min_length=1, description="菜品ID")
    quantity: int = Field(..., ge=1, description="数量")
    unit_price_at_add_time: Decimal = Field(..., ge=0, decimal_places=2,
                                          description="加入购物车时的单价（最多两位小数）")
    special_instructions: Optional[str] = Field(None, max_length=500, description="备注")


class BrandGroup(BaseModel):
    """购物车中同一品牌的菜品分组"""
    brand_id: str = Field(..., min_length=1, description="品牌ID")
    outlet_id: Optional[str] = Field(None, description="指定门店（可选）")
    lines: List[CartLine] = Field(..., min_length=1, description="菜品行")


class CartSnapshot(BaseModel):
    """购物车快照，分组顺序即下单后的展示顺序"""
    groups: List[BrandGroup] = Field(..., min_length=1, description="品牌分组")

    @field_validator("groups")
    @classmethod
    def brands_must_be_unique(cls, groups: List[BrandGroup]) -> List[BrandGroup]:
        seen = set()
        for group in groups:
            if group.brand_id in seen:
                raise ValueError(f"品牌 {group.brand_id} 在购物车中重复出现")
            seen.add(group.brand_id)
        return groups
