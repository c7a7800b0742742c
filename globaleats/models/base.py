"""
基础数据模型
定义通用的模型基类和金额工具
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from pydantic import BaseModel, Field

CENT = Decimal("0.01")


def money(value: Any) -> Decimal:
    """转换为两位小数金额，四舍五入（half-up）"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class BaseEntity(BaseModel):
    """基础实体模型"""

    model_config = {"from_attributes": True, "use_enum_values": False}


class PaginationParams(BaseModel):
    """分页参数"""
    page: int = Field(default=1, ge=1, description="页码")
    size: int = Field(default=10, ge=1, le=100, description="每页大小")

    @property
    def offset(self) -> int:
        """计算偏移量"""
        return (self.page - 1) * self.size
