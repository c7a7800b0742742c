"""
用户相关数据模型
"""

from enum import Enum

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    """用户角色"""
    CUSTOMER = "customer"
    VENDOR = "vendor"
    DELIVERY_AGENT = "delivery_agent"
    ADMIN = "admin"


class Actor(BaseModel):
    """当前请求的调用者（来自JWT）"""
    user_id: int = Field(..., description="用户ID")
    role: UserRole = Field(UserRole.CUSTOMER, description="角色")

    model_config = {"frozen": True}
