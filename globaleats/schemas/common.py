from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """错误响应格式"""
    success: bool = Field(False, description="请求失败")
    error_code: str = Field(description="错误码")
    message: str = Field(description="错误消息")
    details: Optional[Dict[str, Any]] = Field(None, description="错误详情")

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": False,
                "error_code": "CHECKOUT_REJECTED",
                "message": "1 个品牌无法下单",
                "details": {
                    "failures": [
                        {
                            "brand_id": "brand-2",
                            "error_code": "NO_OUTLET_IN_RANGE",
                            "message": "品牌 brand-2 在配送范围内没有门店",
                            "details": {"outlet_id": "outlet-9", "distance_km": 8.0},
                        }
                    ]
                },
            }
        }
    }
