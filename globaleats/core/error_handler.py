"""
统一错误处理模块
提供标准化的错误响应格式和错误处理中间件

主要功能：
- 统一的错误响应格式
- 自动异常捕获和日志记录
- HTTP状态码映射
"""

import json
import logging
import traceback
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .database import DatabaseManager, db_manager
from .exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


class ErrorResponse:
    """标准错误响应格式"""

    def __init__(self, error_code: str, message: str,
                 details: Optional[Dict[str, Any]] = None,
                 http_status: int = 400):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "success": False,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }

    def to_json_response(self) -> JSONResponse:
        """转换为FastAPI JSONResponse"""
        return JSONResponse(
            status_code=self.http_status,
            content=jsonable_encoder(self.to_dict())
        )


class ErrorHandler:
    """全局错误处理器"""

    # 错误代码到HTTP状态码的映射
    ERROR_CODE_STATUS_MAP = {
        "VALIDATION_ERROR": 422,
        "AUTHENTICATION_REQUIRED": 401,
        "FORBIDDEN": 403,
        "INTERNAL_ERROR": 500,

        # 结算相关错误
        "CHECKOUT_REJECTED": 422,
        "BRAND_NOT_SERVED_AT_OUTLET": 422,
        "NO_OUTLET_IN_RANGE": 422,
        "OUTLET_INACTIVE": 422,
        "BELOW_MINIMUM_ORDER": 422,
        "MENU_ITEM_UNAVAILABLE": 422,
        "ADDRESS_NOT_FOUND": 404,
        "PERSISTENCE_ERROR": 500,

        # 订单相关错误
        "ORDER_NOT_FOUND": 404,
        "ILLEGAL_TRANSITION": 409,
    }

    @classmethod
    def handle_application_error(cls, error: BaseApplicationError) -> ErrorResponse:
        """处理应用业务异常"""
        http_status = cls.ERROR_CODE_STATUS_MAP.get(error.error_code, 400)
        if http_status >= 500:
            logger.error("%s: %s %s", error.error_code, error.message, error.details)

        return ErrorResponse(
            error_code=error.error_code,
            message=error.message,
            details=error.details,
            http_status=http_status
        )

    @classmethod
    def handle_http_exception(cls, error: HTTPException) -> ErrorResponse:
        """处理FastAPI HTTP异常"""
        return ErrorResponse(
            error_code="HTTP_ERROR",
            message=str(error.detail),
            details={"status_code": error.status_code},
            http_status=error.status_code
        )

    @classmethod
    def handle_validation_error(cls, error: Exception) -> ErrorResponse:
        """处理Pydantic验证错误"""
        errors = error.errors() if hasattr(error, "errors") else str(error)
        return ErrorResponse(
            error_code="VALIDATION_ERROR",
            message="请求参数验证失败",
            details={"validation_errors": errors},
            http_status=422
        )

    @classmethod
    def handle_unknown_error(cls, error: Exception,
                             db: Optional[DatabaseManager] = None) -> ErrorResponse:
        """处理未知异常"""
        error_details = {
            "type": type(error).__name__,
            "message": str(error),
            "traceback": traceback.format_exc()
        }
        logger.error("Unhandled error: %s", error_details["message"], exc_info=error)
        cls._log_system_error(error_details, db or db_manager)

        return ErrorResponse(
            error_code="INTERNAL_ERROR",
            message="系统内部错误",
            details={"error_type": type(error).__name__},
            http_status=500
        )

    @classmethod
    def _log_system_error(cls, error_details: Dict[str, Any], db: DatabaseManager):
        """记录系统错误到数据库"""
        try:
            with db.reading() as con:
                con.execute(
                    "INSERT INTO logs(user_id, actor_id, action, detail_json, created_at) "
                    "VALUES (?,?,?,?,?)",
                    [None, None, "system_error", json.dumps(error_details), datetime.now()]
                )
        except Exception:
            # 数据库日志写不了，就只记录到进程日志
            logger.exception("Failed to log error to database")


async def application_error_handler(request: Request, exc: BaseApplicationError) -> JSONResponse:
    """应用异常处理中间件"""
    return ErrorHandler.handle_application_error(exc).to_json_response()


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """HTTP异常处理中间件"""
    return ErrorHandler.handle_http_exception(exc).to_json_response()


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """验证异常处理中间件"""
    return ErrorHandler.handle_validation_error(exc).to_json_response()


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """通用异常处理中间件"""
    db = getattr(request.app.state, "db", None)
    return ErrorHandler.handle_unknown_error(exc, db).to_json_response()
