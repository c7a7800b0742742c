"""
GlobalEats 后端服务 - 主应用入口
多品牌外卖平台的结算与订单服务

主要功能模块：
- 多品牌购物车结算（按品牌拆单、就近分配门店、门店级定价）
- 订单状态流转与取消
- 顾客/商家订单查询

技术栈：FastAPI + DuckDB + JWT认证
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .config.settings import settings
from .core.database import DatabaseManager, db_manager
from .core.error_handler import (
    application_error_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.exceptions import BaseApplicationError
from .core.logger import setup_logging, setup_logging_middleware
from .services.order_service import OrderService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    setup_logging(settings)
    try:
        app.state.db.init_database()
    except Exception as e:
        # 不让应用启动失败，首次访问时会重新建立连接
        logger.error("Database initialization failed: %s", e)

    yield

    app.state.db.close()


def create_app(db: Optional[DatabaseManager] = None) -> FastAPI:
    """创建FastAPI应用"""
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="GlobalEats 多品牌外卖结算与订单API",
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.state.db = db or db_manager
    app.state.order_service = OrderService(app.state.db)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # 生产环境应限制具体域名
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_logging_middleware(app)

    # 注册异常处理器
    app.add_exception_handler(BaseApplicationError, application_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check():
        try:
            app.state.db.get_connection()
            return {
                "status": "healthy",
                "version": settings.api_version,
                "database": "connected",
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "version": settings.api_version,
                "database": f"error: {e}",
            }

    @app.get("/")
    async def root():
        return {
            "name": settings.api_title,
            "version": settings.api_version,
            "description": "GlobalEats 多品牌外卖结算与订单API",
        }

    return app


# 应用实例
app = create_app()
