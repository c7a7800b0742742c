"""
日志配置
控制台输出 + 可选的滚动文件，另提供请求日志中间件
"""

import logging
import logging.handlers
import os
import time
import uuid

from fastapi import FastAPI, Request

from ..config.settings import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"

logger = logging.getLogger(__name__)


def setup_logging(config: Settings) -> None:
    """根据配置设置日志系统"""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    root.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if config.log_file:
        log_dir = os.path.dirname(config.log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            config.log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logging.info("日志系统初始化完成，级别: %s", config.log_level)


def setup_logging_middleware(app: FastAPI) -> None:
    """设置请求日志中间件"""

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()
        logger.info("[%s] %s %s", request_id, request.method, request.url.path)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("[%s] ERROR - %s - Time: %.3fs", request_id, e, time.time() - start_time)
            raise

        logger.info("[%s] %s - Time: %.3fs", request_id, response.status_code,
                    time.time() - start_time)
        response.headers["X-Request-ID"] = request_id
        return response
