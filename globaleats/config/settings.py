import os
from decimal import Decimal
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # 数据库配置
    database_url: str = "duckdb://./data/globaleats.duckdb"

    # JWT配置
    jwt_secret_key: str = "your-secret-key"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24 * 7  # 7天

    # API配置
    api_title: str = "GlobalEats API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api/v1"

    # 结算配置
    tax_rate: Decimal = Decimal("0.05")
    minimum_order_policy: Literal["reject", "warn"] = "reject"
    order_number_prefix: str = "GE"
    order_number_max_attempts: int = 5
    delivery_buffer_minutes: int = 20

    # 日志配置
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # 开发模式
    debug: bool = False

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


def load_settings() -> Settings:
    """按 GLOBALEATS_ENV 选择环境配置"""
    if os.getenv("GLOBALEATS_ENV", "production").lower() == "development":
        from .environments.development import DevelopmentSettings
        return DevelopmentSettings()
    return Settings()


# 全局设置实例
settings = load_settings()
