"""
应用配置
从环境变量 / .env 读取配置
"""
from typing import List
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "HotelPMS"
    DEBUG: bool = False

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./hotelpms.db"

    # JWT 配置
    SECRET_KEY: str = "hotelpms-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # 跨域
    CORS_ORIGINS: List[str] = ["*"]

    # 业务配置
    DEFAULT_BRANCH_CODE: str = "HTP"
    EVENT_HISTORY_SIZE: int = 100
    # 数据源不可用时是否返回演示数据
    USE_FALLBACK_DATA: bool = True

    model_config = ConfigDict(env_file=".env", case_sensitive=True)


# 全局设置实例
settings = Settings()
