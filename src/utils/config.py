"""
配置管理模块
管理应用的所有配置信息，包括服务器配置、存储配置、分享配置等
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """应用配置类"""

    # 服务器配置
    host: str = "0.0.0.0"
    port: int = 8000

    # 存储配置
    database_url: str = "sqlite:///./data/diary.db"
    collection_key: str = "diary_entries"

    # 分享配置（生成分享链接时使用的站点地址）
    share_base_url: str = "http://localhost:8000"

    # 远程图片下载超时（秒）
    remote_fetch_timeout: float = 30.0

    # 日志配置
    log_level: str = "INFO"
    log_file: str = "logs/app.log"

    # 应用配置
    app_name: str = "My Diary"
    app_version: str = "1.0.0"
    debug: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """
    获取配置实例（单例模式）
    使用lru_cache确保只创建一个配置实例
    """
    return Settings()


# 导出配置实例
settings = get_settings()
