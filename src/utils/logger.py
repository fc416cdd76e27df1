"""
日志管理模块
日记服务统一使用名为 diary 的日志记录器，控制台只输出INFO及以上，文件按配置级别记录
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from .config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _parse_level(level: str) -> int:
    """把 "debug"、"INFO" 这样的配置值转换为日志级别，无法识别时使用INFO"""
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logger(name: str = "diary", level: Optional[str] = None,
                 log_file: Optional[str] = None) -> logging.Logger:
    """
    设置日志记录器，重复调用时替换原有处理器

    Args:
        name: 日志记录器名称
        level: 日志级别，默认使用配置
        log_file: 日志文件路径，默认使用配置；传入空字符串时只输出到控制台

    Returns:
        配置好的日志记录器
    """
    file_level = _parse_level(level or settings.log_level)
    log_file = settings.log_file if log_file is None else log_file

    logger = logging.getLogger(name)
    logger.setLevel(min(file_level, logging.INFO))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(max(file_level, logging.INFO))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


# 创建全局日志记录器
logger = setup_logger()
