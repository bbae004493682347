import logging
import os
from datetime import datetime
from typing import Optional

from cos_storage.core.config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> Optional[str]:
    """
    配置根日志记录器

    Args:
        level: 日志级别名称，为None时使用 settings.LOG_LEVEL
        log_dir: 日志目录，为None时使用 settings.LOG_DIR（仍为空则只输出到控制台）

    Returns:
        Optional[str]: 日志文件路径（未写文件时为None）
    """
    level = level or settings.LOG_LEVEL
    log_dir = log_dir or settings.LOG_DIR
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(log_level)

    formatter = logging.Formatter(LOG_FORMAT)

    # 控制台处理器
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)

    # 清除可能已存在的处理器，然后添加新的处理器
    logger.handlers = []
    logger.addHandler(console_handler)

    log_filename = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        # 按日期生成日志文件
        log_filename = os.path.join(log_dir, f"cos_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log")
        file_handler = logging.FileHandler(log_filename, encoding='utf-8')
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # 降低SDK与HTTP库的日志级别，避免刷屏
    logging.getLogger('qcloud_cos').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    return log_filename
