import collections
import logging
import logging.handlers
from pathlib import Path
from typing import List

from media_toc.core.config import get_config_dir, settings
from media_toc.utils.buffered_logging import BUFFER_LOGGER_PREFIX

# 内存中保留最新的日志，供调用方查看
_logs_deque = collections.deque(maxlen=200)


class DequeHandler(logging.Handler):
    def __init__(self, deque):
        super().__init__()
        self.deque = deque

    def emit(self, record):
        # 只存储格式化后的消息字符串
        self.deque.appendleft(self.format(record))


class NoBufferLogFilter(logging.Filter):
    """排除缓冲 logger (_buf_.*) 的记录，它们会在 flush 时以分组形式重新输出"""
    def filter(self, record):
        return not record.name.startswith(BUFFER_LOGGER_PREFIX)


def get_log_dir() -> Path:
    """返回日志目录路径，未配置时使用 {config_dir}/logs"""
    if settings.log.dir:
        return Path(settings.log.dir)
    return get_config_dir() / "logs"


def setup_logging():
    """
    配置根日志记录器，使其能够将日志输出到控制台、一个可轮转的文件，
    以及一个内存双端队列。
    此函数应在应用启动时被调用一次。
    """
    log_dir = get_log_dir()
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except (OSError, PermissionError) as e:
        # 如果无法创建日志目录，使用当前目录
        print(f"警告: 无法创建日志目录 {log_dir}: {e}，将使用当前目录")
        log_dir = Path(".")
    log_file = log_dir / "app.log"

    # 为控制台和文件日志定义详细的格式
    verbose_formatter = logging.Formatter(
        '[%(asctime)s] [%(name)s:%(lineno)d] [%(levelname)s] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    brief_formatter = logging.Formatter('[%(asctime)s] %(message)s', datefmt='%Y-%m-%d %H:%M:%S')

    # 从配置中获取日志级别，如果无效则默认为 INFO
    log_level = getattr(logging, settings.log.level.upper(), logging.INFO)
    logger = logging.getLogger()
    logger.setLevel(log_level)

    # 清理已存在的处理器，避免重复调用时重复添加
    if logger.hasHandlers():
        logger.handlers.clear()

    logger.addHandler(logging.StreamHandler())  # 控制台处理器
    logger.addHandler(logging.handlers.RotatingFileHandler(
        log_file, maxBytes=5*1024*1024, backupCount=5, encoding='utf-8'))  # 文件处理器

    deque_handler = DequeHandler(_logs_deque)
    deque_handler.addFilter(NoBufferLogFilter())
    logger.addHandler(deque_handler)

    for handler in logger.handlers:
        if isinstance(handler, DequeHandler):
            handler.setFormatter(brief_formatter)
        else:
            handler.setFormatter(verbose_formatter)

    logging.info(f"日志系统已初始化 (目录: {log_dir}, 级别: {logging.getLevelName(log_level)})")


def get_logs() -> List[str]:
    """返回内存中的日志条目，最新的在前。"""
    return list(_logs_deque)
