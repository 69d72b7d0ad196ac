"""
目录源日志缓冲

并发规范化多个目录源时，每个源的日志先写入独立的临时 logger，
完成后连同链接、条目数和耗时作为一个分组一次性输出:

    with buffered_logger("source_a", 0) as (temp_logger, handler):
        scraper.logger = temp_logger
        ...
        flush_buffered_logs(logger, "source_a", url, handler, len(contents), duration_ms)

分组中出现 WARNING 及以上的记录或异常时，整个分组以 WARNING 输出。
"""
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple

BUFFER_LOGGER_PREFIX = "_buf_"


class BufferedLogHandler(logging.Handler):
    """缓冲 LogRecord 的 Handler"""

    def __init__(self):
        super().__init__()
        self._records: List[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord):
        self._records.append(record)

    @property
    def records(self) -> List[logging.LogRecord]:
        return self._records

    @property
    def highest_level(self) -> int:
        return max((r.levelno for r in self._records), default=logging.NOTSET)

    def clear(self):
        self._records.clear()


@contextmanager
def buffered_logger(source_name: str, task_id: int) -> Iterator[Tuple[logging.Logger, BufferedLogHandler]]:
    """
    创建临时缓冲 logger，退出时移除处理器并从 logging 的 logger 表中删除。

    Args:
        source_name: 目录源名称
        task_id: 唯一编号，避免并发任务共用同一个 logger
    """
    handler = BufferedLogHandler()
    temp_logger = logging.getLogger(f"{BUFFER_LOGGER_PREFIX}.{source_name}.{task_id}")
    temp_logger.handlers.clear()
    temp_logger.addHandler(handler)
    temp_logger.propagate = False
    temp_logger.setLevel(logging.DEBUG)
    try:
        yield temp_logger, handler
    finally:
        temp_logger.handlers.clear()
        logging.Logger.manager.loggerDict.pop(temp_logger.name, None)


def _formatter() -> logging.Formatter:
    # 沿用根 logger 第一个处理器的格式
    root_handlers = logging.getLogger().handlers
    if root_handlers and root_handlers[0].formatter:
        return root_handlers[0].formatter
    return logging.Formatter('%(asctime)s [%(name)s] [%(levelname)s] - %(message)s')


def flush_buffered_logs(
    output_logger: logging.Logger,
    source_name: str,
    url: str,
    handler: BufferedLogHandler,
    content_count: int,
    duration_ms: Optional[float],
    error: Optional[BaseException] = None,
):
    """
    将一个目录源的缓冲日志作为一条分组日志输出，然后清空缓冲。

    Args:
        output_logger: 用于输出的目标 logger
        source_name: 目录源名称
        url: 目录页链接
        handler: 缓冲 handler
        content_count: 输出的目录项数量 (卷或章节)
        duration_ms: 耗时(ms)，未知时为 None
        error: 处理异常（如有）
    """
    dur_str = f"{duration_ms:.0f}ms" if duration_ms is not None else "N/A"
    summary = "错误" if error else f"{content_count}项"
    lines = [f"┌─── {source_name} ({summary}, {dur_str}) ───", f"  {url}"]

    formatter = _formatter()
    for record in handler.records:
        for line in formatter.format(record).split('\n'):
            lines.append(f"  {line}")

    if error:
        lines.append(f"  ❌ 异常: {type(error).__name__}: {error}")
    elif not handler.records:
        lines.append("  (无日志输出)")

    lines.append(f"└─── {source_name} ───")

    level = logging.WARNING if error or handler.highest_level >= logging.WARNING else logging.INFO
    output_logger.log(level, "\n".join(lines))
    handler.clear()
