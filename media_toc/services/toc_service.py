"""
多目录源并发规范化

    service = TocService()
    results = await service.normalize_many([("source_a", url1), ("source_b", url2)])

每个请求使用独立的目录源实例，日志先缓冲，完成后按源分组输出。
单个源失败不影响其他源，异常记录在对应的 TocResult.error 中。
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from media_toc.core.config import TocConfig
from media_toc.scrapers.base import get_scraper
from media_toc.toc import TocContent
from media_toc.utils.buffered_logging import buffered_logger, flush_buffered_logs

logger = logging.getLogger(__name__)


@dataclass
class TocResult:
    provider_name: str
    url: str
    contents: List[TocContent]
    duration_ms: Optional[float] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TocService:
    def __init__(self, config: Optional[TocConfig] = None):
        self.config = config

    async def normalize_one(self, provider_name: str, url: str, task_id: int = 0) -> TocResult:
        contents: List[TocContent] = []
        error: Optional[BaseException] = None
        duration_ms: Optional[float] = None

        with buffered_logger(provider_name, task_id) as (temp_logger, handler):
            scraper = None
            try:
                scraper = get_scraper(provider_name)(self.config)
                scraper.logger = temp_logger
                contents = await scraper.scrape_toc(url)
            except Exception as e:
                error = e
            finally:
                if scraper is not None:
                    duration_ms = scraper.pop_task_timing()
                    await scraper.close()

            flush_buffered_logs(logger, provider_name, url, handler, len(contents), duration_ms, error)
        return TocResult(provider_name, url, contents, duration_ms, error)

    async def normalize_many(self, requests: Sequence[Tuple[str, str]]) -> List[TocResult]:
        """并发规范化多个 (provider_name, url)，结果顺序与请求顺序一致"""
        if not requests:
            return []
        results = await asyncio.gather(
            *(self.normalize_one(name, url, i) for i, (name, url) in enumerate(requests))
        )
        failed = sum(1 for r in results if not r.ok)
        logger.info(f"并发规范化完成: 共 {len(results)} 个目录源, 失败 {failed} 个")
        return list(results)
