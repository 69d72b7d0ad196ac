import logging
import asyncio
import time
from abc import ABC, abstractmethod
from typing import AsyncIterator, ClassVar, Dict, List, Optional, Type
from functools import wraps

from media_toc.core.config import TocConfig
from media_toc.toc import TocContent, TocNormalizer, TocPiece

logger = logging.getLogger("TocScrapers")


def track_performance(func):
    """
    装饰器: 跟踪异步方法的执行时间,不影响并发性能。
    记录到 INFO 级别,方便查看性能统计。
    使用任务ID作为键存储耗时，确保并发安全，供 TocService 读取。
    """
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        start_time = time.perf_counter()
        task_id = id(asyncio.current_task())
        try:
            result = await func(self, *args, **kwargs)
            elapsed = time.perf_counter() - start_time
            self._task_timings[task_id] = elapsed * 1000
            self.logger.info(f"[{self.provider_name}] {func.__name__} 耗时: {elapsed:.3f}s")
            return result
        except Exception:
            elapsed = time.perf_counter() - start_time
            # 即使失败也存储耗时
            self._task_timings[task_id] = elapsed * 1000
            self.logger.warning(f"[{self.provider_name}] {func.__name__} 失败耗时: {elapsed:.3f}s")
            raise
    return wrapper


class BaseTocScraper(ABC):
    """
    所有目录源的抽象基类。

    子类定义 provider_name 即自动注册（通过 __init_subclass__），
    并以异步生成器实现 iter_toc()::

        class MySource(BaseTocScraper):
            provider_name = "my_source"

            async def iter_toc(self, url):
                yield SeriesMeta(title="...", medium_type=MediumType.TEXT)
                yield RawEntry(title="Chapter 1", url=url + "/1")

    scrape_toc() 负责把目录流交给规范化引擎，源本身不需要关心卷、孤儿章节等规则。
    """

    provider_name: ClassVar[str] = ""

    # ---- 自动注册表（私有） ----
    _registry: ClassVar[Dict[str, Type["BaseTocScraper"]]] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        # 只注册定义了 provider_name 的具体子类
        if cls.provider_name:
            previous = BaseTocScraper._registry.get(cls.provider_name)
            if previous is not None and previous is not cls:
                logger.warning(f"目录源 '{cls.provider_name}' 被 {cls.__name__} 覆盖 (原为 {previous.__name__})")
            BaseTocScraper._registry[cls.provider_name] = cls
            logger.debug(f"自动发现目录源: {cls.provider_name}")

    def __init__(self, config: Optional[TocConfig] = None):
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)
        self._task_timings: Dict[int, float] = {}

    @abstractmethod
    def iter_toc(self, url: str) -> AsyncIterator[TocPiece]:
        """按页面顺序产出 SeriesMeta (可选，且必须最先) 和 RawEntry"""
        ...

    @track_performance
    async def scrape_toc(self, url: str) -> List[TocContent]:
        """读取 url 的目录并规范化为 Episode 列表或 Part 列表"""
        normalizer = TocNormalizer(self.config, log=self.logger)
        count = 0
        async for piece in self.iter_toc(url):
            normalizer.feed(piece)
            count += 1
        self.logger.debug(f"[{self.provider_name}] {url} 共读取 {count} 条目录数据")
        return normalizer.finish()

    def pop_task_timing(self) -> Optional[float]:
        """取出当前任务最近一次 scrape_toc 的耗时(ms)"""
        return self._task_timings.pop(id(asyncio.current_task()), None)

    async def close(self):
        """释放源持有的资源，默认无操作"""


def get_scraper(provider_name: str) -> Type[BaseTocScraper]:
    """按 provider_name 查找已注册的目录源"""
    try:
        return BaseTocScraper._registry[provider_name]
    except KeyError:
        raise KeyError(f"未知的目录源: {provider_name}") from None


def get_all_scrapers() -> List[Type[BaseTocScraper]]:
    """获取所有已注册的目录源类"""
    return list(BaseTocScraper._registry.values())
