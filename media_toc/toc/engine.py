"""
目录规范化引擎入口

    contents = await scrape_toc(adapter_stream)      # 异步来源
    contents = normalize_toc([meta, entry1, ...])      # 同步来源

两者都驱动同一个 TocNormalizer: 逐条 feed()，最后 finish() 得到输出。
引擎不做任何 I/O，也不持有跨调用的状态，每次调用使用独立的缓冲区。
"""

import logging
from typing import Any, AsyncIterable, Iterable, List, Optional

from pydantic import ValidationError

from media_toc.core.config import TocConfig, settings

from .assembler import assemble
from .errors import TocContractError
from .models import RawEntry, SeriesMeta, TocContent, TocItem
from .orphans import detect_direction, synthesize_orphans
from .partials import propagate_part_counts
from .ranges import expand_ranges
from .segmenter import VolumeRunSegmenter
from .title_parser import TitleParser, strip_series_prefix

logger = logging.getLogger(__name__)


def coerce_piece(piece: Any):
    """把适配器给出的 dict 转为 SeriesMeta / RawEntry，带 mediumType 的视为 SeriesMeta"""
    if isinstance(piece, (SeriesMeta, RawEntry)):
        return piece
    if not isinstance(piece, dict):
        raise TocContractError(f"未知的目录条目类型: {type(piece).__name__}")
    try:
        if "mediumType" in piece or "medium_type" in piece:
            return SeriesMeta.model_validate(piece)
        return RawEntry.model_validate(piece)
    except ValidationError as e:
        raise TocContractError(f"目录条目不符合约定: {e}") from e


class TocNormalizer:
    """单次调用的规范化状态，不可复用"""

    def __init__(
        self,
        config: Optional[TocConfig] = None,
        parser: Optional[TitleParser] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.config = config or settings.toc
        self.logger = log or logger
        self.parser = parser or TitleParser(self.config.invalid_markers)
        self.meta: Optional[SeriesMeta] = None
        self.segmenter = VolumeRunSegmenter()
        self.entry_count = 0
        self.dropped_count = 0

    def feed(self, piece: Any) -> None:
        piece = coerce_piece(piece)

        if isinstance(piece, SeriesMeta):
            if self.meta is not None:
                raise TocContractError("目录流中出现了多个 SeriesMeta")
            if self.entry_count:
                raise TocContractError("SeriesMeta 必须位于目录流的最前面")
            self.meta = piece
            return

        self.entry_count += 1
        title = piece.title
        if self.meta and self.config.strip_series_prefix:
            title = strip_series_prefix(title, self.meta.title)

        token = self.parser.parse(title)
        if token is None:
            self.dropped_count += 1
            return
        self.segmenter.push(TocItem(entry=piece, token=token))

    def finish(self) -> List[TocContent]:
        finished = bool(self.meta and self.meta.is_finished)
        runs = self.segmenter.finish()

        run_items = []
        for run in runs:
            ascending = detect_direction(run.items)
            propagate_part_counts(run.items, ascending)
            items = synthesize_orphans(run.items, ascending, finished)
            self.dropped_count += len(run.items) - len(items)
            run_items.append(expand_ranges(items, ascending))

        contents = assemble(runs, run_items)
        series = f"'{self.meta.title}' " if self.meta else ""
        self.logger.info(
            f"目录 {series}规范化完成: 输入 {self.entry_count} 条, "
            f"输出 {len(contents)} 项, 丢弃 {self.dropped_count} 条"
        )
        return contents


async def scrape_toc(source: AsyncIterable[Any], config: Optional[TocConfig] = None) -> List[TocContent]:
    """消费异步目录流 (SeriesMeta 可选且在最前)，返回 Episode 列表或 Part 列表"""
    normalizer = TocNormalizer(config)
    async for piece in source:
        normalizer.feed(piece)
    return normalizer.finish()


def normalize_toc(source: Iterable[Any], config: Optional[TocConfig] = None) -> List[TocContent]:
    """scrape_toc 的同步版本"""
    normalizer = TocNormalizer(config)
    for piece in source:
        normalizer.feed(piece)
    return normalizer.finish()
