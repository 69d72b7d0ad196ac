"""
卷分段器

按流顺序消费解析后的条目，为每一段连续条目确定卷号，并把它们划分为有序的 Run。
状态机只有三样东西: 当前打开的 Run、尚未归属的 pending 缓冲区、已关闭的 Run 列表。
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .models import Orphan, TocItem
from .orphans import detect_direction

logger = logging.getLogger(__name__)

# 卷标记出现的位置
MARKERS_LEADING = "leading"    # 卷标记在其章节之前 (正序目录)
MARKERS_TRAILING = "trailing"  # 卷标记在其章节之后 (倒序目录)


@dataclass
class Run:
    """共享同一卷号的一组条目; volume 为 None 表示整条流都没有卷信息"""
    volume: Optional[int] = None
    title: str = ""
    items: List[TocItem] = field(default_factory=list)

    def add(self, item: TocItem) -> None:
        self.items.append(item)
        volume_title = getattr(item.token, "volume_title", None)
        if volume_title and not self.title:
            self.title = volume_title


def is_boundary_marker(item: TocItem) -> bool:
    """
    纯卷标记: 没有链接、没有发布时间，标题只有 "Volume N" / "Book N" / "Season N"。
    """
    token = item.token
    return (
        isinstance(token, Orphan)
        and token.volume is not None
        and not token.title
        and not item.entry.url
        and item.entry.release_date is None
    )


class VolumeRunSegmenter:
    """
    用法::

        segmenter = VolumeRunSegmenter()
        for item in items:
            segmenter.push(item)
        runs = segmenter.finish()
    """

    def __init__(self):
        self.pending: List[TocItem] = []
        self.runs: List[Run] = []
        self.marker_mode: Optional[str] = None
        self._open: Optional[Run] = None
        self._finished = False

    @property
    def current(self) -> Optional[int]:
        """当前已确定的卷号"""
        return self._open.volume if self._open else None

    @property
    def has_volumes(self) -> bool:
        return any(run.volume is not None for run in self.runs)

    def push(self, item: TocItem) -> None:
        if self._finished:
            raise RuntimeError("分段器已结束，不能继续写入")

        if is_boundary_marker(item):
            self._on_marker(item.token.volume)
            return

        volume = item.token.volume
        if volume is None:
            if self._open is not None:
                self._open.add(item)
            else:
                self.pending.append(item)
            return

        if self._open is None or self._open.volume != volume:
            self._flush()
            self._open = Run(volume=volume)
        self._drain_pending_into(self._open)
        self._open.add(item)

    def finish(self) -> List[Run]:
        """关闭所有缓冲并返回按关闭顺序排列的 Run"""
        if self._finished:
            return self.runs
        self._flush()
        if self.pending:
            if self.runs:
                # 保持输出同构: 末尾没有卷号的条目并入最后一卷
                logger.debug(f"{len(self.pending)} 个末尾条目没有卷号，并入卷 {self.runs[-1].volume}")
                self._drain_pending_into(self.runs[-1])
            else:
                run = Run()
                self._drain_pending_into(run)
                self.runs.append(run)
        self._finished = True
        return self.runs

    # ---- 内部 ----

    def _on_marker(self, volume: int) -> None:
        if self.marker_mode is None:
            self.marker_mode = MARKERS_TRAILING if self._pending_descends() else MARKERS_LEADING
            logger.debug(f"检测到卷标记位置: {self.marker_mode}")

        if self.marker_mode == MARKERS_LEADING:
            if self._open is not None and self._open.volume == volume:
                # 重复的卷标记不关闭当前卷
                self._drain_pending_into(self._open)
                return
            self._flush()
            self._open = Run(volume=volume)
            self._drain_pending_into(self._open)
            return

        # 倒序目录: 标记关闭它之前的所有条目
        if self._open is not None and self._open.volume == volume:
            run = self._open
            self._open = None
        else:
            self._flush()
            run = Run(volume=volume)
        self._drain_pending_into(run)
        self.runs.append(run)
        logger.debug(f"卷 {volume} 已关闭，共 {len(run.items)} 个条目")

    def _pending_descends(self) -> bool:
        """
        第一个卷标记之前已有倒序排列的章节 (至少两个有索引条目) 时，判定卷标记位于其章节之后。
        只有序言之类的孤儿条目时按卷标记在前处理，它们并入该卷。
        """
        indexed = [item for item in self.pending if item.is_indexed]
        return len(indexed) >= 2 and not detect_direction(indexed)

    def _drain_pending_into(self, run: Run) -> None:
        for pending_item in self.pending:
            run.add(pending_item)
        self.pending = []

    def _flush(self) -> None:
        if self._open is None:
            return
        self.runs.append(self._open)
        logger.debug(f"卷 {self._open.volume} 已关闭，共 {len(self._open.items)} 个条目")
        self._open = None
