"""
分段总数传播

"Chapter 5 - A [2/3]" 说明第 5 章共 3 段、本条是第 2 段。同一 Run 中紧邻的、
同一章节号且没有分段标记的条目依次得到 1 和 3，避免 combiIndex 重复。
"""

import logging
from typing import Iterable, List

from .models import TocItem

logger = logging.getLogger(__name__)


def _walk(item: TocItem, neighbours: Iterable[TocItem], step: int) -> None:
    """从 item 出发沿 neighbours 方向逐个分配分段号，遇到其他章节或超出 1..count 时停止"""
    count = item.token.part_count
    current = item.partial
    for neighbour in neighbours:
        if not neighbour.is_indexed:
            continue
        if neighbour.total != item.total:
            break
        current += step
        if current < 1 or current > count:
            break
        if neighbour.partial is None:
            neighbour.partial = current
        elif neighbour.partial != current:
            logger.warning(
                f"章节 {item.total} 的分段推断为 {current}，与已有分段 {neighbour.partial} 冲突，保留原值"
            )


def propagate_part_counts(items: List[TocItem], ascending: bool = True) -> None:
    """在 Run 内按故事顺序向前后两个方向传播分段号，原地修改条目"""
    chronological = items if ascending else list(reversed(items))
    for i, item in enumerate(chronological):
        if not item.is_indexed or not item.token.part_count or item.partial is None:
            continue
        _walk(item, chronological[i + 1:], 1)
        _walk(item, reversed(chronological[:i]), -1)
