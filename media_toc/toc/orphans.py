"""
孤儿条目索引合成

对一个 Run 内没有章节号的条目 (番外、间章、公告...)，根据相邻的有索引条目
和 Run 的方向，合成 totalIndex / partialIndex。

偏移常量 100 / 300 是为合成条目保留的分段区间，用来避开真实的分段索引，
取值本身没有含义，不要改成"更整齐"的数字。
"""

import logging
from typing import List, Optional, Tuple

from .models import TocItem

logger = logging.getLogger(__name__)

# 锚点本身没有分段索引时的偏移
PLAIN_ANCHOR_OFFSET = 100
# 锚点本身带有分段索引时的偏移
PARTIAL_ANCHOR_OFFSET = 300


def detect_direction(items: List[TocItem]) -> bool:
    """
    判断 Run 的方向，返回 True 表示正序。

    有索引条目的 total 不减为正序，不增 (且不全相等) 为倒序；
    两者混杂时按升降步数多数决定，平局按正序；有索引条目少于 2 个时默认正序。
    """
    totals = [item.total for item in items if item.is_indexed]
    if len(totals) < 2:
        return True
    ascending_steps = sum(1 for a, b in zip(totals, totals[1:]) if b > a)
    descending_steps = sum(1 for a, b in zip(totals, totals[1:]) if b < a)
    if descending_steps and not ascending_steps:
        return False
    if ascending_steps and descending_steps:
        logger.debug(f"Run 方向不一致 (升 {ascending_steps} / 降 {descending_steps})")
    return ascending_steps >= descending_steps


def _blocks(chronological: List[TocItem]) -> List[Tuple[Optional[TocItem], List[TocItem], Optional[TocItem]]]:
    """把按故事顺序排列的条目切成 (before, 孤儿块, after) 三元组"""
    blocks = []
    before: Optional[TocItem] = None
    block: List[TocItem] = []
    for item in chronological:
        if item.is_indexed:
            if block:
                blocks.append((before, block, item))
                block = []
            before = item
        else:
            block.append(item)
    if block:
        blocks.append((before, block, None))
    return blocks


def _assign_from_anchor(block: List[TocItem], anchor: TocItem, anchor_total: int, outward_reversed: bool) -> None:
    base = PARTIAL_ANCHOR_OFFSET if anchor.partial is not None else PLAIN_ANCHOR_OFFSET
    ordered = list(reversed(block)) if outward_reversed else block
    for k, item in enumerate(ordered, start=1):
        item.total = anchor_total
        item.partial = base + k


def synthesize_orphans(items: List[TocItem], ascending: bool, finished: bool) -> List[TocItem]:
    """
    为 Run 内的孤儿条目分配索引，返回保留下来的条目 (保持原始相对顺序)。

    - 两侧都有邻居: 以 total 较小的邻居为锚点，从锚点向外数第 k 个得到 anchor.total / base+k
    - 只有后邻居 (开头的孤儿): 0 / k
    - 只有前邻居 (末尾的孤儿): 作品已完结时同两侧规则，否则整块丢弃
    - 整个 Run 都没有索引: 视为开头的孤儿块
    """
    chronological = items if ascending else list(reversed(items))
    dropped = set()

    for before, block, after in _blocks(chronological):
        if before is not None and after is not None:
            before_total = before.token.last_total
            if before_total <= after.total:
                _assign_from_anchor(block, before, before_total, outward_reversed=False)
            else:
                _assign_from_anchor(block, after, after.total, outward_reversed=True)
        elif after is not None or before is None:
            for k, item in enumerate(block, start=1):
                item.total = 0
                item.partial = k
        elif finished:
            _assign_from_anchor(block, before, before.token.last_total, outward_reversed=False)
        else:
            logger.debug(f"作品未完结，丢弃 {len(block)} 个末尾孤儿条目: {[i.title for i in block]}")
            dropped.update(id(item) for item in block)

    return [item for item in items if id(item) not in dropped]
