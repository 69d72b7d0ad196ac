"""
组装最终输出

任何一个 Run 带有卷号时输出 Part 列表 (按 Run 关闭顺序)，否则输出扁平的 Episode 列表。
输出始终同构，不会混合 Part 与 Episode。
"""

import logging
from typing import List, Optional

from .models import Episode, Part, TocContent, TocItem, check_indices, combi_index
from .segmenter import Run
from .title_parser import clean_display_title

logger = logging.getLogger(__name__)


# 卷标题之后必须紧跟这些字符之一才视为前缀
PART_TITLE_SEPARATORS = " \t:-–,."


def render_title(title: str, part_title: Optional[str] = None) -> str:
    """清理显示标题；以 "{卷标题} " 或 "{卷标题}:" 等开头的条目去掉卷标题"""
    if part_title and title.startswith(part_title):
        rest = title[len(part_title):]
        if not rest or rest[0] in PART_TITLE_SEPARATORS:
            title = rest
    return clean_display_title(title)


def build_episode(item: TocItem, part_title: Optional[str] = None) -> Episode:
    check_indices(item.total, item.partial)
    return Episode(
        title=render_title(item.title, part_title),
        total_index=item.total,
        partial_index=item.partial,
        combi_index=combi_index(item.total, item.partial),
        locked=item.entry.locked,
        url=item.entry.url,
        release_date=item.entry.release_date,
    )


def build_part(run: Run, items: List[TocItem]) -> Part:
    check_indices(run.volume, None)
    title = clean_display_title(run.title)
    return Part(
        title=title,
        total_index=run.volume,
        combi_index=combi_index(run.volume),
        episodes=[build_episode(item, title) for item in items],
    )


def assemble(runs: List[Run], run_items: List[List[TocItem]]) -> List[TocContent]:
    """
    Args:
        runs: 分段器关闭的 Run 列表
        run_items: 与 runs 一一对应、已完成孤儿合成和区间展开的条目
    """
    if any(run.volume is not None for run in runs):
        parts = [build_part(run, items) for run, items in zip(runs, run_items)]
        logger.debug(f"组装完成: {len(parts)} 卷，{sum(len(p.episodes) for p in parts)} 个章节")
        return parts

    episodes = [build_episode(item) for items in run_items for item in items]
    logger.debug(f"组装完成: {len(episodes)} 个章节 (无卷)")
    return episodes
