"""章节区间展开: "C4-7" -> 4, 5, 6, 7 四个同标题条目"""

from typing import List

from .models import Indexed, TocItem


def expand_ranges(items: List[TocItem], ascending: bool = True) -> List[TocItem]:
    """
    把区间条目展开为连续的单章条目，其余条目原样保留。

    展开后的兄弟条目按 Run 的方向排列，保证输出单调。
    """
    expanded: List[TocItem] = []
    for item in items:
        token = item.token
        if not isinstance(token, Indexed) or token.range_end is None:
            expanded.append(item)
            continue
        totals = range(token.total, token.range_end + 1)
        if not ascending:
            totals = reversed(totals)
        for total in totals:
            expanded.append(TocItem(
                entry=item.entry,
                token=Indexed(
                    total=total,
                    title=token.title,
                    volume=token.volume,
                    volume_title=token.volume_title,
                ),
            ))
    return expanded
