"""
目录标题解析模块

把一条抓取到的目录标题拆解为结构化结果:
章节索引、可选的分段索引、可选的区间、可选的卷号/卷标题，以及剩余的显示标题。
无法识别索引的标题作为孤儿条目返回，无效条目 (DELETED/SPAM、倒置区间) 返回 None。

所有正则都是无状态的预编译对象，每次调用独立匹配，不共享游标。
"""

import re
import logging
from typing import Callable, Iterable, Optional, Tuple, Union

from .models import Indexed, Orphan, ParsedToken

logger = logging.getLogger(__name__)


# ============================================================================
# 常量: 关键词与分隔符
# ============================================================================

DEFAULT_INVALID_MARKERS = ("DELETED", "DELETE", "SPAM")

# 长关键词在前，避免 "c" 抢先匹配 "chapter"
CHAPTER_KEYWORD = r"(?:chapter|chap\.?|ch\.?|c|episode|ep)"
VOLUME_KEYWORD = r"(?:volume|vol\.?|v|book|season)"

# 关键词只能出现在开头或分隔符之后
_KEYWORD_BOUNDARY = r"(?<![^\s:\-–,.])"

# 显示标题首尾需要去掉的字符
TRIM_RE = re.compile(r"^[\s:–,.\-]+|[\s:–,.\-]+$")

# 紧凑区间: C4-7 / 4–7 (不允许空格，避免 "Chapter 5 - 3 Kingdoms" 被误判)
RANGE_RE = re.compile(
    rf"^(?:{CHAPTER_KEYWORD}[\s.]*)?(?P<start>\d+)[-–](?P<end>\d+)(?![\w.])",
    re.IGNORECASE,
)

# 组合短格式: V54C3P3 / v 2 c 10 p 1 / V1C5
SHORT_FORM_RE = re.compile(
    r"^v\s*(?P<volume>\d+)\s*c\s*(?P<total>\d+)(?:\s*p(?:art|t)?\.?\s*(?P<partial>\d+))?(?!\w)",
    re.IGNORECASE,
)

# 关键词 + 整数 (或开头的裸整数)，可带小数形式的分段索引
CHAPTER_RE = re.compile(
    rf"^(?:{CHAPTER_KEYWORD}[\s.]*)?(?P<total>\d+)(?:\.(?P<partial>\d+))?(?!\w)",
    re.IGNORECASE,
)

# 卷标题之后出现的章节关键词 (此处关键词必填)
EMBEDDED_CHAPTER_RE = re.compile(
    rf"{_KEYWORD_BOUNDARY}{CHAPTER_KEYWORD}[\s.]*\d",
    re.IGNORECASE,
)

# 末尾的 "Part 2" / "Pt. 2" / "(Part 2)"
PART_SUFFIX_RE = re.compile(
    r"(?:^|(?<=[\s:\-–,.(\[]))[(\[]?(?:part|pt)\.?\s*(?P<part>\d+)\s*[)\]]?\s*$",
    re.IGNORECASE,
)

# 末尾的 "[1/2]" / "(1/2)" / "1/2"
FRACTION_SUFFIX_RE = re.compile(
    r"(?:^|(?<=[\s:\-–,.]))[(\[]?\s*(?P<part>\d+)\s*[/|]\s*(?P<count>\d+)\s*[)\]]?\s*$",
)


class _Dropped:
    """哨兵: 条目无效，应被静默丢弃"""

    def __repr__(self):
        return "DROPPED"


DROPPED = _Dropped()

_MatchResult = Union[Indexed, _Dropped, None]


# ============================================================================
# 辅助函数
# ============================================================================

def clean_display_title(text: Optional[str]) -> str:
    """去掉首尾空白以及 `: - – , .`，空结果返回 ''"""
    if not text:
        return ""
    return TRIM_RE.sub("", text)


def strip_series_prefix(title: str, series_title: Optional[str]) -> str:
    """
    如果标题以 "{作品名}:" 或 "{作品名} " 开头，去掉该前缀及紧随的分隔符。

    Examples:
        strip_series_prefix("I am a cool Book: Chapter 1", "I am a cool Book") -> "Chapter 1"
    """
    if not series_title or not title:
        return title
    series_title = series_title.strip()
    if not series_title:
        return title
    head = title[:len(series_title)]
    tail = title[len(series_title):]
    if head.lower() != series_title.lower() or not tail or tail[0] not in ": \t":
        return title
    return TRIM_RE.sub("", tail)


def _build_marker_pattern(markers: Iterable[str]) -> str:
    markers = sorted({m.strip() for m in markers if m and m.strip()}, key=len, reverse=True)
    if not markers:
        # 永不匹配
        return r"(?!x)x"
    return "(?:" + "|".join(re.escape(m) for m in markers) + r")\b"


# ============================================================================
# 解析器
# ============================================================================

class TitleParser:
    """
    按固定优先级依次尝试各个匹配器，第一个命中的结果生效:

    1. 无效标记 (开头或章节关键词之后的 DELETED/SPAM) -> 丢弃
    2. 区间 "C4-7"              -> Indexed(total=4, range_end=7)，倒置区间丢弃
    3. 组合短格式 "V1C2P3"       -> Indexed(volume=1, total=2, partial=3)
    4. 关键词 + 整数             -> Indexed(total=n)
    然后在剩余文本上处理分段后缀和内嵌卷号。卷前缀 (Volume/Vol./V/Book/Season)
    在章节匹配之前剥离，剩余部分从第 4 步重新解析。
    """

    def __init__(self, invalid_markers: Iterable[str] = DEFAULT_INVALID_MARKERS):
        markers = _build_marker_pattern(invalid_markers)
        self._chapter_sentinel_re = re.compile(
            rf"^(?:{CHAPTER_KEYWORD})?[\s.]*\W*{markers}", re.IGNORECASE
        )
        self._embedded_sentinel_re = re.compile(
            rf"{_KEYWORD_BOUNDARY}{CHAPTER_KEYWORD}[\s.]*\W*{markers}", re.IGNORECASE
        )
        self._volume_re = re.compile(
            rf"^{VOLUME_KEYWORD}[\s.]*"
            rf"(?:(?P<volume>\d+)(?:\.\d+)?(?!\w)|\W*(?P<invalid>{markers}))",
            re.IGNORECASE,
        )
        self._chapter_matchers: Tuple[Callable[[str], _MatchResult], ...] = (
            self._match_sentinel,
            self._match_range,
            self._match_short_form,
            self._match_keyword_index,
        )

    # ---- 对外接口 ----

    def parse(self, title: str) -> Optional[ParsedToken]:
        """
        解析一条 (已去掉作品名前缀的) 标题。

        返回 Indexed / Orphan，条目无效时返回 None。
        """
        text = clean_display_title(title)

        volume_match = self._volume_re.match(text)
        if volume_match:
            if volume_match.group("invalid"):
                logger.debug(f"卷号位置为无效标记，丢弃条目: '{title}'")
                return None
            volume = int(volume_match.group("volume"))
            return self._parse_after_volume(title, volume, clean_display_title(text[volume_match.end():]))

        result = self._match_chapter(text)
        if result is DROPPED:
            logger.debug(f"丢弃无效条目: '{title}'")
            return None
        if result is None:
            return Orphan(title=text)
        return result

    # ---- 卷前缀 ----

    def _parse_after_volume(self, title: str, volume: int, rest: str) -> Optional[ParsedToken]:
        if not rest:
            return Orphan(title="", volume=volume)

        volume_title = None
        result = self._match_chapter(rest)
        if result is None:
            # 卷标题位于卷号和章节关键词之间: "Vol. 1: 卷标题 - Chapter 1 - 标题"
            if self._embedded_sentinel_re.search(rest):
                logger.debug(f"丢弃无效条目: '{title}'")
                return None
            embedded = EMBEDDED_CHAPTER_RE.search(rest)
            if embedded:
                volume_title = clean_display_title(rest[:embedded.start()]) or None
                result = self._match_chapter(rest[embedded.start():])

        if result is DROPPED:
            logger.debug(f"丢弃无效条目: '{title}'")
            return None
        if result is None:
            return Orphan(title=rest, volume=volume)

        # 外层卷前缀优先于剩余文本中再次出现的卷号
        if result.volume is not None and result.volume != volume:
            logger.debug(f"标题中出现两个不同的卷号 {volume} / {result.volume}，使用前者: '{title}'")
        result.volume = volume
        result.volume_title = volume_title
        return result

    # ---- 章节匹配器 ----

    def _match_chapter(self, text: str) -> _MatchResult:
        for matcher in self._chapter_matchers:
            result = matcher(text)
            if result is not None:
                return result
        return None

    def _match_sentinel(self, text: str) -> _MatchResult:
        if self._chapter_sentinel_re.match(text):
            return DROPPED
        return None

    def _match_range(self, text: str) -> _MatchResult:
        m = RANGE_RE.match(text)
        if not m:
            return None
        start, end = int(m.group("start")), int(m.group("end"))
        if end < start:
            logger.debug(f"章节区间倒置 {start}-{end}，丢弃条目: '{text}'")
            return DROPPED
        token = Indexed(total=start, range_end=end if end > start else None)
        return self._finish_residual(token, text[m.end():])

    def _match_short_form(self, text: str) -> _MatchResult:
        m = SHORT_FORM_RE.match(text)
        if not m:
            return None
        token = Indexed(
            total=int(m.group("total")),
            partial=int(m.group("partial")) if m.group("partial") else None,
            volume=int(m.group("volume")),
        )
        return self._finish_residual(token, text[m.end():])

    def _match_keyword_index(self, text: str) -> _MatchResult:
        m = CHAPTER_RE.match(text)
        if not m:
            return None
        token = Indexed(
            total=int(m.group("total")),
            partial=int(m.group("partial")) if m.group("partial") is not None else None,
        )
        return self._finish_residual(token, text[m.end():])

    # ---- 剩余文本 ----

    def _finish_residual(self, token: Indexed, residual: str) -> _MatchResult:
        """处理章节号之后的文本: 内嵌卷号、分段后缀、显示标题"""
        residual = clean_display_title(residual)

        if token.volume is None:
            embedded = self._match_embedded_volume(residual)
            if embedded is DROPPED:
                return DROPPED
            if embedded is not None:
                token.volume, residual = embedded

        residual = self._apply_partial_suffix(token, residual)
        token.title = clean_display_title(residual)
        return token

    def _match_embedded_volume(self, residual: str):
        """
        章节号后直接跟随的卷号: "Chapter 586 - V54C3P3 – 标题"。
        短格式里的章节/分段号是相对编号，丢弃。
        """
        m = SHORT_FORM_RE.match(residual)
        if m:
            return int(m.group("volume")), residual[m.end():]
        m = self._volume_re.match(residual)
        if m:
            if m.group("invalid"):
                return DROPPED
            return int(m.group("volume")), residual[m.end():]
        return None

    def _apply_partial_suffix(self, token: Indexed, residual: str) -> str:
        partial = None
        part_count = None
        m = PART_SUFFIX_RE.search(residual)
        if m:
            partial = int(m.group("part"))
        else:
            m = FRACTION_SUFFIX_RE.search(residual)
            if m:
                part, count = int(m.group("part")), int(m.group("count"))
                if 1 <= part <= count:
                    partial = part
                    part_count = count
                else:
                    m = None

        if m is None:
            return residual

        if token.partial is None:
            token.partial = partial
            token.part_count = part_count
        elif token.partial == partial:
            token.part_count = part_count
        else:
            logger.warning(
                f"章节 {token.total} 已有分段索引 {token.partial}，忽略后缀中的分段 {partial}"
            )
        return residual[:m.start()]


_default_parser = TitleParser()


def parse_title(title: str, parser: Optional[TitleParser] = None) -> Optional[ParsedToken]:
    """使用默认 (或指定的) 解析器解析一条标题"""
    return (parser or _default_parser).parse(title)
