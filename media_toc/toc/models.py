"""
目录 (TOC) 数据模型

- 边界模型 (RawEntry / SeriesMeta / Episode / Part) 使用 Pydantic，
  与存储层交换数据时按 camelCase 别名序列化。
- 解析过程中的临时结构 (Indexed / Orphan) 使用 dataclass，只在单次调用内存活。
"""

from dataclasses import dataclass
from datetime import datetime
from enum import IntFlag
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import TocIndexError


class MediumType(IntFlag):
    TEXT = 1
    AUDIO = 2
    VIDEO = 4
    IMAGE = 8


def combi_index(total_index: int, partial_index: Optional[int] = None) -> float:
    """
    十进制拼接 total 与 partial，得到用于排序和去重的 combiIndex。

    注意不是按位数缩放: 2 + 301 => 2.301, 2 + 5 => 2.5
    """
    return float(f"{total_index}.{partial_index or 0}")


def check_indices(total_index: Optional[int], partial_index: Optional[int]) -> None:
    """校验索引: totalIndex 为非负整数，partialIndex 为空或非负整数"""
    if total_index is None or not isinstance(total_index, int) or total_index < 0:
        raise TocIndexError(f"无效的目录内容，totalIndex 非法: '{total_index}'")
    if partial_index is not None and (not isinstance(partial_index, int) or partial_index < 0):
        raise TocIndexError(f"无效的目录内容，partialIndex 非法: '{partial_index}' (total={total_index})")


# ============================================================================
# 输入边界
# ============================================================================

class _TocModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RawEntry(_TocModel):
    """适配器抓取到的一行目录条目"""
    title: str
    url: str = ""
    release_date: Optional[datetime] = Field(default=None, alias="releaseDate")
    locked: bool = False


class SeriesMeta(_TocModel):
    """作品元信息，最多一个且必须位于流的最前面"""
    title: str
    medium_type: MediumType = Field(alias="mediumType")
    # 只有 True 才表示已完结，None/False 均视为连载中
    finished: Optional[bool] = Field(default=None, alias="end")
    link: str = ""
    synonyms: List[str] = Field(default_factory=list)

    @property
    def is_finished(self) -> bool:
        return self.finished is True


TocPiece = Union[SeriesMeta, RawEntry]


# ============================================================================
# 输出边界
# ============================================================================

class Episode(_TocModel):
    title: str = ""
    total_index: int = Field(alias="totalIndex")
    partial_index: Optional[int] = Field(default=None, alias="partialIndex")
    combi_index: float = Field(alias="combiIndex")
    locked: bool = False
    url: str = ""
    release_date: Optional[datetime] = Field(default=None, alias="releaseDate")


class Part(_TocModel):
    title: str = ""
    total_index: int = Field(alias="totalIndex")
    partial_index: Optional[int] = Field(default=None, alias="partialIndex")
    combi_index: float = Field(alias="combiIndex")
    episodes: List[Episode] = Field(default_factory=list)


TocContent = Union[Episode, Part]


# ============================================================================
# 解析中间结果
# ============================================================================

@dataclass
class Indexed:
    """带有章节索引的解析结果"""
    total: int
    title: str = ""
    partial: Optional[int] = None
    range_end: Optional[int] = None
    volume: Optional[int] = None
    volume_title: Optional[str] = None
    # "[2/3]" 形式给出的分段总数
    part_count: Optional[int] = None

    @property
    def last_total(self) -> int:
        """区间条目在故事顺序上的最后一个索引"""
        return self.range_end if self.range_end is not None else self.total


@dataclass
class Orphan:
    """无法识别章节索引的条目 (番外、间章等)，可能仍带有卷信息"""
    title: str = ""
    volume: Optional[int] = None
    volume_title: Optional[str] = None


ParsedToken = Union[Indexed, Orphan]


@dataclass
class TocItem:
    """
    流水线内部流转的条目: 原始行 + 解析结果。

    孤儿条目在合成阶段被赋予 total/partial 后才可输出。
    """
    entry: RawEntry
    token: ParsedToken
    total: Optional[int] = None
    partial: Optional[int] = None

    def __post_init__(self):
        if isinstance(self.token, Indexed):
            self.total = self.token.total
            self.partial = self.token.partial

    @property
    def is_indexed(self) -> bool:
        return isinstance(self.token, Indexed)

    @property
    def title(self) -> str:
        return self.token.title
