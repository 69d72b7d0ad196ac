"""
目录 (TOC) 规范化

使用方式:
    from media_toc.toc import scrape_toc, normalize_toc, RawEntry, SeriesMeta
"""

from .engine import TocNormalizer, normalize_toc, scrape_toc
from .errors import TocContractError, TocError, TocIndexError
from .models import (
    Episode,
    MediumType,
    Part,
    RawEntry,
    SeriesMeta,
    TocContent,
    TocPiece,
    combi_index,
)
from .title_parser import TitleParser, clean_display_title, parse_title, strip_series_prefix

__all__ = [
    'TocNormalizer',
    'normalize_toc',
    'scrape_toc',
    'TocError',
    'TocContractError',
    'TocIndexError',
    'Episode',
    'MediumType',
    'Part',
    'RawEntry',
    'SeriesMeta',
    'TocContent',
    'TocPiece',
    'combi_index',
    'TitleParser',
    'clean_display_title',
    'parse_title',
    'strip_series_prefix',
]
