"""
media_toc - 连载作品目录 (TOC) 规范化

使用方式:
    from media_toc import scrape_toc, normalize_toc
"""

from .toc import normalize_toc, scrape_toc

__version__ = "0.1.0"

__all__ = ['normalize_toc', 'scrape_toc', '__version__']
