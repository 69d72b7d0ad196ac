from .base import BaseTocScraper, get_all_scrapers, get_scraper, track_performance

__all__ = ['BaseTocScraper', 'get_all_scrapers', 'get_scraper', 'track_performance']
