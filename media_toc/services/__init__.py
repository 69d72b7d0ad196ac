from .log_manager import get_logs, setup_logging
from .toc_service import TocResult, TocService

__all__ = ['get_logs', 'setup_logging', 'TocResult', 'TocService']
