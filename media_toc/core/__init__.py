"""
核心模块 - 纯静态配置

使用方式:
    from media_toc.core import settings
    from media_toc.core.config import settings, TocConfig
"""

from .config import settings, Settings, LogConfig, TocConfig, get_config_dir

__all__ = [
    'settings',
    'Settings',
    'LogConfig',
    'TocConfig',
    'get_config_dir',
]
