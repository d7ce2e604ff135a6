"""
Utility modules for the crawler.
"""

from .config import Config, CrawlerConfig, ConfigManager, load_config, get_config

__all__ = ['Config', 'CrawlerConfig', 'ConfigManager', 'load_config', 'get_config']
