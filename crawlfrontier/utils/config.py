"""
Configuration management for the crawl frontier.
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field, fields


CRAWL_STRATEGIES = ('breadth_first', 'depth_first')


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    seed_urls: List[str] = field(default_factory=list)
    filter_offsite_requests: bool = False
    filter_duplicate_requests: bool = True
    crawl_strategy: str = 'breadth_first'
    max_crawl_depth: int = 0  # 0 means unlimited
    max_concurrent_requests: int = 4
    request_timeout: int = 30
    user_agent: str = 'CrawlFrontier/1.0'


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = 'INFO'
    file: str = 'logs/crawler.log'
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    prometheus_port: int = 8000
    metrics_enabled: bool = False


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


def _build_section(section_cls, data: Optional[Dict[str, Any]], name: str):
    """Create a config section, rejecting keys the section does not know."""
    if data is None:
        return section_cls()
    if not isinstance(data, dict):
        raise ValueError(f"Section '{name}' must be a mapping")

    known = {f.name for f in fields(section_cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown keys in section '{name}': {sorted(unknown)}")

    return section_cls(**data)


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r', encoding='utf-8') as file:
            config_data = yaml.safe_load(file) or {}

        if not isinstance(config_data, dict):
            raise ValueError("Configuration root must be a mapping")

        self._config = Config(
            crawler=_build_section(CrawlerConfig, config_data.get('crawler'), 'crawler'),
            logging=_build_section(LoggingConfig, config_data.get('logging'), 'logging'),
            monitoring=_build_section(MonitoringConfig, config_data.get('monitoring'), 'monitoring')
        )

        validate_crawler_config(self._config.crawler)
        logging.getLogger(__name__).info("Configuration validation passed")
        return self._config

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


def validate_crawler_config(crawler: CrawlerConfig):
    """Validate crawler configuration values."""
    if not isinstance(crawler.seed_urls, list):
        raise ValueError("seed_urls must be a list")

    if crawler.crawl_strategy not in CRAWL_STRATEGIES:
        raise ValueError(f"crawl_strategy must be one of: {', '.join(CRAWL_STRATEGIES)}")

    if crawler.max_crawl_depth < 0:
        raise ValueError("max_crawl_depth must be non-negative")

    if crawler.max_concurrent_requests < 1:
        raise ValueError("max_concurrent_requests must be at least 1")

    if crawler.request_timeout <= 0:
        raise ValueError("request_timeout must be positive")


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config_manager.config


def load_config(config_path: str = "config.yaml") -> Config:
    """Load configuration from file."""
    global config_manager
    config_manager = ConfigManager(config_path)
    return config_manager.load_config()
