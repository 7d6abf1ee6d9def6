"""
Configuration management for the web crawler system.
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field

from ..crawler.url_filter import (
    DEFAULT_ALLOWED_EXTENSIONS,
    DEFAULT_BLOCKED_DOMAINS,
    DEFAULT_MAX_URL_LENGTH,
)


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior. Durations are in seconds."""
    seed_urls: List[str] = field(default_factory=list)
    max_pages: int = 1000
    max_depth: int = 5
    politeness_delay: float = 1.0
    request_timeout: float = 5.0
    user_agent: str = "WebCrawler/1.0"
    respect_robots_txt: bool = True
    workers: int = 1
    drain_interval: float = 0.1
    stats_interval: float = 30.0
    max_url_length: int = DEFAULT_MAX_URL_LENGTH
    blocked_domains: List[str] = field(default_factory=lambda: list(DEFAULT_BLOCKED_DOMAINS))
    allowed_domains: List[str] = field(default_factory=list)
    allowed_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_EXTENSIONS))


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    file: str = "logs/crawler.log"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
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

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Config':
        """Build a Config from parsed YAML. Missing sections use defaults."""
        data = data or {}
        sections = {
            'crawler': CrawlerConfig,
            'logging': LoggingConfig,
            'monitoring': MonitoringConfig,
        }

        unknown = set(data) - set(sections)
        if unknown:
            raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

        kwargs = {}
        for name, section_cls in sections.items():
            try:
                kwargs[name] = section_cls(**(data.get(name) or {}))
            except TypeError as e:
                raise ValueError(f"Invalid '{name}' configuration: {e}") from e
        return cls(**kwargs)


def validate_config(config: Config):
    """Validate configuration values."""
    crawler = config.crawler

    if crawler.max_pages < 1:
        raise ValueError("max_pages must be at least 1")

    if crawler.max_depth < 0:
        raise ValueError("max_depth must be non-negative")

    if crawler.politeness_delay < 0:
        raise ValueError("politeness_delay must be non-negative")

    if crawler.request_timeout <= 0:
        raise ValueError("request_timeout must be positive")

    if crawler.workers < 1:
        raise ValueError("workers must be at least 1")

    if crawler.drain_interval <= 0:
        raise ValueError("drain_interval must be positive")

    if not isinstance(logging.getLevelName(config.logging.level.upper()), int):
        raise ValueError(f"Unknown log level: {config.logging.level}")


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r') as file:
            config_data = yaml.safe_load(file)

        config = Config.from_dict(config_data)
        validate_config(config)
        self._config = config

        logging.getLogger(__name__).debug("Configuration validation passed")
        return self._config

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


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
