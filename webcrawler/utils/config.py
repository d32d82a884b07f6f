"""
Configuration management for the web crawler system.
"""

import yaml
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional


OUTPUT_FORMATS = ('json', 'json-formatted', 'raw')


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    seed_url: Optional[str] = None
    workers: int = 3
    retries: int = 1
    backoff: float = 0.5
    backoff_multiplier: float = 2
    timeout: float = 10.0
    request_timeout: float = 30.0
    user_agent: str = "webcrawler/1.0"
    max_concurrent_requests: int = 0


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "WARNING"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    json: bool = False


@dataclass
class OutputConfig:
    """Configuration for the sitemap report."""
    format: str = "json"
    file: Optional[str] = None


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Config':
        """Build a configuration from parsed YAML, missing sections use defaults."""
        data = data or {}
        return cls(
            crawler=_section(CrawlerConfig, data.get('crawler')),
            logging=_section(LoggingConfig, data.get('logging')),
            output=_section(OutputConfig, data.get('output'))
        )

    def override(self, section: str, **values) -> 'Config':
        """Apply non-None values, e.g. from command line flags, to a section."""
        target = getattr(self, section)
        for key, value in values.items():
            if value is None:
                continue
            if not hasattr(target, key):
                raise ValueError(f"Unknown {section} option: {key}")
            setattr(target, key, value)
        return self


def _section(section_cls, data: Optional[Dict[str, Any]]):
    data = data or {}
    known = {f.name for f in fields(section_cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {section_cls.__name__} options: {', '.join(sorted(unknown))}")
    return section_cls(**data)


def validate_config(config: Config):
    """Validate configuration values."""
    crawler = config.crawler

    if crawler.workers < 1:
        raise ValueError("workers must be at least 1")

    if crawler.retries < 1:
        raise ValueError("retries must be at least 1")

    if crawler.backoff < 0:
        raise ValueError("backoff must be non-negative")

    if crawler.backoff_multiplier < 1:
        raise ValueError("backoff_multiplier must be at least 1")

    if crawler.timeout <= 0:
        raise ValueError("timeout must be positive")

    if crawler.request_timeout <= 0:
        raise ValueError("request_timeout must be positive")

    if crawler.max_concurrent_requests < 0:
        raise ValueError("max_concurrent_requests must be non-negative")

    if config.output.format not in OUTPUT_FORMATS:
        raise ValueError(f"Output format must be one of: {', '.join(OUTPUT_FORMATS)}")

    if not isinstance(getattr(logging, config.logging.level.upper(), None), int):
        raise ValueError(f"Unknown log level: {config.logging.level}")


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from a YAML file, or defaults when no path is given."""
        if self.config_path is None:
            self._config = Config()
        else:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r') as file:
                config_data = yaml.safe_load(file)

            self._config = Config.from_dict(config_data)

        validate_config(self._config)
        return self._config

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from file."""
    return ConfigManager(config_path).load_config()
