"""Configuration management utilities for the fiscal dashboard tools.

Provides:
- A Config base class with dict and JSON loading plus validation
- Loader, data source and application settings
- Environment-variable loading for the API and CLI
"""

import json
import os
from pathlib import Path
from typing import Dict, Any


class Config:
    """Base configuration class for organizing application settings."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary.

        Returns:
            Dictionary of all public config attributes
        """
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create config from dictionary.

        Keys that are not attributes of the default instance are rejected so a
        typo in a JSON file does not silently fall back to a default.

        Raises:
            ValueError: If *data* contains an unknown setting
        """
        config = cls()
        known = config.to_dict()
        for key, value in data.items():
            if key not in known:
                raise ValueError(f"Unknown {cls.__name__} setting: {key!r}")
            setattr(config, key, value)
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ValueError if a setting is out of range (no checks by default)."""

    @classmethod
    def load_json(cls, path: str | Path) -> "Config":
        """Load configuration from a JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
            ValueError: If a key is unknown or a value fails validate()
        """
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)


class LoaderConfig(Config):
    """Settings for the paginated full-table loader."""

    def __init__(self, page_size: int = 1000, page_timeout: float = 30.0,
                 max_retries: int = 1, backoff_factor: float = 0.5):
        """Initialize loader configuration.

        Args:
            page_size: Rows requested per range read
            page_timeout: Seconds a single page request may take
            max_retries: Extra attempts per page before the load fails
            backoff_factor: Base delay; retry n waits backoff_factor * 2**n
        """
        super().__init__()
        self.page_size = page_size
        self.page_timeout = page_timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.page_size, int) or self.page_size < 1:
            raise ValueError(f"page_size must be a positive integer, got {self.page_size!r}")
        if not isinstance(self.max_retries, int) or self.max_retries < 0:
            raise ValueError(f"max_retries must be an integer >= 0, got {self.max_retries!r}")
        if self.page_timeout <= 0:
            raise ValueError(f"page_timeout must be positive, got {self.page_timeout}")
        if self.backoff_factor < 0:
            raise ValueError(f"backoff_factor must be >= 0, got {self.backoff_factor}")


class SourceConfig(Config):
    """Settings for the PostgREST (Supabase) tabular data source."""

    def __init__(self):
        super().__init__()
        self.url = ""
        self.api_key = ""
        self.rest_path = "rest/v1"
        self.pool_connections = 4
        self.pool_maxsize = 8
        # The loader owns page retries; transport retries stay off by default
        self.transport_retries = 0


def _env_float(name: str, default: str) -> float:
    return float(os.getenv(name, default))


def _env_int(name: str, default: str) -> int:
    return int(os.getenv(name, default))


class AppConfig(Config):
    """Application-level configuration loaded from environment variables.

    All env vars have defaults so the API starts without configuration; it
    only needs APP_SOURCE_URL and APP_SOURCE_KEY to reach real data.

    Environment variables:
        APP_SOURCE_URL: Base URL of the Supabase/PostgREST project
        APP_SOURCE_KEY: API key sent as ``apikey`` and bearer token
        APP_PAGE_SIZE: Rows per range read (default: 1000)
        APP_PAGE_TIMEOUT: Seconds per page request (default: 30)
        APP_PAGE_RETRIES: Retries per failed page (default: 1)
        APP_RETRY_BACKOFF: Base retry delay in seconds (default: 0.5)
        APP_ENGINE_TTL: Seconds a loaded dashboard stays cached (default: 900)
        APP_PORT: API server port (default: 8000)
        APP_HOST: API server bind address (default: 127.0.0.1)
        APP_LOG_FORMAT: Logging format, "text" or "json" (default: text)
        APP_CORS_ORIGINS: Comma-separated allowed origins (default: *)
    """

    def __init__(self) -> None:
        super().__init__()
        self.source_url = os.getenv("APP_SOURCE_URL", "")
        self.source_key = os.getenv("APP_SOURCE_KEY", "")
        self.page_size = _env_int("APP_PAGE_SIZE", "1000")
        self.page_timeout = _env_float("APP_PAGE_TIMEOUT", "30")
        self.page_retries = _env_int("APP_PAGE_RETRIES", "1")
        self.retry_backoff = _env_float("APP_RETRY_BACKOFF", "0.5")
        self.engine_ttl = _env_float("APP_ENGINE_TTL", "900")
        self.api_port = _env_int("APP_PORT", "8000")
        self.api_host = os.getenv("APP_HOST", "127.0.0.1")
        self.log_format = os.getenv("APP_LOG_FORMAT", "text")
        raw_origins = os.getenv("APP_CORS_ORIGINS", "*")
        self.cors_origins: list[str] = (
            ["*"] if raw_origins == "*"
            else [o.strip() for o in raw_origins.split(",") if o.strip()]
        )

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()

    def loader_config(self) -> LoaderConfig:
        return LoaderConfig(
            page_size=self.page_size,
            page_timeout=self.page_timeout,
            max_retries=self.page_retries,
            backoff_factor=self.retry_backoff,
        )

    def source_config(self) -> SourceConfig:
        cfg = SourceConfig()
        cfg.url = self.source_url
        cfg.api_key = self.source_key
        return cfg
