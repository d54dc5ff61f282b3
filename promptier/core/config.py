"""Application configuration using Pydantic v2 Settings.

Centralized configuration that loads from environment variables
and provides type-safe access throughout the application.
"""

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults and can be overridden via
    environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR.",
    )
    log_dir: Path = Field(
        default=Path("./logs"),
        description="Directory for promptier.log and error.log.",
    )
    log_to_file: bool = Field(
        default=False,
        description="Whether setup_logging attaches file handlers.",
    )

    # Handle cache
    cache_enabled: bool = Field(
        default=True,
        description="Disable to make the handle cache a passthrough.",
    )
    cache_max_size: int = Field(
        default=100,
        ge=1,
        description="Maximum number of cached file contents / listings.",
    )
    cache_default_ttl_seconds: float = Field(
        default=300.0,
        ge=0,
        description="Default time-to-live for cached reads.",
    )
    cache_sweep_interval_seconds: float = Field(
        default=600.0,
        gt=0,
        description="Interval of the background sweep removing expired entries.",
    )

    # Parse cache
    parse_cache_max_size: int = Field(
        default=100,
        ge=1,
        description="Maximum number of memoized template parse results.",
    )
    parse_cache_ttl_seconds: float = Field(
        default=300.0,
        ge=0,
        description="Time-to-live for memoized parse results.",
    )

    # Resolver
    resolver_max_concurrent: int = Field(
        default=4,
        description="Concurrency cap for file reads during resolution.",
    )
    max_file_size: int = Field(
        default=800 * 1024,
        gt=0,
        description="Largest file (bytes) that may be inlined into a template.",
    )
    file_encoding: str = Field(
        default="utf-8",
        description="Encoding used to decode file contents.",
    )
    wrap_file_contents: bool = Field(
        default=False,
        description="Wrap resolved file contents in <filename> tags.",
    )
    directory_listing_max_depth: int = Field(
        default=2,
        ge=0,
        description="Recursion depth for directory listings.",
    )

    # Strategy Selection
    registry_store_type: str = Field(
        default="memory",
        description="Handle registry metadata store: 'memory' or 'sql'.",
    )
    registry_database_url: str = Field(
        default="sqlite+aiosqlite:///./promptier.db",
        description="Async SQLAlchemy URL for the 'sql' registry store.",
    )
    clipboard_type: str = Field(
        default="system",
        description="Clipboard sink: 'system' or 'memory'.",
    )
    handle_provider_type: str = Field(
        default="null",
        description="Handle re-acquisition strategy: 'null' or 'path'.",
    )
    notifier_type: str = Field(
        default="logging",
        description="Notification sink: 'logging' or 'recording'.",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        return v.upper()

    @field_validator("resolver_max_concurrent")
    @classmethod
    def bound_concurrency(cls, v: int) -> int:
        """Keep the read concurrency within platform handle limits."""
        if not 1 <= v <= 16:
            raise ValueError("resolver_max_concurrent must be between 1 and 16")
        return v

    def configure_logging(self) -> None:
        """Configure global logging based on settings."""
        import structlog

        level = getattr(logging, self.log_level, logging.INFO)

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        logging.basicConfig(
            format="%(message)s",
            level=level,
        )

        logger.setLevel(level)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global Settings instance.

    Returns:
        The singleton Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.configure_logging()
    return _settings
