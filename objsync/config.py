"""
Configuration for objsync.

Settings are loaded from environment variables (prefix ``OBJSYNC_``) with
pydantic-settings, or passed explicitly.

Invariants:
    - All settings have sensible defaults for local development
    - Secrets (client key) are never logged

How to change safely:
    - Add new settings with defaults that keep existing deployments working
    - Retry defaults are part of the wire contract with the server's rate
      limiting; change them together with the server team
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from pathlib import Path

import json_log_formatter
from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 4
DEFAULT_INITIAL_RETRY_DELAY = 1.0
DEFAULT_BATCH_MAX_SIZE = 50


class Settings(BaseSettings):
    """Client configuration loaded from environment."""

    # Server connection
    server_url: str = Field(default="http://localhost:1337/parse/", description="Server base URL")
    application_id: str = Field(default="", description="Application id header value")
    client_key: str | None = Field(default=None, description="Client key header value")
    installation_id: str | None = Field(default=None, description="Installation id header value")
    request_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")

    # Retry and batching
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, description="Retries after the first send")
    initial_retry_delay: float = Field(
        default=DEFAULT_INITIAL_RETRY_DELAY, description="Base retry delay in seconds"
    )
    batch_max_size: int = Field(default=DEFAULT_BATCH_MAX_SIZE, description="Commands per batch")
    network_workers: int = Field(default=4, description="Threads running HTTP requests")

    # Local persistence
    data_dir: str = Field(default="./objsync-data", description="Directory for local state")

    # Observability
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="text", description="Log format: text or json")

    model_config = {"env_prefix": "OBJSYNC_"}

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    @property
    def database_path(self) -> Path:
        """SQLite file of the primary current-object store."""
        return self.data_path / "objsync.db"

    def validate_settings(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.server_url:
            raise ValueError("OBJSYNC_SERVER_URL is required")
        if self.max_retries < 0:
            raise ValueError("OBJSYNC_MAX_RETRIES must be >= 0")
        if self.initial_retry_delay < 0:
            raise ValueError("OBJSYNC_INITIAL_RETRY_DELAY must be >= 0")
        if self.batch_max_size < 1:
            raise ValueError("OBJSYNC_BATCH_MAX_SIZE must be >= 1")
        if self.network_workers < 1:
            raise ValueError("OBJSYNC_NETWORK_WORKERS must be >= 1")
        if self.log_format not in ("text", "json"):
            raise ValueError("OBJSYNC_LOG_FORMAT must be 'text' or 'json'")

        if not self.data_path.exists():
            logger.warning(
                f"Data directory does not exist: {self.data_dir}. "
                "It will be created on first write."
            )

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Client configuration loaded",
            extra={
                "server_url": self.server_url,
                "application_id": self.application_id,
                "client_key": "***" if self.client_key else None,
                "max_retries": self.max_retries,
                "initial_retry_delay": self.initial_retry_delay,
                "batch_max_size": self.batch_max_size,
                "network_workers": self.network_workers,
                "data_dir": self.data_dir,
                "log_level": self.log_level,
            },
        )


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget for one command.

    Attributes:
        max_retries: Retries allowed after the first send
        initial_delay: Base delay before the first retry, in seconds
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    initial_delay: float = DEFAULT_INITIAL_RETRY_DELAY

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_retries=settings.max_retries,
            initial_delay=settings.initial_retry_delay,
        )

    def first_delay(self, rng: random.Random | None = None) -> float:
        """Jittered first delay in ``[initial_delay, 2 * initial_delay)``."""
        value = (rng or random).random()
        return self.initial_delay + self.initial_delay * value


def setup_logging(settings: Settings) -> None:
    """Configure logging based on configuration.

    Args:
        settings: Client settings
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
