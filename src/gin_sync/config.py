"""Configuration management for GIN Sync."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variables that override values from the config file
ENV_INDEX_URL = "GIN_SYNC_INDEX_URL"
ENV_KEY = "GIN_SYNC_KEY"


class SearchConfig(BaseModel):
    """Configuration for the external search (indexing) service."""

    index_url: str = Field(
        default="", description="Indexing endpoint URL (empty disables indexing)"
    )
    key: str = Field(
        default="",
        description="Pre-shared AES key (16, 24 or 32 bytes once UTF-8 encoded)",
    )
    timeout: float = Field(default=10.0, description="Request timeout in seconds")
    max_workers: int = Field(
        default=8, description="Number of threads sending index requests"
    )
    # None keeps submissions unbounded and start_indexing non-blocking
    max_outstanding: Optional[int] = Field(
        default=None,
        description=(
            "Maximum number of in-flight dispatches before submission blocks; "
            "meant for bulk rebuild drivers, leave unset for per-push indexing"
        ),
    )

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_workers must be at least 1")
        return v

    @field_validator("max_outstanding")
    @classmethod
    def validate_max_outstanding(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("max_outstanding must be at least 1 when set")
        return v

    @property
    def enabled(self) -> bool:
        return bool(self.index_url)

    @property
    def key_bytes(self) -> bytes:
        return self.key.encode("utf-8")


class AnnexConfig(BaseModel):
    """Configuration for git-annex sidecar management."""

    min_file_size_mb: int = Field(
        default=10,
        description="Files smaller than this (in megabytes) are stored in git, not the annex",
    )
    command_timeout: int = Field(
        default=3600, description="Timeout for a single git-annex command in seconds"
    )
    file_mode: int = Field(
        default=0o660, description="Mode applied to files when uninit fails"
    )
    dir_mode: int = Field(
        default=0o770, description="Mode applied to directories when uninit fails"
    )

    @field_validator("min_file_size_mb")
    @classmethod
    def validate_min_file_size(cls, v: int) -> int:
        if v < 0:
            raise ValueError("min_file_size_mb must not be negative")
        return v


class Config(BaseModel):
    """Main configuration for GIN Sync."""

    search: SearchConfig = Field(default_factory=SearchConfig)
    annex: AnnexConfig = Field(default_factory=AnnexConfig)
    repository_registry: Optional[Path] = Field(
        default=None,
        description="JSON file listing all repositories (used by rebuild-index)",
    )


class ConfigManager:
    """Manages configuration loading, saving, and environment overrides."""

    DEFAULT_CONFIG_PATH = Path(".gin-sync/config.json")

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """Load configuration from file (or defaults) and apply env overrides."""
        data: dict = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigurationError(
                    f"Failed to load config from {self.config_path}", str(e)
                )
            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"Invalid config in {self.config_path}", "expected a JSON object"
                )
        else:
            logger.debug(f"No config file at {self.config_path}, using defaults")

        search = data.setdefault("search", {})
        if not isinstance(search, dict):
            raise ConfigurationError(
                f"Invalid config in {self.config_path}", "'search' must be an object"
            )
        if os.environ.get(ENV_INDEX_URL) is not None:
            search["index_url"] = os.environ[ENV_INDEX_URL]
        if os.environ.get(ENV_KEY) is not None:
            search["key"] = os.environ[ENV_KEY]

        try:
            self._config = Config(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid config in {self.config_path}", str(e))

        return self._config

    def save(self, config: Optional[Config] = None) -> None:
        """Save configuration to file."""
        if config is None:
            config = self._config

        if config is None:
            raise ConfigurationError("No configuration to save")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "w") as f:
            json.dump(config.model_dump(mode="json"), f, indent=2)

        # The file holds the shared search key
        self.config_path.chmod(0o600)

    def get_config(self) -> Config:
        if self._config is None:
            return self.load()
        return self._config
