"""Liteshift configuration management.

Provides layered configuration with precedence:
    1. Environment variables (LITESHIFT_*)
    2. Config file ($LITESHIFT_HOME/config.toml)
    3. Defaults defined in LiteshiftConfig
"""

import os
import tomllib
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SUFFIX = ".sqlite3"


def get_liteshift_home() -> Path:
    """Return the liteshift home directory.

    Uses LITESHIFT_HOME environment variable if set, otherwise ~/.liteshift.
    """
    return Path(os.environ.get("LITESHIFT_HOME", "~/.liteshift")).expanduser()


def get_config_path() -> Path:
    """Return the config file path."""
    return get_liteshift_home() / "config.toml"


def normalize_suffix(suffix: str) -> str:
    """Return the file suffix with a leading dot.

    An empty suffix is kept empty: some people want a database file with
    no extension at all.
    """
    if suffix and not suffix.startswith("."):
        return f".{suffix}"
    return suffix


class LiteshiftConfig(BaseSettings):
    """Database settings with layered precedence.

    Settings are loaded from (highest to lowest priority):
        1. Environment variables with LITESHIFT_ prefix
        2. Config file at $LITESHIFT_HOME/config.toml
        3. Default values defined here

    Attributes:
        name: Base name of the database file, without suffix.
        suffix: File extension appended to the name.
        memory: Use an in-memory database instead of a file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LITESHIFT_",
        extra="ignore",
    )

    name: str = "liteshift"
    suffix: str = DEFAULT_SUFFIX
    memory: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject an empty database name.

        Raises:
            ValueError: If the name is empty.
        """
        if not v:
            raise ValueError("Database name cannot be empty")
        return v

    @field_validator("suffix")
    @classmethod
    def validate_suffix(cls, v: str) -> str:
        """Prefix the suffix with a dot unless it is empty."""
        return normalize_suffix(v)

    @property
    def database_path(self) -> str:
        """Return the database file path, or ':memory:'."""
        if self.memory:
            return ":memory:"
        return f"{self.name}{self.suffix}"

    def save(self) -> None:
        """Persist current config to file.

        Creates the config directory if it doesn't exist.
        """
        path = get_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(tomli_w.dumps(self._to_dict()))

    def _to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {"name": self.name, "suffix": self.suffix, "memory": self.memory}

    @classmethod
    def load(cls) -> "LiteshiftConfig":
        """Load config with full precedence chain.

        Precedence (highest to lowest):
            1. Environment variables (LITESHIFT_*)
            2. Config file
            3. Defaults

        Returns:
            Loaded configuration.
        """
        config_path = get_config_path()
        file_values: dict[str, Any] = {}

        if config_path.exists():
            content = config_path.read_text()
            if content.strip():
                file_values = tomllib.loads(content)

        # Only use file values for fields not set by env vars
        effective_values: dict[str, Any] = {}
        for key, value in file_values.items():
            env_key = f"LITESHIFT_{key.upper()}"
            if env_key not in os.environ:
                effective_values[key] = value

        return cls(**effective_values)
