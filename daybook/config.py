"""Configuration for daybook.

Settings live in ``~/.config/daybook/config.toml`` (or under
``$DAYBOOK_CONFIG_DIR``). The local SQLite database and the stored session
sit next to it.
"""

import os
from pathlib import Path
from typing import Literal, Optional

import toml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from daybook.errors import ConfigError


def config_dir() -> Path:
    """Directory holding config, database and session files."""
    override = os.environ.get("DAYBOOK_CONFIG_DIR")
    if override:
        return Path(override)
    return Path.home() / ".config" / "daybook"


def config_path() -> Path:
    return config_dir() / "config.toml"


def db_path() -> Path:
    return config_dir() / "daybook.db"


def session_path() -> Path:
    return config_dir() / "session.json"


class BackendSettings(BaseModel):
    mode: Literal["local", "supabase"] = "local"


class SupabaseSettings(BaseModel):
    url: str = ""
    anon_key: str = ""


class JournalSettings(BaseModel):
    refetch_delay: float = Field(default=0.5, ge=0, description="Seconds to wait before re-fetching after a detailed save")
    poll_interval: float = Field(default=30.0, gt=0, description="Seconds between change polls")
    share_base_url: str = Field(default="http://localhost:5173", description="Base URL of public share links")


class RetrySettings(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=0.5, ge=0)
    backoff: float = Field(default=2.0, ge=1)
    jitter: float = Field(default=0.25, ge=0, le=1)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


class Settings(BaseModel):
    """Validated configuration."""

    backend: BackendSettings = Field(default_factory=BackendSettings)
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    journal: JournalSettings = Field(default_factory=JournalSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_config(cls, config: Optional[dict]) -> "Settings":
        """Build settings from a loaded config dict.

        Supabase credentials fall back to the ``SUPABASE_URL`` and
        ``SUPABASE_ANON_KEY`` environment variables.

        Raises:
            ConfigError: If a value is invalid.
        """
        data = dict(config or {})
        supabase = dict(data.get("supabase", {}))
        if not supabase.get("url"):
            supabase["url"] = os.environ.get("SUPABASE_URL", "")
        if not supabase.get("anon_key"):
            supabase["anon_key"] = os.environ.get("SUPABASE_ANON_KEY", "")
        data["supabase"] = supabase

        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigError(f"Invalid configuration in {config_path()}:\n{e}") from e


def load_config() -> Optional[dict]:
    """Load the raw configuration file.

    Returns:
        Config dict, or None if no config file exists.

    Raises:
        ConfigError: If the file cannot be parsed.
    """
    path = config_path()

    if not path.exists():
        return None

    try:
        return toml.load(path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ConfigError(f"Could not read {path}: {e}") from e


def load_settings() -> Settings:
    """Load and validate settings, using defaults when no file exists."""
    return Settings.from_config(load_config())


def create_template_config() -> Path:
    """Create a template configuration file."""
    path = config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    template = {
        "backend": {
            "mode": "local",  # local or supabase
        },
        "supabase": {
            "url": "",  # Leave empty to use SUPABASE_URL env var
            "anon_key": "",  # Leave empty to use SUPABASE_ANON_KEY env var
        },
        "journal": {
            "refetch_delay": 0.5,
            "poll_interval": 30.0,
            "share_base_url": "http://localhost:5173",
        },
        "retry": {
            "max_attempts": 3,
            "base_delay": 0.5,
            "backoff": 2.0,
            "jitter": 0.25,
        },
        "logging": {
            "level": "WARNING",
        },
    }

    with open(path, "w") as f:
        toml.dump(template, f)

    return path


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return list of missing keys.

    Args:
        config: Configuration dictionary.

    Returns:
        List of missing required keys.
    """
    missing = []
    mode = config.get("backend", {}).get("mode", "local")

    # Supabase credentials are only required for the hosted backend
    if mode == "supabase":
        supabase = config.get("supabase", {})
        if not supabase.get("url") and not os.environ.get("SUPABASE_URL"):
            missing.append("supabase.url (or set SUPABASE_URL env var)")
        if not supabase.get("anon_key") and not os.environ.get("SUPABASE_ANON_KEY"):
            missing.append("supabase.anon_key (or set SUPABASE_ANON_KEY env var)")

    return missing
