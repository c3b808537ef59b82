"""Configuration: the per-project ``.cargo-dokita.toml`` and process settings.

Example ``.cargo-dokita.toml``::

    [general]

    [checks]
    enabled = { "MD001" = true, "MD003" = false }

Unknown keys anywhere in the file are rejected.
"""

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".cargo-dokita.toml"

DEFAULT_REGISTRY_URL = "https://crates.io/api/v1/crates"
DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_MAX_WORKERS = 8


class GeneralConfig(BaseModel):
    """Reserved for global options."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class ChecksConfig(BaseModel):
    """Per-check switches."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    enabled: dict[str, bool] = Field(
        default_factory=dict, description="Check code -> enabled"
    )


class Config(BaseModel):
    """Project configuration. Checks not mentioned are enabled."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    checks: ChecksConfig = Field(default_factory=ChecksConfig)

    def is_check_enabled(self, check_code: str) -> bool:
        return self.checks.enabled.get(check_code, True)

    @property
    def disabled_checks(self) -> frozenset[str]:
        return frozenset(code for code, on in self.checks.enabled.items() if not on)

    @classmethod
    def from_toml(cls, text: str) -> "Config":
        """Parse config file contents.

        Raises:
            ConfigError: If the text is not valid TOML or does not match the schema.
        """
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse config file: {e}") from e
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Failed to parse config file: {e}") from e

    @classmethod
    def load_from_project_root(cls, project_root: Path) -> "Config":
        """Load ``.cargo-dokita.toml`` from the project root, or defaults if absent.

        Raises:
            ConfigError: If the file exists but cannot be read or parsed.
        """
        config_path = project_root / CONFIG_FILE_NAME
        if not config_path.exists():
            return cls()

        try:
            text = config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Failed to read config file {config_path}: {e}") from e

        config = cls.from_toml(text)
        logger.info(f"Loaded configuration from {CONFIG_FILE_NAME}")
        return config


def load_config_or_default(project_root: Path) -> Config:
    """Load the project config, falling back to defaults when it is invalid."""
    try:
        return Config.load_from_project_root(project_root)
    except ConfigError as e:
        logger.warning(f"Could not load {CONFIG_FILE_NAME}: {e}. Using default configuration.")
        return Config()


class Settings(BaseModel):
    """Process-level settings, read from the environment."""

    registry_url: str = Field(default=DEFAULT_REGISTRY_URL, description="crates.io API base")
    http_timeout: float = Field(default=DEFAULT_HTTP_TIMEOUT, description="Per-request timeout")
    max_workers: int = Field(default=DEFAULT_MAX_WORKERS, description="Pattern scanner threads")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            registry_url=os.environ.get("DOKITA_REGISTRY_URL", DEFAULT_REGISTRY_URL),
            http_timeout=_float_env("DOKITA_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
            max_workers=_int_env("DOKITA_MAX_WORKERS", DEFAULT_MAX_WORKERS),
        )


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}")
        return default
    return value if value > 0 else default


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}")
        return default
    return value if value > 0 else default
