"""
================================================================================
Configuration Loader
================================================================================

YAML-based configuration with environment variable override support.

Features:
    - Hierarchical YAML configuration loading
    - Environment variable override (API_BASE_URL overrides api.base_url)
    - Dot notation path access
    - ApiSettings: typed request defaults seeded into every RequestBuilder

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from loguru import logger

from .exceptions import ConfigurationError


# Default configuration file path, relative to the working directory
DEFAULT_CONFIG_PATH = Path("config") / "config.yaml"

# Request defaults used when neither YAML nor environment provide a value
DEFAULT_BASE_URL = ""
DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_RETRIES = 2
DEFAULT_RETRY_DELAY_MS = 1000


class ConfigLoader:
    """
    Configuration loader with YAML and environment variable support.

    Configuration hierarchy (highest to lowest priority):
        1. Environment variables (API_BASE_URL)
        2. YAML configuration file
        3. Default values

    Usage:
        >>> config = ConfigLoader("config/config.yaml")
        >>> config.get("api.base_url", "http://localhost:8000")
        'https://api.example.com'  # From YAML or env var

    Environment Variable Mapping:
        - api.base_url -> API_BASE_URL
        - api.retry_delay_ms -> API_RETRY_DELAY_MS
        - logging.level -> LOGGING_LEVEL
    """

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize configuration loader.

        Args:
            config_path: Path to YAML configuration file.
                        Uses DEFAULT_CONFIG_PATH if not specified.
            overrides: Nested mapping merged over the YAML content
        """
        self._config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._overrides = overrides or {}
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            logger.debug(
                f"Configuration file not found: {self._config_path}. "
                f"Using defaults and environment variables only."
            )
            self._config = _merge({}, self._overrides)
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}"
            ) from e

        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f"Configuration root must be a mapping, got {type(loaded).__name__}"
            )
        self._config = _merge(loaded, self._overrides)
        logger.debug(f"Loaded configuration from: {self._config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        First checks environment variables, then YAML config, then default.

        Args:
            key: Dot-notation path (e.g., "api.base_url")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        env_key = key.upper().replace(".", "_")
        env_value = os.environ.get(env_key)
        if env_value is not None:
            return self._convert_type(env_value, default)

        value: Any = self._config
        for part in key.split("."):
            if isinstance(value, dict):
                value = value.get(part)
            else:
                value = None

            if value is None:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire configuration section, or an empty dict."""
        return dict(self._config.get(section, {}) or {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()
        logger.info(f"Configuration reloaded from: {self._config_path}")

    def _convert_type(self, value: str, reference: Any) -> Any:
        """
        Convert string value to match reference type.

        Used for environment variables which are always strings.
        """
        if reference is None:
            return value

        if isinstance(reference, bool):
            return value.lower() in ("true", "1", "yes", "on")
        if isinstance(reference, int):
            try:
                return int(value)
            except ValueError:
                raise ConfigurationError(f"Expected integer, got {value!r}") from None
        if isinstance(reference, float):
            try:
                return float(value)
            except ValueError:
                raise ConfigurationError(f"Expected number, got {value!r}") from None

        return value


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@dataclass(frozen=True)
class ApiSettings:
    """Process-wide request defaults."""
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retries: int = DEFAULT_RETRIES
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    log_requests: bool = True
    log_responses: bool = True

    @classmethod
    def from_config(cls, config: ConfigLoader) -> "ApiSettings":
        settings = cls(
            base_url=str(config.get("api.base_url", DEFAULT_BASE_URL)),
            timeout_seconds=float(config.get("api.timeout", DEFAULT_TIMEOUT_SECONDS)),
            retries=int(config.get("api.retries", DEFAULT_RETRIES)),
            retry_delay_ms=int(config.get("api.retry_delay_ms", DEFAULT_RETRY_DELAY_MS)),
            log_requests=bool(config.get("api.log_requests", True)),
            log_responses=bool(config.get("api.log_responses", True)),
        )
        if settings.retries < 0:
            raise ConfigurationError(f"api.retries must be >= 0, got {settings.retries}")
        return settings


__all__ = [
    "ApiSettings",
    "ConfigLoader",
    "ConfigurationError",
]
