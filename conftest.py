"""
Repository-level pytest configuration.

Provides:
  - Isolation of configuration-driven tests from the developer's shell
  - The repository root for tests that need fixture files
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator

import pytest


# Environment variables read by ConfigLoader for request and logging defaults
_CONFIG_ENV_PREFIXES = ("API_", "LOGGING_")


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return repo root path."""
    return Path(__file__).parent


@pytest.fixture(autouse=True)
def _isolated_config_env(monkeypatch) -> Generator[None, None, None]:
    """
    Remove configuration overrides inherited from the environment.

    ConfigLoader gives environment variables priority over YAML, so a stray
    API_BASE_URL in CI would otherwise change test outcomes.
    """
    for key in list(os.environ):
        if key.startswith(_CONFIG_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)

    yield
