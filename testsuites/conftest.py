"""
================================================================================
Test Suite Configuration
================================================================================

Registers markers and provides shared fixtures:
    - fake_sleep: records retry waits instead of sleeping
    - api_settings: request defaults pointing at a mock host
    - make_client: ApiClient factory backed by httpx.MockTransport

================================================================================
"""

import dataclasses
from typing import Callable, List

import httpx
import pytest

from resilient_api import ApiClient, ApiSettings
from testsuites.mock_transport import BASE_URL, FakeSleep


def pytest_configure(config):
    """Configure pytest with project-wide custom markers."""
    config.addinivalue_line("markers", "P0: Critical priority tests - must pass for deployment")
    config.addinivalue_line("markers", "P1: High priority tests - important functionality")
    config.addinivalue_line("markers", "unit: Isolated component tests")
    config.addinivalue_line("markers", "concurrency: Tests exercising multiple threads")
    config.addinivalue_line("markers", "auth: Tests related to authentication")
    config.addinivalue_line("markers", "retry: Tests related to retry and backoff")


def pytest_collection_modifyitems(config, items):
    """Auto-add the 'unit' marker to tests in the unit directory."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def api_settings() -> ApiSettings:
    return ApiSettings(base_url=BASE_URL, timeout_seconds=5, retries=0, retry_delay_ms=1)


@pytest.fixture
def make_client(api_settings, fake_sleep):
    """Factory: make_client(handler, retries=..., ...) -> ApiClient."""
    clients: List[ApiClient] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response], **overrides) -> ApiClient:
        settings = dataclasses.replace(api_settings, **overrides)
        client = ApiClient(
            settings=settings,
            transport=httpx.MockTransport(handler),
            token_sweep_interval=None,
            sleep=fake_sleep,
        )
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.close()
