"""
================================================================================
API Client
================================================================================

Top-level object owning the shared collaborators:
    - one httpx.Client (the transport)
    - one TokenCache, MetricsRegistry and InterceptorPipeline
    - one JsonMapper
    - the ExecutionEngine wired to all of them

Every builder created by the client executes through the same engine, so
tokens, metrics and interceptors are shared by all callers of one client
and never leak between clients.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Type, TypeVar

import httpx
from loguru import logger

from .config_loader import ApiSettings, ConfigLoader
from .execution_engine import ExecutionEngine
from .interceptors import InterceptorPipeline
from .metrics import MetricsRegistry
from .request_builder import FileUploadBuilder, RequestBuilder, RequestTemplate
from .serialization import JsonMapper
from .token_cache import SWEEP_INTERVAL_SECONDS, TokenCache


T = TypeVar("T")


class ApiClient:
    """
    Resilient API client.

    Usage:
        >>> with ApiClient() as client:
        ...     result = client.new_request().path("/api/v1/users").get()
        ...     result.assert_success()
        ...     print(client.metrics.snapshot())
    """

    def __init__(
        self,
        settings: Optional[ApiSettings] = None,
        config: Optional[ConfigLoader] = None,
        transport: Optional[httpx.BaseTransport] = None,
        http_client: Optional[httpx.Client] = None,
        mapper: Optional[JsonMapper] = None,
        token_sweep_interval: Optional[float] = SWEEP_INTERVAL_SECONDS,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        """
        Initialize API client.

        Args:
            settings: Request defaults. Read from ``config`` if None.
            config: Configuration loader; a default one is created if both
                settings and config are None.
            transport: httpx transport for the owned client (tests pass
                httpx.MockTransport)
            http_client: Use an existing client instead of creating one;
                it is not closed by ``close``.
            mapper: JSON mapper for bodies
            token_sweep_interval: TokenCache sweeper period; None disables it
            sleep: Replacement for time.sleep between retries
        """
        if settings is None:
            settings = ApiSettings.from_config(config or ConfigLoader())
        self.settings = settings

        self._owns_http = http_client is None
        self.http_client = http_client or httpx.Client(
            transport=transport,
            timeout=httpx.Timeout(settings.timeout_seconds),
        )
        self.mapper = mapper or JsonMapper()
        self.metrics = MetricsRegistry()
        self.interceptors = InterceptorPipeline()
        self.token_cache = TokenCache(self.http_client, sweep_interval=token_sweep_interval)

        engine_kwargs = {"sleep": sleep} if sleep is not None else {}
        self.engine = ExecutionEngine(
            self.http_client,
            self.token_cache,
            self.interceptors,
            self.metrics,
            self.mapper,
            **engine_kwargs,
        )
        logger.debug(
            f"ApiClient ready (base_url={settings.base_url or '<none>'}, "
            f"retries={settings.retries}, timeout={settings.timeout_seconds}s)"
        )

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self.token_cache.close()
        if self._owns_http:
            self.http_client.close()

    def new_request(
        self,
        base_uri: Optional[str] = None,
        template: Optional[RequestTemplate] = None,
    ) -> RequestBuilder:
        """Create a builder seeded with the client's settings."""
        builder = RequestBuilder(self.engine, self.settings)
        if template is not None:
            template.apply(builder)
        if base_uri is not None:
            builder.base_uri(base_uri)
        return builder

    def file_upload(self) -> FileUploadBuilder:
        return FileUploadBuilder(self.new_request())

    def register_interceptor(self, interceptor: Any) -> None:
        self.interceptors.register(interceptor)

    def serialize(self, value: Any) -> str:
        return self.mapper.serialize(value)

    def deserialize(self, text: str, target: Optional[Type[T]] = None) -> Any:
        return self.mapper.deserialize(text, target)


__all__ = ["ApiClient"]
