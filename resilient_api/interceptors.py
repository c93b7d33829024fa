"""
================================================================================
Interceptor Pipeline
================================================================================

Hooks invoked around every execution.

    - before-request hooks run once per execution, with the outgoing
      httpx.Request, after authentication has been applied
    - after-response hooks run once per attempt that produced a response

Both lists run in registration order. The pipeline is expected to be
populated at startup and only read afterwards.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import threading
from typing import Any, Callable, List, Tuple

import httpx
from loguru import logger


BeforeHook = Callable[[httpx.Request], Any]
AfterHook = Callable[[httpx.Response], Any]


class Interceptor:
    """
    Base class for interceptors. Override either method or both.

    Usage:
        >>> class CorrelationId(Interceptor):
        ...     def before_request(self, request):
        ...         request.headers["X-Correlation-Id"] = str(uuid4())
        >>> client.register_interceptor(CorrelationId())
    """

    def before_request(self, request: httpx.Request) -> None:
        pass

    def after_response(self, response: httpx.Response) -> None:
        pass


class LoggingInterceptor(Interceptor):
    """Logs each outgoing request line and each response status."""

    def before_request(self, request: httpx.Request) -> None:
        logger.info(f"--> {request.method} {request.url}")

    def after_response(self, response: httpx.Response) -> None:
        request = response.request
        logger.info(f"<-- {response.status_code} {request.method} {request.url}")


class InterceptorPipeline:
    """Two ordered capability lists: before-request and after-response."""

    def __init__(self) -> None:
        self._before: Tuple[BeforeHook, ...] = ()
        self._after: Tuple[AfterHook, ...] = ()
        self._lock = threading.Lock()

    def register(self, interceptor: Any) -> None:
        """Register an object exposing before_request and/or after_response."""
        before = getattr(interceptor, "before_request", None)
        after = getattr(interceptor, "after_response", None)
        if not callable(before) and not callable(after):
            logger.warning(f"{type(interceptor).__name__} has no hooks; nothing registered")
            return
        with self._lock:
            if callable(before):
                self._before += (before,)
            if callable(after):
                self._after += (after,)

    def add_before(self, hook: BeforeHook) -> None:
        with self._lock:
            self._before += (hook,)

    def add_after(self, hook: AfterHook) -> None:
        with self._lock:
            self._after += (hook,)

    def run_before(self, request: httpx.Request) -> None:
        for hook in self._before:
            hook(request)

    def run_after(self, response: httpx.Response) -> None:
        for hook in self._after:
            hook(response)

    @property
    def before_hooks(self) -> List[BeforeHook]:
        return list(self._before)

    @property
    def after_hooks(self) -> List[AfterHook]:
        return list(self._after)


__all__ = [
    "Interceptor",
    "InterceptorPipeline",
    "LoggingInterceptor",
]
