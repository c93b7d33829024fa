"""
================================================================================
Execution Engine
================================================================================

Executes a RequestSpec with:
    - Authentication resolution (Basic, Bearer, API key, OAuth2 client
      credentials through the TokenCache)
    - Retry with exponential backoff and jitter, capped at 30 seconds
    - Retry-After honoring on retried responses
    - Per-attempt metrics and after-response interceptors
    - Cooperative cancellation between attempts
    - Allure reporting of the terminal exchange

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import base64
import random
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import httpx
from loguru import logger

from .cancellation import CancellationToken
from .exceptions import (
    ApiSerializationError,
    RequestCancelledError,
    RequestExecutionError,
    ResponseAssertionError,
    RetryableResponseError,
    TransportError,
)
from .interceptors import InterceptorPipeline
from .metrics import MetricsRegistry
from .reporting import attach_exchange
from .request_spec import (
    ApiKeyAuth,
    BasicAuth,
    BearerAuth,
    ContentType,
    HttpMethod,
    OAuth2ClientCredentials,
    RequestSpec,
)
from .response import ResponseResult
from .serialization import JsonMapper
from .token_cache import TokenCache


# Upper bound for a single retry wait
MAX_BACKOFF_MS = 30_000

# Exponent ceiling; any base at or above 1 ms already exceeds the cap there
MAX_BACKOFF_EXPONENT = 32

# Errors that indicate a caller or data bug; never retried
NON_RETRYABLE_ERRORS = (ResponseAssertionError, ApiSerializationError)


def calculate_backoff_ms(
    attempt: int,
    base_delay_ms: float,
    rng: Callable[[float, float], float] = random.uniform,
) -> float:
    """
    Calculate exponential backoff with jitter.

    Formula: base * (2 ^ attempt) + uniform[0, base), capped at 30 seconds.
    The base is at least 1 ms so that jitter is never degenerate.
    """
    base = max(1.0, float(base_delay_ms))
    jitter = rng(0.0, base)
    if jitter >= base:
        jitter = 0.0
    exponent = min(max(attempt, 0), MAX_BACKOFF_EXPONENT)
    return min(base * (2 ** exponent) + jitter, MAX_BACKOFF_MS)


def _retry_after_ms(response: Optional[httpx.Response]) -> float:
    """Numeric Retry-After header in milliseconds, or 0."""
    if response is None:
        return 0.0
    try:
        return max(0.0, float(response.headers.get("Retry-After", ""))) * 1000
    except ValueError:
        return 0.0


class ExecutionEngine:
    """
    Retrying request executor shared by every builder of an ApiClient.

    The engine holds no per-request state; any number of threads may call
    ``execute`` concurrently.

    Usage:
        >>> engine = ExecutionEngine(httpx.Client(), TokenCache(), InterceptorPipeline(),
        ...                          MetricsRegistry(), JsonMapper())
        >>> result = engine.execute(RequestSpec("GET", base_uri="https://api", path="/ping"))
    """

    def __init__(
        self,
        http_client: httpx.Client,
        token_cache: TokenCache,
        interceptors: InterceptorPipeline,
        metrics: MetricsRegistry,
        mapper: JsonMapper,
        sleep: Callable[[float], None] = time.sleep,
        rng: Callable[[float, float], float] = random.uniform,
    ) -> None:
        self.http_client = http_client
        self.token_cache = token_cache
        self.interceptors = interceptors
        self.metrics = metrics
        self.mapper = mapper
        self._sleep = sleep
        self._rng = rng

    def execute(
        self,
        spec: RequestSpec,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ResponseResult:
        """
        Execute the RequestSpec and return the first non-retryable response.

        Raises:
            RequestExecutionError: When all attempts are exhausted, or the
                method is not supported
            RequestCancelledError: When the cancellation token fires
            TokenAcquisitionError: When OAuth2 token acquisition fails
            ApiSerializationError: When the body cannot be serialized
        """
        url = spec.url()
        try:
            method = HttpMethod.parse(spec.method)
        except ValueError as e:
            raise RequestExecutionError(str(spec.method), url, 0, e) from e

        endpoint = spec.full_path()
        headers = self._resolve_headers(spec)
        request = self._build_request(method, url, headers, spec)

        self.interceptors.run_before(request)
        if spec.log_requests:
            logger.info(f"Request [{method.value}] {url}")

        last_error: Optional[BaseException] = None
        last_response: Optional[httpx.Response] = None
        attempts = 0

        retry_count = max(0, spec.retry_count)
        for attempt in range(retry_count + 1):
            self._check_cancelled(cancel_token, method, url, attempts)

            if attempt > 0:
                delay_ms = calculate_backoff_ms(attempt, spec.retry_delay_ms, self._rng)
                delay_ms = min(max(delay_ms, _retry_after_ms(last_response)), MAX_BACKOFF_MS)
                logger.warning(
                    f"Retry attempt {attempt} for {method.value} {endpoint} - sleeping {delay_ms:.0f}ms"
                )
                self._wait(delay_ms / 1000.0, cancel_token)
                self._check_cancelled(cancel_token, method, url, attempts)

            attempts += 1
            started = time.perf_counter()
            try:
                response = self.http_client.send(request)
            except httpx.TransportError as e:
                last_error = TransportError(f"{type(e).__name__}: {e}", attempt)
                last_error.__cause__ = e
                last_response = None
                self._log_attempt_failure(attempt, spec, method, endpoint, e)
                continue

            duration_ms = (time.perf_counter() - started) * 1000
            self.metrics.record(method.value, endpoint, response.status_code, duration_ms)
            last_response = response

            try:
                self.interceptors.run_after(response)
            except NON_RETRYABLE_ERRORS:
                raise
            except Exception as e:
                last_error = TransportError(f"Interceptor failed: {e}", attempt)
                last_error.__cause__ = e
                self._log_attempt_failure(attempt, spec, method, endpoint, e)
                continue

            if spec.log_responses:
                logger.info(
                    f"Response [{method.value}] {endpoint} -> {response.status_code} "
                    f"{response.reason_phrase} ({duration_ms:.0f} ms)"
                )

            if spec.retry_if(response):
                logger.warning(
                    f"Retry condition matched (status {response.status_code}) "
                    f"for {method.value} {endpoint}"
                )
                last_error = RetryableResponseError(response.status_code, attempt)
                continue

            if spec.log_responses:
                attach_exchange(response, attempts)
            return ResponseResult(response, self.mapper, self.metrics, duration_ms)

        logger.error(f"Request failed after {attempts} attempts for {method.value} {url}")
        raise RequestExecutionError(
            method.value, url, attempts, last_error, last_response
        ) from last_error

    def _resolve_headers(self, spec: RequestSpec) -> Dict[str, str]:
        headers = {key: str(value) for key, value in spec.headers.items()}
        auth = spec.auth
        if auth is None:
            pass
        elif isinstance(auth, BasicAuth):
            raw = f"{auth.username}:{auth.password}".encode("utf-8")
            headers["Authorization"] = "Basic " + base64.b64encode(raw).decode("ascii")
        elif isinstance(auth, BearerAuth):
            headers["Authorization"] = f"Bearer {auth.token}"
        elif isinstance(auth, ApiKeyAuth):
            headers[auth.header] = auth.value
        elif isinstance(auth, OAuth2ClientCredentials):
            token = self.token_cache.get_token(auth.client_id, auth.client_secret, auth.token_url)
            headers["Authorization"] = f"Bearer {token}"
        else:
            raise TypeError(f"Unsupported auth descriptor: {type(auth).__name__}")
        return headers

    def _build_request(
        self,
        method: HttpMethod,
        url: str,
        headers: Dict[str, str],
        spec: RequestSpec,
    ) -> httpx.Request:
        kwargs: Dict[str, Any] = {
            "headers": headers,
            "params": {k: v for k, v in spec.query_params.items() if v is not None} or None,
            "timeout": spec.timeout,
        }

        if spec.files:
            kwargs["files"] = [self._read_part(name, path) for name, path in spec.files]
            if spec.form_params:
                kwargs["data"] = dict(spec.form_params)
        elif spec.form_params:
            kwargs["data"] = dict(spec.form_params)
        elif spec.body is not None:
            body = spec.body
            if not isinstance(body, (str, bytes)):
                body = self.mapper.serialize(body)
            kwargs["content"] = body
            has_content_type = any(key.lower() == "content-type" for key in headers)
            if not has_content_type and spec.content_type not in (None, ContentType.ANY):
                headers["Content-Type"] = spec.content_type.value

        return self.http_client.build_request(method.value, url, **kwargs)

    @staticmethod
    def _read_part(name: str, path: str) -> Tuple[str, Tuple[str, bytes]]:
        file_path = Path(path)
        return name, (file_path.name, file_path.read_bytes())

    def _wait(self, seconds: float, cancel_token: Optional[CancellationToken]) -> None:
        if cancel_token is not None:
            cancel_token.wait(seconds)
        else:
            self._sleep(seconds)

    @staticmethod
    def _check_cancelled(
        cancel_token: Optional[CancellationToken],
        method: HttpMethod,
        url: str,
        attempts: int,
    ) -> None:
        if cancel_token is not None and cancel_token.cancelled:
            logger.warning(f"Request {method.value} {url} cancelled after {attempts} attempt(s)")
            raise RequestCancelledError(method.value, url, attempts)

    @staticmethod
    def _log_attempt_failure(
        attempt: int,
        spec: RequestSpec,
        method: HttpMethod,
        endpoint: str,
        error: BaseException,
    ) -> None:
        remaining = max(0, spec.retry_count) - attempt
        logger.warning(
            f"Exception during request attempt {attempt} for {method.value} {endpoint}: {error!r}. "
            f"{remaining} retries left"
        )


__all__ = [
    "ExecutionEngine",
    "MAX_BACKOFF_MS",
    "calculate_backoff_ms",
]
