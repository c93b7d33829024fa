"""
================================================================================
Error Taxonomy
================================================================================

Exceptions raised by the request-execution core.

Only transport failures and retry-predicate matches are retried by the
engine. Everything else surfaces on first occurrence.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import Any, Optional


class ApiClientError(Exception):
    """Base exception for all API client errors."""
    pass


class ConfigurationError(ApiClientError):
    """Raised when configuration loading or access fails."""
    pass


class TransportError(ApiClientError):
    """A single attempt failed before a usable response was produced."""

    def __init__(self, message: str, attempt: int) -> None:
        super().__init__(message)
        self.attempt = attempt


class RetryableResponseError(ApiClientError):
    """
    A response matched the retry predicate.

    Never raised to callers directly; it is recorded as the last failure so
    that an exhausted request can report why it kept retrying.
    """

    def __init__(self, status_code: int, attempt: int) -> None:
        super().__init__(f"Retryable response status {status_code} on attempt {attempt + 1}")
        self.status_code = status_code
        self.attempt = attempt


class RequestExecutionError(ApiClientError):
    """Raised when a request could not be completed within its retry budget."""

    def __init__(
        self,
        method: str,
        url: str,
        attempts: int,
        last_error: Optional[BaseException] = None,
        last_response: Any = None,
    ) -> None:
        message = f"Request failed for {method} {url} after {attempts} attempt(s)"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.method = method
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        self.last_response = last_response


class RequestCancelledError(ApiClientError):
    """Raised when a cancellation token fires before or between attempts."""

    def __init__(self, method: str, url: str, attempts: int) -> None:
        super().__init__(f"Request {method} {url} cancelled after {attempts} attempt(s)")
        self.method = method
        self.url = url
        self.attempts = attempts


class TokenAcquisitionError(ApiClientError):
    """Raised when the OAuth2 token endpoint cannot issue a token."""
    pass


class ResponseAssertionError(ApiClientError, AssertionError):
    """Raised when an assertion on a response fails."""
    pass


class ApiSerializationError(ApiClientError):
    """Raised when a body cannot be serialized or deserialized."""
    pass


__all__ = [
    "ApiClientError",
    "ApiSerializationError",
    "ConfigurationError",
    "RequestCancelledError",
    "RequestExecutionError",
    "ResponseAssertionError",
    "RetryableResponseError",
    "TokenAcquisitionError",
    "TransportError",
]
