"""
================================================================================
Resilient API Client
================================================================================

Request-execution core for API automation.

Modules:
    - client: ApiClient owning the shared collaborators
    - request_builder: fluent RequestBuilder, RequestTemplate, FileUploadBuilder
    - request_spec: immutable RequestSpec and auth descriptors
    - execution_engine: retrying executor with backoff and jitter
    - token_cache: OAuth2 client-credentials token cache
    - interceptors: before/after hook pipeline
    - metrics: per-attempt metrics registry
    - response: ResponseResult with extraction and assertions
    - config_loader: YAML configuration management
    - log_setup: Loguru configuration

Author: Automation Team
License: MIT
================================================================================
"""

from .cancellation import CancellationToken
from .client import ApiClient
from .config_loader import ApiSettings, ConfigLoader
from .exceptions import (
    ApiClientError,
    ApiSerializationError,
    ConfigurationError,
    RequestCancelledError,
    RequestExecutionError,
    ResponseAssertionError,
    RetryableResponseError,
    TokenAcquisitionError,
    TransportError,
)
from .execution_engine import ExecutionEngine, calculate_backoff_ms
from .interceptors import Interceptor, InterceptorPipeline, LoggingInterceptor
from .log_setup import init_logger
from .metrics import MetricEntry, MetricsRegistry
from .request_builder import FileUploadBuilder, RequestBuilder, RequestTemplate
from .request_spec import (
    ApiKeyAuth,
    BasicAuth,
    BearerAuth,
    ContentType,
    HttpMethod,
    OAuth2ClientCredentials,
    RequestSpec,
    default_retry_condition,
)
from .response import ResponseResult
from .serialization import JsonMapper
from .token_cache import TokenCache

__all__ = [
    "ApiClient",
    "ApiClientError",
    "ApiKeyAuth",
    "ApiSerializationError",
    "ApiSettings",
    "BasicAuth",
    "BearerAuth",
    "CancellationToken",
    "ConfigLoader",
    "ConfigurationError",
    "ContentType",
    "ExecutionEngine",
    "FileUploadBuilder",
    "HttpMethod",
    "Interceptor",
    "InterceptorPipeline",
    "JsonMapper",
    "LoggingInterceptor",
    "MetricEntry",
    "MetricsRegistry",
    "OAuth2ClientCredentials",
    "RequestBuilder",
    "RequestCancelledError",
    "RequestExecutionError",
    "RequestSpec",
    "RequestTemplate",
    "ResponseAssertionError",
    "ResponseResult",
    "RetryableResponseError",
    "TokenAcquisitionError",
    "TokenCache",
    "TransportError",
    "calculate_backoff_ms",
    "default_retry_condition",
    "init_logger",
]
