"""
================================================================================
Fluent Request Builder
================================================================================

Mutable accumulator producing immutable RequestSpecs.

    - RequestBuilder: fluent setters; get()/post()/... build and execute
    - RequestTemplate: reusable defaults applied onto a builder
    - FileUploadBuilder: multipart uploads through the same engine

Nothing is validated while building. An unsupported method only fails
when the RequestSpec is executed.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple, Union

from .cancellation import CancellationToken
from .config_loader import ApiSettings
from .request_spec import (
    ApiKeyAuth,
    AuthDescriptor,
    BasicAuth,
    BearerAuth,
    ContentType,
    HttpMethod,
    OAuth2ClientCredentials,
    RequestSpec,
    RetryPredicate,
    default_retry_condition,
)

if TYPE_CHECKING:  # pragma: no cover
    from .execution_engine import ExecutionEngine
    from .response import ResponseResult


class RequestBuilder:
    """
    Fluent builder for a single request.

    Every setter returns the builder. Defaults are seeded from ApiSettings
    when the builder is created.

    Usage:
        >>> result = (client.new_request()
        ...     .path("/users/{id}")
        ...     .path_param("id", "123")
        ...     .query_param("include", "details")
        ...     .bearer_token("t-123")
        ...     .get())
    """

    def __init__(self, engine: "ExecutionEngine", settings: Optional[ApiSettings] = None) -> None:
        settings = settings or ApiSettings()
        self._engine = engine
        self._base_uri = settings.base_url
        self._base_path = ""
        self._path = ""
        self._headers: Dict[str, Any] = {}
        self._query_params: Dict[str, Any] = {}
        self._path_params: Dict[str, Any] = {}
        self._form_params: Dict[str, Any] = {}
        self._files: List[Tuple[str, str]] = []
        self._body: Any = None
        self._content_type: Optional[ContentType] = ContentType.JSON
        self._auth: AuthDescriptor = None
        self._timeout = float(settings.timeout_seconds)
        self._retry_count = settings.retries
        self._retry_delay_ms = settings.retry_delay_ms
        self._retry_if: RetryPredicate = default_retry_condition
        self._log_requests = settings.log_requests
        self._log_responses = settings.log_responses
        self._cancel_token: Optional[CancellationToken] = None

    # Target

    def base_uri(self, base_uri: str) -> "RequestBuilder":
        self._base_uri = base_uri
        return self

    def base_path(self, base_path: str) -> "RequestBuilder":
        self._base_path = base_path
        return self

    def path(self, path: str) -> "RequestBuilder":
        self._path = path
        return self

    # Headers and parameters

    def header(self, name: str, value: Any) -> "RequestBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Mapping[str, Any]) -> "RequestBuilder":
        self._headers.update(headers)
        return self

    def accept(self, content_type: Union[ContentType, str]) -> "RequestBuilder":
        return self.header("Accept", getattr(content_type, "value", content_type))

    def content_type(self, content_type: Optional[ContentType]) -> "RequestBuilder":
        self._content_type = content_type
        return self

    def query_param(self, name: str, value: Any) -> "RequestBuilder":
        self._query_params[name] = value
        return self

    def query_params(self, params: Mapping[str, Any]) -> "RequestBuilder":
        self._query_params.update(params)
        return self

    def path_param(self, name: str, value: Any) -> "RequestBuilder":
        self._path_params[name] = value
        return self

    def path_params(self, params: Mapping[str, Any]) -> "RequestBuilder":
        self._path_params.update(params)
        return self

    def form_param(self, name: str, value: Any) -> "RequestBuilder":
        self._form_params[name] = value
        self._content_type = ContentType.FORM
        return self

    def form_params(self, params: Mapping[str, Any]) -> "RequestBuilder":
        self._form_params.update(params)
        self._content_type = ContentType.FORM
        return self

    def multipart(self, name: str, file_path: Union[str, Path]) -> "RequestBuilder":
        self._files.append((name, str(file_path)))
        self._content_type = ContentType.MULTIPART
        return self

    # Body

    def body(self, body: Any) -> "RequestBuilder":
        self._body = body
        return self

    def json_body(self, json_text: str) -> "RequestBuilder":
        self._body = json_text
        self._content_type = ContentType.JSON
        return self

    # Authentication

    def auth(self, descriptor: AuthDescriptor) -> "RequestBuilder":
        self._auth = descriptor
        return self

    def basic_auth(self, username: str, password: str) -> "RequestBuilder":
        return self.auth(BasicAuth(username, password))

    def bearer_token(self, token: str) -> "RequestBuilder":
        return self.auth(BearerAuth(token))

    def api_key(self, header: str, value: str) -> "RequestBuilder":
        return self.auth(ApiKeyAuth(header, value))

    def oauth2_client_credentials(
        self, client_id: str, client_secret: str, token_url: str
    ) -> "RequestBuilder":
        """OAuth2 client credentials; the token comes from the client's TokenCache."""
        return self.auth(OAuth2ClientCredentials(client_id, client_secret, token_url))

    # Execution policy

    def timeout(self, seconds: float) -> "RequestBuilder":
        self._timeout = float(seconds)
        return self

    def retries(self, count: int) -> "RequestBuilder":
        self._retry_count = count
        return self

    def retry_delay_ms(self, delay_ms: int) -> "RequestBuilder":
        self._retry_delay_ms = delay_ms
        return self

    def retry(self, count: int, delay_ms: int) -> "RequestBuilder":
        return self.retries(count).retry_delay_ms(delay_ms)

    def retry_if(self, predicate: RetryPredicate) -> "RequestBuilder":
        self._retry_if = predicate
        return self

    def disable_logging(self) -> "RequestBuilder":
        self._log_requests = False
        self._log_responses = False
        return self

    def cancel_with(self, token: CancellationToken) -> "RequestBuilder":
        self._cancel_token = token
        return self

    # Terminal operations

    def build(self, method: Union[str, HttpMethod]) -> RequestSpec:
        return RequestSpec(
            method=getattr(method, "value", method),
            base_uri=self._base_uri,
            base_path=self._base_path,
            path=self._path,
            headers=self._headers,
            query_params=self._query_params,
            path_params=self._path_params,
            form_params=self._form_params,
            files=tuple(self._files),
            body=self._body,
            content_type=self._content_type,
            auth=self._auth,
            timeout=self._timeout,
            retry_count=self._retry_count,
            retry_delay_ms=self._retry_delay_ms,
            retry_if=self._retry_if,
            log_requests=self._log_requests,
            log_responses=self._log_responses,
        )

    def send(self, method: Union[str, HttpMethod]) -> "ResponseResult":
        return self._engine.execute(self.build(method), self._cancel_token)

    def get(self) -> "ResponseResult":
        return self.send(HttpMethod.GET)

    def post(self) -> "ResponseResult":
        return self.send(HttpMethod.POST)

    def put(self) -> "ResponseResult":
        return self.send(HttpMethod.PUT)

    def patch(self) -> "ResponseResult":
        return self.send(HttpMethod.PATCH)

    def delete(self) -> "ResponseResult":
        return self.send(HttpMethod.DELETE)

    def head(self) -> "ResponseResult":
        return self.send(HttpMethod.HEAD)

    def options(self) -> "ResponseResult":
        return self.send(HttpMethod.OPTIONS)


class RequestTemplate:
    """
    Reusable request defaults.

    Usage:
        >>> users_api = (RequestTemplate()
        ...     .base_path("/v1/users")
        ...     .header("X-Tenant", "acme")
        ...     .oauth2_client("id", "secret", "https://auth/token"))
        >>> client.new_request(template=users_api).path("/42").get()
    """

    def __init__(self) -> None:
        self._base_uri: Optional[str] = None
        self._base_path: Optional[str] = None
        self._headers: Dict[str, Any] = {}
        self._query_params: Dict[str, Any] = {}
        self._content_type: Optional[ContentType] = None
        self._auth: AuthDescriptor = None

    def base_uri(self, base_uri: str) -> "RequestTemplate":
        self._base_uri = base_uri
        return self

    def base_path(self, base_path: str) -> "RequestTemplate":
        self._base_path = base_path
        return self

    def header(self, name: str, value: Any) -> "RequestTemplate":
        self._headers[name] = value
        return self

    def query_param(self, name: str, value: Any) -> "RequestTemplate":
        self._query_params[name] = value
        return self

    def content_type(self, content_type: ContentType) -> "RequestTemplate":
        self._content_type = content_type
        return self

    def basic_auth(self, username: str, password: str) -> "RequestTemplate":
        self._auth = BasicAuth(username, password)
        return self

    def bearer_token(self, token: str) -> "RequestTemplate":
        self._auth = BearerAuth(token)
        return self

    def oauth2_client(self, client_id: str, client_secret: str, token_url: str) -> "RequestTemplate":
        self._auth = OAuth2ClientCredentials(client_id, client_secret, token_url)
        return self

    def apply(self, builder: RequestBuilder) -> RequestBuilder:
        if self._base_uri is not None:
            builder.base_uri(self._base_uri)
        if self._base_path is not None:
            builder.base_path(self._base_path)
        if self._content_type is not None:
            builder.content_type(self._content_type)
        if self._headers:
            builder.headers(self._headers)
        if self._query_params:
            builder.query_params(self._query_params)
        if self._auth is not None:
            builder.auth(self._auth)
        return builder


class FileUploadBuilder:
    """Multipart upload executed as a POST through the engine."""

    def __init__(self, builder: RequestBuilder) -> None:
        self._builder = builder

    def to(self, url: str) -> "FileUploadBuilder":
        self._builder.path(url)
        return self

    def add_file(self, param: str, file_path: Union[str, Path]) -> "FileUploadBuilder":
        self._builder.multipart(param, file_path)
        return self

    def form_field(self, name: str, value: str) -> "FileUploadBuilder":
        self._builder.form_param(name, value)
        self._builder.content_type(ContentType.MULTIPART)
        return self

    def headers(self, headers: Mapping[str, Any]) -> "FileUploadBuilder":
        self._builder.headers(headers)
        return self

    def upload(self) -> "ResponseResult":
        return self._builder.post()


__all__ = [
    "FileUploadBuilder",
    "RequestBuilder",
    "RequestTemplate",
]
