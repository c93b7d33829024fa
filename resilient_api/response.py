"""
================================================================================
Response Result
================================================================================

Read-only view over one terminal HTTP response, with:
    - Status, headers and body accessors
    - JSONPath field extraction (jsonpath-ng)
    - Fluent assertions raising ResponseAssertionError
    - Soft assertions that log instead of failing
    - JSON Schema validation (jsonschema)

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, TypeVar, Union

import httpx
from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.exceptions import JSONPathError
from jsonschema import SchemaError
from jsonschema.validators import validator_for
from loguru import logger

from .exceptions import ApiSerializationError, ResponseAssertionError
from .metrics import MetricsRegistry
from .serialization import JsonMapper


T = TypeVar("T")

# Sentinel for "no value at this path"
_MISSING = object()


class ResponseResult:
    """
    Wrapper around a terminal httpx.Response.

    All assertion methods return ``self`` so they can be chained.

    Usage:
        >>> result = client.new_request().path("/users/{id}").path_param("id", 7).get()
        >>> result.assert_status(200).assert_field_equals("data.id", 7)
        >>> user = result.as_(User)
    """

    def __init__(
        self,
        response: httpx.Response,
        mapper: Optional[JsonMapper] = None,
        metrics: Optional[MetricsRegistry] = None,
        elapsed_ms: Optional[float] = None,
    ) -> None:
        self._response = response
        self._mapper = mapper or JsonMapper()
        self._metrics = metrics
        self._elapsed_ms = elapsed_ms
        self._json: Any = _MISSING

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def raw(self) -> httpx.Response:
        return self._response

    @property
    def metrics(self) -> Optional[MetricsRegistry]:
        return self._metrics

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def status_line(self) -> str:
        return f"{self._response.http_version} {self.status_code} {self._response.reason_phrase}"

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    def header(self, name: str) -> Optional[str]:
        return self._response.headers.get(name)

    @property
    def body(self) -> str:
        return self._response.text

    @property
    def content(self) -> bytes:
        return self._response.content

    @property
    def response_time_ms(self) -> float:
        if self._elapsed_ms is not None:
            return self._elapsed_ms
        return self._response.elapsed.total_seconds() * 1000

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Parsed JSON body, cached after the first call."""
        if self._json is _MISSING:
            self._json = self._mapper.deserialize(self.body)
        return self._json

    def as_(self, target: Type[T]) -> T:
        """Deserialize the body into ``target`` (dataclass, list type, ...)."""
        return self._mapper.deserialize(self.body, target)

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def _find(self, path: str) -> List[Any]:
        try:
            expression = jsonpath_parse(path)
        except JSONPathError as e:
            raise ApiSerializationError(f"Invalid JSONPath expression '{path}': {e}") from e
        return [match.value for match in expression.find(self.json())]

    def extract(self, path: str, default: Any = None) -> Any:
        """
        Extract a value by JSONPath ("data.id", "$.items[0].name").

        Returns the single match, a list when the path matches several
        values, or ``default`` when nothing matches.
        """
        matches = self._find(path)
        if not matches:
            return default
        return matches[0] if len(matches) == 1 else matches

    def extract_list(self, path: str) -> List[Any]:
        """All values matched by ``path``, flattening a single list match."""
        matches = self._find(path)
        if len(matches) == 1 and isinstance(matches[0], list):
            return list(matches[0])
        return matches

    # ------------------------------------------------------------------
    # Assertions
    # ------------------------------------------------------------------

    def assert_status(self, expected: int) -> "ResponseResult":
        if self.status_code != expected:
            raise ResponseAssertionError(
                f"Expected {expected} but got {self.status_code}. Body: {self.body}"
            )
        return self

    def assert_success(self) -> "ResponseResult":
        if not self.is_success:
            raise ResponseAssertionError(
                f"Expected success but got {self.status_code}. Body: {self.body}"
            )
        return self

    def assert_field_equals(self, path: str, expected: Any) -> "ResponseResult":
        actual = self.extract(path)
        if actual != expected:
            raise ResponseAssertionError(
                f"JsonPath {path} expected {expected!r} but got {actual!r}. "
                f"Status: {self.status_code}"
            )
        return self

    def assert_predicate(
        self,
        path: str,
        predicate: Callable[[Any], bool],
        message_if_fail: str = "predicate returned False",
    ) -> "ResponseResult":
        actual = self.extract(path)
        if not predicate(actual):
            raise ResponseAssertionError(
                f"Predicate failed for {path}: {message_if_fail} (actual={actual!r})"
            )
        return self

    def assert_header(self, name: str, expected: str) -> "ResponseResult":
        actual = self.header(name)
        if actual != expected:
            raise ResponseAssertionError(
                f"Header '{name}' expected '{expected}' but got '{actual}'"
            )
        return self

    def assert_response_time(self, max_ms: float) -> "ResponseResult":
        actual = self.response_time_ms
        if actual > max_ms:
            raise ResponseAssertionError(
                f"Response time {actual:.0f}ms exceeded maximum {max_ms:.0f}ms"
            )
        return self

    def soft_assert(self, validator: Callable[["ResponseResult"], Any]) -> "ResponseResult":
        """Run ``validator``; log assertion failures instead of raising them."""
        try:
            validator(self)
        except (AssertionError, ApiSerializationError) as e:
            logger.warning(f"Soft assertion failed: {e}")
        return self

    def validate_schema(self, schema: Union[Mapping[str, Any], str, Path]) -> "ResponseResult":
        """
        Validate the JSON body against a JSON Schema.

        Args:
            schema: Schema mapping, JSON string, or path to a schema file

        Raises:
            ResponseAssertionError: When the body does not match
            ApiSerializationError: When the schema cannot be loaded
        """
        schema_doc = self._load_schema(schema)
        validator_cls = validator_for(schema_doc)
        try:
            validator_cls.check_schema(schema_doc)
        except SchemaError as e:
            raise ApiSerializationError(f"Invalid JSON schema: {e.message}") from e

        errors = sorted(
            validator_cls(schema_doc).iter_errors(self.json()),
            key=lambda err: list(err.absolute_path),
        )
        if errors:
            details = "\n".join(
                f"- {'/'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
                for err in errors
            )
            raise ResponseAssertionError(
                f"Schema validation failed ({len(errors)} error(s)):\n{details}\nBody: {self.body}"
            )
        return self

    @staticmethod
    def _load_schema(schema: Union[Mapping[str, Any], str, Path]) -> Dict[str, Any]:
        if isinstance(schema, Mapping):
            return dict(schema)
        try:
            if isinstance(schema, Path) or not str(schema).lstrip().startswith("{"):
                text = Path(schema).read_text(encoding="utf-8")
            else:
                text = str(schema)
            loaded = json.loads(text)
        except (OSError, ValueError) as e:
            raise ApiSerializationError(f"Failed to load schema from: {schema}") from e
        if not isinstance(loaded, dict):
            raise ApiSerializationError("JSON schema root must be an object")
        return loaded

    def log_response(self) -> "ResponseResult":
        logger.info(f"Status: {self.status_code}, Time: {self.response_time_ms:.0f} ms")
        logger.info(f"Body: {self.body}")
        return self

    def __repr__(self) -> str:
        return f"<ResponseResult {self.status_code} {self._response.request.method} {self._response.url}>"


__all__ = ["ResponseResult"]
