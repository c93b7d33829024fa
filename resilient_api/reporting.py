"""
================================================================================
Allure Reporting Helpers
================================================================================

Attaches request/response details to the Allure report:
    - Request URL, redacted headers and body
    - cURL command for reproduction
    - Response status and (truncated) body

Sensitive header values and body fields are masked before anything is
attached or logged.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional

import allure
import httpx
from allure_commons.types import AttachmentType


# Maximum response length to include in Allure reports
MAX_RESPONSE_LENGTH = 3000

MASK = "***MASKED***"

SENSITIVE_HEADERS = frozenset(
    {"authorization", "proxy-authorization", "x-api-key", "x-app-auth", "cookie", "set-cookie"}
)

SENSITIVE_BODY_KEYS = ("password", "secret", "token", "api_key", "authorization", "session")


def redact_headers(headers: Mapping[str, Any]) -> Dict[str, Any]:
    """Mask sensitive header values before logging."""
    return {
        key: MASK if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def redact_body(payload: Any) -> Any:
    """Recursively mask sensitive fields in request bodies."""
    if isinstance(payload, dict):
        redacted = {}
        for key, value in payload.items():
            if any(token in str(key).lower() for token in SENSITIVE_BODY_KEYS):
                redacted[key] = MASK
            else:
                redacted[key] = redact_body(value)
        return redacted
    if isinstance(payload, list):
        return [redact_body(item) for item in payload]
    return payload


def build_curl(
    method: str,
    url: str,
    headers: Mapping[str, Any],
    body: Optional[str] = None,
) -> str:
    """
    Build cURL command for request reproduction.

    Headers are expected to be redacted already.
    """
    parts = [f"curl -X {method}"]
    for key, value in headers.items():
        parts.append(f"-H '{key}: {value}'")
    if body:
        parts.append(f"-d '{body}'")
    parts.append(f"'{url}'")
    return " \\\n  ".join(parts)


def _request_body_for_report(request: httpx.Request) -> Optional[str]:
    try:
        content = request.content
    except httpx.RequestNotRead:
        return "<streamed>"
    if not content:
        return None
    text = content.decode("utf-8", errors="replace")
    try:
        return json.dumps(redact_body(json.loads(text)), ensure_ascii=False)
    except ValueError:
        return text


def _truncate(text: str) -> str:
    if len(text) > MAX_RESPONSE_LENGTH:
        return (
            f"{text[:MAX_RESPONSE_LENGTH]}\n\n"
            f"... [Truncated, full length: {len(text)} chars] ..."
        )
    return text


def attach_exchange(response: httpx.Response, attempts: int = 1) -> None:
    """Attach one request/response exchange to the current Allure step."""
    request = response.request
    status_mark = "PASS" if response.status_code < 400 else "FAIL"
    step_title = f"[{status_mark}] {request.method} {request.url.path} -> {response.status_code}"
    if attempts > 1:
        step_title = f"{step_title} (attempt {attempts})"

    with allure.step(step_title):
        allure.attach(str(request.url), name="Request URL", attachment_type=AttachmentType.TEXT)

        safe_headers = redact_headers(request.headers)
        if safe_headers:
            allure.attach(
                json.dumps(safe_headers, ensure_ascii=False, indent=2),
                name="Request Headers",
                attachment_type=AttachmentType.JSON,
            )

        body = _request_body_for_report(request)
        if body:
            allure.attach(body, name="Request Body", attachment_type=AttachmentType.TEXT)

        allure.attach(
            build_curl(request.method, str(request.url), safe_headers, body),
            name="cURL Command",
            attachment_type=AttachmentType.TEXT,
        )

        allure.attach(
            f"{status_mark} {response.status_code}",
            name="Response Status",
            attachment_type=AttachmentType.TEXT,
        )

        try:
            response_content = json.dumps(response.json(), ensure_ascii=False, indent=2)
            attachment_type = AttachmentType.JSON
        except ValueError:
            response_content = response.text or "<empty>"
            attachment_type = AttachmentType.TEXT

        allure.attach(
            _truncate(response_content),
            name="Response Body",
            attachment_type=attachment_type,
        )


__all__ = [
    "MASK",
    "MAX_RESPONSE_LENGTH",
    "attach_exchange",
    "build_curl",
    "redact_body",
    "redact_headers",
]
