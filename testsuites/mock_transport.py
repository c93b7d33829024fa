"""
Test doubles shared by the unit suites.

    - FakeSleep: records retry waits instead of sleeping
    - status_sequence: MockTransport handler replaying scripted outcomes
    - token_endpoint: MockTransport handler counting token requests
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import httpx


BASE_URL = "https://api.example.com"
TOKEN_URL = "https://auth.example.com/oauth/token"


class FakeSleep:
    """Callable replacing time.sleep; remembers every requested delay."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def status_sequence(
    statuses: Iterable[Union[int, Exception]],
    headers: Optional[Dict[str, str]] = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """
    Build a handler replaying ``statuses`` in order.

    Exceptions in the sequence are raised instead of returning a response.
    The last item repeats once the sequence is exhausted. Received requests
    are kept on ``handler.requests``.
    """
    items = list(statuses)
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        item = items[min(len(seen), len(items) - 1)]
        seen.append(request)
        if isinstance(item, Exception):
            raise item
        return httpx.Response(item, json={"status": item}, headers=headers)

    handler.requests = seen
    return handler


def token_endpoint(
    payload: Optional[Dict[str, Any]] = None,
    status: int = 200,
    before_reply: Optional[Callable[[], Any]] = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """Handler emulating an OAuth2 token endpoint; counts calls on ``handler.requests``."""
    seen: List[httpx.Request] = []
    body = payload if payload is not None else {"access_token": "tok-1", "expires_in": 3600}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if before_reply is not None:
            before_reply()
        return httpx.Response(status, json=body)

    handler.requests = seen
    return handler
