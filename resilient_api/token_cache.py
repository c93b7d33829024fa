"""
================================================================================
OAuth2 Client-Credentials Token Cache
================================================================================

Caches access tokens per (client_id, token_url) with:
    - Expiry-aware reuse with a 10 second skew window
    - Single-flight refresh: at most one token request per key at a time
    - Per-key locking, so unrelated credentials refresh concurrently
    - Background sweeper removing expired entries every 5 minutes

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import httpx
from loguru import logger

from .exceptions import TokenAcquisitionError


# Default token TTL when the endpoint omits expires_in (1 hour in seconds)
DEFAULT_TOKEN_TTL = 3600

# A token is treated as stale this many seconds before its real expiry
TOKEN_SKEW_SECONDS = 10

# Sweeper period (5 minutes)
SWEEP_INTERVAL_SECONDS = 300

# Timeout for token endpoint calls
TOKEN_REQUEST_TIMEOUT = 30.0


@dataclass(frozen=True)
class _CachedToken:
    token: str
    expires_at: float


CacheKey = Tuple[str, str]


class TokenCache:
    """
    Thread-safe OAuth2 client-credentials token cache.

    Lookups take a lock-free fast path while the cached token is fresh.
    Stale or missing tokens are fetched under a lock scoped to the key,
    with a re-check after acquiring it, so concurrent callers for the same
    key trigger exactly one token request.

    Usage:
        >>> cache = TokenCache()
        >>> token = cache.get_token("client", "secret", "https://auth/token")
        >>> cache.close()
    """

    def __init__(
        self,
        http_client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.time,
        sweep_interval: Optional[float] = SWEEP_INTERVAL_SECONDS,
    ) -> None:
        """
        Initialize token cache.

        Args:
            http_client: Client used for token requests. A private one is
                created (and closed by ``close``) if None.
            clock: Wall-clock source in seconds
            sweep_interval: Sweeper period in seconds; None disables the
                background thread
        """
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=TOKEN_REQUEST_TIMEOUT)
        self._clock = clock
        self._tokens: Dict[CacheKey, _CachedToken] = {}
        self._key_locks: Dict[CacheKey, threading.Lock] = {}
        self._locks_guard = threading.Lock()

        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        if sweep_interval:
            self._sweeper = threading.Thread(
                target=self._sweep_loop,
                args=(sweep_interval,),
                name="TokenCache-Sweeper",
                daemon=True,
            )
            self._sweeper.start()

    def get_token(self, client_id: str, client_secret: str, token_url: str) -> str:
        """
        Return a valid access token, fetching one if necessary.

        Raises:
            TokenAcquisitionError: When the token endpoint fails
        """
        key = (client_id, token_url)

        cached = self._fresh(key)
        if cached is not None:
            return cached

        while True:
            lock = self._lock_for(key)
            with lock:
                # The sweeper dropped this lock while we waited for it
                if self._key_locks.get(key) is not lock:
                    continue

                # Another thread may have refreshed while we waited
                cached = self._fresh(key)
                if cached is not None:
                    return cached

                token, ttl = self._request_new_token(client_id, client_secret, token_url)
                self._tokens[key] = _CachedToken(token=token, expires_at=self._clock() + ttl)
                logger.info(f"Token refreshed and cached for client '{client_id}' ({ttl}s)")
                return token

    def _fresh(self, key: CacheKey) -> Optional[str]:
        cached = self._tokens.get(key)
        if cached is not None and self._clock() < cached.expires_at - TOKEN_SKEW_SECONDS:
            return cached.token
        return None

    def _lock_for(self, key: CacheKey) -> threading.Lock:
        with self._locks_guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def _request_new_token(
        self, client_id: str, client_secret: str, token_url: str
    ) -> Tuple[str, float]:
        """
        Request new token from the token endpoint.

        Returns:
            (access_token, ttl_seconds)
        """
        form = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
        }
        try:
            response = self._http.post(token_url, data=form)
        except httpx.HTTPError as e:
            raise TokenAcquisitionError(f"Error fetching token from {token_url}: {e}") from e

        if not response.is_success:
            raise TokenAcquisitionError(
                f"Failed to obtain token: {response.status_code} "
                f"{response.reason_phrase} - {response.text}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TokenAcquisitionError(f"Token endpoint returned non-JSON body: {response.text}") from e

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise TokenAcquisitionError(f"Token response from {token_url} has no access_token")

        expires_in = payload.get("expires_in")
        try:
            ttl = float(expires_in) if expires_in is not None else DEFAULT_TOKEN_TTL
        except (TypeError, ValueError):
            ttl = DEFAULT_TOKEN_TTL
        if ttl <= 0:
            ttl = DEFAULT_TOKEN_TTL
        return token, ttl

    def sweep(self) -> int:
        """
        Remove entries whose expiry already passed. Returns removed count.

        Each entry is removed under its key lock and only if it is still the
        entry seen as expired, so a token refreshed meanwhile survives. Keys
        being refreshed right now are skipped. Idle locks of keys without a
        cached token are dropped afterwards.
        """
        now = self._clock()
        expired = [
            (key, cached) for key, cached in list(self._tokens.items()) if cached.expires_at < now
        ]
        removed = 0
        for key, cached in expired:
            lock = self._lock_for(key)
            if not lock.acquire(blocking=False):
                continue
            try:
                if self._tokens.get(key) is cached:
                    del self._tokens[key]
                    removed += 1
            finally:
                lock.release()

        with self._locks_guard:
            for key, lock in list(self._key_locks.items()):
                if key not in self._tokens and lock.acquire(blocking=False):
                    del self._key_locks[key]
                    lock.release()

        if removed:
            logger.debug(f"Swept {removed} expired token(s)")
        return removed

    def _sweep_loop(self, interval: float) -> None:
        while not self._stop.wait(interval):
            try:
                self.sweep()
            except Exception as e:  # pragma: no cover
                logger.warning(f"Token sweep failed: {e}")

    def invalidate(self, client_id: str, token_url: str) -> None:
        """Drop one cached token; the next lookup fetches a new one."""
        key = (client_id, token_url)
        with self._lock_for(key):
            self._tokens.pop(key, None)

    def clear(self) -> None:
        self._tokens.clear()

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, key: object) -> bool:
        return key in self._tokens

    def close(self) -> None:
        """Stop the sweeper and release the private HTTP client."""
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1.0)
            self._sweeper = None
        if self._owns_client:
            self._http.close()


__all__ = [
    "DEFAULT_TOKEN_TTL",
    "SWEEP_INTERVAL_SECONDS",
    "TOKEN_SKEW_SECONDS",
    "TokenCache",
]
