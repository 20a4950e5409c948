"""
Upstream Token Manager

Exchanges static credentials for a bearer token and caches it in memory.

Lifecycle:
- No token until the first ensure_token() (or a successful warm_up())
- The cached token is reused until a request is rejected
- invalidate() drops it; the next ensure_token() re-authenticates

Only one exchange runs at a time. Concurrent callers wait on the lock and
reuse the token the first caller obtained.
"""

import asyncio
import logging
import time
from typing import Optional

import httpx

from ..core.constants import ENDPOINT_AUTH, MAX_ERROR_BODY_CHARS
from ..core.errors import AuthError
from ..core.metrics import record_token_exchange, record_upstream_request
from ..core.types import Credentials

logger = logging.getLogger(__name__)


class TokenManager:
    """Owns the single cached upstream access token."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        credentials: Credentials,
    ):
        self._client = http_client
        self._auth_url = f"{base_url.rstrip('/')}/auth"
        self._credentials = credentials
        self._token: Optional[str] = None
        self._lock = asyncio.Lock()

    @property
    def has_token(self) -> bool:
        return self._token is not None

    async def ensure_token(self) -> str:
        """
        Return the cached token, authenticating first if there is none.

        Raises:
            AuthError: if the exchange fails (network error, non-2xx, bad body)
        """
        token = self._token
        if token is not None:
            return token

        async with self._lock:
            # Another caller may have finished the exchange while we waited
            if self._token is None:
                self._token = await self._authenticate()
            return self._token

    def invalidate(self, stale_token: Optional[str] = None) -> None:
        """
        Drop the cached token.

        If stale_token is given, only drop the cache when it still holds that
        token; a newer token obtained by a concurrent request is kept.
        """
        if stale_token is not None and self._token != stale_token:
            logger.debug("Token already refreshed by another request")
            return
        if self._token is not None:
            logger.info("Invalidating cached upstream token")
        self._token = None

    async def warm_up(self) -> bool:
        """
        Best-effort token exchange at startup.

        Failures are logged and swallowed; the first real request retries.
        """
        try:
            await self.ensure_token()
        except AuthError as e:
            logger.warning(f"Startup authentication failed, will retry on first request: {e}")
            return False
        logger.info("Startup authentication succeeded")
        return True

    async def _authenticate(self) -> str:
        """POST credentials to the auth endpoint and return the access token."""
        logger.info(f"Authenticating with upstream at {self._auth_url}")
        start_time = time.time()

        try:
            response = await self._client.post(
                self._auth_url, json=self._credentials.to_payload()
            )
        except httpx.TimeoutException as e:
            record_upstream_request(ENDPOINT_AUTH, "timeout", time.time() - start_time)
            record_token_exchange(success=False)
            logger.error(f"Authentication timed out: {e}")
            raise AuthError("Upstream authentication timed out") from e
        except httpx.HTTPError as e:
            record_upstream_request(ENDPOINT_AUTH, "error", time.time() - start_time)
            record_token_exchange(success=False)
            logger.error(f"Authentication request failed: {type(e).__name__}: {e}")
            raise AuthError(f"Upstream authentication failed: {e}") from e

        latency = time.time() - start_time

        if not 200 <= response.status_code < 300:
            body = response.text[:MAX_ERROR_BODY_CHARS] if response.text else "no body"
            record_upstream_request(ENDPOINT_AUTH, "error", latency)
            record_token_exchange(success=False)
            logger.error(f"Authentication failed with HTTP {response.status_code}: {body}")
            raise AuthError(f"Upstream authentication returned HTTP {response.status_code}")

        try:
            token = response.json().get("access_token")
        except (ValueError, AttributeError) as e:
            record_upstream_request(ENDPOINT_AUTH, "error", latency)
            record_token_exchange(success=False)
            raise AuthError("Upstream authentication returned an unreadable body") from e

        if not isinstance(token, str) or not token:
            record_upstream_request(ENDPOINT_AUTH, "error", latency)
            record_token_exchange(success=False)
            raise AuthError("Upstream authentication response has no access_token")

        record_upstream_request(ENDPOINT_AUTH, "success", latency)
        record_token_exchange(success=True)
        logger.info("Obtained upstream access token")
        return token
