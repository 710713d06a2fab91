"""Session proxy for the upstream calls control plane.

Each lifecycle operation maps to one authenticated REST call against
``{call_base_url}{app_id}/sessions/`` and resolves to a :class:`CallResult`.
Failures never raise: transport errors, timeouts, non-2xx statuses and
unparseable bodies all come back as ``valid=False`` with an error string.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from .types import CallResult, TimeoutConfig, UpstreamConfig

logger = logging.getLogger(__name__)

TIMEOUT_ERROR = "timeout"
MALFORMED_RESPONSE_ERROR = "malformed upstream response"

_NO_BODY = object()


class CallService:
    """Client for session lifecycle operations.

    One instance is safe to share across concurrent requests: its config
    is frozen and the underlying ``httpx.AsyncClient`` is reentrant.
    """

    def __init__(
        self,
        config: UpstreamConfig,
        client: httpx.AsyncClient | None = None,
        timeouts: TimeoutConfig | None = None,
    ) -> None:
        self.config = config
        self.base_url = config.sessions_url
        timeouts = timeouts or TimeoutConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeouts.upstream, connect=timeouts.connect),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> CallService:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    async def create_new_session(self, payload: Any) -> CallResult:
        """Open a new session (the server side of a PeerConnection)."""
        return await self._json_request("POST", self.base_url + "new", payload)

    async def add_new_track(self, session_id: str, payload: Any) -> CallResult:
        """Add a local or remote media track to an existing session."""
        return await self._json_request(
            "POST", self.base_url + session_id + "/tracks/new", payload,
        )

    async def renegotiate_session(self, session_id: str, payload: Any) -> CallResult:
        """Send an updated session description after track changes."""
        return await self._json_request(
            "PUT", self.base_url + session_id + "/renegotiate", payload,
        )

    async def close_track(self, session_id: str, payload: Any) -> CallResult:
        """Remove tracks from a session."""
        return await self._json_request(
            "PUT", self.base_url + session_id + "/tracks/close", payload,
        )

    async def get_session_information(
        self, session_id: str, payload: Any = None,
    ) -> CallResult:
        """Fetch the upstream's view of a session. ``payload`` is ignored."""
        return await self._json_request("GET", self.base_url + session_id)

    # ------------------------------------------------------------------
    # Request / classification core
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.app_secret}",
        }

    async def _json_request(
        self, method: str, url: str, payload: Any = _NO_BODY,
    ) -> CallResult:
        content = None
        if payload is not _NO_BODY:
            content = json.dumps(payload).encode("utf-8")

        if self.config.debug:
            logger.info("upstream %s %s", method, url)

        try:
            resp = await self._client.request(
                method, url, headers=self._headers(), content=content,
            )
        except httpx.TimeoutException as e:
            logger.warning("upstream %s %s timed out: %r", method, url, e)
            return CallResult(valid=False, error=TIMEOUT_ERROR)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            # InvalidURL is not an HTTPError; raised for ids httpx cannot put in a URL
            logger.warning("upstream %s %r failed: %r", method, url, e)
            return CallResult(valid=False, error=str(e) or type(e).__name__)

        return self._classify(method, url, resp)

    def _classify(self, method: str, url: str, resp: httpx.Response) -> CallResult:
        if self.config.debug:
            logger.info("upstream %s %s -> %d", method, url, resp.status_code)

        if not 200 <= resp.status_code < 300:
            reason = resp.reason_phrase or str(resp.status_code)
            logger.warning(
                "upstream %s %s returned %d %s", method, url, resp.status_code, reason,
            )
            return CallResult(valid=False, error=reason)

        try:
            body = resp.json()
        except ValueError:
            logger.warning(
                "upstream %s %s returned %d with a non-JSON body",
                method, url, resp.status_code,
            )
            return CallResult(valid=False, error=MALFORMED_RESPONSE_ERROR)

        return CallResult(valid=True, response=body)
