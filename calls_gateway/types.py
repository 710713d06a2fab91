"""Dataclasses, Protocols, and type aliases for calls-gateway."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

DEFAULT_CALL_BASE_URL = "https://rtc.live.cloudflare.com/v1/apps/"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UpstreamConfig:
    """Credentials and base URL for the upstream calls control plane."""
    app_id: str = ""
    app_secret: str = ""
    call_base_url: str = DEFAULT_CALL_BASE_URL
    debug: bool = False

    @property
    def sessions_url(self) -> str:
        return self.call_base_url + self.app_id + "/sessions/"


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 10.0
    upstream: float = 30.0
    body_read: float = 30.0


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 5757


@dataclass(frozen=True)
class GatewayConfig:
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class CallResult:
    """Outcome of one upstream lifecycle call.

    ``valid`` is True only when the call completed, the upstream answered
    with a 2xx status, and the body parsed as JSON.
    """
    valid: bool
    response: Any = None
    error: str | None = None

    def to_payload(self) -> dict:
        """Client-facing body: ``{"result", "valid", "error"}``."""
        return {
            "result": self.response,
            "valid": self.valid,
            "error": self.error,
        }


@dataclass
class AuthResult:
    valid: bool
    user_name: str = ""
    client_id: str = ""
    error: str | None = None


@runtime_checkable
class Authorizer(Protocol):
    """Verifies a bearer credential presented by a browser client."""
    async def __call__(self, token: str) -> AuthResult: ...


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Route:
    method: str
    prefix: str
    operation: str      # CallService method name
    needs_session: bool
    has_body: bool
