"""calls-gateway: HTTP gateway for real-time call-session lifecycle requests."""

from .callservice import CallService
from .config import load_config, validate_config
from .types import (
    AuthResult,
    Authorizer,
    CallResult,
    GatewayConfig,
    ServerConfig,
    TimeoutConfig,
    UpstreamConfig,
)

__version__ = "0.1.0"

__all__ = [
    "CallService",
    "load_config",
    "validate_config",
    "AuthResult",
    "Authorizer",
    "CallResult",
    "GatewayConfig",
    "ServerConfig",
    "TimeoutConfig",
    "UpstreamConfig",
]
