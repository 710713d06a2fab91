"""Routing table for the inbound session-lifecycle API."""

from __future__ import annotations

from ..types import Route

API_PREFIX = "/api/cf/call/sessions/"
SESSION_SEGMENT = 6  # /api/cf/call/sessions/<action>/<sessionId>

ROUTES: tuple[Route, ...] = (
    Route("GET", API_PREFIX + "info", "get_session_information", True, False),
    Route("PUT", API_PREFIX + "close", "close_track", True, True),
    Route("PUT", API_PREFIX + "reneg", "renegotiate_session", True, True),
    Route("POST", API_PREFIX + "add", "add_new_track", True, True),
    Route("POST", API_PREFIX + "new", "create_new_session", False, True),
)

ALLOW_HEADERS = "Authorization, Content-Type"
DENIED_BODY = b'{"result":"Access Denied"}'


def match_route(method: str, path: str) -> Route | None:
    """Return the route whose method and path prefix match, if any."""
    method = method.upper()
    for route in ROUTES:
        if method == route.method and path.startswith(route.prefix):
            return route
    return None


def match_preflight(method: str, path: str) -> Route | None:
    """Return the route an OPTIONS request is asking about, if any."""
    if method.upper() != "OPTIONS":
        return None
    for route in ROUTES:
        if path.startswith(route.prefix):
            return route
    return None


def extract_session_id(path: str) -> str:
    """Return path segment 6 verbatim, or "" when the path is too short."""
    parts = path.split("/")
    if len(parts) > SESSION_SEGMENT:
        return parts[SESSION_SEGMENT]
    return ""


def cors_headers() -> dict[str, str]:
    return {"Access-Control-Allow-Origin": "*"}


def preflight_headers(route: Route) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": f"OPTIONS, {route.method}",
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
    }
