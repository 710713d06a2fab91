from .server import create_app
from .routes import ROUTES, extract_session_id, match_preflight, match_route

__all__ = [
    "create_app",
    "ROUTES",
    "extract_session_id",
    "match_preflight",
    "match_route",
]
