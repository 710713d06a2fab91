"""HTTP gateway for call-session lifecycle requests.

Browser clients talk to this app; it authenticates to the upstream calls
control plane with the app secret, forwards the request, and answers with
``{"result", "valid", "error"}``.

Usage:
    calls-gateway -c calls-gateway.yaml serve --port 5757
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.requests import ClientDisconnect

from ..callservice import TIMEOUT_ERROR, CallService
from ..config import load_config
from ..types import Authorizer, CallResult, GatewayConfig, Route

from .routes import (
    DENIED_BODY,
    cors_headers,
    extract_session_id,
    match_preflight,
    match_route,
    preflight_headers,
)

logger = logging.getLogger(__name__)

MALFORMED_PAYLOAD_ERROR = "malformed payload"

_ALL_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


class _BodyReadError(Exception):
    """Raised when the inbound body cannot be read to completion."""


async def _accumulate_body(request: Request) -> bytes:
    """Collect body chunks in arrival order."""
    chunks: list[bytes] = []
    try:
        async for chunk in request.stream():
            chunks.append(chunk)
    except (ClientDisconnect, OSError) as e:
        raise _BodyReadError(str(e) or type(e).__name__) from e
    return b"".join(chunks)


def _request_path(request: Request) -> str:
    """Path as sent on the wire, percent-escapes intact, without the query."""
    raw = request.scope.get("raw_path")
    if not raw:
        return request.url.path
    return raw.decode("latin-1").partition("?")[0]


def _bearer_token(request: Request) -> str:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def _denied() -> Response:
    return Response(content=DENIED_BODY, status_code=400, media_type="application/json")


def _envelope(result: CallResult) -> JSONResponse:
    return JSONResponse(
        content=result.to_payload(),
        status_code=200,
        headers=cors_headers(),
    )


def create_app(
    config: GatewayConfig | None = None,
    config_path: str | None = None,
    *,
    call_service: CallService | None = None,
    authorizer: Authorizer | None = None,
) -> FastAPI:
    """Create the FastAPI gateway application.

    Args:
        config: Gateway config. Loaded from ``config_path`` when omitted.
        config_path: Path to a calls-gateway config file.
        call_service: Reuse an existing session proxy (tests, embedding).
        authorizer: Optional bearer-token check run before each dispatch.
    """
    if config is None:
        config = load_config(config_path)

    owns_service = call_service is None
    service = call_service or CallService(config.upstream, timeouts=config.timeouts)
    body_timeout = config.timeouts.body_read

    logger.info(
        "Gateway ready: upstream=%s, app_id=%s, authorizer=%s",
        config.upstream.call_base_url,
        config.upstream.app_id,
        "on" if authorizer else "off",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        yield
        if owns_service:
            await service.aclose()

    app = FastAPI(title="calls-gateway", lifespan=lifespan)
    app.state.call_service = service

    async def read_payload(request: Request) -> tuple[Any, CallResult | None]:
        """Return (payload, None) or (None, failure envelope)."""
        try:
            body = await asyncio.wait_for(_accumulate_body(request), body_timeout)
        except asyncio.TimeoutError:
            logger.warning("Body read timed out after %.1fs: %s", body_timeout, request.url.path)
            return None, CallResult(valid=False, error=TIMEOUT_ERROR)
        except _BodyReadError as e:
            logger.warning("Body read failed for %s: %s", request.url.path, e)
            return None, CallResult(valid=False, error=f"request body read failed: {e}")

        try:
            return json.loads(body.decode("utf-8")), None
        except (ValueError, RecursionError):
            # RecursionError: nesting deeper than the json decoder can follow
            logger.warning("Malformed payload on %s (%d bytes)", request.url.path, len(body))
            return None, CallResult(valid=False, error=MALFORMED_PAYLOAD_ERROR)

    async def dispatch(route: Route, request: Request, url_path: str) -> CallResult:
        payload = None
        if route.has_body:
            payload, failure = await read_payload(request)
            if failure is not None:
                return failure

        operation = getattr(service, route.operation)
        if route.needs_session:
            return await operation(extract_session_id(url_path), payload)
        return await operation(payload)

    @app.api_route("/{path:path}", methods=_ALL_METHODS)
    async def catch_all(request: Request, path: str):
        url_path = _request_path(request)

        route = match_route(request.method, url_path)
        if route is not None:
            if authorizer is not None:
                auth = await authorizer(_bearer_token(request))
                if not auth.valid:
                    logger.info("Unauthorized %s %s: %s", request.method, url_path, auth.error)
                    return _denied()
            return _envelope(await dispatch(route, request, url_path))

        preflight = match_preflight(request.method, url_path)
        if preflight is not None:
            return Response(status_code=204, headers=preflight_headers(preflight))

        logger.info("Denied %s %s", request.method, url_path)
        return _denied()

    return app
