"""Starlette HTTP surface for the decision authority.

Bodies are read and parsed before the authority is called, so no request
I/O happens while the authority's lock is held.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from kasbah_guard.config import Settings, load_settings
from kasbah_guard.errors import BodySizeLimitExceeded, InvalidRequestError
from kasbah_guard.guard.authority import DecisionAuthority, parse_json_body
from kasbah_guard.middleware.audit import AuditMiddleware
from kasbah_guard.middleware.cors import PermissiveCORSMiddleware

logger = logging.getLogger(__name__)


def _error_response(error: str, status_code: int) -> JSONResponse:
    return JSONResponse({"ok": False, "error": error}, status_code=status_code)


async def read_body_limited(request: Request, max_size: int) -> bytes:
    """Read the request body, failing early once it exceeds ``max_size`` bytes."""
    content_length = request.headers.get("content-length")
    if content_length:
        try:
            if int(content_length) > max_size:
                raise BodySizeLimitExceeded(f"Body exceeded {max_size} bytes")
        except ValueError:
            logger.warning("Invalid Content-Length header: %r", content_length)

    buf = bytearray()
    async for chunk in request.stream():
        buf.extend(chunk)
        if len(buf) > max_size:
            raise BodySizeLimitExceeded(f"Body exceeded {max_size} bytes")
    return bytes(buf)


async def _read_json(request: Request, max_size: int) -> object:
    return parse_json_body(await read_body_limited(request, max_size))


def create_http_app(
    authority: DecisionAuthority | None = None,
    settings: Settings | None = None,
) -> Starlette:
    """Create the guard HTTP application around an explicitly owned authority."""
    if settings is None:
        settings = load_settings()
    if authority is None:
        authority = DecisionAuthority.from_settings(settings)
    max_body_size = settings.server.max_body_size_kb * 1024

    async def status_handler(request: Request) -> Response:
        return JSONResponse(authority.status())

    async def decide_handler(request: Request) -> Response:
        try:
            payload = await _read_json(request, max_body_size)
        except BodySizeLimitExceeded:
            logger.warning("Rejected /decide body larger than %d bytes", max_body_size)
            return _error_response("request too large", 413)
        except InvalidRequestError as exc:
            return _error_response(str(exc), 400)
        return JSONResponse(authority.decide(payload).to_response())

    async def consume_handler(request: Request) -> Response:
        try:
            payload = await _read_json(request, max_body_size)
        except BodySizeLimitExceeded:
            logger.warning("Rejected /consume body larger than %d bytes", max_body_size)
            return _error_response("request too large", 413)
        except InvalidRequestError as exc:
            return _error_response(str(exc), 400)
        return JSONResponse(authority.consume(payload).to_response())

    async def events_handler(request: Request) -> Response:
        return JSONResponse([event.to_dict() for event in authority.events()])

    async def stats_handler(request: Request) -> Response:
        return JSONResponse(authority.stats().to_dict())

    async def not_found_handler(request: Request, exc: HTTPException) -> Response:
        return _error_response("not found", 404)

    routes = [
        Route("/status", endpoint=status_handler, methods=["GET"]),
        Route("/decide", endpoint=decide_handler, methods=["POST"]),
        Route("/consume", endpoint=consume_handler, methods=["POST"]),
        Route("/events", endpoint=events_handler, methods=["GET"]),
        Route("/stats", endpoint=stats_handler, methods=["GET"]),
    ]
    # Only the listed methods are served; Starlette adds HEAD to GET routes.
    for route in routes:
        route.methods.discard("HEAD")

    # CORS must be outermost so preflights are answered before routing.
    middleware = [
        Middleware(
            PermissiveCORSMiddleware,
            allow_origin=settings.server.cors_allow_origin,
        ),
        Middleware(AuditMiddleware),
    ]

    @asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info(
            "Starting Kasbah Guard on %s:%d", settings.server.host, settings.server.port
        )
        authority.record_startup()
        yield
        logger.info("Kasbah Guard stopped")

    app = Starlette(
        routes=routes,
        middleware=middleware,
        exception_handlers={404: not_found_handler, 405: not_found_handler},
        lifespan=lifespan,
    )
    app.router.redirect_slashes = False
    app.state.authority = authority
    return app
