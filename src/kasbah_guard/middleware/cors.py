"""CORS handling for a same-machine browser extension caller."""

from __future__ import annotations

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response


def cors_headers(allow_origin: str = "*") -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


# starlette.middleware.cors.CORSMiddleware answers preflights with a plain-text
# "OK" and only when an Origin header is sent; callers expect `{}` for any OPTIONS.
class PermissiveCORSMiddleware(BaseHTTPMiddleware):
    """Answers every preflight with ``200 {}`` and stamps CORS headers on all responses.

    Must be the outermost middleware so preflights never reach routing.
    """

    def __init__(self, app: Callable, allow_origin: str = "*") -> None:
        super().__init__(app)
        self._headers = cors_headers(allow_origin)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS":
            return JSONResponse({}, headers=self._headers)

        response = await call_next(request)
        response.headers.update(self._headers)
        return response
