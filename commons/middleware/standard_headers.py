"""
middleware/standard_headers.py

Applies the CORS and nosniff part of STANDARD_HEADERS to every response,
including ones the toolkit writers did not build (framework 404s, plain
JSONResponses, preflight replies). Content-Type is left to each response.
Headers a response already carries are never overwritten.

Non-developer summary:
----------------------
Makes sure browsers on other sites may call the API and never second-guess
the type of what we send back, no matter which part of the service built
the reply.
"""

from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..httputils.response import STANDARD_HEADERS

_APPLIED = tuple((k, v) for k, v in STANDARD_HEADERS.items() if k != "Content-Type")


class StandardHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            resp: Response = Response(status_code=204)
        else:
            resp = await call_next(request)

        for name, value in _APPLIED:
            resp.headers.setdefault(name, value)
        return resp
