"""
middleware/request_id.py

Tags each request with an X-Request-ID. A non-blank id sent by the caller is
reused; otherwise a v4 UUID is generated. The id is stored on
request.state.request_id, carried into JSON logs as requestId and echoed on
the response.

Errors that escape the app's own exception handlers are rendered here through
serve_error() while the id is still bound, so the 500 and its "Error is: ..."
log line carry the same id.

Non-developer summary:
----------------------
Every request gets a tracking number. It comes back to the caller in a
response header and appears on every log line written for that request,
including when something fails unexpectedly.
"""

from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..core.logging import request_id_var
from ..httputils.response import serve_error
from ..utils.uuidgen import gen_v4

REQUEST_ID_HEADER = "X-Request-ID"


def _pick_request_id(request: Request) -> str:
    sent = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return sent or gen_v4()


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        rid = _pick_request_id(request)
        request.state.request_id = rid

        token = request_id_var.set(rid)
        try:
            response = await call_next(request)
        except Exception as exc:
            response = serve_error(exc)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
