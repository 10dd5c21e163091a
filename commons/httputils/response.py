"""
httputils/response.py

Response-side helpers: JSON/envelope writers, file downloads and the error
dispatcher.

Error dispatch (checked in this order, on the root cause of the error):

    bad request      -> 400, the ApiError (or {"message": str(err)})
    unauthorized     -> 401, the error as raised
    unauthenticated  -> 403, the error as raised
    anything else    -> 500, a fixed message; the real error is only logged
"""

from __future__ import annotations

import json
import logging
from types import MappingProxyType
from typing import Any, Mapping
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.responses import Response

from ..core.errors import (
    SERVER_ERR_CODE,
    SERVER_ERR_MESSAGE,
    ApiError,
    ErrorParams,
    WrappedError,
    bad_request_error,
    cause,
    is_bad_request_error,
    is_unauthenticated_error,
    is_unauthorized_error,
)
from ..schemas.common import GenericResponse, error_response, success_response
from .sniff import get_file_content_type

logger = logging.getLogger(__name__)

STANDARD_HEADERS: Mapping[str, str] = MappingProxyType({
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "OPTIONS,POST,GET",
    "Access-Control-Allow-Origin": "*",
    "Content-Type": "application/json",
    "X-Content-Type-Options": "nosniff",
})

# Written when even the canonical internal-error envelope cannot be encoded.
_STATIC_INTERNAL_ERROR_BODY = (
    b'{"status":"error","error":{"code":"Internal server error",'
    b'"message":"Something unplanned for has gone wrong"}}'
)


def _dumps(res: Any) -> bytes:
    payload = res.to_wire() if isinstance(res, GenericResponse) else jsonable_encoder(res)
    return json.dumps(payload, ensure_ascii=False, allow_nan=False, separators=(",", ":")).encode("utf-8")


def _json_response(body: bytes, status_code: int) -> Response:
    return Response(content=body, status_code=status_code, headers=dict(STANDARD_HEADERS))


def _log_error(err: BaseException, status_code: int) -> None:
    root = cause(err)
    kind = root.kind.value if isinstance(root, ApiError) else None
    logger.error("Error is: %s", err, extra={"statusCode": status_code, "errorKind": kind})


# ---------- Success side ----------

def serve_json(res: Any, status_code: int) -> Response:
    """Serialize res as JSON with the standard headers. Unencodable values become a 500."""
    try:
        body = _dumps(res)
    except (TypeError, ValueError) as exc:
        return serve_internal_error(exc)
    return _json_response(body, status_code)


def serve_general_json(res: Any, status_code: int) -> Response:
    """Wrap res in a success envelope and serve it."""
    return serve_json(success_response(res), status_code)


def serve_no_content() -> Response:
    return Response(status_code=204, headers=dict(STANDARD_HEADERS))


def _content_disposition(file_name: str) -> str:
    """
    attachment; filename="<ascii>" plus an RFC 6266 filename* parameter when
    the name is not plain ASCII. Control characters are dropped.
    """
    name = "".join(ch for ch in file_name if ch >= " " and ch != "\x7f")
    fallback = name.encode("ascii", "replace").decode("ascii")
    fallback = fallback.replace("\\", "\\\\").replace('"', '\\"')
    value = f'attachment; filename="{fallback}"'
    if not name.isascii():
        value += f"; filename*=UTF-8''{quote(name, safe='')}"
    return value


def serve_file(file_name: str, data: bytes) -> Response:
    """Serve raw bytes as a download; the content type is sniffed from data."""
    headers = {
        "Access-Control-Allow-Origin": "*",
        "Content-Type": get_file_content_type(data),
        "Content-Disposition": _content_disposition(file_name),
    }
    return Response(content=data, status_code=200, headers=headers)


# ---------- Error side ----------

def serve_internal_error(err: BaseException) -> Response:
    """
    500 with the canonical server-error body. err is logged, never rendered.
    Falls back to a static body if the envelope itself cannot be encoded.
    """
    _log_error(err, 500)

    dto = ApiError(SERVER_ERR_MESSAGE, code=SERVER_ERR_CODE)
    try:
        body = _dumps(error_response(dto))
    except (TypeError, ValueError) as exc:
        logger.error("Unable to encode internal error response: %s", exc)
        body = _STATIC_INTERNAL_ERROR_BODY
    return _json_response(body, 500)


def _serve_error_envelope(err: BaseException, status_code: int) -> Response:
    try:
        body = _dumps(error_response(err))
    except (TypeError, ValueError) as exc:
        return serve_internal_error(exc)
    return _json_response(body, status_code)


def _serve_bad_request_error(err: BaseException) -> Response:
    _log_error(err, 400)
    dto = err if isinstance(err, ApiError) else ApiError(str(err) or type(err).__name__)
    return _serve_error_envelope(dto, 400)


def _serve_unauthorized_response(err: BaseException) -> Response:
    # Credentials were not provided.
    _log_error(err, 401)
    return _serve_error_envelope(err, 401)


def _serve_authentication_err_response(err: BaseException) -> Response:
    # Credentials were provided but are invalid.
    _log_error(err, 403)
    return _serve_error_envelope(err, 403)


def serve_error(err: BaseException) -> Response:
    """Classify err and serve it with 400, 401, 403 or 500."""
    if is_bad_request_error(err):
        return _serve_bad_request_error(err)
    if is_unauthorized_error(err):
        return _serve_unauthorized_response(err)
    if is_unauthenticated_error(err):
        return _serve_authentication_err_response(err)
    return serve_internal_error(err)


# ---------- FastAPI wiring ----------

async def api_error_handler(request: Request, exc: Exception) -> Response:
    return serve_error(exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> Response:
    """
    FastAPI request validation failures become bad requests whose params map
    each failing location (e.g. "body.email") to its message.
    """
    params = ErrorParams()
    for item in exc.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "request"
        params[loc] = str(item.get("msg", "invalid value"))
    return serve_error(bad_request_error(params))


def install_error_handlers(app: FastAPI) -> None:
    """
    Route raised errors through serve_error():

        app = FastAPI()
        install_error_handlers(app)

        @app.get("/cards/{id}")
        async def get_card(request: Request):
            raise unauthenticated_error(None)   # -> 403 envelope
    """
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(WrappedError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, api_error_handler)

