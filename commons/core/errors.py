"""
core/errors.py

Structured API errors and their classification.

An ApiError is the one error shape the response writer understands natively:
{ code?, message, params? }. Four well-known kinds are recognised by their
(code, message) signature:

    bad request      -> 400
    unauthorized     -> 401 (credentials missing)
    unauthenticated  -> 403 (credentials invalid)
    server error     -> 500

Errors may be wrapped with context on their way up (see wrap()); the
is_*_error() predicates walk the __cause__ chain to the root before
classifying, so wrapping never changes the HTTP status a client sees.

Non-developer summary:
----------------------
Every failure the API reports falls into one of four groups: bad input,
missing login, invalid login, or our own fault. The group decides the status
code; our own faults are never described to the caller.
"""

from __future__ import annotations

import json
import math
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

INVALID_REQ_BODY_ERR_CODE = "invalid request body"
INVALID_REQ_BODY_ERR_MESSAGE = "One or more inputs are invalid, please enter valid information"
SERVER_ERR_CODE = "Internal server error"
SERVER_ERR_MESSAGE = "Something unplanned for has gone wrong"
UNAUTH_ERR_MESSAGE = "Authentication details were not provided"
AUTHENTICATION_ERR_MESSAGE = "Authentication credentials are invalid"


class ErrorKind(str, Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    UNAUTHENTICATED = "unauthenticated"
    SERVER_ERROR = "server_error"
    CUSTOM = "custom"


_SIGNATURES: Mapping[tuple, ErrorKind] = MappingProxyType({
    (INVALID_REQ_BODY_ERR_CODE, INVALID_REQ_BODY_ERR_MESSAGE): ErrorKind.BAD_REQUEST,
    ("", UNAUTH_ERR_MESSAGE): ErrorKind.UNAUTHORIZED,
    ("", AUTHENTICATION_ERR_MESSAGE): ErrorKind.UNAUTHENTICATED,
    (SERVER_ERR_CODE, SERVER_ERR_MESSAGE): ErrorKind.SERVER_ERROR,
})


# ---------- Params ----------

def _check_param_value(value: Any, path: str) -> None:
    if isinstance(value, (str, bool, int)):
        return
    if isinstance(value, float):
        if not math.isfinite(value):
            raise TypeError(f"error param {path!r} must be a finite number")
        return
    if isinstance(value, Mapping):
        for k, v in value.items():
            if not isinstance(k, str):
                raise TypeError(f"error param {path!r} has a non-string key {k!r}")
            _check_param_value(v, f"{path}.{k}")
        return
    if isinstance(value, (list, tuple)):
        for i, v in enumerate(value):
            _check_param_value(v, f"{path}[{i}]")
        return
    raise TypeError(f"error param {path!r} has unsupported type {type(value).__name__}")


class ErrorParams(Dict[str, Any]):
    """
    Extra context attached to an ApiError, e.g. which input was invalid.

    Values are restricted to what JSON can carry (strings, finite numbers,
    booleans, lists and nested string-keyed mappings) and are checked when
    the params are built, so rendering an error can never fail on them.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        for key, value in self.items():
            if not isinstance(key, str):
                raise TypeError(f"error param keys must be strings, got {key!r}")
            _check_param_value(value, key)

    def __setitem__(self, key: str, value: Any) -> None:
        if not isinstance(key, str):
            raise TypeError(f"error param keys must be strings, got {key!r}")
        _check_param_value(value, key)
        super().__setitem__(key, value)

    def to_bad_request(self) -> "ApiError":
        return bad_request_error(self)

    def to_unauthorized_request(self) -> "ApiError":
        return unauthorized_error(self)

    def to_unauthenticated_request(self) -> "ApiError":
        return unauthenticated_error(self)

    def to_server_error(self) -> "ApiError":
        return server_error(self)


def new_error_params(key: str, value: Any) -> ErrorParams:
    """Build a single-entry params mapping."""
    return ErrorParams({key: value})


# ---------- ApiError ----------

class ApiError(Exception):
    """
    A client-facing error: { code?, message, params? }.

    Instances are read-only values. The kind tag is derived from the
    (code, message) pair at construction and is never rendered on the wire.

        raise ApiError("Card already activated", code="card_active", params={"cardId": cid})
    """

    def __init__(self, message: str, *, code: str = "", params: Optional[Mapping[str, Any]] = None):
        if not message:
            raise ValueError("ApiError requires a non-empty message")
        super().__init__(message)
        self._code = code or ""
        self._message = message
        self._params = ErrorParams(params or {})
        self._kind = _SIGNATURES.get((self._code, self._message), ErrorKind.CUSTOM)

    @property
    def code(self) -> str:
        return self._code

    @property
    def message(self) -> str:
        return self._message

    @property
    def params(self) -> Mapping[str, Any]:
        return MappingProxyType(self._params)

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    def to_dict(self) -> Dict[str, Any]:
        """Wire form with stable key order; empty code and params are omitted."""
        body: Dict[str, Any] = {}
        if self._code:
            body["code"] = self._code
        body["message"] = self._message
        if self._params:
            body["params"] = dict(self._params)
        return body

    def __str__(self) -> str:
        try:
            return json.dumps(self.to_dict(), indent="\t", ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError):
            return f"Unmarshed error message: {self._code}"

    def __repr__(self) -> str:
        return f"ApiError(code={self._code!r}, message={self._message!r}, params={dict(self._params)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ApiError):
            return NotImplemented
        return (self._code, self._message, self._params) == (other._code, other._message, other._params)

    def __hash__(self) -> int:
        return hash((self._code, self._message))

    def __reduce__(self):
        return (_rebuild_api_error, (self._message, self._code, dict(self._params)))


def _rebuild_api_error(message: str, code: str, params: Dict[str, Any]) -> ApiError:
    return ApiError(message, code=code, params=params)


# ---------- Well-known constructors ----------

def bad_request_error(params: Optional[Mapping[str, Any]] = None) -> ApiError:
    """Caller-fixable input error; params name the offending field(s)."""
    return ApiError(INVALID_REQ_BODY_ERR_MESSAGE, code=INVALID_REQ_BODY_ERR_CODE, params=params)


def unauthorized_error(params: Optional[Mapping[str, Any]] = None) -> ApiError:
    """Credentials were not provided. params are accepted but not rendered."""
    return ApiError(UNAUTH_ERR_MESSAGE)


def unauthenticated_error(params: Optional[Mapping[str, Any]] = None) -> ApiError:
    """Credentials were provided but are invalid. params are accepted but not rendered."""
    return ApiError(AUTHENTICATION_ERR_MESSAGE)


def server_error(params: Optional[Mapping[str, Any]] = None) -> ApiError:
    return ApiError(SERVER_ERR_MESSAGE, code=SERVER_ERR_CODE, params=params)


# ---------- Wrapping ----------

class WrappedError(Exception):
    """An error annotated with context. The original error is kept as __cause__."""

    def __init__(self, context: str, err: BaseException):
        super().__init__(f"{context}: {err}")
        self.context = context
        self.__cause__ = err


def wrap(err: BaseException, context: str) -> WrappedError:
    """
    Annotate err with context without hiding it from classification.

        raise wrap(exc, f"Unable to open file {name}")
    """
    return WrappedError(context, err)


def cause(err: Optional[BaseException]) -> Optional[BaseException]:
    """Return the root of the __cause__ chain (err itself when nothing is chained)."""
    seen = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        nxt = getattr(err, "__cause__", None)
        if nxt is None:
            break
        err = nxt
    return err


# ---------- Classification ----------

def _kind_of(err: Optional[BaseException]) -> Optional[ErrorKind]:
    root = cause(err)
    if isinstance(root, ApiError):
        return root.kind
    return None


def is_bad_request_error(err: Optional[BaseException]) -> bool:
    return _kind_of(err) is ErrorKind.BAD_REQUEST


def is_unauthorized_error(err: Optional[BaseException]) -> bool:
    return _kind_of(err) is ErrorKind.UNAUTHORIZED


def is_unauthenticated_error(err: Optional[BaseException]) -> bool:
    return _kind_of(err) is ErrorKind.UNAUTHENTICATED


def is_server_error(err: Optional[BaseException]) -> bool:
    return _kind_of(err) is ErrorKind.SERVER_ERROR
