import json
import pickle

import pytest

from commons.core import errors as errors_mod
from commons.core.errors import (
    ApiError,
    ErrorKind,
    ErrorParams,
    WrappedError,
    bad_request_error,
    cause,
    is_bad_request_error,
    is_server_error,
    is_unauthenticated_error,
    is_unauthorized_error,
    new_error_params,
    server_error,
    unauthenticated_error,
    unauthorized_error,
    wrap,
)

PREDICATES = {
    "bad_request": is_bad_request_error,
    "unauthorized": is_unauthorized_error,
    "unauthenticated": is_unauthenticated_error,
    "server_error": is_server_error,
}

CONSTRUCTORS = {
    "bad_request": bad_request_error,
    "unauthorized": unauthorized_error,
    "unauthenticated": unauthenticated_error,
    "server_error": server_error,
}


@pytest.mark.parametrize("name", list(CONSTRUCTORS))
def test_each_constructor_matches_only_its_own_predicate(name):
    err = CONSTRUCTORS[name](new_error_params("field", "bad"))
    for pname, predicate in PREDICATES.items():
        assert predicate(err) is (pname == name), pname


@pytest.mark.parametrize("name", list(CONSTRUCTORS))
def test_wrapping_is_transparent_to_classification(name):
    err = CONSTRUCTORS[name](None)
    wrapped = wrap(wrap(err, "a"), "b")
    for pname, predicate in PREDICATES.items():
        assert predicate(wrapped) is predicate(err), pname


def test_raise_from_chain_is_followed():
    try:
        try:
            raise bad_request_error(new_error_params("id", "missing"))
        except ApiError as inner:
            raise RuntimeError("lookup failed") from inner
    except RuntimeError as outer:
        assert is_bad_request_error(outer)
        assert cause(outer).params == {"id": "missing"}


def test_predicates_reject_none_and_foreign_errors():
    for predicate in PREDICATES.values():
        assert predicate(None) is False
        assert predicate(ValueError("db exploded")) is False
        assert predicate(wrap(KeyError("x"), "ctx")) is False
        assert predicate(ApiError("Card not found", code="not_found")) is False


def test_well_known_signatures():
    br = bad_request_error(new_error_params("error", "No request body was passed"))
    assert br.code == "invalid request body"
    assert br.message == "One or more inputs are invalid, please enter valid information"
    assert br.params == {"error": "No request body was passed"}

    se = server_error(None)
    assert se.code == "Internal server error"
    assert se.message == "Something unplanned for has gone wrong"
    assert se.kind is ErrorKind.SERVER_ERROR


def test_unauthorized_and_unauthenticated_discard_params():
    p = new_error_params("token", "expired")
    assert unauthorized_error(p).to_dict() == {"message": "Authentication details were not provided"}
    assert unauthenticated_error(p).to_dict() == {"message": "Authentication credentials are invalid"}


def test_hand_built_error_with_known_signature_is_classified():
    err = ApiError("Authentication credentials are invalid")
    assert err.kind is ErrorKind.UNAUTHENTICATED
    assert is_unauthenticated_error(err)


def test_params_conveniences():
    p = new_error_params("email", "required")
    assert p.to_bad_request() == bad_request_error(p)
    assert is_unauthorized_error(p.to_unauthorized_request())
    assert is_unauthenticated_error(p.to_unauthenticated_request())
    assert is_server_error(p.to_server_error())


def test_str_is_tab_indented_json_in_stable_order():
    err = bad_request_error(new_error_params("id", "id not found in request"))
    rendered = str(err)
    assert rendered.startswith('{\n\t"code": "invalid request body",\n\t"message": ')
    assert list(json.loads(rendered)) == ["code", "message", "params"]


def test_str_omits_empty_code_and_params():
    assert json.loads(str(unauthorized_error(None))) == {"message": "Authentication details were not provided"}


def test_str_falls_back_when_serialization_fails(monkeypatch):
    class BrokenJson:
        @staticmethod
        def dumps(*args, **kwargs):
            raise TypeError("boom")

    monkeypatch.setattr(errors_mod, "json", BrokenJson)
    assert str(server_error(None)) == "Unmarshed error message: Internal server error"


def test_params_reject_values_json_cannot_carry():
    with pytest.raises(TypeError):
        ErrorParams({"when": object()})
    with pytest.raises(TypeError):
        new_error_params("ratio", float("nan"))
    with pytest.raises(TypeError):
        ErrorParams({"nested": {1: "x"}})

    p = ErrorParams({"ok": {"list": [1, 2.5, True, "x"]}})
    with pytest.raises(TypeError):
        p["late"] = {1, 2}


def test_api_error_requires_message_and_is_read_only():
    with pytest.raises(ValueError):
        ApiError("")

    err = bad_request_error(new_error_params("a", "b"))
    with pytest.raises(TypeError):
        err.params["a"] = "c"
    with pytest.raises(AttributeError):
        err.code = "other"


def test_wrap_message_and_cause():
    root = ValueError("disk full")
    wrapped = wrap(root, "Unable to read file")
    assert isinstance(wrapped, WrappedError)
    assert str(wrapped) == "Unable to read file: disk full"
    assert wrapped.__cause__ is root
    assert cause(wrapped) is root
    assert cause(root) is root
    assert cause(None) is None


def test_api_error_survives_pickling():
    err = bad_request_error(new_error_params("id", "Invalid ID. Expected type UUID"))
    clone = pickle.loads(pickle.dumps(err))
    assert clone == err
    assert is_bad_request_error(clone)
