import httpx
import pytest

from commons.testutils.helpers import (
    assert_json_equal,
    assert_response_body_equal,
    get_response_body,
    load_fixture,
    set_test_standard_headers,
)
from commons.schemas.common import FileDetails


def test_equal_json_passes_regardless_of_key_order():
    assert_json_equal({"a": 1, "b": [1, 2]}, {"b": [1, 2], "a": 1})


def test_mismatch_fails_with_diff():
    with pytest.raises(pytest.fail.Exception) as info:
        assert_json_equal({"a": 1}, {"a": 2})
    message = str(info.value)
    assert "--- expected" in message
    assert '-  "a": 2' in message
    assert '+  "a": 1' in message


def test_response_body_against_fixture(tmp_path):
    path = tmp_path / "expected.json"
    path.write_text('{"status": "success", "data": [1]}', encoding="utf-8")
    assert load_fixture(path) == {"status": "success", "data": [1]}

    assert_response_body_equal(path, httpx.Response(200, json={"data": [1], "status": "success"}))
    with pytest.raises(pytest.fail.Exception):
        assert_response_body_equal(path, httpx.Response(200, content=b"not json"))


def test_get_response_body_into_model():
    resp = httpx.Response(200, json={"uploadKey": "docs", "filename": "a.txt", "data": "aGk=", "contentType": "text/plain"})
    assert get_response_body(resp)["uploadKey"] == "docs"
    details = get_response_body(resp, FileDetails)
    assert details.upload_key == "docs"
    assert details.file_name == "a.txt"


def test_standard_headers_are_added_in_place():
    headers = {"X-Trace": "1"}
    assert set_test_standard_headers(headers, "tok") is headers
    assert headers == {"X-Trace": "1", "Authorization": "Bearer tok"}
