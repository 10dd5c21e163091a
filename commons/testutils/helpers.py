"""
testutils/helpers.py

Helpers for testing services built on the toolkit with pytest and FastAPI's
TestClient:

    expected = file_to_model("fixtures/card.json", CardDTO)
    resp = client.post("/cards", json=expected.model_dump(), headers=set_test_standard_headers({}, "tok"))
    assert_response_body_equal("fixtures/card_created.json", resp)
"""

from __future__ import annotations

import difflib
import json
from pathlib import Path
from typing import Any, MutableMapping, Optional, Type, TypeVar, Union

import httpx
import pytest
from pydantic import BaseModel

M = TypeVar("M", bound=BaseModel)
PathLike = Union[str, Path]


def load_fixture(path: PathLike) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def file_to_model(path: PathLike, model: Type[M]) -> M:
    """Load a JSON fixture file into a pydantic model."""
    return model.model_validate_json(Path(path).read_bytes())


def get_response_body(response: httpx.Response, model: Optional[Type[M]] = None) -> Any:
    """Decode a response body as JSON, optionally into model."""
    if model is not None:
        return model.model_validate_json(response.content)
    return response.json()


def _pretty(value: Any) -> str:
    return json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False)


def assert_json_equal(actual: Any, expected: Any) -> None:
    """Fail the current test with a unified diff when two JSON values differ."""
    if actual == expected:
        return
    diff = "\n".join(
        difflib.unified_diff(
            _pretty(expected).splitlines(),
            _pretty(actual).splitlines(),
            fromfile="expected",
            tofile="actual",
            lineterm="",
        )
    )
    pytest.fail(f"JSON bodies differ:\n{diff}", pytrace=False)


def assert_response_body_equal(expected_path: PathLike, response: httpx.Response) -> None:
    """Compare a response body with the JSON stored at expected_path (key order ignored)."""
    try:
        actual = response.json()
    except ValueError:
        pytest.fail(f"response body is not JSON: {response.text!r}", pytrace=False)
    assert_json_equal(actual, load_fixture(expected_path))


def set_test_standard_headers(headers: MutableMapping[str, str], token: str) -> MutableMapping[str, str]:
    """Add a bearer Authorization header to headers (mutated and returned)."""
    headers["Authorization"] = f"Bearer {token}"
    return headers
