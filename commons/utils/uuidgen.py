"""
utils/uuidgen.py

Version-4 UUID helpers. A valid value is the canonical 36-character
hyphenated text form of a version-4 UUID (case-insensitive).
"""

from __future__ import annotations

import uuid
from typing import Callable

GenV4Func = Callable[[], str]


def gen_v4() -> str:
    return str(uuid.uuid4())


def _parse_v4(value: str) -> uuid.UUID:
    parsed = uuid.UUID(value)
    # uuid.UUID also accepts braces, urn: prefixes and unhyphenated hex.
    if str(parsed) != value.lower() or parsed.version != 4:
        raise ValueError("not a canonical v4 UUID")
    return parsed


def is_valid_uuid(value: str) -> bool:
    try:
        _parse_v4(value)
    except (TypeError, ValueError, AttributeError):
        return False
    return True


def gen_from_string(value: str) -> uuid.UUID:
    """Parse value as a v4 UUID or raise ValueError."""
    if not is_valid_uuid(value):
        raise ValueError(f"Unable to generate UUID V4 from invalid value={value}")
    return uuid.UUID(value)
