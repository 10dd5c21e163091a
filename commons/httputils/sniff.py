"""
httputils/sniff.py

Content-type detection from leading bytes.

Only the payload is consulted: whatever Content-Type a client attached to an
upload is ignored, so a PNG posted as text/plain is still reported as
image/png. At most SNIFF_LEN bytes are inspected.

Binary formats are recognised by the `filetype` library; what it does not
know is classified here as text (xml, svg, html, json, plain) or
application/octet-stream.
"""

from __future__ import annotations

import json
from typing import Union

import filetype
from filetype.types import DOCUMENT

SNIFF_LEN = 3072

OCTET_STREAM = "application/octet-stream"
TEXT_PLAIN = "text/plain; charset=utf-8"
TEXT_PLAIN_LATIN1 = "text/plain; charset=iso-8859-1"

_HTML_PREFIXES = (b"<!doctype html", b"<html", b"<head", b"<body")

# Control bytes that never appear in text (tab, LF, FF, CR and ESC are allowed).
_BINARY_BYTES = frozenset(list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20)))


def _match_binary(head: bytes) -> str:
    # Office documents are zip archives; check them before the generic zip matcher.
    kind = filetype.match(head, matchers=DOCUMENT) or filetype.guess(head)
    return kind.mime if kind is not None else ""


def _is_utf8(head: bytes, truncated: bool) -> bool:
    try:
        head.decode("utf-8")
    except UnicodeDecodeError as exc:
        # A multi-byte sequence cut by the sniff window is still text.
        return truncated and exc.start >= len(head) - 3
    return True


def _match_text(head: bytes, truncated: bool) -> str:
    body = head[3:] if head.startswith(b"\xEF\xBB\xBF") else head
    stripped = body.lstrip()
    lowered = stripped[:64].lower()

    if lowered.startswith(b"<?xml"):
        if b"<svg" in stripped.lower():
            return "image/svg+xml"
        return "text/xml; charset=utf-8"
    if lowered.startswith(b"<svg"):
        return "image/svg+xml"
    if lowered.startswith(_HTML_PREFIXES):
        return "text/html; charset=utf-8"
    if not truncated and stripped[:1] in (b"{", b"["):
        try:
            json.loads(body.decode("utf-8"))
        except ValueError:
            pass
        else:
            return "application/json"
    return TEXT_PLAIN


def get_file_content_type(data: Union[bytes, bytearray, memoryview]) -> str:
    """
    Return the MIME type of data judged from its first SNIFF_LEN bytes.

    Known binary signatures are checked first, then text formats; anything
    else is application/octet-stream. The result depends only on the bytes.
    """
    head = bytes(data[:SNIFF_LEN])
    truncated = len(data) > SNIFF_LEN

    mime = _match_binary(head)
    if mime:
        return mime
    if any(b in _BINARY_BYTES for b in head):
        return OCTET_STREAM
    if _is_utf8(head, truncated):
        return _match_text(head, truncated)
    # Single-byte text in a legacy encoding.
    return TEXT_PLAIN_LATIN1
