import io
import zipfile

import pytest

from commons.httputils.sniff import SNIFF_LEN, get_file_content_type

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 32
PDF = b"%PDF-1.7\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<<>>\nendobj\n"
JPEG = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 16
# ftyp box: size 24, major brand mp42, compatible brands mp42 + isom
MP4 = b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom" + b"\x00" * 16


@pytest.mark.parametrize(
    "data, expected",
    [
        (PNG, "image/png"),
        (PDF, "application/pdf"),
        (JPEG, "image/jpeg"),
        (b"GIF89a\x01\x00\x01\x00", "image/gif"),
        (b"RIFF\x24\x00\x00\x00WEBPVP8 ", "image/webp"),
        (b"RIFF\x24\x00\x00\x00WAVEfmt ", "audio/x-wav"),
        (MP4, "video/mp4"),
        (b"PK\x03\x04\x14\x00\x00\x00", "application/zip"),
        (b"\x1f\x8b\x08\x00\x00\x00\x00\x00", "application/gzip"),
        (b"hello, world\n", "text/plain; charset=utf-8"),
        (b'{"name": "alice"}', "application/json"),
        (b"  <!DOCTYPE html><html></html>", "text/html; charset=utf-8"),
        (b'<?xml version="1.0"?><svg xmlns="http://www.w3.org/2000/svg"/>', "image/svg+xml"),
        (b'<?xml version="1.0"?><note/>', "text/xml; charset=utf-8"),
        (b"\x13\x37\x00\x01\x02\xfe\xff", "application/octet-stream"),
        ("caf\xe9 cr\xe8me\n".encode("latin-1"), "text/plain; charset=iso-8859-1"),
        (b"", "text/plain; charset=utf-8"),
    ],
)
def test_detects_type_from_leading_bytes(data, expected):
    assert get_file_content_type(data) == expected


def test_result_is_stable_for_the_same_bytes():
    assert {get_file_content_type(PNG) for _ in range(5)} == {"image/png"}


def test_only_the_sniff_window_is_inspected():
    # Binary noise after the window does not turn text into octet-stream.
    data = b"a" * SNIFF_LEN + b"\x00\x01\x02"
    assert get_file_content_type(data) == "text/plain; charset=utf-8"


def test_multibyte_character_cut_by_window_is_still_text():
    data = b"a" * (SNIFF_LEN - 1) + "é".encode("utf-8") + b"tail"
    assert get_file_content_type(data) == "text/plain; charset=utf-8"


def test_accepts_bytearray_and_memoryview():
    assert get_file_content_type(bytearray(PDF)) == "application/pdf"
    assert get_file_content_type(memoryview(PNG)) == "image/png"


def _zip(first_name: str, content: bytes) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_STORED) as zf:
        zf.writestr(first_name, content)
        zf.writestr("extra.txt", b"x")
    return buf.getvalue()


def test_office_documents_are_told_apart_from_plain_zip():
    docx = _zip("word/document.xml", b"<w:document/>")
    assert get_file_content_type(docx) == "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    assert get_file_content_type(_zip("notes.txt", b"hello")) == "application/zip"
