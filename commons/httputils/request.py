"""
httputils/request.py

Request-side helpers: JSON bodies, UUID path parameters and multipart uploads.

Multipart bodies are parsed with a MAX_UPLOAD_MEMORY budget (20 MB by
default) shared by the whole request; once the parts held in memory would
exceed it, further file data spills to temporary files. Every extractor
reads what it needs into memory and closes the parsed form before
returning, so no temporary file outlives the call.
"""

from __future__ import annotations

import logging
import uuid
from typing import Iterable, List, Optional, Type, TypeVar

from pydantic import TypeAdapter
from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser
from starlette.requests import Request

from ..core.config import get_settings
from ..core.errors import new_error_params, wrap
from ..schemas.common import FileDetails, FileWithBody
from ..utils.uuidgen import gen_from_string
from .sniff import get_file_content_type

T = TypeVar("T")

NO_REQ_BODY = "No request body was passed"
INVALID_UUID = "Invalid ID. Expected type UUID"

logger = logging.getLogger(__name__)


class MultipartFormError(Exception):
    """The request body could not be parsed as multipart/form-data."""


class MissingFileError(LookupError):
    """No file part was posted under the requested key."""


# ---------- JSON ----------

async def json_to_dto(dto: Type[T], request: Request) -> T:
    """
    Decode the JSON request body into dto (a pydantic model or any type
    pydantic can validate).

    Raises:
      ApiError (bad request) when the body is empty.
      pydantic.ValidationError, untouched, for malformed or mismatched JSON.
    """
    body = await request.body()
    if not body.strip():
        raise new_error_params("error", NO_REQ_BODY).to_bad_request()
    return TypeAdapter(dto).validate_json(body)


# ---------- Path parameters ----------

def retrieve_uuid_resource(request: Request, id_key: str) -> uuid.UUID:
    """
    Read a v4 UUID path parameter bound by the router.

        @router.get("/cards/{id}")
        async def get_card(request: Request):
            card_id = retrieve_uuid_resource(request, "id")
    """
    raw = request.path_params.get(id_key)
    if raw is None or raw == "":
        raise new_error_params(id_key, f"{id_key} not found in request").to_bad_request()

    try:
        return gen_from_string(str(raw))
    except ValueError:
        raise new_error_params(id_key, INVALID_UUID).to_bad_request() from None


# ---------- Multipart ----------

class _BudgetedMultiPartParser(MultiPartParser):
    """
    MultiPartParser whose memory budget covers the whole request rather than
    each part. Field values and in-memory file parts share max_memory; a file
    part that would push the total past it is rolled over to a temporary file.
    """

    def __init__(self, *args, max_memory: int, **kwargs):
        super().__init__(*args, **kwargs)
        self.spool_max_size = max_memory
        self.max_memory = max_memory
        self._held = 0
        self._part_held = 0

    def on_part_begin(self) -> None:
        super().on_part_begin()
        self._part_held = 0

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        super().on_part_data(data, start, end)
        upload = self._current_part.file
        if upload is not None and getattr(upload.file, "_rolled", False):
            # already on disk
            self._held -= self._part_held
            self._part_held = 0
            return

        self._held += end - start
        self._part_held += end - start
        if upload is not None and self._held > self.max_memory:
            upload.file.rollover()
            self._held -= self._part_held
            self._part_held = 0


async def parse_multipart_form(request: Request) -> FormData:
    """
    Parse a multipart/form-data body. The caller owns the returned form and
    must close it.
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.lower().startswith("multipart/form-data"):
        raise MultipartFormError("request Content-Type isn't multipart/form-data")

    s = get_settings()
    parser = _BudgetedMultiPartParser(
        request.headers,
        request.stream(),
        max_files=s.MAX_UPLOAD_FILES,
        max_fields=s.MAX_UPLOAD_FIELDS,
        max_memory=s.MAX_UPLOAD_MEMORY,
    )

    try:
        return await parser.parse()
    except MultiPartException as exc:
        raise MultipartFormError(exc.message) from exc


async def _read_upload(upload: UploadFile) -> bytes:
    try:
        return await upload.read()
    except OSError as exc:
        raise wrap(exc, "Unable to read file content")
    finally:
        await upload.close()


async def _collect_files(form: FormData, upload_keys: Iterable[str]) -> List[FileDetails]:
    details: List[FileDetails] = []
    for upload_key in upload_keys:
        for part in form.getlist(upload_key):
            if not isinstance(part, UploadFile):
                continue
            data = await _read_upload(part)
            details.append(
                FileDetails(
                    upload_key=upload_key,
                    file_name=part.filename or "",
                    data=data,
                    content_type=get_file_content_type(data),
                )
            )
            logger.debug(
                "multipart file extracted",
                extra={"uploadKey": upload_key, "fileName": part.filename},
            )
    return details


async def file_upload_to_bytes(request: Request, filename: str) -> bytes:
    """
    Return the raw bytes of the first file posted under `filename`.
    No content type is sniffed here; use get_file_content_type() on the result.
    """
    try:
        form = await parse_multipart_form(request)
    except MultipartFormError as exc:
        raise wrap(exc, f"Unable to get file: {filename}")

    try:
        upload: Optional[UploadFile] = next(
            (p for p in form.getlist(filename) if isinstance(p, UploadFile)), None
        )
        if upload is None:
            raise wrap(MissingFileError("no such file"), f"Unable to get file: {filename}")
        return await _read_upload(upload)
    finally:
        await form.close()


async def extract_multiple_file_uploads(request: Request, upload_keys: Iterable[str]) -> List[FileDetails]:
    """
    Read every file posted under each of upload_keys.

    Order: upload_keys order, then arrival order within a key. Each file's
    content type is sniffed from its bytes.
    """
    form = await parse_multipart_form(request)
    try:
        return await _collect_files(form, upload_keys)
    finally:
        await form.close()


async def extract_body_and_file_uploads(
    request: Request,
    file_upload_keys: Iterable[str],
    *text_keys: str,
) -> FileWithBody:
    """
    Read text fields and file parts from one multipart request.

    body maps each text key to every value posted under it (possibly an empty
    list). Text fields are collected before files.
    """
    form = await parse_multipart_form(request)
    try:
        body = {
            key: [v for v in form.getlist(key) if isinstance(v, str)]
            for key in text_keys
        }
        files = await _collect_files(form, file_upload_keys)
        return FileWithBody(files=files, body=body)
    finally:
        await form.close()
