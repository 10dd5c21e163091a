"""
schemas/common.py

Shared DTOs: the response envelope and uploaded-file results.

Every response body produced by the writer has the same outer shape:

    { "status": "success" | "error", "data"?: ..., "error"?: {code?, message, params?} }

Keys are omitted when empty, so a success never carries "error" and a failure
never carries "data".

Non-developer summary:
----------------------
Every API reply has the same outer shape, so clients can always check
"status" first and then read either "data" or "error".
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..core.errors import ApiError

SUCCESS_STATUS = "success"
FAILURE_STATUS = "error"


def error_to_wire(err: BaseException) -> Dict[str, Any]:
    """
    Render an error for the envelope's "error" key.
    ApiError renders structurally; anything else as {"message": str(err)}.
    """
    if isinstance(err, ApiError):
        return err.to_dict()
    return {"message": str(err)}


class GenericResponse(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    status: str = ""
    data: Any = None
    error: Optional[BaseException] = None

    @model_validator(mode="after")
    def data_or_error(self) -> "GenericResponse":
        if self.data is not None and self.error is not None:
            raise ValueError("an envelope carries either data or error, not both")
        return self

    def to_wire(self) -> Dict[str, Any]:
        """
        JSON-ready dict. Raises ValueError/TypeError when data cannot be encoded.
        """
        body: Dict[str, Any] = {}
        if self.status:
            body["status"] = self.status
        if self.data is not None:
            body["data"] = jsonable_encoder(self.data)
        if self.error is not None:
            body["error"] = error_to_wire(self.error)
        return body


def success_response(data: Any) -> GenericResponse:
    return GenericResponse(status=SUCCESS_STATUS, data=data)


def error_response(err: BaseException) -> GenericResponse:
    return GenericResponse(status=FAILURE_STATUS, error=err)


# ---------- Uploads ----------

class FileDetails(BaseModel):
    """One uploaded file part. content_type is sniffed from data, never taken from the part header."""
    model_config = ConfigDict(populate_by_name=True)

    upload_key: str = Field(..., alias="uploadKey")
    file_name: str = Field(..., alias="filename")
    data: bytes = Field(default=b"", repr=False)
    content_type: str = Field(..., alias="contentType")


class FileWithBody(BaseModel):
    """Result of extracting text fields and file parts from one multipart request."""
    files: List[FileDetails] = Field(default_factory=list)
    body: Dict[str, List[str]] = Field(default_factory=dict)
