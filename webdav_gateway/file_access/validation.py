# webdav_gateway/file_access/validation.py
"""
Request validation for gateway uploads and raw operations.

Everything here is local and side-effect-free: a request that fails here
never reaches the endpoint resolver.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import unquote

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator

from webdav_gateway.file_access import codec
from webdav_gateway.file_access.errors import PayloadTooLargeError, RequestValidationError

NAME_PATTERN = r"^[A-Za-z0-9 ._-]{1,255}$"
FOLDER_PATTERN = r"^[A-Za-z0-9 ._\-/()]{1,255}$"

ALLOWED_EXTENSIONS = ("pdf", "doc", "docx", "xls", "xlsx", "txt", "png", "jpg", "jpeg", "gif")

RAW_OPERATIONS = ("upload", "download")

STRUCTURED_FIELDS = ("clientName", "caseName", "category", "docType", "fileName", "fileContent")
# Present and non-empty on every structured upload, with or without category
REQUIRED_STRUCTURED_FIELDS = ("clientName", "caseName", "docType", "fileName", "fileContent")


def _reject_dot_segments(value: str) -> str:
    if any(part and set(part) == {"."} for part in value.split("/")):
        raise ValueError("must not be made only of dots")
    return value


def file_extension(file_name: str) -> str:
    if "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[1].lower()


class LegacyUploadRequest(BaseModel):
    """Structured upload without a category."""
    model_config = ConfigDict(extra="ignore")

    clientName: StrictStr = Field(pattern=NAME_PATTERN)
    caseName: StrictStr = Field(pattern=NAME_PATTERN)
    docType: StrictStr = Field(pattern=FOLDER_PATTERN)
    fileName: StrictStr = Field(min_length=1, max_length=255)
    fileContent: StrictStr = Field(min_length=1)
    encoding: Optional[StrictStr] = None

    @field_validator("clientName", "caseName", "docType")
    @classmethod
    def _no_dot_names(cls, value: str) -> str:
        return _reject_dot_segments(value)

    @field_validator("fileName")
    @classmethod
    def _file_name(cls, value: str) -> str:
        if "/" in value or "\\" in value:
            raise ValueError("must not contain path separators")
        _reject_dot_segments(value)
        if file_extension(value) not in ALLOWED_EXTENSIONS:
            raise ValueError(
                f"extension not allowed; allowed extensions: {', '.join(ALLOWED_EXTENSIONS)}"
            )
        return value

    @field_validator("encoding")
    @classmethod
    def _encoding(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value.lower() not in codec.SUPPORTED_ENCODINGS:
            raise ValueError(f"must be one of: {', '.join(codec.SUPPORTED_ENCODINGS)}")
        return value.lower() if value is not None else None


class UploadRequest(LegacyUploadRequest):
    """Structured upload with a category folder."""
    category: StrictStr = Field(pattern=FOLDER_PATTERN)

    @field_validator("category")
    @classmethod
    def _no_dot_category(cls, value: str) -> str:
        return _reject_dot_segments(value)


@dataclass
class ValidatedUpload:
    """A structured upload that passed every check, with its payload decoded."""
    request: LegacyUploadRequest
    payload: bytes

    @property
    def has_category(self) -> bool:
        return isinstance(self.request, UploadRequest)


def is_structured_request(payload: Dict[str, Any]) -> bool:
    """
    True when the payload should be handled as a structured upload.

    A complete structured payload wins even if it also names an operation.
    Otherwise an explicit operation selects the raw shape, and any structured
    field left over selects the structured shape so its errors get reported.
    """
    if all(payload.get(name) for name in REQUIRED_STRUCTURED_FIELDS):
        return True
    if payload.get("operation"):
        return False
    return any(name in payload for name in STRUCTURED_FIELDS)


def _raise_from_pydantic(exc: ValidationError) -> None:
    fields: List[str] = []
    messages: List[str] = []
    for err in exc.errors():
        name = ".".join(str(part) for part in err.get("loc", ())) or "body"
        if name not in fields:
            fields.append(name)
        messages.append(f"{name}: {err.get('msg')}")
    raise RequestValidationError(
        f"Invalid fields: {', '.join(fields)}",
        fields=fields,
        details="; ".join(messages),
    ) from exc


def check_size(content: str, max_bytes: int, encoding: Optional[str] = None) -> bytes:
    """
    Enforce the decoded-size ceiling and return the decoded payload.

    Cheap bounds from the encoded length reject obviously oversize content
    before decoding; the exact decoded length is always re-checked.
    """
    low, _ = codec.decoded_size_bounds(content)
    if encoding is None and low > max_bytes:
        raise PayloadTooLargeError(low, max_bytes)
    try:
        data = codec.decode(content, encoding=encoding)
    except ValueError as exc:
        raise RequestValidationError(str(exc), fields=["fileContent"]) from exc
    if len(data) > max_bytes:
        raise PayloadTooLargeError(len(data), max_bytes)
    return data


def validate_structured_upload(payload: Dict[str, Any], max_bytes: int) -> ValidatedUpload:
    """
    Validate a structured upload request.

    Checks schema shape, name patterns, the extension allow-list and finally
    the decoded size. Requests without `category` validate as the legacy
    shape.

    Raises:
        RequestValidationError: schema, name or extension problems (400)
        PayloadTooLargeError: decoded content above max_bytes (413)
    """
    if not isinstance(payload, dict):
        raise RequestValidationError("Request body must be a JSON object", fields=["body"])
    model = UploadRequest if payload.get("category") not in (None, "") else LegacyUploadRequest
    try:
        request = model.model_validate(payload)
    except ValidationError as exc:
        _raise_from_pydantic(exc)
    data = check_size(request.fileContent, max_bytes, encoding=request.encoding)
    return ValidatedUpload(request=request, payload=data)


def split_relative_path(path: str) -> List[str]:
    """Split a caller path into segments, refusing anything that climbs upward."""
    segments = [s for s in path.replace("\\", "/").split("/") if s]
    # Segments are percent-decoded before use, so %2E%2E climbs as well
    if any(unquote(s) in (".", "..") for s in segments):
        raise RequestValidationError("Path must not contain '.' or '..' segments", fields=["path"])
    return segments


def validate_raw_operation(payload: Dict[str, Any]) -> str:
    """
    Presence checks for the raw `upload` / `download` shapes.

    Returns:
        The operation name
    """
    operation = payload.get("operation")
    if operation not in RAW_OPERATIONS:
        raise RequestValidationError(
            'Operation must be "upload" or "download"', fields=["operation"]
        )
    required = ("filename", "content") if operation == "upload" else ("filePath",)
    missing = [name for name in required if not isinstance(payload.get(name), str) or not payload.get(name)]
    if missing:
        raise RequestValidationError(
            f"{' and '.join(missing)} {'is' if len(missing) == 1 else 'are'} required",
            fields=missing,
        )
    encoding = payload.get("encoding")
    if operation == "upload" and encoding is not None and str(encoding).lower() not in codec.SUPPORTED_ENCODINGS:
        raise RequestValidationError(
            f"encoding must be one of: {', '.join(codec.SUPPORTED_ENCODINGS)}", fields=["encoding"]
        )
    target = payload["filename"] if operation == "upload" else payload["filePath"]
    segments = split_relative_path(target)
    if not segments:
        raise RequestValidationError("Path must name a file", fields=list(required[:1]))
    return operation
