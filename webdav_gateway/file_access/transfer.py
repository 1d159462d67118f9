# webdav_gateway/file_access/transfer.py
"""
Upload and download executors.

Uploads retry on 5xx and transport failures with a fixed delay; 4xx ends the
attempt loop at once. Downloads never retry: a missing or forbidden file is
not transient.
"""
import asyncio
import mimetypes
from typing import Awaitable, Callable, List, Optional
from urllib.parse import unquote, urlsplit

import structlog

from webdav_gateway.file_access import codec
from webdav_gateway.file_access.base_fs import DownloadResult, UploadResult
from webdav_gateway.file_access.errors import (
    PermanentRequestError,
    RequestValidationError,
    TransientServerError,
    UpstreamError,
)
from webdav_gateway.file_access.protocols.webdav_protocol import (
    TRANSPORT_ERRORS,
    WebDAVSession,
    ensure_trailing_slash,
    join_url,
    last_path_segment,
    requote_segment,
)
from webdav_gateway.file_access.validation import split_relative_path

logger = structlog.get_logger()

DEFAULT_CONTENT_TYPE = "application/octet-stream"
class UploadExecutor:
    """
    PUT a payload with bounded retry.

    Args:
        session: open WebDAV session
        max_attempts: total attempts including the first
        retry_delay: fixed seconds between attempts
        sleep: coroutine used to wait (tests pass a no-op)
    """

    def __init__(
        self,
        session: WebDAVSession,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.session = session
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

    async def put(self, url: str, data: bytes) -> UploadResult:
        """
        Upload data to url.

        Raises:
            PermanentRequestError: the server answered with a non-retryable status
            TransientServerError: every attempt hit a 5xx or a transport error
        """
        last_status: Optional[int] = None
        last_body: Optional[str] = None
        last_error: Optional[str] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = await self.session.put(url, data)
            except TRANSPORT_ERRORS as exc:
                last_status, last_body = None, None
                last_error = f"{type(exc).__name__}: {exc}"
                logger.warning("webdav_put_transport_error", url=url, attempt=attempt, error=str(exc))
            else:
                status = resp.status_code
                if resp.is_success:
                    logger.info("webdav_put_ok", url=url, status=status, attempt=attempt, size=len(data))
                    return UploadResult(url=url, status=status, attempts=attempt)
                body = resp.text
                if status < 500:
                    logger.error("webdav_put_rejected", url=url, status=status, attempt=attempt)
                    raise PermanentRequestError(
                        f"Upload failed: {status} {resp.reason_phrase}",
                        url=url,
                        status=status,
                        body=body,
                        attempts=attempt,
                        message="Failed to upload to WebDAV",
                    )
                last_status, last_body, last_error = status, body, None
                logger.warning("webdav_put_server_error", url=url, status=status, attempt=attempt)

            if attempt < self.max_attempts:
                await self._sleep(self.retry_delay)

        if last_status is not None:
            error = f"Upload failed after {self.max_attempts} attempts: {last_status}"
        else:
            error = f"Upload failed after {self.max_attempts} attempts: {last_error}"
        logger.error("webdav_put_exhausted", url=url, attempts=self.max_attempts, status=last_status)
        raise TransientServerError(
            error,
            url=url,
            status=last_status,
            body=last_body or last_error,
            attempts=self.max_attempts,
            message="Failed to upload to WebDAV",
        )


def normalize_download_path(base_url: str, file_path: str) -> List[str]:
    """
    Encoded segments of file_path relative to base_url.

    A leading segment that repeats the base URL's last segment is dropped,
    so base ".../crmdata/" with "/crmdata/a/b.pdf" yields ["a", "b.pdf"].
    """
    segments = split_relative_path(file_path)
    mount = last_path_segment(base_url)
    if mount and len(segments) > 1 and segments[0] in (mount, requote_segment(mount)):
        segments = segments[1:]
    return [requote_segment(s) for s in segments]


def is_absolute_url(path: str) -> bool:
    return urlsplit(path).scheme.lower() in ("http", "https")


def same_origin(url: str, other: str) -> bool:
    a, b = urlsplit(url), urlsplit(other)
    return (a.scheme.lower(), a.netloc.lower()) == (b.scheme.lower(), b.netloc.lower())


def endpoint_prefix(base_url: str, endpoint_url: str) -> Optional[List[str]]:
    """
    Decoded segments that lead from base_url to endpoint_url.

    None when endpoint_url is not below base_url (a mount found at the
    server origin), in which case no base-relative path reaches it.
    """
    base, url = ensure_trailing_slash(base_url), ensure_trailing_slash(endpoint_url)
    if not url.startswith(base):
        return None
    return [unquote(s) for s in url[len(base):].split("/") if s]


def guess_content_type(file_name: str) -> str:
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or DEFAULT_CONTENT_TYPE


class DownloadExecutor:
    def __init__(self, session: WebDAVSession):
        self.session = session

    def build_url(self, base_url: str, file_path: str) -> str:
        """
        Absolute URL for file_path.

        An absolute http(s) URL is used unchanged, but only on the server
        that base_url points at; anything else is a path under base_url.
        """
        if is_absolute_url(file_path):
            if not same_origin(file_path, base_url):
                raise RequestValidationError(
                    "filePath URL must point at the configured WebDAV server",
                    fields=["filePath"],
                )
            return file_path
        return join_url(base_url, *normalize_download_path(base_url, file_path))

    async def get(self, base_url: str, file_path: str) -> DownloadResult:
        """
        Fetch file_path under base_url and return it base64-encoded.

        Raises:
            PermanentRequestError: non-success status (404 keeps its status)
            UpstreamError: the server could not be reached
            RequestValidationError: an absolute URL on another server
        """
        url = self.build_url(base_url, file_path)
        logger.info("webdav_get", url=url)
        try:
            resp = await self.session.get(url)
        except TRANSPORT_ERRORS as exc:
            logger.error("webdav_get_transport_error", url=url, error=str(exc))
            raise UpstreamError(
                f"Download failed: {type(exc).__name__}: {exc}",
                url=url,
                message="Failed to download file",
            ) from exc

        if not resp.is_success:
            logger.error("webdav_get_failed", url=url, status=resp.status_code)
            raise PermanentRequestError(
                f"WebDAV error: {resp.status_code} {resp.reason_phrase}",
                url=url,
                status=resp.status_code,
                body=resp.text,
                message="Failed to download from WebDAV",
            )

        data = resp.content
        content_type = resp.headers.get("Content-Type") or guess_content_type(file_path)
        logger.info("webdav_get_ok", url=url, size=len(data), content_type=content_type)
        return DownloadResult(url=url, content=codec.encode(data), content_type=content_type, size=len(data))
