# webdav_gateway/file_access/errors.py
"""
Failure taxonomy for the WebDAV gateway.

Executors raise these; only the gateway service turns them into a response
envelope. ProvisioningWarning and EncodingFallback are log events, not
exceptions, and therefore have no class here.
"""
from typing import Any, Dict, List, Optional


class GatewayError(Exception):
    """Base class. `error` is the short user-facing string, `details` the diagnostic one."""

    http_status = 500

    def __init__(self, error: str, details: Optional[str] = None, message: Optional[str] = None):
        super().__init__(error)
        self.error = error
        self.details = details
        self.message = message


class ConfigurationError(GatewayError):
    http_status = 500


class RequestValidationError(GatewayError):
    http_status = 400

    def __init__(self, error: str, fields: Optional[List[str]] = None, details: Optional[str] = None):
        super().__init__(error, details=details, message="Invalid request")
        self.fields = fields or []


class PayloadTooLargeError(RequestValidationError):
    http_status = 413

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"File too large: {size} bytes exceeds the {limit} byte limit",
            fields=["fileContent"],
        )
        self.size = size
        self.limit = limit
        self.message = "Payload too large"


class ConnectivityError(GatewayError):
    """No candidate endpoint accepted a probe."""

    http_status = 502

    def __init__(self, base_url: str, probe_log: List[Dict[str, Any]]):
        tried = len({entry["url"] for entry in probe_log})
        super().__init__(
            f"Tested {tried} different WebDAV paths, none responded correctly",
            details=format_probe_log(probe_log),
            message="WebDAV endpoint not accessible - no working path found",
        )
        self.base_url = base_url
        self.probe_log = probe_log


class UpstreamError(GatewayError):
    """A request reached (or tried to reach) the server and failed."""

    http_status = 502

    def __init__(
        self,
        error: str,
        url: str,
        status: Optional[int] = None,
        body: Optional[str] = None,
        attempts: int = 1,
        message: Optional[str] = None,
    ):
        details = f"url={url}"
        if body:
            details = f"{details}\n{body}"
        super().__init__(error, details=details, message=message)
        self.url = url
        self.status = status
        self.body = body
        self.attempts = attempts
        if status == 404:
            self.http_status = 404


class TransientServerError(UpstreamError):
    """5xx or transport failure that outlived the retry budget."""


class PermanentRequestError(UpstreamError):
    """4xx (or other non-success) status; never retried."""


def format_probe_log(probe_log: List[Dict[str, Any]]) -> str:
    lines = []
    for entry in probe_log:
        outcome = entry.get("status") if entry.get("status") is not None else f"error: {entry.get('error')}"
        lines.append(f"{entry.get('method')} {entry.get('url')} -> {outcome}")
    return "\n".join(lines)
