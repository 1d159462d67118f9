# webdav_gateway/core/gateway_service.py
"""
Gateway service: turns one JSON request into an ordered sequence of WebDAV
operations and one response envelope.

States run Validating -> Resolving -> Provisioning -> Executing -> Responding;
any state can jump straight to Responding on error. This module is the only
place where failures become envelopes, and no exception escapes handle().
"""
import asyncio
import time
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from webdav_gateway.config import Settings, WebDAVConfig, config_presence, load_webdav_config, settings
from webdav_gateway.file_access.base_fs import HealthCheckResult, ResolvedEndpoint
from webdav_gateway.file_access.endpoint_resolver import EndpointCache, EndpointResolver
from webdav_gateway.file_access.errors import (
    ConfigurationError,
    ConnectivityError,
    GatewayError,
    UpstreamError,
)
from webdav_gateway.file_access.protocols.webdav_protocol import WebDAVSession, join_url, requote_segment
from webdav_gateway.file_access.provisioner import PathProvisioner
from webdav_gateway.file_access.transfer import DownloadExecutor, UploadExecutor, endpoint_prefix
from webdav_gateway.file_access.validation import (
    ValidatedUpload,
    check_size,
    is_structured_request,
    split_relative_path,
    validate_raw_operation,
    validate_structured_upload,
)
from webdav_gateway.monitoring.context import set_request_context
from webdav_gateway.monitoring.logger import log
from webdav_gateway.monitoring.slack_alerts import send_slack_alert


class GatewayState(str, Enum):
    VALIDATING = "validating"
    RESOLVING = "resolving"
    PROVISIONING = "provisioning"
    EXECUTING = "executing"
    RESPONDING = "responding"


@dataclass
class GatewayResponse:
    status_code: int
    body: Dict[str, Any]


def envelope(success: bool, **fields: Any) -> Dict[str, Any]:
    """Response body with unset optional fields left out."""
    body = {"success": success}
    body.update({k: v for k, v in fields.items() if v is not None})
    return body


class WebDAVGateway:
    """
    Entry point for `upload`, `download` and structured uploads.

    Args:
        settings_: configuration source, read on every request
        transport: httpx transport for the WebDAV session (tests use MockTransport)
        endpoint_cache: shared resolved-endpoint cache; None disables it
        sleep: wait used between upload attempts
    """

    def __init__(
        self,
        settings_: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        endpoint_cache: Optional[EndpointCache] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings_ or settings
        self.transport = transport
        self.endpoint_cache = endpoint_cache
        self._sleep = sleep

    def _session(self, config: WebDAVConfig) -> WebDAVSession:
        return WebDAVSession(config, timeout=self.settings.WEBDAV_TIMEOUT_SECONDS, transport=self.transport)

    def _uploader(self, dav: WebDAVSession) -> UploadExecutor:
        return UploadExecutor(
            dav,
            max_attempts=self.settings.WEBDAV_UPLOAD_MAX_ATTEMPTS,
            retry_delay=self.settings.WEBDAV_UPLOAD_RETRY_DELAY,
            sleep=self._sleep,
        )

    def _load_config(self) -> WebDAVConfig:
        log("INFO", "WebDAV configuration check", component="gateway", **config_presence(self.settings))
        return load_webdav_config(self.settings)

    async def handle(self, payload: Any) -> GatewayResponse:
        operation = None
        try:
            if not isinstance(payload, dict):
                return GatewayResponse(400, envelope(
                    False,
                    message="Invalid request",
                    error="Request body must be a JSON object",
                ))
            if is_structured_request(payload):
                set_request_context(operation="structured-upload")
                return await self._structured_upload(payload)

            operation = validate_raw_operation(payload)
            set_request_context(operation=operation)
            if operation == "upload":
                return await self._raw_upload(payload)
            return await self._raw_download(payload)

        except GatewayError as exc:
            return await self._error_response(exc, operation)
        except Exception as exc:
            log(
                "ERROR",
                f"Unhandled gateway error: {exc}",
                component="gateway",
                traceback=traceback.format_exc(),
            )
            return GatewayResponse(500, envelope(
                False,
                message="Internal server error",
                error="Unexpected gateway failure",
                details=str(exc),
            ))

    async def _error_response(self, exc: GatewayError, operation: Optional[str] = None) -> GatewayResponse:
        fields = {}
        if isinstance(exc, UpstreamError):
            if operation == "download":
                fields = {"downloadUrl": exc.url}
            else:
                fields = {"uploadUrl": exc.url, "attempts": exc.attempts}
        level = "WARNING" if exc.http_status < 500 else "ERROR"
        log(level, f"{type(exc).__name__}: {exc.error}", component="gateway",
            http_status=exc.http_status, state=GatewayState.RESPONDING.value)
        if isinstance(exc, (ConnectivityError, ConfigurationError)):
            await send_slack_alert(
                message=exc.error,
                context={"details": exc.details},
                severity="ERROR",
                component="gateway",
            )
        return GatewayResponse(exc.http_status, envelope(
            False,
            message=exc.message,
            error=exc.error,
            details=exc.details,
            **fields,
        ))

    async def _resolve(self, resolver: EndpointResolver, config: WebDAVConfig) -> ResolvedEndpoint:
        log("INFO", f"Resolving WebDAV endpoint for {config.base_url}", component="gateway",
            state=GatewayState.RESOLVING.value)
        return await resolver.resolve(config)

    async def _store(self, folders: List[str], file_name: str, data: bytes) -> GatewayResponse:
        """
        Resolve, provision folders, then PUT. Shared by every upload shape.

        The returned `path` is relative to the configured base URL, so a
        raw download of it fetches the same file. A '/' inside a folder name
        stays encoded as %2F. When the endpoint was found outside the base
        URL, `path` is the absolute upload URL instead.
        """
        config = self._load_config()
        async with self._session(config) as dav:
            resolver = EndpointResolver(dav, cache=self.endpoint_cache)
            endpoint = await self._resolve(resolver, config)

            log("INFO", f"Provisioning {len(folders)} folders under {endpoint.url}", component="gateway",
                state=GatewayState.PROVISIONING.value)
            provisioned = await PathProvisioner(dav).ensure(endpoint.url, [requote_segment(f) for f in folders])

            upload_url = join_url(provisioned.collection_url, requote_segment(file_name))
            log("INFO", f"Uploading {len(data)} bytes to {upload_url}", component="gateway",
                state=GatewayState.EXECUTING.value)
            try:
                result = await self._uploader(dav).put(upload_url, data)
            except UpstreamError:
                if endpoint.from_cache and self.endpoint_cache is not None:
                    self.endpoint_cache.invalidate((config.base_url, config.username))
                raise

        prefix = endpoint_prefix(config.base_url, endpoint.url)
        if prefix is None:
            path = result.url
        else:
            path = "/".join(s.replace("/", "%2F") for s in prefix + folders + [file_name])
        log("INFO", f"Upload stored at {path}", component="gateway", attempts=result.attempts)
        return GatewayResponse(200, envelope(
            True,
            message=f"File uploaded successfully to {path}",
            path=path,
            uploadUrl=result.url,
            attempts=result.attempts,
        ))

    async def _structured_upload(self, payload: Dict[str, Any]) -> GatewayResponse:
        log("DEBUG", "Validating structured upload", component="gateway", state=GatewayState.VALIDATING.value)
        validated: ValidatedUpload = validate_structured_upload(payload, self.settings.WEBDAV_MAX_UPLOAD_BYTES)
        req = validated.request
        if validated.has_category:
            folders = [req.clientName, req.caseName, req.category, req.docType]
        else:
            folders = [self.settings.WEBDAV_LEGACY_ROOT_FOLDER, req.clientName, req.caseName, req.docType]
        display_path = "/".join(folders + [req.fileName])
        log("INFO", f"Structured upload: {display_path} ({len(validated.payload)} bytes)", component="gateway")
        return await self._store(folders, req.fileName, validated.payload)

    async def _raw_upload(self, payload: Dict[str, Any]) -> GatewayResponse:
        segments = split_relative_path(payload["filename"])
        encoding = payload.get("encoding")
        data = check_size(
            payload["content"],
            self.settings.WEBDAV_MAX_UPLOAD_BYTES,
            encoding=encoding.lower() if encoding else None,
        )
        display_path = "/".join(segments)
        log("INFO", f"Raw upload: {display_path} ({len(data)} bytes)", component="gateway")
        return await self._store(segments[:-1], segments[-1], data)

    async def _raw_download(self, payload: Dict[str, Any]) -> GatewayResponse:
        file_path = payload["filePath"]
        config = self._load_config()
        async with self._session(config) as dav:
            log("INFO", f"Downloading {file_path}", component="gateway", state=GatewayState.EXECUTING.value)
            result = await DownloadExecutor(dav).get(config.base_url, file_path)
        return GatewayResponse(200, envelope(
            True,
            message="File downloaded successfully from WebDAV",
            content=result.content,
            contentType=result.content_type,
            path=file_path,
        ))

    async def health_check(self) -> HealthCheckResult:
        """Configuration present and an endpoint resolvable."""
        try:
            config = load_webdav_config(self.settings)
        except ConfigurationError as exc:
            return HealthCheckResult(healthy=False, message=exc.error, details={"config": config_presence(self.settings)})

        started = time.monotonic()
        async with self._session(config) as dav:
            try:
                endpoint = await EndpointResolver(dav, cache=self.endpoint_cache).resolve(config)
            except ConnectivityError as exc:
                return HealthCheckResult(
                    healthy=False,
                    message=exc.error,
                    details={"probe_log": exc.probe_log},
                    latency_ms=(time.monotonic() - started) * 1000,
                )
        return HealthCheckResult(
            healthy=True,
            message="WebDAV endpoint reachable",
            details={"endpoint": endpoint.url, "from_cache": endpoint.from_cache},
            latency_ms=(time.monotonic() - started) * 1000,
        )

