# webdav_gateway/file_access/protocols/webdav_protocol.py
"""
WebDAV protocol session over httpx.

Thin wrapper that issues single WebDAV verbs (PROPFIND, OPTIONS, MKCOL, PUT,
GET) with HTTP Basic credentials and an explicit timeout. It does not
interpret status codes; the resolver, provisioner and transfer executors
decide what a status means.

Example usage:
    ```python
    config = load_webdav_config()
    async with WebDAVSession(config) as dav:
        resp = await dav.propfind("https://cloud.example.com/remote.php/webdav/")
    ```
"""
from typing import Optional
from urllib.parse import quote, unquote, urlsplit

import httpx
import structlog

from webdav_gateway.config import WebDAVConfig

logger = structlog.get_logger()

PROPFIND_BODY = (
    """<?xml version="1.0" encoding="utf-8"?>"""
    """<D:propfind xmlns:D="DAV:"><D:prop>"""
    """<D:resourcetype/><D:getcontentlength/><D:getlastmodified/>"""
    """</D:prop></D:propfind>"""
)

# Exceptions that mean "no usable HTTP response": DNS, refused, TLS, timeouts
TRANSPORT_ERRORS = (httpx.TransportError,)


def ensure_trailing_slash(url: str) -> str:
    return url if url.endswith("/") else f"{url}/"


def quote_segment(segment: str) -> str:
    """Percent-encode one path segment, including any '/' inside it."""
    return quote(segment, safe="")


def requote_segment(segment: str) -> str:
    """Normalize a segment that may or may not already be percent-encoded."""
    return quote_segment(unquote(segment))


def join_url(base: str, *segments: str) -> str:
    """Append already-encoded segments to base, one '/' between each."""
    url = base
    for segment in segments:
        url = f"{ensure_trailing_slash(url)}{segment}"
    return url


def last_path_segment(url: str) -> str:
    parts = [p for p in urlsplit(url).path.split("/") if p]
    return unquote(parts[-1]) if parts else ""


class WebDAVSession:
    """
    One authenticated connection to a WebDAV server for the lifetime of a request.

    Args:
        config: server URL and credentials
        timeout: seconds applied to every request
        transport: optional httpx transport (tests pass an httpx.MockTransport)
    """

    def __init__(
        self,
        config: WebDAVConfig,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def connect(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            auth=httpx.BasicAuth(self.config.username, self.config.password),
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
            follow_redirects=False,
        )
        logger.debug("webdav_session_opened", base_url=self.config.base_url)

    async def disconnect(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None
                logger.debug("webdav_session_closed", base_url=self.config.base_url)

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
        return False

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self._client is None:
            await self.connect()
        return await self._client.request(method, url, **kwargs)

    async def propfind(self, url: str, depth: str = "0") -> httpx.Response:
        headers = {"Depth": depth, "Content-Type": 'application/xml; charset="utf-8"'}
        return await self.request("PROPFIND", url, headers=headers, content=PROPFIND_BODY)

    async def options(self, url: str) -> httpx.Response:
        return await self.request("OPTIONS", url)

    async def mkcol(self, url: str) -> httpx.Response:
        return await self.request("MKCOL", url)

    async def put(self, url: str, data: bytes) -> httpx.Response:
        headers = {"Content-Type": "application/octet-stream"}
        return await self.request("PUT", url, headers=headers, content=data)

    async def get(self, url: str) -> httpx.Response:
        return await self.request("GET", url)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} base_url={self.config.base_url}>"
