# webdav_gateway/file_access/endpoint_resolver.py
"""
Endpoint discovery for WebDAV servers of unknown dialect.

Different servers mount WebDAV under different paths (Nextcloud/ownCloud use
remote.php, Apache and nginx typically /webdav or /dav, Pydio Cells mounts
per-user folders). The resolver walks an ordered list of candidates derived
from the configured base URL and returns the first one that accepts a
WebDAV probe.
"""
import time
from http import HTTPStatus
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

import structlog

from webdav_gateway.config import WebDAVConfig
from webdav_gateway.file_access.base_fs import ProbeRecord, ResolvedEndpoint
from webdav_gateway.file_access.errors import ConnectivityError
from webdav_gateway.file_access.protocols.webdav_protocol import (
    TRANSPORT_ERRORS,
    WebDAVSession,
    ensure_trailing_slash,
    quote_segment,
)

logger = structlog.get_logger()

# Mount conventions tried after the literal base URL, in order
MOUNT_SUFFIXES = (
    "webdav/",
    "remote.php/webdav/",
    "remote.php/dav/files/{user}/",
    "dav/",
    "files/{user}/",
    "{user}/",
    "public.php/webdav/",
)

PROBE_SUCCESS_STATUSES = (HTTPStatus.MULTI_STATUS, HTTPStatus.METHOD_NOT_ALLOWED)


def candidate_urls(base_url: str, username: str) -> List[str]:
    """
    Ordered, de-duplicated candidate roots for base_url.

    The base URL itself comes first, then each mount convention appended to
    it, then the same conventions substituted at the server origin when the
    base URL carries a path of its own.
    """
    base = ensure_trailing_slash(base_url.strip())
    user = quote_segment(username)
    parts = urlsplit(base)
    origin = urlunsplit((parts.scheme, parts.netloc, "/", "", ""))

    candidates = [base]
    candidates.extend(base + suffix.format(user=user) for suffix in MOUNT_SUFFIXES)
    if origin != base:
        candidates.extend(origin + suffix.format(user=user) for suffix in MOUNT_SUFFIXES)

    seen = set()
    ordered = []
    for url in candidates:
        if url not in seen:
            seen.add(url)
            ordered.append(url)
    return ordered


def allow_header_accepts(allow: str) -> bool:
    methods = {m.strip().upper() for m in allow.split(",") if m.strip()}
    return "PUT" in methods or "PROPFIND" in methods


class EndpointCache:
    """
    Short-lived memo of resolved roots keyed by (base_url, username).

    A ttl of 0 disables caching entirely, which keeps the per-request
    probing behaviour.
    """

    def __init__(self, ttl: float = 0.0, clock=time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[Tuple[str, str], Tuple[str, float]] = {}

    @property
    def enabled(self) -> bool:
        return self.ttl > 0

    def get(self, key: Tuple[str, str]) -> Optional[str]:
        if not self.enabled:
            return None
        entry = self._entries.get(key)
        if entry is None:
            return None
        url, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return url

    def put(self, key: Tuple[str, str], url: str) -> None:
        if self.enabled:
            self._entries[key] = (url, self._clock() + self.ttl)

    def invalidate(self, key: Tuple[str, str]) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()


class EndpointResolver:
    """Find a collection root the server accepts, fail-fast on the first success."""

    def __init__(self, session: WebDAVSession, cache: Optional[EndpointCache] = None):
        self.session = session
        self.cache = cache

    async def _probe(self, url: str, probe_log: List[ProbeRecord]) -> bool:
        try:
            resp = await self.session.propfind(url, depth="0")
        except TRANSPORT_ERRORS as exc:
            probe_log.append(ProbeRecord(url=url, method="PROPFIND", error=f"{type(exc).__name__}: {exc}"))
            logger.warning("webdav_probe_transport_error", url=url, method="PROPFIND", error=str(exc))
            return False
        probe_log.append(ProbeRecord(url=url, method="PROPFIND", status=resp.status_code))
        logger.info("webdav_probe", url=url, method="PROPFIND", status=resp.status_code)
        if resp.is_success or resp.status_code in PROBE_SUCCESS_STATUSES:
            return True

        # Inconclusive PROPFIND: ask the server which verbs it allows here
        try:
            resp = await self.session.options(url)
        except TRANSPORT_ERRORS as exc:
            probe_log.append(ProbeRecord(url=url, method="OPTIONS", error=f"{type(exc).__name__}: {exc}"))
            logger.warning("webdav_probe_transport_error", url=url, method="OPTIONS", error=str(exc))
            return False
        probe_log.append(ProbeRecord(url=url, method="OPTIONS", status=resp.status_code))
        allow = resp.headers.get("Allow", "")
        logger.info("webdav_probe", url=url, method="OPTIONS", status=resp.status_code, allow=allow)
        return allow_header_accepts(allow)

    async def resolve(self, config: Optional[WebDAVConfig] = None) -> ResolvedEndpoint:
        """
        Return the first candidate root that accepts a WebDAV probe.

        Raises:
            ConnectivityError: no candidate succeeded; carries every probe made
        """
        config = config or self.session.config
        cache_key = (config.base_url, config.username)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached:
                logger.debug("webdav_endpoint_cache_hit", url=cached)
                return ResolvedEndpoint(url=cached, from_cache=True)

        probe_log: List[ProbeRecord] = []
        for url in candidate_urls(config.base_url, config.username):
            if await self._probe(url, probe_log):
                logger.info("webdav_endpoint_resolved", url=url, probes=len(probe_log))
                if self.cache is not None:
                    self.cache.put(cache_key, url)
                return ResolvedEndpoint(url=url, probe_log=probe_log)

        logger.error("webdav_endpoint_not_found", base_url=config.base_url, probes=len(probe_log))
        raise ConnectivityError(config.base_url, [record.to_dict() for record in probe_log])
