# webdav_gateway/file_access/provisioner.py
"""
Idempotent creation of nested WebDAV collections.

MKCOL only creates one level, so the hierarchy is walked left to right.
"Already exists" answers count as success. Anything else is logged as a
provisioning warning and the walk continues: several servers create missing
parents on PUT, so the upload is the step that reports a real failure.
"""
from http import HTTPStatus
from typing import List, Sequence

import structlog

from webdav_gateway.file_access.base_fs import ProvisionResult, ProvisionStep
from webdav_gateway.file_access.protocols.webdav_protocol import TRANSPORT_ERRORS, WebDAVSession, join_url

logger = structlog.get_logger()

EXISTS_STATUSES = (HTTPStatus.METHOD_NOT_ALLOWED, HTTPStatus.CONFLICT)


class PathProvisioner:
    def __init__(self, session: WebDAVSession):
        self.session = session

    async def _mkcol(self, url: str) -> ProvisionStep:
        try:
            resp = await self.session.mkcol(url)
        except TRANSPORT_ERRORS as exc:
            logger.warning("webdav_mkcol_transport_error", url=url, error=str(exc))
            return ProvisionStep(url=url, outcome="warning", error=f"{type(exc).__name__}: {exc}")

        status = resp.status_code
        if resp.is_success:
            logger.info("webdav_mkcol_created", url=url, status=status)
            return ProvisionStep(url=url, outcome="created", status=status)
        if status in EXISTS_STATUSES:
            logger.info("webdav_mkcol_exists", url=url, status=status)
            return ProvisionStep(url=url, outcome="exists", status=status)
        logger.warning("webdav_mkcol_unexpected_status", url=url, status=status, reason=resp.reason_phrase)
        return ProvisionStep(url=url, outcome="warning", status=status)

    async def ensure(self, root: str, segments: Sequence[str]) -> ProvisionResult:
        """
        Make sure root/segments[0]/.../segments[-1] exists.

        Args:
            root: resolved collection root URL
            segments: folder names, already percent-encoded

        Returns:
            ProvisionResult with the final collection URL and one step per segment
        """
        steps: List[ProvisionStep] = []
        current = root
        for segment in segments:
            current = join_url(current, segment)
            steps.append(await self._mkcol(current))
        result = ProvisionResult(collection_url=current, steps=steps)
        if result.warnings:
            logger.warning(
                "webdav_provisioning_incomplete",
                collection_url=current,
                warnings=len(result.warnings),
            )
        return result
