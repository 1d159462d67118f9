"""
File Access layer for the WebDAV gateway.

- Content codec (wire string <-> bytes)
- Request validation
- Endpoint discovery, folder provisioning, upload and download over WebDAV
"""

from webdav_gateway.file_access.base_fs import (
    DownloadResult,
    ProbeRecord,
    ProvisionResult,
    ResolvedEndpoint,
    UploadResult,
)
from webdav_gateway.file_access.errors import GatewayError

__all__ = [
    "DownloadResult",
    "GatewayError",
    "ProbeRecord",
    "ProvisionResult",
    "ResolvedEndpoint",
    "UploadResult",
]
