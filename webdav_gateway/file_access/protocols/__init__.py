"""
Protocol adapters for the storage gateway.

Each adapter speaks one network filesystem protocol; the gateway currently
ships WebDAV only.
"""

from webdav_gateway.file_access.protocols.webdav_protocol import WebDAVSession

__all__ = [
    "WebDAVSession",
]
