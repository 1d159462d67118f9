# webdav_gateway/__init__.py

"""
WebDAV storage gateway.

`__version__` comes from the repository `VERSION` file when running from a
checkout, otherwise from the installed distribution metadata.
"""

from importlib import metadata
from pathlib import Path

_version_file = Path(__file__).resolve().parents[1] / "VERSION"

if _version_file.exists():
	__version__ = _version_file.read_text(encoding="utf-8").strip()
else:
	try:
		__version__ = metadata.version("webdav-gateway")
	except metadata.PackageNotFoundError:
		__version__ = "0.0.0"
