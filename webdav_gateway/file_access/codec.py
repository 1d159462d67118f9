# webdav_gateway/file_access/codec.py
"""
Content codec between the JSON wire form of a file and its bytes.

Uploads arrive as a string that is either base64 or plain text; downloads
leave as base64. Both directions work in bounded chunks.
"""
import base64
import binascii
import re
from typing import Optional, Tuple

import structlog

logger = structlog.get_logger()

BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")
_WHITESPACE = re.compile(r"\s+")

# Multiple of 3 so per-chunk encodings concatenate without inner padding
ENCODE_CHUNK_SIZE = 8190
# Multiple of 4 so each slice is a whole number of base64 quanta
DECODE_CHUNK_SIZE = 8192

ENCODING_BASE64 = "base64"
ENCODING_TEXT = "text"
SUPPORTED_ENCODINGS = (ENCODING_BASE64, ENCODING_TEXT)


def strip_whitespace(content: str) -> str:
    return _WHITESPACE.sub("", content)


def looks_like_base64(content: str) -> bool:
    """True when content, minus whitespace, is made only of base64 characters."""
    return bool(BASE64_PATTERN.match(strip_whitespace(content)))


def _b64decode_chunked(cleaned: str) -> bytes:
    parts = []
    for i in range(0, len(cleaned), DECODE_CHUNK_SIZE):
        parts.append(base64.b64decode(cleaned[i:i + DECODE_CHUNK_SIZE], validate=True))
    return b"".join(parts)


def decode(content: str, encoding: Optional[str] = None) -> bytes:
    """
    Convert wire content to bytes.

    Args:
        content: base64 or plain text
        encoding: "base64" or "text" to skip sniffing; None sniffs

    Returns:
        Decoded bytes. When sniffing, content that fails to decode as base64
        is stored as UTF-8 text instead of raising.

    Raises:
        ValueError: encoding="base64" and content is not valid base64
    """
    if encoding == ENCODING_TEXT:
        return content.encode("utf-8")

    cleaned = strip_whitespace(content)
    if encoding == ENCODING_BASE64:
        try:
            return _b64decode_chunked(cleaned)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"fileContent is not valid base64: {exc}") from exc

    if not BASE64_PATTERN.match(cleaned):
        return content.encode("utf-8")
    try:
        data = _b64decode_chunked(cleaned)
    except (binascii.Error, ValueError) as exc:
        logger.debug("codec_base64_fallback", length=len(content), error=str(exc))
        return content.encode("utf-8")
    return data


def encode(data: bytes) -> str:
    """Base64-encode bytes chunk by chunk."""
    view = memoryview(data)
    parts = []
    for i in range(0, len(view), ENCODE_CHUNK_SIZE):
        parts.append(base64.b64encode(view[i:i + ENCODE_CHUNK_SIZE]).decode("ascii"))
    return "".join(parts)


def decoded_size_bounds(content: str) -> Tuple[int, int]:
    """
    Cheap (lower, upper) bounds on len(decode(content)) without decoding.

    Plain text decodes to its UTF-8 length, which lies between len(content)
    and 4 * len(content). Base64 decodes to at most 3/4 of its stripped
    length and at least that minus two padding bytes.
    """
    length = len(content)
    if content.isascii():
        text_low = text_high = length
    else:
        text_low, text_high = length, 4 * length
    cleaned = strip_whitespace(content)
    if not BASE64_PATTERN.match(cleaned):
        return text_low, text_high
    b64_high = (len(cleaned) * 3) // 4
    b64_low = max(b64_high - 2, 0)
    # Either interpretation may win (fallback on bad padding)
    return min(b64_low, text_low), max(b64_high, text_high)
