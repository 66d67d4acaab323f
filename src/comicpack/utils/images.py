#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/utils/images.py
"""Image identification utilities.

Page bytes pulled from a container are identified by their magic bytes
rather than by the entry name, because comic archives routinely carry
misnamed images.

"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from pathlib import Path

from comicpack.constants import IMAGE_EXTENSIONS, IMAGE_MEDIA_TYPES

logger = logging.getLogger(__name__)

_MIME_TO_EXT = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/avif": "avif",
    "image/tiff": "tiff",
}


def detect_image_format_from_bytes(data: bytes, max_bytes: int = 32) -> str | None:
    r"""Detect image format from file content using magic bytes.

    Parameters
    ----------
    data : bytes
        Image file content (at least the first 32 bytes for reliable detection)
    max_bytes : int, default 32
        Number of bytes to examine

    Returns
    -------
    str or None
        Image format (lowercase extension without dot) or None if unrecognized

    Examples
    --------
        >>> detect_image_format_from_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 8)
        'png'

    Notes
    -----
    Supported formats and their magic byte signatures:

    - **PNG**: Starts with `\x89PNG\r\n\x1a\n`
    - **JPEG**: Starts with `\xff\xd8\xff`
    - **GIF**: Starts with `GIF87a` or `GIF89a`
    - **WebP**: `RIFF` with `WEBP` at offset 8
    - **AVIF**: ISO-BMFF `ftyp` box at offset 4 with brand `avif` or `avis`
    - **BMP**: Starts with `BM`
    - **TIFF**: Starts with `II*\x00` or `MM\x00*`

    """
    if not data or len(data) < 4:
        return None

    head = data[:max_bytes]

    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"

    if head.startswith(b"\xff\xd8\xff"):
        return "jpg"

    if head.startswith(b"GIF87a") or head.startswith(b"GIF89a"):
        return "gif"

    if len(head) >= 12 and head.startswith(b"RIFF") and head[8:12] == b"WEBP":
        return "webp"

    if len(head) >= 12 and head[4:8] == b"ftyp" and head[8:12] in (b"avif", b"avis"):
        return "avif"

    if head.startswith(b"BM"):
        return "bmp"

    if head.startswith(b"II*\x00") or head.startswith(b"MM\x00*"):
        return "tiff"

    return None


def is_image_path(name: str | Path) -> bool:
    """Return True if a file or entry name has a recognized raster extension.

    Hidden files and macOS resource forks (``._name``, ``__MACOSX/``) are
    never pages.

    Parameters
    ----------
    name : str or Path
        File path or archive entry name

    Returns
    -------
    bool
        Whether the name looks like a page image

    """
    text = str(name).replace("\\", "/")
    if "__MACOSX/" in text:
        return False
    base = text.rsplit("/", 1)[-1]
    if not base or base.startswith("."):
        return False
    return Path(base).suffix.lower() in IMAGE_EXTENSIONS


def media_type_for(image_format: str) -> str:
    """Return the MIME type for an image format name such as ``"jpg"``."""
    return IMAGE_MEDIA_TYPES.get(image_format.lower(), "application/octet-stream")


def decode_base64_image(data_uri: str) -> tuple[bytes | None, str | None]:
    """Decode a base64-encoded data URI to image bytes.

    Parameters
    ----------
    data_uri : str
        Data URI string in format: data:image/{format};base64,{data}

    Returns
    -------
    tuple[bytes or None, str or None]
        Tuple of (image_data, image_format) or (None, None) if decoding fails.

    """
    if not data_uri or not isinstance(data_uri, str):
        return None, None

    match = re.match(r"^data:(?P<mime>[^;,]+);base64,(?P<data>.+)", data_uri.strip(), re.DOTALL)
    if not match:
        logger.debug(f"Invalid data URI format: '{data_uri[:50]}...'")
        return None, None

    image_format = _MIME_TO_EXT.get(match.group("mime").lower())
    if image_format is None:
        logger.debug(f"Unsupported MIME type in data URI: {match.group('mime')}")
        return None, None

    try:
        # Line breaks inside long data URIs are legal in XHTML attributes
        payload = re.sub(r"\s+", "", match.group("data"))
        return base64.b64decode(payload, validate=True), image_format
    except (ValueError, binascii.Error) as e:
        logger.debug(f"Invalid base64 encoding: {type(e).__name__}: {e}")
        return None, None


def encode_base64_image(data: bytes, image_format: str) -> str:
    """Encode image bytes as a ``data:`` URI."""
    return f"data:{media_type_for(image_format)};base64,{base64.b64encode(data).decode('ascii')}"
