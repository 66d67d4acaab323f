#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/constants.py
"""Constants and default values for the comicpack library.

This module centralizes the literal types, default option values and
recognized file extensions used across comicpack.

Constants are organized by category:
1. Type Definitions - All Literal types and type aliases
2. Workspace Constants - Scratch directory naming
3. Image Defaults - Transcode quality and scale defaults
4. Input Defaults - PDF extraction and archive safety limits
5. Output Defaults - Container writer settings
6. File Extensions and Format Detection - File type identification
"""

from __future__ import annotations

from typing import Literal

# =============================================================================
# Type Definitions - All Literal Types and Type Aliases
# =============================================================================

SourceKind = Literal["zip", "rar", "pdf", "epub", "folder"]
OutputFormat = Literal["cbz", "cbr", "cb7", "pdf", "epub"]
ImageFormat = Literal["jpg", "png", "webp", "avif"]
PageOrder = Literal["default", "reverse"]
PdfExtractionMethod = Literal["render", "embedded"]
PdfRenderFormat = Literal["jpg", "png"]
PdfCreationMethod = Literal["metadata", "dpi72", "dpi300"]
EpubImageStorage = Literal["files", "base64"]

SOURCE_KINDS: tuple[str, ...] = ("zip", "rar", "pdf", "epub", "folder")
OUTPUT_FORMATS: tuple[str, ...] = ("cbz", "cbr", "cb7", "pdf", "epub")
IMAGE_FORMATS: tuple[str, ...] = ("jpg", "png", "webp", "avif")

# =============================================================================
# Workspace Constants
# =============================================================================

TEMP_FOLDER_PREFIX = "comicpack-"

# =============================================================================
# Image Defaults
# =============================================================================

DEFAULT_IMAGE_SCALE = 100
DEFAULT_JPG_QUALITY = 80
DEFAULT_PNG_QUALITY = 100
DEFAULT_WEBP_QUALITY = 80
DEFAULT_AVIF_QUALITY = 50

# Extension used when magic-byte sniffing is inconclusive
DEFAULT_SNIFFED_EXTENSION = "jpg"

# =============================================================================
# Input Defaults
# =============================================================================

DEFAULT_PDF_EXTRACTION_METHOD: PdfExtractionMethod = "render"
DEFAULT_PDF_EXTRACTION_DPI = 300
DEFAULT_PDF_RENDER_FORMAT: PdfRenderFormat = "jpg"
DEFAULT_PDF_RENDER_JPG_QUALITY = 90

DEFAULT_MAX_COMPRESSION_RATIO = 100.0  # Maximum compression ratio (uncompressed/compressed)
DEFAULT_MAX_UNCOMPRESSED_SIZE = 4 * 1024 * 1024 * 1024  # 4GB, comics can be large
DEFAULT_MAX_ARCHIVE_ENTRIES = 10000

# =============================================================================
# Output Defaults
# =============================================================================

DEFAULT_OUTPUT_FORMAT: OutputFormat = "cbz"
DEFAULT_PDF_CREATION_METHOD: PdfCreationMethod = "metadata"
DEFAULT_EPUB_IMAGE_STORAGE: EpubImageStorage = "files"
DEFAULT_EPUB_LANGUAGE = "en"
DEFAULT_CREATOR = "comicpack"

RAR_EXECUTABLE_NAMES: tuple[str, ...] = ("rar", "Rar.exe")

# =============================================================================
# File Extensions and Format Detection
# =============================================================================

IMAGE_EXTENSIONS: frozenset[str] = frozenset({".jpg", ".jpeg", ".png", ".webp", ".bmp", ".avif", ".gif"})

ZIP_EXTENSIONS: frozenset[str] = frozenset({".cbz", ".zip"})
RAR_EXTENSIONS: frozenset[str] = frozenset({".cbr", ".rar"})
PDF_EXTENSIONS: frozenset[str] = frozenset({".pdf"})
EPUB_EXTENSIONS: frozenset[str] = frozenset({".epub"})

# Media types accepted by every EPUB 3 reading system
EPUB_CORE_MEDIA_TYPES: frozenset[str] = frozenset({"image/jpeg", "image/png", "image/gif"})

IMAGE_MEDIA_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "avif": "image/avif",
    "tiff": "image/tiff",
}

# Pillow format names for target codecs
PIL_FORMAT_NAMES: dict[str, str] = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "avif": "AVIF",
    "bmp": "BMP",
    "gif": "GIF",
    "tiff": "TIFF",
}
