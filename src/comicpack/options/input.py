#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/options/input.py
"""Configuration options for reading comic sources.

This module defines options that govern how pages are pulled out of source
containers: PDF rasterization and archive safety limits.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from comicpack.constants import (
    DEFAULT_MAX_ARCHIVE_ENTRIES,
    DEFAULT_MAX_COMPRESSION_RATIO,
    DEFAULT_MAX_UNCOMPRESSED_SIZE,
    DEFAULT_PDF_EXTRACTION_DPI,
    DEFAULT_PDF_EXTRACTION_METHOD,
    DEFAULT_PDF_RENDER_FORMAT,
    DEFAULT_PDF_RENDER_JPG_QUALITY,
    PdfExtractionMethod,
    PdfRenderFormat,
)
from comicpack.options.base import CloneFrozenMixin


@dataclass(frozen=True)
class InputOptions(CloneFrozenMixin):
    """Configuration options for source readers.

    Parameters
    ----------
    pdf_extraction_method : {"render", "embedded"}, default "render"
        How PDF pages become images. "render" rasterizes each page;
        "embedded" returns the page's embedded image as-is when the page
        holds exactly one, and renders otherwise.
    pdf_extraction_dpi : int, default 300
        Resolution used when rasterizing PDF pages.
    pdf_render_format : {"jpg", "png"}, default "jpg"
        Image codec for rasterized PDF pages.
    pdf_render_jpg_quality : int, default 90
        JPEG quality for rasterized PDF pages.
    recursive_folders : bool, default False
        Default for folder sources created from paths without an explicit flag.
    max_compression_ratio : float, default 100.0
        Archive bomb threshold (uncompressed/compressed).
    max_uncompressed_size : int
        Maximum total uncompressed archive size in bytes.
    max_archive_entries : int, default 10000
        Maximum number of entries in an archive.

    """

    pdf_extraction_method: PdfExtractionMethod = field(
        default=DEFAULT_PDF_EXTRACTION_METHOD,
        metadata={
            "help": "PDF page extraction: render pages or take embedded images",
            "choices": ["render", "embedded"],
            "importance": "core",
        },
    )
    pdf_extraction_dpi: int = field(
        default=DEFAULT_PDF_EXTRACTION_DPI,
        metadata={"help": "Resolution (DPI) for rendering PDF pages", "type": int, "importance": "core"},
    )
    pdf_render_format: PdfRenderFormat = field(
        default=DEFAULT_PDF_RENDER_FORMAT,
        metadata={"help": "Image format for rendered PDF pages", "choices": ["jpg", "png"], "importance": "advanced"},
    )
    pdf_render_jpg_quality: int = field(
        default=DEFAULT_PDF_RENDER_JPG_QUALITY,
        metadata={"help": "JPEG quality for rendered PDF pages", "type": int, "importance": "advanced"},
    )
    recursive_folders: bool = field(
        default=False,
        metadata={"help": "Search image folders recursively", "importance": "core"},
    )
    max_compression_ratio: float = field(
        default=DEFAULT_MAX_COMPRESSION_RATIO,
        metadata={"help": "Maximum archive compression ratio", "type": float, "importance": "security"},
    )
    max_uncompressed_size: int = field(
        default=DEFAULT_MAX_UNCOMPRESSED_SIZE,
        metadata={"help": "Maximum total uncompressed archive size in bytes", "type": int, "importance": "security"},
    )
    max_archive_entries: int = field(
        default=DEFAULT_MAX_ARCHIVE_ENTRIES,
        metadata={"help": "Maximum number of archive entries", "type": int, "importance": "security"},
    )

    def __post_init__(self) -> None:
        """Validate option values.

        Raises
        ------
        ValueError
            If any field value is outside its valid range.

        """
        if self.pdf_extraction_method not in ("render", "embedded"):
            raise ValueError(f"pdf_extraction_method must be 'render' or 'embedded', got {self.pdf_extraction_method}")
        if not 36 <= self.pdf_extraction_dpi <= 1200:
            raise ValueError(f"pdf_extraction_dpi must be between 36 and 1200, got {self.pdf_extraction_dpi}")
        if self.pdf_render_format not in ("jpg", "png"):
            raise ValueError(f"pdf_render_format must be 'jpg' or 'png', got {self.pdf_render_format}")
        if not 1 <= self.pdf_render_jpg_quality <= 100:
            raise ValueError(f"pdf_render_jpg_quality must be between 1 and 100, got {self.pdf_render_jpg_quality}")
        if self.max_compression_ratio <= 0:
            raise ValueError(f"max_compression_ratio must be positive, got {self.max_compression_ratio}")
        if self.max_uncompressed_size <= 0:
            raise ValueError(f"max_uncompressed_size must be positive, got {self.max_uncompressed_size}")
        if self.max_archive_entries <= 0:
            raise ValueError(f"max_archive_entries must be positive, got {self.max_archive_entries}")
