#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/options/output.py
"""Configuration options for conversion output.

This module defines the OutputOptions dataclass handed to a conversion job:
the destination folder, the output container and image codec, per-codec
quality settings, splitting, encryption and naming.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from comicpack.constants import (
    DEFAULT_AVIF_QUALITY,
    DEFAULT_CREATOR,
    DEFAULT_EPUB_IMAGE_STORAGE,
    DEFAULT_IMAGE_SCALE,
    DEFAULT_JPG_QUALITY,
    DEFAULT_OUTPUT_FORMAT,
    DEFAULT_PDF_CREATION_METHOD,
    DEFAULT_PNG_QUALITY,
    DEFAULT_WEBP_QUALITY,
    IMAGE_FORMATS,
    OUTPUT_FORMATS,
    EpubImageStorage,
    ImageFormat,
    OutputFormat,
    PageOrder,
    PdfCreationMethod,
)
from comicpack.options.base import CloneFrozenMixin


@dataclass(frozen=True)
class OutputOptions(CloneFrozenMixin):
    """Configuration options for a conversion job's output.

    Parameters
    ----------
    output_folder : str or None, default None
        Destination folder. A job refuses to start while this is unset.
    output_format : {"cbz", "cbr", "cb7", "pdf", "epub"}, default "cbz"
        Output container format.
    image_format : {"jpg", "png", "webp", "avif"} or None, default None
        Target image codec. None keeps each page's native format.
    image_scale : int, default 100
        Resize pages to this percentage of their original width (1-100).
    jpg_quality, webp_quality, avif_quality : int
        Encoder quality (1-100) for the respective codec.
    jpg_optimize : bool, default False
        Run the JPEG encoder's extra optimization pass (smaller files, slower).
    png_quality : int, default 100
        Values below 100 enable palette quantization and maximum compression.
    split_num_files : int, default 1
        Divide each output into this many roughly equal parts.
    password : str or None, default None
        Encrypt the output container where the format supports it
        (cbz, cb7, cbr, pdf).
    page_order : {"default", "reverse"}, default "default"
        Output page order relative to extraction order.
    output_file_base_name : str or None, default None
        When set, the job runs in creation mode: all sources are merged into
        one output with this base name.
    pdf_creation_method : {"metadata", "dpi72", "dpi300"}, default "metadata"
        How PDF page size is derived from image pixels.
    epub_image_storage : {"files", "base64"}, default "files"
        Store EPUB pages as packaged image files or inline data URIs.
    epub_core_media_only : bool, default True
        Convert images that are not EPUB core media types (webp, avif, bmp)
        to JPEG when writing EPUB.
    creator : str or None, default "comicpack"
        Creator/producer metadata written into PDF and EPUB output.

    Examples
    --------
        >>> options = OutputOptions(output_folder="/tmp/out", output_format="pdf", image_scale=50)
        >>> options.needs_transcode
        True

    """

    output_folder: str | None = field(
        default=None,
        metadata={"help": "Destination folder for converted files", "importance": "core"},
    )
    output_format: OutputFormat = field(
        default=DEFAULT_OUTPUT_FORMAT,
        metadata={"help": "Output container format", "choices": list(OUTPUT_FORMATS), "importance": "core"},
    )
    image_format: ImageFormat | None = field(
        default=None,
        metadata={
            "help": "Target image format (default: keep native format)",
            "choices": list(IMAGE_FORMATS),
            "importance": "core",
        },
    )
    image_scale: int = field(
        default=DEFAULT_IMAGE_SCALE,
        metadata={"help": "Resize pages to this percentage of their width", "type": int, "importance": "core"},
    )
    jpg_quality: int = field(
        default=DEFAULT_JPG_QUALITY,
        metadata={"help": "JPEG quality (1-100)", "type": int, "importance": "advanced"},
    )
    jpg_optimize: bool = field(
        default=False,
        metadata={"help": "Optimize JPEG encoding for smaller files", "importance": "advanced"},
    )
    png_quality: int = field(
        default=DEFAULT_PNG_QUALITY,
        metadata={"help": "PNG quality; below 100 enables palette quantization", "type": int, "importance": "advanced"},
    )
    webp_quality: int = field(
        default=DEFAULT_WEBP_QUALITY,
        metadata={"help": "WebP quality (1-100)", "type": int, "importance": "advanced"},
    )
    avif_quality: int = field(
        default=DEFAULT_AVIF_QUALITY,
        metadata={"help": "AVIF quality (1-100)", "type": int, "importance": "advanced"},
    )
    split_num_files: int = field(
        default=1,
        metadata={"help": "Split each output into this many files", "type": int, "importance": "core"},
    )
    password: str | None = field(
        default=None,
        metadata={"help": "Password for output encryption (cbz, cb7, cbr, pdf)", "importance": "security"},
    )
    page_order: PageOrder = field(
        default="default",
        metadata={"help": "Output page order", "choices": ["default", "reverse"], "importance": "core"},
    )
    output_file_base_name: str | None = field(
        default=None,
        metadata={"help": "Merge all sources into one output with this base name", "importance": "core"},
    )
    pdf_creation_method: PdfCreationMethod = field(
        default=DEFAULT_PDF_CREATION_METHOD,
        metadata={"help": "PDF page sizing method", "choices": ["metadata", "dpi72", "dpi300"], "importance": "advanced"},
    )
    epub_image_storage: EpubImageStorage = field(
        default=DEFAULT_EPUB_IMAGE_STORAGE,
        metadata={"help": "EPUB image storage", "choices": ["files", "base64"], "importance": "advanced"},
    )
    epub_core_media_only: bool = field(
        default=True,
        metadata={"help": "Convert non-core EPUB image types to JPEG", "importance": "advanced"},
    )
    creator: str | None = field(
        default=DEFAULT_CREATOR,
        metadata={"help": "Creator application name for document metadata", "importance": "advanced"},
    )

    def __post_init__(self) -> None:
        """Validate option values.

        Raises
        ------
        ValueError
            If any field value is outside its valid range.

        """
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"output_format must be one of {OUTPUT_FORMATS}, got {self.output_format}")
        if self.image_format is not None and self.image_format not in IMAGE_FORMATS:
            raise ValueError(f"image_format must be one of {IMAGE_FORMATS} or None, got {self.image_format}")
        if not 1 <= self.image_scale <= 100:
            raise ValueError(f"image_scale must be between 1 and 100, got {self.image_scale}")
        for name in ("jpg_quality", "png_quality", "webp_quality", "avif_quality"):
            value = getattr(self, name)
            if not 1 <= value <= 100:
                raise ValueError(f"{name} must be between 1 and 100, got {value}")
        if self.split_num_files < 1:
            raise ValueError(f"split_num_files must be at least 1, got {self.split_num_files}")
        if self.page_order not in ("default", "reverse"):
            raise ValueError(f"page_order must be 'default' or 'reverse', got {self.page_order}")
        if self.pdf_creation_method not in ("metadata", "dpi72", "dpi300"):
            raise ValueError(f"Invalid pdf_creation_method: {self.pdf_creation_method}")
        if self.epub_image_storage not in ("files", "base64"):
            raise ValueError(f"epub_image_storage must be 'files' or 'base64', got {self.epub_image_storage}")
        if self.output_file_base_name is not None and not self.output_file_base_name.strip():
            raise ValueError("output_file_base_name must not be blank")

    @property
    def needs_transcode(self) -> bool:
        """Whether pages go through the resize/encode stage."""
        return self.image_format is not None or self.image_scale < 100

    @property
    def is_creation(self) -> bool:
        """Whether all sources are merged into a single named output."""
        return self.output_file_base_name is not None

    def quality_for(self, image_format: str) -> int:
        """Return the configured quality for an image codec.

        Parameters
        ----------
        image_format : str
            One of "jpg", "png", "webp", "avif"

        Returns
        -------
        int
            Quality value between 1 and 100

        """
        key = "jpg" if image_format == "jpeg" else image_format
        return int(getattr(self, f"{key}_quality"))
