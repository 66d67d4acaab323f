#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/readers/pdf.py
"""Reader for PDF comics using PyMuPDF.

Each PDF page is one comic page. Listing only counts pages; rasterizing
happens page by page in ``read_page_bytes``, at the configured DPI.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

import fitz

from comicpack.exceptions import PasswordProtectedError
from comicpack.models import PageEntry
from comicpack.readers.base import ArchiveReader

if TYPE_CHECKING:
    from fitz import Document

logger = logging.getLogger(__name__)

# Embedded image types that can be stored without re-encoding
_PASSTHROUGH_IMAGE_EXTS = frozenset({"jpeg", "jpg", "png", "webp", "gif", "bmp"})


def pdf_page_name(index: int) -> str:
    """Return the container-local identifier of a PDF page."""
    return f"page-{index + 1:04d}"


class PdfReader(ArchiveReader):
    """Read pages from a PDF document."""

    kind = "pdf"

    _doc: Document | None = None

    def _open(self) -> Document:
        if self._doc is None:
            try:
                doc = fitz.open(filename=str(self.source.path))
            except Exception as e:
                raise self._error("Failed to open PDF document", e) from e
            if doc.needs_pass:
                doc.close()
                raise PasswordProtectedError(str(self.source.path))
            self._doc = doc
        return self._doc

    def _list_page_names(self) -> Sequence[str]:
        doc = self._open()
        return [pdf_page_name(i) for i in range(doc.page_count)]

    def read_page_bytes(self, entry: PageEntry) -> bytes:
        doc = self._open()
        index = entry.ordinal_index
        if not 0 <= index < doc.page_count:
            raise self._error(f"Page {index + 1} out of range")

        try:
            page = doc[index]
            if self.options.pdf_extraction_method == "embedded":
                data = self._embedded_image(doc, page)
                if data is not None:
                    return data
            return self._render(page)
        except Exception as e:
            raise self._error(f"Failed to extract page {index + 1}", e) from e

    def _embedded_image(self, doc: Document, page: fitz.Page) -> bytes | None:
        images = page.get_images(full=True)
        if len(images) != 1:
            return None
        info = doc.extract_image(images[0][0])
        if not info or info.get("ext", "").lower() not in _PASSTHROUGH_IMAGE_EXTS:
            return None
        logger.debug(f"Using embedded {info['ext']} image for page {page.number + 1}")
        return info["image"]

    def _render(self, page: fitz.Page) -> bytes:
        zoom = self.options.pdf_extraction_dpi / 72.0
        pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
        if self.options.pdf_render_format == "png":
            return pix.tobytes(output="png")
        return pix.tobytes(output="jpeg", jpg_quality=self.options.pdf_render_jpg_quality)

    def close(self) -> None:
        if self._doc is not None:
            self._doc.close()
            self._doc = None
