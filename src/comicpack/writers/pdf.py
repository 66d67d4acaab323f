#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/writers/pdf.py
"""PDF writer using PyMuPDF.

Each page image becomes one PDF page of the same aspect ratio. The page size
in points is derived from the pixel size and a resolution chosen by
``pdf_creation_method``:

- ``metadata``: the image's own DPI tag, or 72 when it has none
- ``dpi72``: 72 DPI (one pixel per point)
- ``dpi300``: 300 DPI (print size)

JPEG and PNG files are embedded as-is; other formats are converted to PNG
first. A password applies AES-256 encryption.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path

import fitz
from PIL import Image

from comicpack.transcode import sniff_file_format
from comicpack.writers.base import ContainerWriter

logger = logging.getLogger(__name__)

_EMBEDDABLE_FORMATS = frozenset({"jpg", "png"})
_METHOD_DPI = {"dpi72": 72.0, "dpi300": 300.0}


class PdfWriter(ContainerWriter):
    """Write pages to a PDF document."""

    output_format = "pdf"
    extension = "pdf"

    def _page_dpi(self, img: Image.Image) -> tuple[float, float]:
        fixed = _METHOD_DPI.get(self.options.pdf_creation_method)
        if fixed is not None:
            return fixed, fixed
        dpi = img.info.get("dpi")
        try:
            x_dpi, y_dpi = float(dpi[0]), float(dpi[1])  # type: ignore[index]
        except (TypeError, ValueError, IndexError):
            return 72.0, 72.0
        if x_dpi < 1 or y_dpi < 1:
            return 72.0, 72.0
        return x_dpi, y_dpi

    def _write(self, pages: list[Path], output_path: Path, title: str) -> None:
        doc = fitz.open()
        try:
            for page_path in pages:
                with Image.open(page_path) as img:
                    x_dpi, y_dpi = self._page_dpi(img)
                    width = img.width * 72.0 / x_dpi
                    height = img.height * 72.0 / y_dpi
                    stream = None
                    if sniff_file_format(page_path) not in _EMBEDDABLE_FORMATS:
                        buffer = io.BytesIO()
                        converted = img if img.mode in ("RGB", "RGBA", "L", "LA") else img.convert("RGBA")
                        converted.save(buffer, format="PNG")
                        stream = buffer.getvalue()

                page = doc.new_page(width=width, height=height)
                if stream is not None:
                    page.insert_image(page.rect, stream=stream)
                else:
                    page.insert_image(page.rect, filename=str(page_path))

            metadata = {"title": title}
            if self.options.creator:
                metadata["creator"] = self.options.creator
                metadata["producer"] = self.options.creator
            doc.set_metadata(metadata)

            save_kwargs: dict = {"garbage": 3, "deflate": True}
            if self.options.password:
                save_kwargs.update(
                    encryption=fitz.PDF_ENCRYPT_AES_256,
                    owner_pw=self.options.password,
                    user_pw=self.options.password,
                )
            doc.save(str(output_path), **save_kwargs)
        finally:
            doc.close()
