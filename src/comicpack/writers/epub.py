#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/writers/epub.py
"""EPUB writer using ebooklib.

Every page image gets its own fixed-layout XHTML page. Images are stored as
packaged manifest items (``files``) or as inline base64 data URIs
(``base64``). EPUB has no container encryption, so a password is ignored.
"""

from __future__ import annotations

import io
import logging
import uuid
from pathlib import Path

from ebooklib import epub
from PIL import Image

from comicpack.constants import DEFAULT_EPUB_LANGUAGE, EPUB_CORE_MEDIA_TYPES
from comicpack.utils.images import encode_base64_image, media_type_for
from comicpack.writers.base import ContainerWriter, positional_member_names

logger = logging.getLogger(__name__)

_PAGE_TEMPLATE = (
    '<div style="margin:0;padding:0;text-align:center">'
    '<img src="{src}" alt="Page {number}" style="max-width:100%;max-height:100%"/>'
    "</div>"
)


class EpubWriter(ContainerWriter):
    """Write pages to an EPUB book."""

    output_format = "epub"
    extension = "epub"
    supports_password = False

    def _page_bytes(self, page: Path, member_name: str) -> tuple[bytes, str]:
        """Return image bytes and their format, converting non-core types to JPEG."""
        data = page.read_bytes()
        image_format = member_name.rsplit(".", 1)[-1]
        if not self.options.epub_core_media_only or media_type_for(image_format) in EPUB_CORE_MEDIA_TYPES:
            return data, image_format

        with Image.open(io.BytesIO(data)) as img:
            rgb = img.convert("RGB")
            buffer = io.BytesIO()
            rgb.save(buffer, format="JPEG", quality=self.options.jpg_quality)
        logger.debug(f"Converted {image_format} page {member_name} to JPEG for EPUB")
        return buffer.getvalue(), "jpg"

    def _write(self, pages: list[Path], output_path: Path, title: str) -> None:
        book = epub.EpubBook()
        book.set_identifier(f"urn:uuid:{uuid.uuid4()}")
        book.set_title(title)
        book.set_language(DEFAULT_EPUB_LANGUAGE)
        if self.options.creator:
            book.add_metadata("DC", "creator", self.options.creator)
        book.add_metadata(None, "meta", "pre-paginated", {"property": "rendition:layout"})

        use_files = self.options.epub_image_storage == "files"
        page_items = []
        for number, (page, member_name) in enumerate(zip(pages, positional_member_names(pages)), start=1):
            data, image_format = self._page_bytes(page, member_name)
            stem = member_name.rsplit(".", 1)[0]

            if use_files:
                image_item = epub.EpubImage(
                    uid=f"img{stem}",
                    file_name=f"images/{stem}.{image_format}",
                    media_type=media_type_for(image_format),
                    content=data,
                )
                book.add_item(image_item)
                if number == 1:
                    book.add_metadata(None, "meta", "", {"name": "cover", "content": image_item.id})
                src = f"../images/{stem}.{image_format}"
            else:
                src = encode_base64_image(data, image_format)

            page_item = epub.EpubHtml(
                uid=f"page{stem}",
                title=f"Page {number}",
                file_name=f"pages/{stem}.xhtml",
                lang=DEFAULT_EPUB_LANGUAGE,
            )
            page_item.content = _PAGE_TEMPLATE.format(src=src, number=number)
            book.add_item(page_item)
            page_items.append(page_item)

        book.toc = (page_items[0],)
        book.add_item(epub.EpubNcx())
        book.add_item(epub.EpubNav())
        book.spine = page_items

        epub.write_epub(str(output_path), book, {})
