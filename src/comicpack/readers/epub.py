#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/readers/epub.py
"""Reader for EPUB comics using ebooklib.

Pages are the images the spine documents reference, in reading order:
``<img src>`` in XHTML and ``<image href>`` in SVG wrappers (the usual
fixed-layout comic markup). References are resolved against the document's
href to packaged manifest items. A document that names the same image twice
yields one page; an image shown again by a later document is a new page.
Images inlined as base64 data URIs are pages too; their identifier is
``<document href>#inline-<n>`` and they are decoded on read.

Books whose spine references no images fall back to every manifest image in
natural order.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Any, Sequence
from urllib.parse import unquote, urlparse

import ebooklib
from bs4 import BeautifulSoup
from ebooklib import epub

from comicpack.exceptions import ExtractionError
from comicpack.models import PageEntry
from comicpack.readers.base import ArchiveReader
from comicpack.utils.images import decode_base64_image, is_image_path
from comicpack.utils.paths import natural_sort_key
from comicpack.utils.security import validate_zip_archive

logger = logging.getLogger(__name__)

_INLINE_MARKER = "#inline-"


def _image_references(markup: bytes | str) -> list[str]:
    """Return image references of an XHTML document in document order."""
    soup = BeautifulSoup(markup, "html.parser")
    refs: list[str] = []
    for tag in soup.find_all(["img", "image"]):
        if tag.name == "img":
            ref = tag.get("src")
        else:
            ref = tag.get("xlink:href") or tag.get("href")
        if isinstance(ref, str) and ref.strip():
            refs.append(ref.strip())
    return refs


class EpubReader(ArchiveReader):
    """Read pages from an EPUB package."""

    kind = "epub"

    _book: Any = None

    def _open(self) -> Any:
        if self._book is None:
            validate_zip_archive(
                self.source.path,
                max_compression_ratio=self.options.max_compression_ratio,
                max_uncompressed_size=self.options.max_uncompressed_size,
                max_entries=self.options.max_archive_entries,
            )
            try:
                self._book = epub.read_epub(str(self.source.path), {"ignore_ncx": True})
            except ExtractionError:
                raise
            except Exception as e:
                raise self._error("Failed to read EPUB package", e) from e
        return self._book

    def _list_page_names(self) -> Sequence[str]:
        book = self._open()
        names: list[str] = []

        for idref, *_ in book.spine:
            item = book.get_item_with_id(idref)
            if item is None or item.get_type() != ebooklib.ITEM_DOCUMENT:
                continue
            doc_href = item.get_name()
            inline_count = 0
            # An image shown again by a later spine document is another page
            seen: set[str] = set()
            for ref in _image_references(item.get_content()):
                if ref.startswith("data:"):
                    names.append(f"{doc_href}{_INLINE_MARKER}{inline_count}")
                    inline_count += 1
                    continue
                href = self._resolve_href(doc_href, ref)
                if href is None or href in seen:
                    continue
                if book.get_item_with_href(href) is None:
                    logger.warning(f"{self.source.path.name}: {doc_href} references missing image {ref}")
                    continue
                seen.add(href)
                names.append(href)

        if not names:
            images = [item.get_name() for item in book.get_items_of_type(ebooklib.ITEM_IMAGE)]
            names = sorted((name for name in images if is_image_path(name)), key=natural_sort_key)
        return names

    @staticmethod
    def _resolve_href(doc_href: str, ref: str) -> str | None:
        parsed = urlparse(ref)
        if parsed.scheme or parsed.netloc:
            # Remote resources are never pages
            return None
        path = unquote(parsed.path)
        if not path:
            return None
        return posixpath.normpath(posixpath.join(posixpath.dirname(doc_href), path))

    def read_page_bytes(self, entry: PageEntry) -> bytes:
        book = self._open()
        name = entry.container_local_path

        if _INLINE_MARKER in name:
            return self._read_inline(book, name)

        item = book.get_item_with_href(name)
        if item is None:
            raise self._error(f"Image {name!r} not in package")
        data = item.get_content()
        if not data:
            raise self._error(f"Image {name!r} is empty")
        return data

    def _read_inline(self, book: Any, name: str) -> bytes:
        doc_href, _, position = name.rpartition(_INLINE_MARKER)
        item = book.get_item_with_href(doc_href)
        if item is None:
            raise self._error(f"Document {doc_href!r} not in package")

        data_uris = [ref for ref in _image_references(item.get_content()) if ref.startswith("data:")]
        index = int(position)
        if index >= len(data_uris):
            raise self._error(f"Inline image {index} not found in {doc_href!r}")

        data, _fmt = decode_base64_image(data_uris[index])
        if data is None:
            raise self._error(f"Inline image {index} in {doc_href!r} is not valid base64 image data")
        return data
