"""Test utilities and helper functions for the comicpack test suite.

Builders in this module create small but real comic sources on disk: page
images via Pillow, CBZ files via zipfile, PDFs via PyMuPDF and EPUBs via
ebooklib.
"""

import io
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Iterable, Sequence

from PIL import Image

# Distinct colors so pages can be told apart after a round trip
PAGE_COLORS = [
    (200, 30, 30),
    (30, 200, 30),
    (30, 30, 200),
    (200, 200, 30),
    (30, 200, 200),
    (200, 30, 200),
    (120, 120, 120),
    (250, 250, 250),
]


def make_image_bytes(
    size: tuple[int, int] = (40, 60), color: tuple[int, int, int] = (200, 30, 30), fmt: str = "PNG"
) -> bytes:
    """Encode a solid-color image."""
    img = Image.new("RGB", size, color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def write_image(path: Path, size: tuple[int, int] = (40, 60), color: tuple[int, int, int] = (200, 30, 30)) -> Path:
    """Write a solid-color image; the format follows the file extension."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fmt = {".jpg": "JPEG", ".jpeg": "JPEG", ".png": "PNG", ".webp": "WEBP", ".gif": "GIF", ".bmp": "BMP"}[
        path.suffix.lower()
    ]
    path.write_bytes(make_image_bytes(size, color, fmt))
    return path


def make_image_folder(folder: Path, names: Sequence[str], size: tuple[int, int] = (40, 60)) -> list[Path]:
    """Create a folder of page images; names may contain subfolders."""
    folder.mkdir(parents=True, exist_ok=True)
    return [write_image(folder / name, size, PAGE_COLORS[i % len(PAGE_COLORS)]) for i, name in enumerate(names)]


def make_cbz(path: Path, names: Sequence[str], size: tuple[int, int] = (40, 60), extra: Iterable[str] = ()) -> Path:
    """Create a CBZ whose members are page images plus optional non-image files."""
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for i, name in enumerate(names):
            fmt = "JPEG" if name.lower().endswith((".jpg", ".jpeg")) else "PNG"
            zf.writestr(name, make_image_bytes(size, PAGE_COLORS[i % len(PAGE_COLORS)], fmt))
        for name in extra:
            zf.writestr(name, b"not an image")
    return path


def make_pdf(path: Path, page_count: int = 3, size: tuple[int, int] = (200, 300)) -> Path:
    """Create a PDF with one embedded PNG image per page."""
    import fitz

    doc = fitz.open()
    for i in range(page_count):
        page = doc.new_page(width=size[0], height=size[1])
        page.insert_image(page.rect, stream=make_image_bytes(size, PAGE_COLORS[i % len(PAGE_COLORS)]))
    doc.save(str(path))
    doc.close()
    return path


def make_epub(path: Path, page_count: int = 3, size: tuple[int, int] = (40, 60)) -> Path:
    """Create a fixed-layout style EPUB with one image page per spine item."""
    from ebooklib import epub

    book = epub.EpubBook()
    book.set_identifier("test-book")
    book.set_title("Test Comic")
    book.set_language("en")

    pages = []
    for i in range(page_count):
        image = epub.EpubImage(
            uid=f"img{i}",
            file_name=f"images/p{i + 1}.png",
            media_type="image/png",
            content=make_image_bytes(size, PAGE_COLORS[i % len(PAGE_COLORS)]),
        )
        book.add_item(image)
        page = epub.EpubHtml(uid=f"page{i}", title=f"Page {i + 1}", file_name=f"text/page{i + 1}.xhtml", lang="en")
        page.content = f'<p><img src="../images/p{i + 1}.png" alt="page"/></p>'
        book.add_item(page)
        pages.append(page)

    book.toc = (pages[0],)
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = pages
    epub.write_epub(str(path), book, {})
    return path


def make_corrupt_file(path: Path, header: bytes = b"PK\x03\x04") -> Path:
    """Write a file that has a container signature but garbage contents."""
    path.write_bytes(header + b"\x00garbage" * 16)
    return path


def image_size(data_or_path: bytes | Path) -> tuple[int, int]:
    """Return the pixel size of an encoded image."""
    source = io.BytesIO(data_or_path) if isinstance(data_or_path, bytes) else data_or_path
    with Image.open(source) as img:
        return img.size


def zip_member_names(path: Path) -> list[str]:
    """Return the member names of a zip file in stored order."""
    with zipfile.ZipFile(path) as zf:
        return zf.namelist()


def create_test_temp_dir() -> Path:
    """Create a temporary directory for test files."""
    return Path(tempfile.mkdtemp())


def cleanup_test_dir(temp_dir: Path) -> None:
    """Clean up test directory and files."""
    if temp_dir.exists():
        shutil.rmtree(temp_dir)
