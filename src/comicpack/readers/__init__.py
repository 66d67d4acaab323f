#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Source readers for every supported container kind.

All readers implement :class:`ArchiveReader`; ``open_reader`` picks the
variant for a source.

Examples
--------
    >>> from comicpack.models import ComicSource
    >>> from comicpack.readers import open_reader
    >>> with open_reader(ComicSource.from_path("issue1.cbz")) as reader:
    ...     pages = reader.list_pages()
    ...     first = reader.read_page_bytes(pages[0])

"""

from __future__ import annotations

from comicpack.models import ComicSource
from comicpack.options.input import InputOptions
from comicpack.readers.base import ArchiveReader
from comicpack.readers.epub import EpubReader
from comicpack.readers.folder import FolderReader
from comicpack.readers.pdf import PdfReader
from comicpack.readers.rar import RarReader
from comicpack.readers.zip import ZipReader
from comicpack.workspace import TempWorkspace

READERS: dict[str, type[ArchiveReader]] = {
    "zip": ZipReader,
    "rar": RarReader,
    "pdf": PdfReader,
    "epub": EpubReader,
    "folder": FolderReader,
}


def open_reader(
    source: ComicSource,
    workspace: TempWorkspace | None = None,
    options: InputOptions | None = None,
) -> ArchiveReader:
    """Create the reader for a source.

    Parameters
    ----------
    source : ComicSource
        Source to read
    workspace : TempWorkspace, optional
        Scratch space; required for rar sources
    options : InputOptions, optional
        Reader configuration

    Returns
    -------
    ArchiveReader
        An unopened reader; containers are opened lazily

    """
    return READERS[source.kind](source, workspace=workspace, options=options)


__all__ = [
    "READERS",
    "ArchiveReader",
    "EpubReader",
    "FolderReader",
    "PdfReader",
    "RarReader",
    "ZipReader",
    "open_reader",
]
