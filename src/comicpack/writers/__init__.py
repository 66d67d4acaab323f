#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Output container writers.

Examples
--------
    >>> from comicpack.options import OutputOptions
    >>> from comicpack.writers import get_writer
    >>> writer = get_writer(OutputOptions(output_format="cbz"))
    >>> writer.write(page_paths, Path("out.cbz"), title="Issue 1")  # doctest: +SKIP

"""

from __future__ import annotations

from comicpack.options.output import OutputOptions
from comicpack.writers.base import ContainerWriter, positional_member_names
from comicpack.writers.cb7 import Cb7Writer
from comicpack.writers.cbr import CbrWriter, find_rar_executable
from comicpack.writers.cbz import CbzWriter
from comicpack.writers.epub import EpubWriter
from comicpack.writers.pdf import PdfWriter

WRITERS: dict[str, type[ContainerWriter]] = {
    "cbz": CbzWriter,
    "cbr": CbrWriter,
    "cb7": Cb7Writer,
    "pdf": PdfWriter,
    "epub": EpubWriter,
}


def get_writer(options: OutputOptions) -> ContainerWriter:
    """Return the writer for ``options.output_format``."""
    return WRITERS[options.output_format](options)


def available_output_formats() -> list[str]:
    """Return output formats usable on this machine (cbr needs the rar command)."""
    return [fmt for fmt in WRITERS if fmt != "cbr" or find_rar_executable() is not None]


__all__ = [
    "WRITERS",
    "Cb7Writer",
    "CbrWriter",
    "CbzWriter",
    "ContainerWriter",
    "EpubWriter",
    "PdfWriter",
    "available_output_formats",
    "find_rar_executable",
    "get_writer",
    "positional_member_names",
]
