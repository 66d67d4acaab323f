#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/writers/cb7.py
"""CB7 writer using py7zr; a password encrypts both data and headers."""

from __future__ import annotations

from pathlib import Path

import py7zr

from comicpack.writers.base import ContainerWriter, positional_member_names


class Cb7Writer(ContainerWriter):
    """Write pages to a .cb7 archive."""

    output_format = "cb7"
    extension = "cb7"

    def _write(self, pages: list[Path], output_path: Path, title: str) -> None:
        names = positional_member_names(pages)
        password = self.options.password or None

        with py7zr.SevenZipFile(output_path, "w", password=password, header_encryption=password is not None) as archive:
            for page, name in zip(pages, names):
                archive.write(page, arcname=name)
