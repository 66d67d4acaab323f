#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/writers/cbz.py
"""CBZ writer: plain zip, or WinZip AES-256 via pyzipper when a password is set."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pyzipper

from comicpack.writers.base import ContainerWriter, positional_member_names


class CbzWriter(ContainerWriter):
    """Write pages to a .cbz archive."""

    output_format = "cbz"
    extension = "cbz"

    def _write(self, pages: list[Path], output_path: Path, title: str) -> None:
        names = positional_member_names(pages)
        password = self.options.password

        if password:
            with pyzipper.AESZipFile(
                output_path, "w", compression=pyzipper.ZIP_DEFLATED, encryption=pyzipper.WZ_AES
            ) as zf:
                zf.setpassword(password.encode("utf-8"))
                for page, name in zip(pages, names):
                    zf.write(page, arcname=name)
            return

        with zipfile.ZipFile(output_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for page, name in zip(pages, names):
                zf.write(page, arcname=name)
