#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/readers/folder.py
"""Reader for plain folders of page images."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from comicpack.models import PageEntry
from comicpack.readers.base import ArchiveReader
from comicpack.utils.paths import walk_image_files


class FolderReader(ArchiveReader):
    """Read pages from an image folder, optionally including subfolders."""

    kind = "folder"

    def _list_page_names(self) -> Sequence[str]:
        if not self.source.path.is_dir():
            raise self._error("Not a folder")
        try:
            return [str(path) for path in walk_image_files(self.source.path, recursive=self.source.recursive)]
        except OSError as e:
            raise self._error("Could not list folder", e) from e

    def read_page_bytes(self, entry: PageEntry) -> bytes:
        try:
            return Path(entry.container_local_path).read_bytes()
        except OSError as e:
            raise self._error(f"Could not read {entry.container_local_path}", e) from e
