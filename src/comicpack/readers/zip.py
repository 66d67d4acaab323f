#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/readers/zip.py
"""Reader for zip-based comics (.cbz, .zip).

Pages are read straight from the central directory; single entries are
decompressed in place without extracting the archive.
"""

from __future__ import annotations

import logging
import zipfile
import zlib
from typing import Sequence

from comicpack.exceptions import PasswordProtectedError
from comicpack.models import PageEntry
from comicpack.readers.base import ArchiveReader
from comicpack.utils.images import is_image_path
from comicpack.utils.paths import natural_sort_key
from comicpack.utils.security import validate_zip_archive

logger = logging.getLogger(__name__)


class ZipReader(ArchiveReader):
    """Read pages from a zip archive."""

    kind = "zip"

    _zip: zipfile.ZipFile | None = None

    def _open(self) -> zipfile.ZipFile:
        if self._zip is None:
            validate_zip_archive(
                self.source.path,
                max_compression_ratio=self.options.max_compression_ratio,
                max_uncompressed_size=self.options.max_uncompressed_size,
                max_entries=self.options.max_archive_entries,
            )
            try:
                self._zip = zipfile.ZipFile(self.source.path, "r")
            except (zipfile.BadZipFile, OSError) as e:
                raise self._error("Could not open ZIP archive", e) from e
        return self._zip

    def _list_page_names(self) -> Sequence[str]:
        zf = self._open()
        names = []
        for info in zf.infolist():
            if info.is_dir() or not is_image_path(info.filename):
                continue
            if info.flag_bits & 0x1:
                raise PasswordProtectedError(str(self.source.path))
            names.append(info.filename)
        return sorted(names, key=natural_sort_key)

    def read_page_bytes(self, entry: PageEntry) -> bytes:
        zf = self._open()
        try:
            return zf.read(entry.container_local_path)
        except KeyError as e:
            raise self._error(f"Entry {entry.container_local_path!r} not found", e) from e
        except RuntimeError as e:
            # zipfile raises RuntimeError for encrypted members read without a password
            raise PasswordProtectedError(str(self.source.path)) from e
        except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, OSError, EOFError, ValueError) as e:
            raise self._error(f"Could not read entry {entry.container_local_path!r}", e) from e

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None
