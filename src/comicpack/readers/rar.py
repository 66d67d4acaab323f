#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/readers/rar.py
"""Reader for rar-based comics (.cbr, .rar).

RAR has no cheap single-entry access here: the whole archive is extracted
into the workspace on first use, then walked like an image folder
(files before subfolders, depth-first, natural order). Extraction needs the
``unrar`` tool that rarfile drives.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import rarfile

from comicpack.exceptions import ArchiveSecurityError, PasswordProtectedError
from comicpack.models import PageEntry
from comicpack.readers.base import ArchiveReader
from comicpack.utils.paths import walk_image_files
from comicpack.utils.security import validate_rar_archive, validate_safe_extraction_path

logger = logging.getLogger(__name__)


class RarReader(ArchiveReader):
    """Read pages from a rar archive via full extraction."""

    kind = "rar"

    _extracted_root: Path | None = None

    def extract(self) -> Path:
        """Extract the archive into the workspace once and return the folder.

        Raises
        ------
        WorkspaceError
            If the reader has no workspace
        ExtractionError
            If the archive is corrupt, encrypted or fails validation

        """
        if self._extracted_root is not None:
            return self._extracted_root

        workspace = self._require_workspace()
        validate_rar_archive(
            self.source.path,
            max_compression_ratio=self.options.max_compression_ratio,
            max_uncompressed_size=self.options.max_uncompressed_size,
            max_entries=self.options.max_archive_entries,
        )

        target = workspace.subdir(f"rar-{self.source.path.stem[:40]}-{id(self):x}")
        try:
            with rarfile.RarFile(str(self.source.path)) as rf:
                if rf.needs_password():
                    raise PasswordProtectedError(str(self.source.path))
                for member in rf.infolist():
                    # Raises on traversal before anything is written
                    validate_safe_extraction_path(target, member.filename)
                rf.extractall(path=str(target))
        except (PasswordProtectedError, ArchiveSecurityError):
            raise
        except rarfile.PasswordRequired as e:
            raise PasswordProtectedError(str(self.source.path)) from e
        except rarfile.RarCannotExec as e:
            raise self._error("No unrar tool available to extract", e) from e
        except (rarfile.Error, OSError) as e:
            raise self._error("Could not extract RAR archive", e) from e

        logger.debug(f"Extracted {self.source.path.name} to {target}")
        self._extracted_root = target
        return target

    def _list_page_names(self) -> Sequence[str]:
        root = self.extract()
        # Relative names stay valid for any later extraction of the same archive
        return [path.relative_to(root).as_posix() for path in walk_image_files(root, recursive=True)]

    def close(self) -> None:
        """Delete the extracted tree from the workspace."""
        if self._extracted_root is not None and self.workspace is not None and self.workspace.is_live:
            self.workspace.remove(self._extracted_root)
        self._extracted_root = None

    def read_page_bytes(self, entry: PageEntry) -> bytes:
        root = self.extract()
        path = validate_safe_extraction_path(root, entry.container_local_path)
        try:
            return path.read_bytes()
        except OSError as e:
            raise self._error(f"Could not read extracted page {path.name}", e) from e
