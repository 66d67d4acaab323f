#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Security utilities for reading untrusted comic archives.

Functions
---------
- validate_zip_archive: Pre-validate ZIP archives for archive bombs and traversal
- validate_rar_archive: Pre-validate RAR archives for archive bombs and traversal
- validate_safe_extraction_path: Resolve an archive member under an output directory
- is_path_within: Check that a path is strictly inside a directory
"""

import logging
import os
import zipfile
from pathlib import Path, PurePosixPath

from comicpack.constants import (
    DEFAULT_MAX_ARCHIVE_ENTRIES,
    DEFAULT_MAX_COMPRESSION_RATIO,
    DEFAULT_MAX_UNCOMPRESSED_SIZE,
)
from comicpack.exceptions import ArchiveSecurityError, ExtractionError

logger = logging.getLogger(__name__)


def _check_member_name(name: str, archive_label: str) -> None:
    name_norm = name.replace("\\", "/")

    # Windows drive letters are not caught by PurePosixPath
    if len(name_norm) >= 2 and name_norm[1] == ":":
        raise ArchiveSecurityError(f"{archive_label} archive contains Windows absolute path: {name}")

    p = PurePosixPath(name_norm)
    if any(part == ".." for part in p.parts) or name_norm.startswith("/"):
        raise ArchiveSecurityError(f"{archive_label} archive contains suspicious path: {name}")


def _check_totals(total_uncompressed: int, total_compressed: int, archive_label: str, max_ratio: float) -> None:
    # Tiny archives of already-compressed images cannot be bombs
    if total_compressed > 0 and total_uncompressed > 1024 * 1024:
        compression_ratio = total_uncompressed / total_compressed
        if compression_ratio > max_ratio:
            raise ArchiveSecurityError(
                f"{archive_label} archive has suspicious compression ratio: {compression_ratio:.1f}:1"
            )


def validate_zip_archive(
    file_path: str | Path,
    max_compression_ratio: float = DEFAULT_MAX_COMPRESSION_RATIO,
    max_uncompressed_size: int = DEFAULT_MAX_UNCOMPRESSED_SIZE,
    max_entries: int = DEFAULT_MAX_ARCHIVE_ENTRIES,
) -> None:
    """Validate a ZIP archive for security threats before processing.

    Parameters
    ----------
    file_path : str or Path
        Path to the ZIP archive to validate
    max_compression_ratio : float, default 100.0
        Maximum allowed compression ratio (uncompressed/compressed)
    max_uncompressed_size : int
        Maximum total uncompressed size in bytes
    max_entries : int, default 10000
        Maximum number of entries in the archive

    Raises
    ------
    ArchiveSecurityError
        If the archive fails security validation
    ExtractionError
        If the archive cannot be read for some other reason

    """
    try:
        with zipfile.ZipFile(file_path, "r") as zf:
            entries = zf.infolist()

            if len(entries) > max_entries:
                raise ArchiveSecurityError(f"ZIP archive contains too many entries: {len(entries)} > {max_entries}")

            total_uncompressed = 0
            total_compressed = 0
            for entry in entries:
                _check_member_name(entry.filename, "ZIP")
                total_uncompressed += entry.file_size
                total_compressed += entry.compress_size

                if total_uncompressed > max_uncompressed_size:
                    raise ArchiveSecurityError(
                        f"ZIP archive uncompressed size too large: "
                        f"{total_uncompressed / (1024 * 1024):.1f}MB > "
                        f"{max_uncompressed_size / (1024 * 1024):.1f}MB"
                    )

            _check_totals(total_uncompressed, total_compressed, "ZIP", max_compression_ratio)

    except zipfile.BadZipFile as e:
        raise ExtractionError(f"Invalid ZIP archive: {e}", source_path=str(file_path), original_error=e) from e
    except OSError as e:
        raise ExtractionError(f"Could not read ZIP archive: {e}", source_path=str(file_path), original_error=e) from e


def validate_rar_archive(
    file_path: str | Path,
    max_compression_ratio: float = DEFAULT_MAX_COMPRESSION_RATIO,
    max_uncompressed_size: int = DEFAULT_MAX_UNCOMPRESSED_SIZE,
    max_entries: int = DEFAULT_MAX_ARCHIVE_ENTRIES,
) -> None:
    """Validate a RAR archive for security threats before processing.

    Parameters
    ----------
    file_path : str or Path
        Path to the RAR archive to validate
    max_compression_ratio : float, default 100.0
        Maximum allowed compression ratio (uncompressed/compressed)
    max_uncompressed_size : int
        Maximum total uncompressed size in bytes
    max_entries : int, default 10000
        Maximum number of entries in the archive

    Raises
    ------
    ArchiveSecurityError
        If the archive fails security validation
    ExtractionError
        If the archive cannot be read for some other reason

    """
    import rarfile

    try:
        with rarfile.RarFile(str(file_path)) as rf:
            members = rf.infolist()

            if len(members) > max_entries:
                raise ArchiveSecurityError(f"RAR archive contains too many entries: {len(members)} > {max_entries}")

            total_uncompressed = 0
            total_compressed = 0
            for member in members:
                _check_member_name(member.filename, "RAR")
                total_uncompressed += member.file_size
                total_compressed += member.compress_size

            if total_uncompressed > max_uncompressed_size:
                raise ArchiveSecurityError(
                    f"RAR archive uncompressed size too large: "
                    f"{total_uncompressed / (1024 * 1024):.1f}MB > "
                    f"{max_uncompressed_size / (1024 * 1024):.1f}MB"
                )

            _check_totals(total_uncompressed, total_compressed, "RAR", max_compression_ratio)

    except rarfile.Error as e:
        raise ExtractionError(f"Invalid RAR archive: {e}", source_path=str(file_path), original_error=e) from e
    except OSError as e:
        raise ExtractionError(f"Could not read RAR archive: {e}", source_path=str(file_path), original_error=e) from e


def validate_safe_extraction_path(output_dir: str | Path, entry_name: str) -> Path:
    """Validate and return a safe extraction path for an archive member.

    Parameters
    ----------
    output_dir : str or Path
        The base directory where files should be extracted
    entry_name : str
        The member name from the archive

    Returns
    -------
    Path
        A safe, validated absolute path for extraction

    Raises
    ------
    ArchiveSecurityError
        If the path contains dangerous patterns or would escape output_dir

    Examples
    --------
    >>> validate_safe_extraction_path("/tmp/out", "subdir/file.jpg")  # doctest: +SKIP
    PosixPath('/tmp/out/subdir/file.jpg')

    """
    normalized_name = entry_name.replace("\\", "/")

    if len(normalized_name) >= 2 and normalized_name[1] == ":":
        raise ArchiveSecurityError(f"Unsafe Windows absolute path in archive entry: {entry_name}")

    rel_path = PurePosixPath(normalized_name)
    if rel_path.is_absolute():
        raise ArchiveSecurityError(f"Unsafe absolute path in archive entry: {entry_name}")

    for part in rel_path.parts:
        if part in (".", ".."):
            raise ArchiveSecurityError(f"Unsafe path component in archive entry: {entry_name} (contains '{part}')")

    output_dir_path = Path(output_dir).resolve()
    target_resolved = output_dir_path.joinpath(*rel_path.parts).resolve()

    if not is_path_within(target_resolved, output_dir_path, allow_equal=True):
        raise ArchiveSecurityError(f"Path escapes output directory: {entry_name} -> {target_resolved}")

    return target_resolved


def is_path_within(path: str | Path, directory: str | Path, allow_equal: bool = False) -> bool:
    """Check whether a path lies inside a directory.

    Both paths are made absolute and normalized (``..`` collapsed) without
    following a final symlink, so a symlink inside ``directory`` counts as
    inside even if it points elsewhere.

    Parameters
    ----------
    path : str or Path
        Path to test
    directory : str or Path
        Containing directory
    allow_equal : bool, default False
        Whether ``path == directory`` counts as inside

    Returns
    -------
    bool
        True if ``path`` is a descendant of ``directory``

    """
    path_str = os.path.normpath(os.path.abspath(os.fspath(path)))
    dir_str = os.path.normpath(os.path.abspath(os.fspath(directory)))
    if path_str == dir_str:
        return allow_equal
    # Prefix match must stop at a separator: /tmp/ws vs /tmp/ws-sibling
    return path_str.startswith(dir_str.rstrip(os.sep) + os.sep)
