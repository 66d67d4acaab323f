#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/utils/paths.py
"""Page ordering and output naming helpers.

Two policies live here because every reader and writer must agree on them:

- Ordering: natural sort ("page2" before "page10"), and for directory trees
  a depth-first walk that lists a folder's files before descending into its
  subfolders.
- Collision naming: ``name.ext``, then ``name(2).ext``, ``name(3).ext`` and
  so on, always checked against the real filesystem.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Iterator

from comicpack.utils.images import is_image_path

logger = logging.getLogger(__name__)

_DIGITS_RE = re.compile(r"(\d+)")
_UNSAFE_NAME_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def natural_sort_key(text: str) -> tuple[tuple[int, int | str], ...]:
    """Return a sort key that orders embedded numbers numerically.

    Parameters
    ----------
    text : str
        Name to build a key for

    Returns
    -------
    tuple
        Key usable with ``sorted``

    Examples
    --------
        >>> sorted(["p10.jpg", "p2.jpg", "P1.jpg"], key=natural_sort_key)
        ['P1.jpg', 'p2.jpg', 'p10.jpg']

    """
    key: list[tuple[int, int | str]] = []
    for part in _DIGITS_RE.split(text):
        if not part:
            continue
        if part.isdecimal():
            key.append((0, int(part)))
        else:
            key.append((1, part.casefold()))
    # Tie-break on the raw text so distinct names never compare equal
    key.append((2, text))
    return tuple(key)


def walk_image_files(root: Path, recursive: bool = False) -> Iterator[Path]:
    """Yield image files under a folder in page order.

    Files of a folder come first, in natural order; subfolders are then
    visited depth-first, also in natural order. Symlinked directories are
    not followed.

    Parameters
    ----------
    root : Path
        Folder to walk
    recursive : bool, default False
        Descend into subfolders

    Yields
    ------
    Path
        Image file paths

    """
    files: list[os.DirEntry[str]] = []
    folders: list[os.DirEntry[str]] = []
    with os.scandir(root) as it:
        for entry in it:
            if entry.is_dir(follow_symlinks=False):
                folders.append(entry)
            elif entry.is_file() and is_image_path(entry.name):
                files.append(entry)

    for entry in sorted(files, key=lambda e: natural_sort_key(e.name)):
        yield Path(entry.path)

    if recursive:
        for entry in sorted(folders, key=lambda e: natural_sort_key(e.name)):
            if entry.name == "__MACOSX":
                continue
            yield from walk_image_files(Path(entry.path), recursive=True)


def sanitize_file_name(name: str, fallback: str = "comic") -> str:
    """Replace characters that are invalid in file names on common platforms."""
    cleaned = _UNSAFE_NAME_RE.sub("_", name).strip().rstrip(".")
    return cleaned or fallback


def candidate_output_names(base_name: str, extension: str) -> Iterator[str]:
    """Yield ``base.ext``, ``base(2).ext``, ``base(3).ext``... without end."""
    ext = extension if extension.startswith(".") or not extension else f".{extension}"
    yield f"{base_name}{ext}"
    n = 2
    while True:
        yield f"{base_name}({n}){ext}"
        n += 1


def unique_output_path(folder: str | Path, base_name: str, extension: str) -> Path:
    """Return the first non-existing path in the collision naming sequence.

    The filesystem is consulted on every call; nothing is cached, since
    other processes may be writing into the same folder.

    Parameters
    ----------
    folder : str or Path
        Destination folder
    base_name : str
        File name without extension
    extension : str
        Extension with or without the leading dot

    Returns
    -------
    Path
        A path that did not exist at the time of the check

    Examples
    --------
        >>> unique_output_path("/out", "issue1", "cbz")  # doctest: +SKIP
        PosixPath('/out/issue1(2).cbz')

    """
    folder = Path(folder)
    for name in candidate_output_names(base_name, extension):
        candidate = folder / name
        if not os.path.lexists(candidate):
            return candidate
    raise AssertionError("unreachable")  # pragma: no cover


def write_bytes_exclusive(folder: str | Path, base_name: str, extension: str, data: bytes) -> Path:
    """Write bytes to the first free name in the collision naming sequence.

    Uses exclusive creation so a name taken between the existence check and
    the write moves on to the next candidate instead of overwriting.

    Returns
    -------
    Path
        The path that was written

    """
    folder = Path(folder)
    for name in candidate_output_names(base_name, extension):
        candidate = folder / name
        try:
            with open(candidate, "xb") as f:
                f.write(data)
        except FileExistsError:
            continue
        return candidate
    raise AssertionError("unreachable")  # pragma: no cover


def move_to_unique_path(staged: Path, folder: str | Path, base_name: str, extension: str) -> Path:
    """Move a finished file into a folder under a collision-free name.

    The destination is reserved with an exclusive create before the file is
    moved over it, so a concurrent writer can never be overwritten.

    Returns
    -------
    Path
        Final location of the file

    """
    folder = Path(folder)
    for name in candidate_output_names(base_name, extension):
        candidate = folder / name
        try:
            fd = os.open(candidate, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            continue
        os.close(fd)
        try:
            shutil.move(str(staged), str(candidate))
        except OSError:
            candidate.unlink(missing_ok=True)
            raise
        logger.debug(f"Moved {staged.name} to {candidate}")
        return candidate
    raise AssertionError("unreachable")  # pragma: no cover
