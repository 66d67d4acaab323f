#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/workspace.py
"""Scratch directory management.

A TempWorkspace owns at most one live scratch directory at a time. It is
created by whoever runs a job and handed to readers and writers explicitly;
there is no process-wide workspace.

Deletion is guarded: cleanup only removes paths that are strictly inside the
parent directory the workspace was allocated under, and never follows
symlinks. A root pointer that has been repointed elsewhere is refused.

Examples
--------
    >>> with TempWorkspace() as workspace:
    ...     staging = workspace.subdir("pages")
    ...     ...  # stage files under ``staging``

"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from datetime import datetime
from pathlib import Path
from types import TracebackType

from comicpack.constants import TEMP_FOLDER_PREFIX
from comicpack.exceptions import WorkspaceError
from comicpack.utils.security import is_path_within

logger = logging.getLogger(__name__)


def resolve_temp_parent(value: str | Path | None, base_path: str | Path | None = None) -> Path | None:
    """Resolve a configured temp-folder parent to an absolute path.

    Parameters
    ----------
    value : str, Path or None
        Configured parent. Relative paths are resolved against ``base_path``.
        Empty values mean "use the OS temp directory".
    base_path : str or Path, optional
        Base for relative values, defaults to the current working directory

    Returns
    -------
    Path or None
        Absolute parent path, or None for the OS default

    """
    if value is None or not str(value).strip():
        return None
    path = Path(str(value).strip()).expanduser()
    if not path.is_absolute():
        path = Path(base_path or Path.cwd()) / path
    return Path(os.path.abspath(path))


class TempWorkspace:
    """Exclusively owned scratch directory.

    Parameters
    ----------
    parent : str or Path, optional
        Directory to allocate under. Defaults to the OS temp directory.
    prefix : str, default "comicpack-"
        Prefix of the generated directory name

    Attributes
    ----------
    root_path : Path or None
        Live scratch directory, or None when no workspace exists
    created_at : datetime or None
        When the live directory was created

    """

    def __init__(self, parent: str | Path | None = None, prefix: str = TEMP_FOLDER_PREFIX):
        """Initialize without touching the filesystem."""
        self.parent = Path(os.path.abspath(parent)) if parent is not None else Path(tempfile.gettempdir())
        self.prefix = prefix
        self.root_path: Path | None = None
        self.created_at: datetime | None = None

    @property
    def is_live(self) -> bool:
        """Whether a scratch directory currently exists."""
        return self.root_path is not None

    def create(self) -> Path:
        """Allocate a new uniquely named scratch directory.

        Any previous directory owned by this workspace is removed first.

        Returns
        -------
        Path
            The new root path

        Raises
        ------
        WorkspaceError
            If the parent is missing or not writable, or the previous
            directory could not be removed

        """
        if self.is_live:
            self.cleanup()

        if not self.parent.is_dir():
            raise WorkspaceError(f"Temp folder parent does not exist: {self.parent}", path=str(self.parent))
        if not os.access(self.parent, os.W_OK | os.X_OK):
            raise WorkspaceError(f"Temp folder parent is not writable: {self.parent}", path=str(self.parent))

        try:
            root = Path(tempfile.mkdtemp(prefix=self.prefix, dir=self.parent))
        except OSError as e:
            raise WorkspaceError(
                f"Could not create temp folder in {self.parent}: {e}", path=str(self.parent), original_error=e
            ) from e

        self.root_path = root
        self.created_at = datetime.now()
        logger.debug(f"Created workspace {root}")
        return root

    def subdir(self, name: str) -> Path:
        """Create (if needed) and return a named subdirectory of the live root.

        Raises
        ------
        WorkspaceError
            If no workspace is live or the name escapes the root

        """
        root = self.require_root()
        target = root / name
        if not is_path_within(target, root):
            raise WorkspaceError(f"Invalid workspace subdirectory name: {name}", path=str(target))
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceError(f"Could not create {target}: {e}", path=str(target), original_error=e) from e
        return target

    def remove(self, path: str | Path) -> None:
        """Delete a file or directory tree inside the live root.

        Raises
        ------
        WorkspaceError
            If the path is not strictly inside the root, or removal fails

        """
        root = _real_location(self.require_root())
        if not is_path_within(root, os.path.realpath(self.parent)):
            raise WorkspaceError(f"Refusing to delete path outside the temp folder: {root}", path=str(root))
        target = _real_location(path)
        if not is_path_within(target, root):
            raise WorkspaceError(f"Refusing to delete path outside the workspace: {path}", path=str(path))
        try:
            _remove_tree(target, boundary=root)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise WorkspaceError(f"Could not remove {path}: {e}", path=str(path), original_error=e) from e

    def require_root(self) -> Path:
        """Return the live root, raising WorkspaceError if there is none."""
        if self.root_path is None:
            raise WorkspaceError("No live workspace; call create() first")
        return self.root_path

    def cleanup(self) -> None:
        """Recursively delete the live scratch directory.

        A no-op when no workspace exists. The root must be a strict
        descendant of the allocation parent once symlinks in its leading
        components are resolved, and every removed entry is re-checked
        against that boundary; symlinks inside the tree are unlinked, not
        followed.

        Raises
        ------
        WorkspaceError
            If the recorded root lies outside the parent, or removal fails

        """
        root = self.root_path
        if root is None:
            return

        located = _real_location(root)
        boundary = Path(os.path.realpath(self.parent))
        if not is_path_within(located, boundary) or os.path.islink(located):
            # Keep the pointer so the refusal is visible to the caller
            raise WorkspaceError(f"Refusing to delete path outside the temp folder: {root}", path=str(root))

        try:
            _remove_tree(located, boundary=boundary)
        except FileNotFoundError:
            logger.debug(f"Workspace {root} already removed")
        except OSError as e:
            raise WorkspaceError(f"Could not remove temp folder {root}: {e}", path=str(root), original_error=e) from e

        logger.debug(f"Removed workspace {root}")
        self.root_path = None
        self.created_at = None

    def __enter__(self) -> TempWorkspace:
        """Create the workspace."""
        self.create()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Remove the workspace."""
        self.cleanup()

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"TempWorkspace(parent={str(self.parent)!r}, root_path={self.root_path!r})"


def _real_location(path: str | Path) -> Path:
    """Resolve every component of ``path`` except the last.

    The final component is kept as is so that a symlink there is unlinked
    rather than followed.
    """
    absolute = os.path.abspath(path)
    return Path(os.path.realpath(os.path.dirname(absolute))) / os.path.basename(absolute)


def _remove_tree(path: Path, boundary: Path) -> None:
    if not is_path_within(path, boundary):
        raise WorkspaceError(f"Refusing to delete path outside the temp folder: {path}", path=str(path))

    mode = os.lstat(path).st_mode
    if not stat.S_ISDIR(mode):
        os.unlink(path)
        return

    with os.scandir(path) as it:
        entries = list(it)
    for entry in entries:
        child = Path(entry.path)
        if entry.is_dir(follow_symlinks=False):
            _remove_tree(child, boundary)
        else:
            if not is_path_within(child, boundary):
                raise WorkspaceError(f"Refusing to delete path outside the temp folder: {child}", path=str(child))
            os.unlink(child)
    os.rmdir(path)
