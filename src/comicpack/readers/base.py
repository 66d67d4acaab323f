#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/readers/base.py
"""Abstract base class for comic source readers.

Every container kind is read through the same two operations:

- ``list_pages()`` returns the ordered PageEntry list with dense ordinals
- ``read_page_bytes(entry)`` returns the raw image bytes of one page

Readers may hold the container open between calls; use them as context
managers or call ``close()``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from types import TracebackType
from typing import ClassVar, Sequence

from comicpack.constants import SourceKind
from comicpack.exceptions import EmptySourceError, ExtractionError, WorkspaceError
from comicpack.models import ComicSource, PageEntry
from comicpack.options.input import InputOptions
from comicpack.workspace import TempWorkspace

logger = logging.getLogger(__name__)


class ArchiveReader(ABC):
    """Base class for all source readers.

    Parameters
    ----------
    source : ComicSource
        The source to read
    workspace : TempWorkspace, optional
        Scratch space for readers that must extract before reading
    options : InputOptions, optional
        Reader configuration

    """

    kind: ClassVar[SourceKind]

    def __init__(
        self,
        source: ComicSource,
        workspace: TempWorkspace | None = None,
        options: InputOptions | None = None,
    ):
        """Initialize the reader without opening the container."""
        if source.kind != self.kind:
            raise ValueError(f"{type(self).__name__} cannot read {source.kind} sources")
        self.source = source
        self.workspace = workspace
        self.options = options or InputOptions()
        self._pages: list[PageEntry] | None = None

    def list_pages(self) -> list[PageEntry]:
        """List the source's pages in page order.

        The listing is computed once and cached for the reader's lifetime.

        Returns
        -------
        list[PageEntry]
            Pages with ordinals 0..N-1

        Raises
        ------
        ExtractionError
            If the container is unreadable, corrupt or encrypted
        EmptySourceError
            If the source has no recognized image pages

        """
        if self._pages is None:
            if not self.source.path.exists():
                raise ExtractionError(f"Source not found: {self.source.path}", source_path=str(self.source.path))
            names = self._list_page_names()
            if not names:
                raise EmptySourceError(str(self.source.path))
            self._pages = [PageEntry(ordinal_index=i, container_local_path=name) for i, name in enumerate(names)]
            logger.debug(f"Listed {len(self._pages)} pages in {self.source.path.name}")
        return self._pages

    @abstractmethod
    def _list_page_names(self) -> Sequence[str]:
        """Return container-local page identifiers in page order."""
        ...

    @abstractmethod
    def read_page_bytes(self, entry: PageEntry) -> bytes:
        """Return the raw image bytes for a page.

        Parameters
        ----------
        entry : PageEntry
            A page returned by ``list_pages``

        Returns
        -------
        bytes
            Encoded image data

        Raises
        ------
        ExtractionError
            If the page cannot be read

        """
        ...

    def close(self) -> None:
        """Release any open container handle."""
        pass

    def _require_workspace(self) -> TempWorkspace:
        if self.workspace is None:
            raise WorkspaceError(f"{type(self).__name__} needs a workspace to extract {self.source.path.name}")
        return self.workspace

    def _error(self, message: str, error: Exception | None = None) -> ExtractionError:
        return ExtractionError(f"{message}: {self.source.path}", source_path=str(self.source.path), original_error=error)

    def __enter__(self) -> ArchiveReader:
        """Enter the context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the reader."""
        self.close()
