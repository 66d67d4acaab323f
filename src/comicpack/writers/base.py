#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/writers/base.py
"""Abstract base class for output container writers.

A writer turns an ordered list of page image files into one container file.
Members are named by position (``0001.jpg``, ``0002.png``...) so the
container's natural order is the page order, whatever the source names were.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar, Sequence

from comicpack.constants import OutputFormat
from comicpack.exceptions import PackagingError
from comicpack.options.output import OutputOptions
from comicpack.transcode import sniff_file_format

logger = logging.getLogger(__name__)


def positional_member_names(pages: Sequence[Path]) -> list[str]:
    """Return zero-padded member names in page order.

    The extension comes from the file's magic bytes, falling back to its
    suffix.

    Examples
    --------
        >>> positional_member_names([Path("b.png"), Path("a.jpg")])  # doctest: +SKIP
        ['0001.png', '0002.jpg']

    """
    width = max(4, len(str(len(pages))))
    names = []
    for position, page in enumerate(pages, start=1):
        ext = sniff_file_format(page) or page.suffix.lstrip(".").lower() or "jpg"
        names.append(f"{position:0{width}d}.{ext}")
    return names


class ContainerWriter(ABC):
    """Base class for container writers.

    Parameters
    ----------
    options : OutputOptions
        Output configuration (password, PDF/EPUB settings)

    """

    output_format: ClassVar[OutputFormat]
    extension: ClassVar[str]
    supports_password: ClassVar[bool] = True

    def __init__(self, options: OutputOptions):
        """Initialize the writer with output options."""
        self.options = options

    def write(self, pages: Sequence[Path], output_path: Path, title: str) -> Path:
        """Write pages into a container file.

        Parameters
        ----------
        pages : Sequence[Path]
            Page image files in output order
        output_path : Path
            File to create
        title : str
            Title stored in formats that carry metadata

        Returns
        -------
        Path
            ``output_path``

        Raises
        ------
        PackagingError
            If the container could not be written; any partial file is removed

        """
        if not pages:
            raise PackagingError("No pages to package", output_format=self.output_format)

        password = self.options.password
        if password and not self.supports_password:
            logger.warning(f"{self.output_format} output does not support encryption; password ignored")

        try:
            self._write(list(pages), output_path, title)
        except PackagingError:
            output_path.unlink(missing_ok=True)
            raise
        except Exception as e:
            output_path.unlink(missing_ok=True)
            raise PackagingError(
                f"Failed to write {self.output_format} file {output_path.name}: {e}",
                output_format=self.output_format,
                original_error=e,
            ) from e

        logger.debug(f"Wrote {len(pages)} pages to {output_path}")
        return output_path

    @abstractmethod
    def _write(self, pages: list[Path], output_path: Path, title: str) -> None:
        """Write the container; exceptions are wrapped by ``write``."""
        ...
