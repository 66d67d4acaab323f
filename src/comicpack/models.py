#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/models.py
"""Data model shared by readers, the exporter and the orchestrator.

This module defines the queue entry (ComicSource), page identity
(PageEntry), the job and per-source state enums and the result records a
finished job produces.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from comicpack.constants import (
    EPUB_EXTENSIONS,
    PDF_EXTENSIONS,
    RAR_EXTENSIONS,
    SOURCE_KINDS,
    ZIP_EXTENSIONS,
    SourceKind,
)
from comicpack.exceptions import ValidationError
from comicpack.utils.images import detect_image_format_from_bytes, is_image_path

logger = logging.getLogger(__name__)

_ZIP_MAGIC = (b"PK\x03\x04", b"PK\x05\x06")
_RAR_MAGIC = b"Rar!\x1a\x07"
_PDF_MAGIC = b"%PDF"


class JobState(str, Enum):
    """Lifecycle state of a conversion job."""

    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"
    CANCELED = "canceled"


class SourceStage(str, Enum):
    """Processing stage of one source within a running job."""

    PENDING = "pending"
    LISTING = "listing"
    EXTRACTING_PAGES = "extracting_pages"
    RESIZING = "resizing"
    ENCODING = "encoding"
    PACKAGING = "packaging"
    DONE = "done"
    ERROR = "error"
    CANCELED = "canceled"


def _sniff_container_kind(path: Path) -> SourceKind | None:
    try:
        with open(path, "rb") as f:
            header = f.read(8)
    except OSError:
        return None
    if header.startswith(_ZIP_MAGIC):
        return "zip"
    if header.startswith(_RAR_MAGIC):
        return "rar"
    if header.startswith(_PDF_MAGIC):
        return "pdf"
    return None


def detect_source_kind(path: str | Path) -> SourceKind:
    """Detect the container kind of a path.

    Directories are folder sources. For files the magic bytes win over the
    extension, since misnamed comics (a zip saved as ``.cbr``) are common.
    EPUB files are zip containers and are told apart by extension.

    Parameters
    ----------
    path : str or Path
        Path to a file or folder

    Returns
    -------
    SourceKind
        Detected kind

    Raises
    ------
    ValidationError
        If the path does not exist or is not a supported container

    """
    path = Path(path)
    if path.is_dir():
        return "folder"
    if not path.is_file():
        raise ValidationError(f"Source does not exist: {path}", parameter_name="path", parameter_value=str(path))

    suffix = path.suffix.lower()
    sniffed = _sniff_container_kind(path)

    if suffix in EPUB_EXTENSIONS and sniffed in (None, "zip"):
        return "epub"
    if sniffed is not None:
        if suffix in ZIP_EXTENSIONS | RAR_EXTENSIONS and sniffed != _kind_for_suffix(suffix):
            logger.info(f"{path.name} is a {sniffed} container despite its extension")
        return sniffed

    by_suffix = _kind_for_suffix(suffix)
    if by_suffix is None:
        raise ValidationError(f"Unsupported source type: {path}", parameter_name="path", parameter_value=str(path))
    return by_suffix


def _kind_for_suffix(suffix: str) -> SourceKind | None:
    if suffix in ZIP_EXTENSIONS:
        return "zip"
    if suffix in RAR_EXTENSIONS:
        return "rar"
    if suffix in PDF_EXTENSIONS:
        return "pdf"
    if suffix in EPUB_EXTENSIONS:
        return "epub"
    return None


@dataclass(frozen=True)
class ComicSource:
    """One input unit queued for extraction or conversion.

    Parameters
    ----------
    path : Path
        Filesystem location of the container or folder
    kind : SourceKind
        Container kind
    recursive : bool, default False
        Include subfolders (folder sources only)

    """

    path: Path
    kind: SourceKind
    recursive: bool = False

    def __post_init__(self) -> None:
        """Normalize the path and validate the kind."""
        object.__setattr__(self, "path", Path(self.path))
        if self.kind not in SOURCE_KINDS:
            raise ValueError(f"kind must be one of {SOURCE_KINDS}, got {self.kind}")
        if self.recursive and self.kind != "folder":
            raise ValueError("recursive applies to folder sources only")

    @classmethod
    def from_path(cls, path: str | Path, recursive: bool = False) -> ComicSource:
        """Create a source from a path, detecting its kind.

        Parameters
        ----------
        path : str or Path
            Path to a file or folder
        recursive : bool, default False
            Include subfolders when the path is a folder

        Returns
        -------
        ComicSource
            The new source

        """
        kind = detect_source_kind(path)
        return cls(path=Path(path), kind=kind, recursive=recursive and kind == "folder")

    @property
    def name(self) -> str:
        """Base name used for output files derived from this source."""
        return self.path.name if self.kind == "folder" else self.path.stem


@dataclass(frozen=True)
class ImageSource:
    """One loose image file queued for batch image conversion.

    Parameters
    ----------
    path : Path
        Location of the image file

    """

    path: Path

    def __post_init__(self) -> None:
        """Normalize the path."""
        object.__setattr__(self, "path", Path(self.path))

    @classmethod
    def from_path(cls, path: str | Path) -> ImageSource:
        """Create an image source, checking that the file looks like an image.

        Raises
        ------
        ValidationError
            If the path is missing, is not a file, or has no image extension
            and no recognizable image header

        """
        path = Path(path)
        if not path.is_file():
            raise ValidationError(f"Image does not exist: {path}", parameter_name="path", parameter_value=str(path))
        if not is_image_path(path):
            try:
                with open(path, "rb") as f:
                    header = f.read(32)
            except OSError as e:
                raise ValidationError(
                    f"Cannot read image: {path}", parameter_name="path", parameter_value=str(path)
                ) from e
            if detect_image_format_from_bytes(header) is None:
                raise ValidationError(
                    f"Unsupported image file: {path}", parameter_name="path", parameter_value=str(path)
                )
        return cls(path=path)

    @property
    def name(self) -> str:
        """Base name used for the converted file."""
        return self.path.stem


@dataclass
class PageEntry:
    """One page within a ComicSource.

    Parameters
    ----------
    ordinal_index : int
        0-based position in the source's page order
    container_local_path : str
        Entry name inside the container, or a filesystem path for folders
    extracted_path : Path or None
        Location on disk once the page has been materialized

    """

    ordinal_index: int
    container_local_path: str
    extracted_path: Path | None = None


@dataclass
class SourceOutcome:
    """Terminal outcome of one source in a job."""

    source: ComicSource | ImageSource
    index: int
    stage: SourceStage = SourceStage.PENDING
    output_paths: list[Path] = field(default_factory=list)
    page_count: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.stage is SourceStage.DONE


@dataclass
class ConversionResult:
    """Summary of a finished conversion job.

    Parameters
    ----------
    files_total : int
        Number of sources queued
    files_attempted : int
        Number of sources that reached a terminal DONE or ERROR stage
    error_count : int
        Number of sources that ended in ERROR
    was_canceled : bool
        Whether the job ended through cancellation
    outcomes : list[SourceOutcome]
        Per-source outcomes, in queue order, for attempted sources
    output_paths : list[Path]
        Every file written to the output folder

    """

    files_total: int
    files_attempted: int = 0
    error_count: int = 0
    was_canceled: bool = False
    outcomes: list[SourceOutcome] = field(default_factory=list)
    output_paths: list[Path] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        """Number of sources that produced output."""
        return self.files_attempted - self.error_count

    @property
    def skipped(self) -> int:
        """Number of sources never attempted because of cancellation."""
        return self.files_total - self.files_attempted

    def __str__(self) -> str:
        """Return a one-line summary."""
        status = "canceled" if self.was_canceled else "finished"
        return (
            f"Job {status}: {self.succeeded} succeeded, {self.error_count} failed, "
            f"{self.skipped} skipped of {self.files_total}"
        )
