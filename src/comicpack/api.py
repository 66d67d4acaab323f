#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/api.py
"""Public entry points for comicpack.

The operations below drive a process-wide :class:`BatchOrchestrator`
that is created on first use. Applications that need several independent
orchestrators (different temp parents, say) can create their own instead.

Examples
--------
Convert two comics to CBZ at half size::

    >>> from comicpack import ComicSource, OutputOptions, start_job
    >>> job = start_job(
    ...     [ComicSource.from_path("a.cbr"), ComicSource.from_path("b.pdf")],
    ...     OutputOptions(output_folder="out", output_format="cbz", image_scale=50),
    ... )
    >>> result = job.wait()

Export the cover of a comic::

    >>> from comicpack import export_single_page
    >>> export_single_page(ComicSource.from_path("a.cbz"), 0, "covers")  # doctest: +SKIP
    PosixPath('covers/a_page_1.jpg')

"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Sequence

from comicpack.exceptions import JobAlreadyRunningError
from comicpack.models import ComicSource, ConversionResult, ImageSource
from comicpack.options.input import InputOptions
from comicpack.options.output import OutputOptions
from comicpack.orchestrator import BatchOrchestrator, ConversionJob, ImageBatchJob
from comicpack.progress import ProgressCallback

logger = logging.getLogger(__name__)

_default_orchestrator: BatchOrchestrator | None = None
_default_lock = threading.Lock()


def get_orchestrator() -> BatchOrchestrator:
    """Return the process-wide orchestrator, creating it on first use."""
    global _default_orchestrator
    with _default_lock:
        if _default_orchestrator is None:
            _default_orchestrator = BatchOrchestrator()
        return _default_orchestrator


def configure(temp_parent: str | Path | None = None, input_options: InputOptions | None = None) -> BatchOrchestrator:
    """Replace the process-wide orchestrator with a newly configured one.

    Parameters
    ----------
    temp_parent : str or Path, optional
        Parent directory for scratch space
    input_options : InputOptions, optional
        Reader configuration

    Returns
    -------
    BatchOrchestrator
        The new default orchestrator

    Raises
    ------
    JobAlreadyRunningError
        If the current default orchestrator has a running job

    """
    global _default_orchestrator
    with _default_lock:
        if _default_orchestrator is not None and _default_orchestrator.is_running:
            raise JobAlreadyRunningError("Cannot reconfigure while a job is running")
        _default_orchestrator = BatchOrchestrator(temp_parent=temp_parent, input_options=input_options)
        return _default_orchestrator


def start_job(
    sources: Sequence[ComicSource],
    options: OutputOptions,
    progress_callback: ProgressCallback | None = None,
) -> ConversionJob:
    """Start converting a batch of sources on a background thread.

    Parameters
    ----------
    sources : Sequence[ComicSource]
        Sources in processing order
    options : OutputOptions
        Output configuration; ``output_folder`` is required
    progress_callback : ProgressCallback, optional
        Receives progress events from the job thread

    Returns
    -------
    ConversionJob
        Handle to wait on or cancel

    Raises
    ------
    ValidationError
        If the queue is empty or the output folder is unset or missing
    JobAlreadyRunningError
        If a job is already running

    """
    return get_orchestrator().start_job(sources, options, progress_callback)


def run_job(
    sources: Sequence[ComicSource],
    options: OutputOptions,
    progress_callback: ProgressCallback | None = None,
) -> ConversionResult:
    """Convert a batch of sources in the calling thread; see :func:`start_job`."""
    return get_orchestrator().run_job(sources, options, progress_callback)


def start_image_job(
    images: Sequence[ImageSource],
    options: OutputOptions,
    progress_callback: ProgressCallback | None = None,
) -> ImageBatchJob:
    """Start resizing and re-encoding loose image files on a background thread.

    Each image is written to ``options.output_folder`` as ``<stem>.<ext>``
    using ``image_format``, ``image_scale`` and the per-codec qualities.
    Shares the one-job-at-a-time rule with :func:`start_job`.
    """
    return get_orchestrator().start_image_job(images, options, progress_callback)


def cancel_job() -> None:
    """Cancel the running job. Does nothing when no job is running."""
    get_orchestrator().cancel_job()


def export_single_page(source: ComicSource, page_index: int, output_folder: str | Path) -> Path:
    """Export one page of a source as an image file.

    The page is decoded in an isolated worker process. The file is named
    ``<source name>_page_<page_index + 1>.<ext>``.

    Raises
    ------
    WorkerFailure
        If the export failed or the worker crashed

    """
    return get_orchestrator().export_single_page(source, page_index, output_folder)


__all__ = [
    "cancel_job",
    "configure",
    "export_single_page",
    "get_orchestrator",
    "run_job",
    "start_image_job",
    "start_job",
]
