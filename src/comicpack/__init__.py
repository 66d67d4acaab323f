"""comicpack - batch conversion between comic book container formats.

comicpack reads comics stored as zip (CBZ), rar (CBR), PDF, EPUB or plain
image folders, optionally resizes and re-encodes every page with Pillow, and
packages the result as CBZ, CB7, CBR, PDF or EPUB. Batches run strictly in
order on a background thread, can be canceled at page granularity, and never
leave partial output behind.

Key Features
------------
- One reader abstraction over every container kind
- Per-source error isolation: a broken file never stops the batch
- Single page export in an isolated worker process
- Collision-free output naming (``name(2).cbz``)
- Guarded scratch space that is always cleaned up

Examples
--------
    >>> from comicpack import ComicSource, OutputOptions, start_job
    >>> job = start_job(
    ...     [ComicSource.from_path("issue1.cbr")],
    ...     OutputOptions(output_folder="out", output_format="cbz", image_format="webp"),
    ... )
    >>> print(job.wait())  # doctest: +SKIP
    Job finished: 1 succeeded, 0 failed, 0 skipped of 1

"""

#  Copyright (c) 2025 Tom Villani, Ph.D.

import sys

if sys.version_info < (3, 10):
    raise ImportError(
        "comicpack requires Python 3.10 or later. "
        f"You are using Python {sys.version_info.major}.{sys.version_info.minor}."
    )

__version__ = "1.0.0"

from comicpack.api import (
    cancel_job,
    configure,
    export_single_page,
    get_orchestrator,
    run_job,
    start_image_job,
    start_job,
)
from comicpack.exceptions import (
    ArchiveSecurityError,
    ComicPackError,
    EmptySourceError,
    ExtractionError,
    JobAlreadyRunningError,
    PackagingError,
    PasswordProtectedError,
    TranscodeError,
    ValidationError,
    WorkerFailure,
    WorkspaceError,
)
from comicpack.models import (
    ComicSource,
    ConversionResult,
    ImageSource,
    JobState,
    PageEntry,
    SourceOutcome,
    SourceStage,
)
from comicpack.options import InputOptions, OutputOptions
from comicpack.orchestrator import BatchOrchestrator, ConversionJob, ImageBatchJob
from comicpack.progress import ProgressCallback, ProgressEvent

__all__ = [
    "__version__",
    "start_job",
    "start_image_job",
    "run_job",
    "cancel_job",
    "export_single_page",
    "configure",
    "get_orchestrator",
    "BatchOrchestrator",
    "ConversionJob",
    "ImageBatchJob",
    "ComicSource",
    "ImageSource",
    "ConversionResult",
    "JobState",
    "PageEntry",
    "SourceOutcome",
    "SourceStage",
    "InputOptions",
    "OutputOptions",
    "ProgressCallback",
    "ProgressEvent",
    "ComicPackError",
    "ValidationError",
    "WorkspaceError",
    "ExtractionError",
    "PasswordProtectedError",
    "ArchiveSecurityError",
    "EmptySourceError",
    "TranscodeError",
    "PackagingError",
    "WorkerFailure",
    "JobAlreadyRunningError",
]
