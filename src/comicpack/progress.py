#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/progress.py
"""Progress callback system for batch conversions.

This module provides a standardized way to report conversion progress to
embedders, so that a UI can show "file N of M" counters, a live error count
and log lines while a job runs.

Examples
--------
Basic progress tracking:

    >>> from comicpack import start_job
    >>> from comicpack.progress import ProgressEvent
    >>>
    >>> def my_progress_handler(event: ProgressEvent):
    ...     print(event)
    >>>
    >>> job = start_job(sources, options, progress_callback=my_progress_handler)

"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Literal

logger = logging.getLogger(__name__)

EventType = Literal["info_text", "log_line", "file_started", "file_finished", "job_finished"]


@dataclass
class ProgressEvent:
    """Progress event emitted by the batch orchestrator.

    Parameters
    ----------
    event_type : EventType
        Type of progress event:

        - "info_text": Short status text replacing the previous one
            (e.g. "Extracting page 3 of 20").

        - "log_line": A line to append to a running log.

        - "file_started": A source is about to be processed.
            ``current`` is the 1-based source index, ``total`` the queue size.

        - "file_finished": A source reached a terminal stage.
            ``metadata["outcome"]`` holds the SourceOutcome.

        - "job_finished": The job reached FINISHED or CANCELED.
            ``metadata["result"]`` holds the ConversionResult.

    message : str
        Human-readable description of the event
    current : int, default 0
        Current progress position
    total : int, default 0
        Total items to process. Set to 0 if unknown.
    metadata : dict, default empty
        Additional event-specific information

    Examples
    --------
        >>> event = ProgressEvent("file_started", "Converting issue1.cbz", current=1, total=3)
        >>> str(event)
        '[FILE_STARTED] Converting issue1.cbz (1/3)'

    """

    event_type: EventType
    message: str
    current: int = 0
    total: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Return human-readable string representation.

        Returns
        -------
        str
            Formatted event description

        """
        progress = f"({self.current}/{self.total})" if self.total > 0 else ""
        return f"[{self.event_type.upper()}] {self.message} {progress}".strip()


# Type alias for progress callback functions
ProgressCallback = Callable[[ProgressEvent], None]
"""Type alias for progress callback functions.

A progress callback is any callable that accepts a ProgressEvent and returns None.
Exceptions raised by callbacks are logged and do not interrupt the job.
"""


def emit_progress(
    callback: ProgressCallback | None,
    event_type: EventType,
    message: str,
    current: int = 0,
    total: int = 0,
    **metadata: Any,
) -> None:
    """Emit a progress event to the callback if one is registered.

    Parameters
    ----------
    callback : ProgressCallback or None
        Receiver of the event
    event_type : EventType
        Type of progress event
    message : str
        Human-readable description of the event
    current : int, default 0
        Current progress position
    total : int, default 0
        Total items to process
    **metadata
        Additional event-specific information

    Notes
    -----
    If the callback raises an exception, it is caught and logged so the
    conversion is not interrupted.

    """
    if not callback:
        return

    try:
        callback(ProgressEvent(event_type=event_type, message=message, current=current, total=total, metadata=metadata))
    except Exception as e:
        logger.warning(f"Progress callback raised exception: {e}", exc_info=True)
