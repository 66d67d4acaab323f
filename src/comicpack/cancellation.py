#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/cancellation.py
"""Cooperative cancellation for conversion jobs.

A job checks its token at fixed checkpoints: before each source, before each
page extraction or encode, and before each output part is packaged. Work
already in progress at a checkpoint always runs to completion.
"""

from __future__ import annotations

import threading


class OperationCanceled(Exception):
    """Raised at a checkpoint once cancellation has been requested."""


class CancellationToken:
    """Thread-safe, one-way cancel flag."""

    def __init__(self) -> None:
        """Initialize an uncanceled token."""
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation. Calling again has no effect."""
        self._event.set()

    @property
    def is_canceled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._event.is_set()

    def raise_if_canceled(self) -> None:
        """Raise OperationCanceled if cancellation has been requested."""
        if self._event.is_set():
            raise OperationCanceled()
