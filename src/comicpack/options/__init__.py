#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Configuration options for comicpack readers, transcoding and writers.

Options are frozen dataclasses; use ``create_updated`` to derive a modified
copy.
"""

from comicpack.options.base import CloneFrozenMixin
from comicpack.options.input import InputOptions
from comicpack.options.output import OutputOptions

__all__ = [
    "CloneFrozenMixin",
    "InputOptions",
    "OutputOptions",
]
