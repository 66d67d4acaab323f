#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Root logger set-up for the comicpack command line.

Library code only calls ``logging.getLogger(__name__)``; handlers are
installed here, once per CLI run. Console output goes to stderr so that the
paths a command prints on stdout stay machine-readable.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
TRACE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(threadName)s] %(message)s"
TRACE_DATE_FORMAT = "%H:%M:%S"

# Decoder and archive libraries that log per page or per member at DEBUG
THIRD_PARTY_LOGGERS = ("PIL", "fitz", "ebooklib", "py7zr", "rarfile")


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _quiet_third_party(level: int) -> None:
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))


def configure_logging(
    log_level: int | str,
    log_file: Optional[str] = None,
    trace_mode: bool = False,
) -> logging.Logger:
    """Install comicpack's console (and optional file) handlers on the root logger.

    Existing root handlers are replaced, so calling this twice does not
    duplicate output.

    Parameters
    ----------
    log_level : int or str
        Level for the root logger and its handlers, as a number or a name
        such as ``"DEBUG"``. Unknown names fall back to INFO.
    log_file : str, optional
        File to append log records to, in addition to stderr
    trace_mode : bool, default False
        Use the detailed format (time, logger name and thread) and leave the
        decoder and archive libraries at the requested level

    Returns
    -------
    logging.Logger
        The root logger

    """
    level = _resolve_level(log_level)
    formatter = (
        logging.Formatter(TRACE_FORMAT, datefmt=TRACE_DATE_FORMAT) if trace_mode else logging.Formatter(CONSOLE_FORMAT)
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_error: OSError | None = None
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))
        except OSError as e:
            file_error = e

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    if not trace_mode:
        _quiet_third_party(level)

    if file_error is not None:
        root.warning(f"Could not open log file {log_file}: {file_error}")
    elif log_file:
        root.info(f"Appending log output to {log_file}")
    return root
