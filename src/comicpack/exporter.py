#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/exporter.py
"""Out-of-process single page export.

Decoding untrusted containers (and rendering PDFs) runs native code that can
crash or hang. ``PageExporter`` therefore runs each export in a fresh worker
process and talks to it over a one-shot pipe: one request in, one response
out. A worker that dies, is killed on timeout, or answers with garbage
produces an ``ok=False`` response; the exporter never raises for worker
faults and never retries.

Examples
--------
    >>> exporter = PageExporter(timeout=60)
    >>> response = exporter.export(
    ...     PageExportRequest(source_kind="zip", source_path="issue1.cbz", page_index=0, output_folder="/tmp/out")
    ... )
    >>> response.ok, response.output_file_path  # doctest: +SKIP
    (True, '/tmp/out/issue1_page_1.jpg')

"""

from __future__ import annotations

import contextlib
import logging
import multiprocessing
import threading
from dataclasses import dataclass
from multiprocessing.connection import Connection
from pathlib import Path
from typing import Any, Callable

from comicpack.constants import DEFAULT_SNIFFED_EXTENSION
from comicpack.exceptions import ComicPackError, ExtractionError, ValidationError
from comicpack.models import ComicSource, PageEntry
from comicpack.options.input import InputOptions
from comicpack.readers import open_reader
from comicpack.utils.images import detect_image_format_from_bytes
from comicpack.utils.paths import sanitize_file_name, write_bytes_exclusive
from comicpack.workspace import TempWorkspace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageExportRequest:
    """One page export job for the worker.

    Parameters
    ----------
    source_kind : str
        Container kind of the source
    source_path : str
        Path of the source
    page_index : int
        0-based page to export
    output_folder : str
        Folder to write the image into
    page_local_path : str, optional
        Container-local page identifier from a previous listing. When absent
        the worker lists the source and picks ``page_index``.
    recursive : bool, default False
        Recursive listing for folder sources
    temp_parent : str, optional
        Parent directory for the worker's scratch space

    """

    source_kind: str
    source_path: str
    page_index: int
    output_folder: str
    page_local_path: str | None = None
    recursive: bool = False
    temp_parent: str | None = None

    @classmethod
    def for_source(
        cls,
        source: ComicSource,
        page_index: int,
        output_folder: str | Path,
        page_local_path: str | None = None,
        temp_parent: str | Path | None = None,
    ) -> PageExportRequest:
        """Build a request from a ComicSource."""
        return cls(
            source_kind=source.kind,
            source_path=str(source.path),
            page_index=page_index,
            output_folder=str(output_folder),
            page_local_path=page_local_path,
            recursive=source.recursive,
            temp_parent=str(temp_parent) if temp_parent is not None else None,
        )


@dataclass(frozen=True)
class PageExportResponse:
    """Worker reply: ``ok`` with a file path, or not ``ok`` with a message."""

    ok: bool
    output_file_path: str | None = None
    error_message: str | None = None

    @classmethod
    def from_message(cls, message: Any) -> PageExportResponse:
        """Validate a raw pipe message, mapping malformed replies to failures."""
        if isinstance(message, dict):
            if message.get("ok") is True and isinstance(message.get("output_file_path"), str):
                return cls(ok=True, output_file_path=message["output_file_path"])
            if message.get("ok") is False:
                return cls(ok=False, error_message=str(message.get("error_message") or "Unknown export error"))
        logger.warning(f"Malformed response from export worker: {message!r}")
        return cls(ok=False, error_message="Malformed response from export worker")


def export_page(request: PageExportRequest, options: InputOptions | None = None) -> Path:
    """Export one page to disk in the current process.

    The output is named ``<source name>_page_<n>.<ext>`` where the extension
    comes from the page's magic bytes (``jpg`` when unknown), with ``(N)``
    appended on collision.

    Parameters
    ----------
    request : PageExportRequest
        What to export and where
    options : InputOptions, optional
        Reader configuration

    Returns
    -------
    Path
        The written image file

    Raises
    ------
    ComicPackError
        If the source cannot be read or the output folder is unusable

    """
    source = ComicSource(Path(request.source_path), request.source_kind, recursive=request.recursive)  # type: ignore[arg-type]
    output_folder = Path(request.output_folder)
    if not output_folder.is_dir():
        raise ValidationError(
            f"Output folder does not exist: {output_folder}",
            parameter_name="output_folder",
            parameter_value=str(output_folder),
        )

    with contextlib.ExitStack() as stack:
        workspace = None
        if source.kind == "rar":
            workspace = stack.enter_context(TempWorkspace(parent=request.temp_parent))
        reader = stack.enter_context(open_reader(source, workspace, options))

        if request.page_local_path is None:
            pages = reader.list_pages()
            if not 0 <= request.page_index < len(pages):
                raise ValidationError(
                    f"Page index {request.page_index} out of range (source has {len(pages)} pages)",
                    parameter_name="page_index",
                    parameter_value=request.page_index,
                )
            entry = pages[request.page_index]
        else:
            entry = PageEntry(ordinal_index=request.page_index, container_local_path=request.page_local_path)

        data = reader.read_page_bytes(entry)

    if not data:
        raise ExtractionError(f"Page {request.page_index + 1} of {source.path.name} is empty", str(source.path))

    extension = detect_image_format_from_bytes(data) or DEFAULT_SNIFFED_EXTENSION
    base_name = f"{sanitize_file_name(source.name)}_page_{request.page_index + 1}"
    return write_bytes_exclusive(output_folder, base_name, extension, data)


def _export_worker_main(conn: Connection, request: PageExportRequest, options: InputOptions | None) -> None:
    """Worker process entry point; sends exactly one reply dict.

    Defined at module level to be picklable for the spawn start method.
    """
    try:
        path = export_page(request, options)
        reply: dict[str, Any] = {"ok": True, "output_file_path": str(path)}
    except ComicPackError as e:
        reply = {"ok": False, "error_message": e.message}
    except Exception as e:
        reply = {"ok": False, "error_message": f"{type(e).__name__}: {e}"}
    try:
        conn.send(reply)
    finally:
        conn.close()


WorkerTarget = Callable[..., None]


class PageExporter:
    """Run page exports in isolated worker processes.

    Each call starts a fresh process, so a crashed worker is simply replaced
    on the next call. Calls are serialized: one request is in flight per
    exporter.

    Parameters
    ----------
    timeout : float, optional
        Seconds to wait for a reply before killing the worker. None waits
        indefinitely.
    options : InputOptions, optional
        Reader configuration passed to workers
    start_method : str, default "spawn"
        multiprocessing start method
    worker_target : callable, optional
        Worker entry point, for substituting the worker body

    """

    def __init__(
        self,
        timeout: float | None = None,
        options: InputOptions | None = None,
        start_method: str = "spawn",
        worker_target: WorkerTarget | None = None,
    ):
        """Initialize the exporter; no process is started until ``export``."""
        self.timeout = timeout
        self.options = options
        self._context = multiprocessing.get_context(start_method)
        self._target = worker_target or _export_worker_main
        self._lock = threading.Lock()

    def export(self, request: PageExportRequest) -> PageExportResponse:
        """Export one page and wait for the result.

        Parameters
        ----------
        request : PageExportRequest
            Export request

        Returns
        -------
        PageExportResponse
            ``ok=True`` with the written path, or ``ok=False`` with a message

        """
        with self._lock:
            logger.debug(f"Exporting page {request.page_index + 1} of {request.source_path}")
            response = self._run_worker(request)
        if response.ok:
            logger.info(f"Exported page {request.page_index + 1} to {response.output_file_path}")
        else:
            logger.warning(f"Page export failed: {response.error_message}")
        return response

    def _run_worker(self, request: PageExportRequest) -> PageExportResponse:
        parent_conn, child_conn = self._context.Pipe(duplex=False)
        process = self._context.Process(
            target=self._target,
            args=(child_conn, request, self.options),
            name="comicpack-page-export",
            daemon=True,
        )
        try:
            process.start()
        except OSError as e:
            parent_conn.close()
            child_conn.close()
            return PageExportResponse(ok=False, error_message=f"Could not start export worker: {e}")
        # Only the child holds the write end now, so its death means EOF here
        child_conn.close()

        message: Any = None
        received = False
        try:
            if parent_conn.poll(self.timeout):
                message = parent_conn.recv()
                received = True
            else:
                logger.warning(f"Export worker timed out after {self.timeout}s; killing it")
                process.kill()
                return PageExportResponse(ok=False, error_message=f"Export timed out after {self.timeout} seconds")
        except (EOFError, OSError):
            pass
        except Exception as e:
            # Unpicklable or truncated payload
            logger.warning(f"Unreadable reply from export worker: {e}")
            return PageExportResponse(ok=False, error_message="Malformed response from export worker")
        finally:
            parent_conn.close()
            process.join(timeout=5)
            if process.is_alive():
                process.kill()
                process.join()

        if not received:
            return PageExportResponse(
                ok=False, error_message=f"Export worker exited unexpectedly (exit code {process.exitcode})"
            )
        return PageExportResponse.from_message(message)


__all__ = ["PageExportRequest", "PageExportResponse", "PageExporter", "export_page"]
