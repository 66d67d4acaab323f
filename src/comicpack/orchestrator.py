#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/orchestrator.py
"""Batch conversion orchestration.

A ConversionJob walks its queue strictly in order, one source and one page at
a time. Each source moves through the stages

    LISTING -> EXTRACTING_PAGES -> [RESIZING/ENCODING] -> PACKAGING -> DONE | ERROR

and a failing source never stops the batch. Finished containers are first
written inside the job's workspace and only moved into the output folder once
complete, so cancellation or a crash never leaves a partial file behind. The
workspace is removed when the job ends, whatever the outcome.

In creation mode (``OutputOptions.output_file_base_name`` set) the pages of
every source are merged into one output instead. ImageBatchJob runs the same
loop over loose image files, converting each into a standalone image.

Examples
--------
    >>> orchestrator = BatchOrchestrator()
    >>> job = orchestrator.start_job(
    ...     [ComicSource.from_path("a.cbr"), ComicSource.from_path("b.pdf")],
    ...     OutputOptions(output_folder="/tmp/out", output_format="cbz"),
    ... )
    >>> result = job.wait()
    >>> print(result)  # doctest: +SKIP
    Job finished: 2 succeeded, 0 failed, 0 skipped of 2

"""

from __future__ import annotations

import logging
import shutil
import threading
from pathlib import Path
from typing import Sequence, TypeVar

from comicpack.cancellation import CancellationToken, OperationCanceled
from comicpack.constants import DEFAULT_SNIFFED_EXTENSION
from comicpack.exceptions import (
    ComicPackError,
    ExtractionError,
    JobAlreadyRunningError,
    PackagingError,
    TranscodeError,
    ValidationError,
    WorkerFailure,
    WorkspaceError,
)
from comicpack.exporter import PageExporter, PageExportRequest
from comicpack.models import (
    ComicSource,
    ConversionResult,
    ImageSource,
    JobState,
    PageEntry,
    SourceOutcome,
    SourceStage,
)
from comicpack.options.input import InputOptions
from comicpack.options.output import OutputOptions
from comicpack.progress import EventType, ProgressCallback, emit_progress
from comicpack.readers import open_reader
from comicpack.transcode import ImageTranscoder
from comicpack.utils.images import detect_image_format_from_bytes
from comicpack.utils.paths import move_to_unique_path, sanitize_file_name
from comicpack.workspace import TempWorkspace
from comicpack.writers import get_writer

logger = logging.getLogger(__name__)

T = TypeVar("T")


def split_evenly(items: Sequence[T], parts: int) -> list[list[T]]:
    """Split items into at most ``parts`` contiguous, roughly equal groups.

    Earlier groups take the remainder, so sizes differ by at most one.

    Examples
    --------
        >>> [len(g) for g in split_evenly(list(range(10)), 3)]
        [4, 3, 3]

    """
    parts = max(1, min(parts, len(items)))
    size, remainder = divmod(len(items), parts)
    groups = []
    start = 0
    for k in range(parts):
        end = start + size + (1 if k < remainder else 0)
        groups.append(list(items[start:end]))
        start = end
    return groups


def validate_job_request(sources: Sequence[ComicSource] | Sequence[ImageSource], options: OutputOptions) -> None:
    """Reject a job request before any I/O happens.

    Raises
    ------
    ValidationError
        If there are no sources or the output folder is unset or missing

    """
    if not sources:
        raise ValidationError("No sources to convert", parameter_name="sources", parameter_value=[])
    if not options.output_folder or not str(options.output_folder).strip():
        raise ValidationError("Output folder is not set", parameter_name="output_folder")
    folder = Path(options.output_folder)
    if not folder.is_dir():
        raise ValidationError(
            f"Output folder does not exist: {folder}", parameter_name="output_folder", parameter_value=str(folder)
        )


class ConversionJob:
    """One batch run over an ordered queue of sources.

    Created by :class:`BatchOrchestrator`; ``run`` executes synchronously,
    ``start`` runs it on a background thread.

    Parameters
    ----------
    sources : Sequence[ComicSource]
        Sources in processing order
    options : OutputOptions
        Output configuration
    workspace : TempWorkspace
        Scratch space owned by this job while it runs
    input_options : InputOptions, optional
        Reader configuration
    progress_callback : ProgressCallback, optional
        Receiver of progress events

    """

    def __init__(
        self,
        sources: Sequence[ComicSource],
        options: OutputOptions,
        workspace: TempWorkspace,
        input_options: InputOptions | None = None,
        progress_callback: ProgressCallback | None = None,
    ):
        """Initialize an idle job."""
        self.sources = tuple(sources)
        self.options = options
        self.input_options = input_options or InputOptions()
        self.progress_callback = progress_callback
        self.state = JobState.IDLE
        self.result: ConversionResult | None = None
        self.error: BaseException | None = None

        self._workspace = workspace
        self._token = CancellationToken()
        self._transcoder = ImageTranscoder(options)
        self._thread: threading.Thread | None = None
        self._finished = threading.Event()
        self._error_count = 0

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        """Whether the job has not yet reached a terminal state."""
        return self.state in (JobState.IDLE, JobState.RUNNING) and not self._finished.is_set()

    def cancel(self) -> None:
        """Request cancellation. A no-op once the job has ended or was canceled."""
        if not self.is_active or self._token.is_canceled:
            return
        logger.info("Cancellation requested")
        self._token.cancel()

    def start(self) -> None:
        """Run the job on a background thread."""
        if self._thread is not None:
            raise JobAlreadyRunningError("Job was already started")
        self._thread = threading.Thread(target=self._run_in_thread, name="comicpack-job")
        self._thread.start()

    def wait(self, timeout: float | None = None) -> ConversionResult | None:
        """Wait for a started job to end.

        Parameters
        ----------
        timeout : float, optional
            Seconds to wait; None waits until the job ends

        Returns
        -------
        ConversionResult or None
            The result, or None if the timeout expired first

        Raises
        ------
        WorkspaceError
            If the job was aborted because its workspace failed

        """
        if not self._finished.wait(timeout):
            return None
        if self._thread is not None:
            self._thread.join()
        if self.error is not None:
            raise self.error
        return self.result

    def _run_in_thread(self) -> None:
        try:
            self.run()
        except BaseException as e:  # surfaced through wait()
            self.error = e

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self) -> ConversionResult:
        """Execute the job in the calling thread.

        Returns
        -------
        ConversionResult
            Counts and per-source outcomes

        Raises
        ------
        WorkspaceError
            If the scratch directory cannot be created; the job is aborted

        """
        if self.state is not JobState.IDLE:
            raise JobAlreadyRunningError("Job has already run")

        self.state = JobState.RUNNING
        result = ConversionResult(files_total=len(self.sources))
        self.result = result
        mode = self._describe()
        logger.info(f"{mode} {len(self.sources)} source(s)")
        self._emit("info_text", f"{mode} {len(self.sources)} file(s)", total=len(self.sources))

        try:
            self._workspace.create()
            self._execute(result)
        except OperationCanceled:
            result.was_canceled = True
        except WorkspaceError as e:
            logger.error(f"Job aborted: {e.message}")
            self._emit("log_line", f"Job aborted: {e.message}")
            self.state = JobState.FINISHED
            raise
        finally:
            self._release_workspace()
            self._tally(result)
            if self.state is JobState.RUNNING:
                self.state = JobState.CANCELED if result.was_canceled else JobState.FINISHED
            self._finished.set()

        logger.info(str(result))
        self._emit("job_finished", str(result), current=result.files_attempted, total=result.files_total, result=result)
        return result

    def _describe(self) -> str:
        if self.options.is_creation:
            return f"Creating {self.options.output_format} from"
        return f"Converting to {self.options.output_format}:"

    def _execute(self, result: ConversionResult) -> None:
        if self.options.is_creation:
            self._run_creation(result)
        else:
            self._run_conversion(result)

    def _run_conversion(self, result: ConversionResult) -> None:
        for index, source in enumerate(self.sources):
            self._token.raise_if_canceled()
            outcome = self._begin_source(result, index, source)
            source_dir = self._workspace.subdir(f"source-{index + 1:04d}")
            try:
                pages = self._extract_pages(source, outcome, source_dir)
                pages = self._transcode_pages(pages, outcome)
                outcome.output_paths = self._package(pages, sanitize_file_name(source.name), source.name, outcome)
                outcome.stage = SourceStage.DONE
                result.output_paths.extend(outcome.output_paths)
            except OperationCanceled:
                outcome.stage = SourceStage.CANCELED
                self._finish_source(outcome)
                raise
            except WorkspaceError:
                raise
            except Exception as e:
                self._fail_source(outcome, e)

            self._finish_source(outcome)
            self._workspace.remove(source_dir)

    def _run_creation(self, result: ConversionResult) -> None:
        base_name = sanitize_file_name(self.options.output_file_base_name or "comic")
        merged_dir = self._workspace.subdir("merged")
        merged_pages: list[PageEntry] = []
        staged_outcomes: list[SourceOutcome] = []

        try:
            for index, source in enumerate(self.sources):
                self._token.raise_if_canceled()
                outcome = self._begin_source(result, index, source)
                try:
                    pages = self._extract_pages(source, outcome, merged_dir, name_prefix=f"{index + 1:04d}-")
                    pages = self._transcode_pages(pages, outcome)
                    merged_pages.extend(pages)
                    staged_outcomes.append(outcome)
                    outcome.stage = SourceStage.PACKAGING
                    self._emit("info_text", f"Staged {len(pages)} pages from {source.path.name}")
                except OperationCanceled:
                    outcome.stage = SourceStage.CANCELED
                    self._finish_source(outcome)
                    raise
                except WorkspaceError:
                    raise
                except Exception as e:
                    self._fail_source(outcome, e)
                    self._finish_source(outcome)

            if not merged_pages:
                logger.warning("No pages collected; nothing to create")
                return

            try:
                output_paths = self._package(merged_pages, base_name, base_name, None)
            except (OperationCanceled, WorkspaceError):
                raise
            except Exception as e:
                for outcome in staged_outcomes:
                    self._fail_source(outcome, e)
                    self._finish_source(outcome)
                return

            result.output_paths.extend(output_paths)
            for outcome in staged_outcomes:
                outcome.stage = SourceStage.DONE
                outcome.output_paths = list(output_paths)
                self._finish_source(outcome)
        except OperationCanceled:
            # The merged output was never published
            for outcome in staged_outcomes:
                outcome.stage = SourceStage.CANCELED
                self._finish_source(outcome)
            raise

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _extract_pages(
        self, source: ComicSource, outcome: SourceOutcome, target_dir: Path, name_prefix: str = ""
    ) -> list[PageEntry]:
        outcome.stage = SourceStage.LISTING
        with open_reader(source, self._workspace, self.input_options) as reader:
            pages = reader.list_pages()
            outcome.page_count = len(pages)

            outcome.stage = SourceStage.EXTRACTING_PAGES
            for page in pages:
                self._token.raise_if_canceled()
                number = page.ordinal_index + 1
                self._emit("info_text", f"Extracting page {number} of {len(pages)}", current=number, total=len(pages))
                data = reader.read_page_bytes(page)
                ext = (
                    detect_image_format_from_bytes(data)
                    or Path(page.container_local_path).suffix.lstrip(".").lower()
                    or "jpg"
                )
                path = target_dir / f"{name_prefix}{number:05d}.{ext}"
                try:
                    path.write_bytes(data)
                except OSError as e:
                    raise ExtractionError(
                        f"Could not write page {number} to the workspace: {e}", str(source.path), original_error=e
                    ) from e
                page.extracted_path = path

        logger.debug(f"Extracted {len(pages)} pages from {source.path.name}")
        return pages

    def _transcode_pages(self, pages: list[PageEntry], outcome: SourceOutcome) -> list[PageEntry]:
        options = self.options
        if not options.needs_transcode:
            return pages

        outcome.stage = SourceStage.RESIZING if options.image_scale < 100 else SourceStage.ENCODING
        failures: list[TranscodeError] = []
        for page in pages:
            self._token.raise_if_canceled()
            path = page.extracted_path
            if path is None or not self._transcoder.needs_transcode(path, options.image_format, options.image_scale):
                continue
            number = page.ordinal_index + 1
            self._emit("info_text", f"Converting page {number} of {len(pages)}", current=number, total=len(pages))
            try:
                page.extracted_path = self._transcoder.transcode(path, options.image_format, options.image_scale)
            except TranscodeError as e:
                logger.warning(e.message)
                failures.append(e)

        if failures:
            raise TranscodeError(
                f"{len(failures)} of {len(pages)} pages failed to convert: {failures[0].message}",
                image_path=failures[0].image_path,
                original_error=failures[0],
            )
        return pages

    def _package(
        self, pages: list[PageEntry], base_name: str, title: str, outcome: SourceOutcome | None
    ) -> list[Path]:
        self._token.raise_if_canceled()
        if outcome is not None:
            outcome.stage = SourceStage.PACKAGING

        ordered = [page.extracted_path for page in pages if page.extracted_path is not None]
        if self.options.page_order == "reverse":
            ordered.reverse()

        writer = get_writer(self.options)
        groups = split_evenly(ordered, self.options.split_num_files)
        staging = self._workspace.subdir(f"output-{base_name[:40]}-{id(pages):x}")
        width = len(str(len(groups)))

        staged: list[tuple[Path, str]] = []
        for k, group in enumerate(groups, start=1):
            self._token.raise_if_canceled()
            part_name = base_name if len(groups) == 1 else f"{base_name}_{k:0{width}d}"
            part_title = title if len(groups) == 1 else f"{title} ({k}/{len(groups)})"
            self._emit("info_text", f"Creating {part_name}.{writer.extension}", current=k, total=len(groups))
            staged_path = staging / f"part-{k}.{writer.extension}"
            writer.write(group, staged_path, part_title)
            staged.append((staged_path, part_name))

        published: list[Path] = []
        try:
            for staged_path, part_name in staged:
                published.append(
                    move_to_unique_path(staged_path, self.options.output_folder or ".", part_name, writer.extension)
                )
        except OSError as e:
            for path in published:
                path.unlink(missing_ok=True)
            raise PackagingError(
                f"Could not move output into {self.options.output_folder}: {e}",
                output_format=self.options.output_format,
                original_error=e,
            ) from e
        finally:
            self._workspace.remove(staging)

        for path in published:
            logger.info(f"Wrote {path}")
            self._emit("log_line", f"Created {path.name}")
        return published

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _begin_source(self, result: ConversionResult, index: int, source: ComicSource) -> SourceOutcome:
        outcome = SourceOutcome(source=source, index=index)
        result.outcomes.append(outcome)
        logger.info(f"[{index + 1}/{len(self.sources)}] {source.path.name}")
        self._emit("file_started", source.path.name, current=index + 1, total=len(self.sources), source=source)
        return outcome

    def _fail_source(self, outcome: SourceOutcome, error: Exception) -> None:
        message = error.message if isinstance(error, ComicPackError) else f"{type(error).__name__}: {error}"
        outcome.stage = SourceStage.ERROR
        outcome.error = message
        self._error_count += 1
        if isinstance(error, ComicPackError):
            logger.error(f"{outcome.source.path.name}: {message}")
        else:
            logger.error(f"{outcome.source.path.name}: unexpected error", exc_info=error)
        self._emit("log_line", f"Error: {outcome.source.path.name}: {message}", error_count=self._error_count)

    def _finish_source(self, outcome: SourceOutcome) -> None:
        self._emit(
            "file_finished",
            f"{outcome.source.path.name}: {outcome.stage.value}",
            current=outcome.index + 1,
            total=len(self.sources),
            outcome=outcome,
            error_count=self._error_count,
        )

    @staticmethod
    def _tally(result: ConversionResult) -> None:
        terminal = [o for o in result.outcomes if o.stage in (SourceStage.DONE, SourceStage.ERROR)]
        result.files_attempted = len(terminal)
        result.error_count = sum(1 for o in terminal if o.stage is SourceStage.ERROR)

    def _release_workspace(self) -> None:
        try:
            self._workspace.cleanup()
        except WorkspaceError as e:
            logger.error(f"Could not remove temp folder: {e.message}")
            self._emit("log_line", f"Could not remove temp folder: {e.message}")

    def _emit(self, event_type: EventType, message: str, current: int = 0, total: int = 0, **metadata: object) -> None:
        emit_progress(self.progress_callback, event_type, message, current=current, total=total, **metadata)


class ImageBatchJob(ConversionJob):
    """Resize and re-encode a queue of loose image files.

    Each image is copied into the workspace, transcoded there with the
    ``image_format``, ``image_scale`` and quality settings of its
    OutputOptions, and moved into the output folder as
    ``<stem>.<ext>`` with ``(N)`` collision naming. Container settings
    (``output_format``, splitting, passwords) do not apply. A failing image
    is counted as an error and the batch continues.

    Parameters
    ----------
    sources : Sequence[ImageSource]
        Images in processing order
    options : OutputOptions
        Output folder, target codec, scale and qualities
    workspace : TempWorkspace
        Scratch space owned by this job while it runs
    progress_callback : ProgressCallback, optional
        Receiver of progress events

    """

    def __init__(
        self,
        sources: Sequence[ImageSource],
        options: OutputOptions,
        workspace: TempWorkspace,
        progress_callback: ProgressCallback | None = None,
    ):
        """Initialize an idle image batch."""
        super().__init__(sources, options, workspace, progress_callback=progress_callback)  # type: ignore[arg-type]

    def _describe(self) -> str:
        return f"Converting images to {self.options.image_format or 'their own format'}:"

    def _execute(self, result: ConversionResult) -> None:
        for index, image in enumerate(self.sources):
            self._token.raise_if_canceled()
            outcome = self._begin_source(result, index, image)
            image_dir = self._workspace.subdir(f"image-{index + 1:04d}")
            try:
                outcome.output_paths = [self._convert_image(image, outcome, image_dir)]
                outcome.stage = SourceStage.DONE
                result.output_paths.extend(outcome.output_paths)
            except OperationCanceled:
                outcome.stage = SourceStage.CANCELED
                self._finish_source(outcome)
                raise
            except WorkspaceError:
                raise
            except Exception as e:
                self._fail_source(outcome, e)

            self._finish_source(outcome)
            self._workspace.remove(image_dir)

    def _convert_image(self, image: ImageSource, outcome: SourceOutcome, image_dir: Path) -> Path:
        options = self.options
        outcome.stage = SourceStage.EXTRACTING_PAGES
        staged = image_dir / image.path.name
        try:
            shutil.copyfile(image.path, staged)
        except OSError as e:
            raise ExtractionError(
                f"Could not copy {image.path.name} to the workspace: {e}", str(image.path), original_error=e
            ) from e
        outcome.page_count = 1

        self._token.raise_if_canceled()
        if self._transcoder.needs_transcode(staged, options.image_format, options.image_scale):
            outcome.stage = SourceStage.RESIZING if options.image_scale < 100 else SourceStage.ENCODING
            self._emit("info_text", f"Converting {image.path.name}", current=outcome.index + 1, total=len(self.sources))
            staged = self._transcoder.transcode(staged, options.image_format, options.image_scale)

        self._token.raise_if_canceled()
        outcome.stage = SourceStage.PACKAGING
        extension = staged.suffix.lstrip(".") or DEFAULT_SNIFFED_EXTENSION
        try:
            published = move_to_unique_path(
                staged, options.output_folder or ".", sanitize_file_name(image.name, fallback="image"), extension
            )
        except OSError as e:
            raise PackagingError(
                f"Could not move {staged.name} into {options.output_folder}: {e}", original_error=e
            ) from e

        logger.info(f"Wrote {published}")
        self._emit("log_line", f"Created {published.name}")
        return published


class BatchOrchestrator:
    """Entry point for conversion jobs and one-off page exports.

    Owns a single TempWorkspace and allows one running job at a time.

    Parameters
    ----------
    temp_parent : str or Path, optional
        Parent directory for scratch space; defaults to the OS temp directory
    input_options : InputOptions, optional
        Reader configuration for jobs and exports
    exporter : PageExporter, optional
        Page exporter; one with default settings is created when omitted

    """

    def __init__(
        self,
        temp_parent: str | Path | None = None,
        input_options: InputOptions | None = None,
        exporter: PageExporter | None = None,
    ):
        """Initialize the orchestrator; nothing touches the disk yet."""
        self.temp_parent = Path(temp_parent) if temp_parent is not None else None
        self.input_options = input_options or InputOptions()
        self.workspace = TempWorkspace(parent=self.temp_parent)
        self.exporter = exporter or PageExporter(options=self.input_options)
        self._lock = threading.Lock()
        self._current: ConversionJob | None = None

    @property
    def current_job(self) -> ConversionJob | None:
        """The most recently started job."""
        return self._current

    @property
    def is_running(self) -> bool:
        """Whether a job is currently active."""
        return self._current is not None and self._current.is_active

    def _new_job(
        self,
        sources: Sequence[ComicSource],
        options: OutputOptions,
        progress_callback: ProgressCallback | None,
    ) -> ConversionJob:
        validate_job_request(sources, options)
        with self._lock:
            if self.is_running:
                raise JobAlreadyRunningError("A conversion job is already running")
            job = ConversionJob(
                sources,
                options,
                workspace=self.workspace,
                input_options=self.input_options,
                progress_callback=progress_callback,
            )
            self._current = job
        return job

    def _new_image_job(
        self,
        images: Sequence[ImageSource],
        options: OutputOptions,
        progress_callback: ProgressCallback | None,
    ) -> ImageBatchJob:
        validate_job_request(images, options)
        with self._lock:
            if self.is_running:
                raise JobAlreadyRunningError("A conversion job is already running")
            job = ImageBatchJob(images, options, workspace=self.workspace, progress_callback=progress_callback)
            self._current = job
        return job

    def start_image_job(
        self,
        images: Sequence[ImageSource],
        options: OutputOptions,
        progress_callback: ProgressCallback | None = None,
    ) -> ImageBatchJob:
        """Start converting loose image files on a background thread.

        Shares the one-job-at-a-time rule with :meth:`start_job`.

        Raises
        ------
        ValidationError
            If there are no images or the output folder is unset
        JobAlreadyRunningError
            If another job is still running

        """
        job = self._new_image_job(images, options, progress_callback)
        job.start()
        return job

    def run_image_job(
        self,
        images: Sequence[ImageSource],
        options: OutputOptions,
        progress_callback: ProgressCallback | None = None,
    ) -> ConversionResult:
        """Convert loose image files in the calling thread and return the result."""
        return self._new_image_job(images, options, progress_callback).run()

    def start_job(
        self,
        sources: Sequence[ComicSource],
        options: OutputOptions,
        progress_callback: ProgressCallback | None = None,
    ) -> ConversionJob:
        """Start a job on a background thread and return its handle.

        Raises
        ------
        ValidationError
            If there are no sources or the output folder is unset
        JobAlreadyRunningError
            If another job is still running

        """
        job = self._new_job(sources, options, progress_callback)
        job.start()
        return job

    def run_job(
        self,
        sources: Sequence[ComicSource],
        options: OutputOptions,
        progress_callback: ProgressCallback | None = None,
    ) -> ConversionResult:
        """Run a job in the calling thread and return its result."""
        return self._new_job(sources, options, progress_callback).run()

    def cancel_job(self) -> None:
        """Cancel the running job, if any."""
        if self._current is not None:
            self._current.cancel()

    def export_single_page(self, source: ComicSource, page_index: int, output_folder: str | Path) -> Path:
        """Export one page of a source to a folder through the isolated exporter.

        Returns
        -------
        Path
            Path of the written image

        Raises
        ------
        WorkerFailure
            If the export failed or the worker crashed

        """
        request = PageExportRequest.for_source(source, page_index, output_folder, temp_parent=self.temp_parent)
        response = self.exporter.export(request)
        if not response.ok or response.output_file_path is None:
            raise WorkerFailure(response.error_message or "Page export failed")
        return Path(response.output_file_path)
