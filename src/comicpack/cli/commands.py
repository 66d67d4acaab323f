#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Subcommand handlers for the comicpack CLI.

Each handler receives the parsed arguments and the loaded configuration and
returns a process exit code. Errors that end a command early propagate to
``main``, which maps them to exit codes.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from comicpack.cli.builder import EXIT_CANCELED, EXIT_ERROR, EXIT_SUCCESS, EXIT_VALIDATION_ERROR, DynamicCLIBuilder
from comicpack.cli.config import CliConfig
from comicpack.cli.progress import ProgressContext, SummaryRenderer, create_progress_context_callback
from comicpack.exceptions import ValidationError
from comicpack.models import ComicSource, ConversionResult, ImageSource
from comicpack.options import InputOptions, OutputOptions
from comicpack.orchestrator import BatchOrchestrator, ConversionJob
from comicpack.readers import open_reader
from comicpack.workspace import TempWorkspace, resolve_temp_parent
from comicpack.writers import available_output_formats

logger = logging.getLogger(__name__)


def _temp_parent(parsed_args: argparse.Namespace, config: CliConfig) -> Path | None:
    if parsed_args.temp_dir:
        return resolve_temp_parent(parsed_args.temp_dir)
    return config.temp_folder_parent


def _input_options(parsed_args: argparse.Namespace, config: CliConfig) -> InputOptions:
    return DynamicCLIBuilder().map_args_to_options(parsed_args, InputOptions, config.input)


def _output_options(parsed_args: argparse.Namespace, config: CliConfig) -> OutputOptions:
    values = dict(config.output)
    if parsed_args.command != "create":
        # A base name from the config file must not turn convert into create
        values.pop("output_file_base_name", None)
        values.pop("output-file-base-name", None)
    return DynamicCLIBuilder().map_args_to_options(parsed_args, OutputOptions, values)


def _make_sources(paths: list[str], input_options: InputOptions) -> list[ComicSource]:
    return [ComicSource.from_path(path, recursive=input_options.recursive_folders) for path in paths]


def _use_progress(parsed_args: argparse.Namespace) -> bool:
    return not parsed_args.no_progress and sys.stderr.isatty()


def _wait_for_job(job: ConversionJob, progress: ProgressContext) -> ConversionResult:
    """Wait for a job, turning Ctrl+C into a cancellation request."""
    cancel_requested = False
    while True:
        try:
            result = job.wait(timeout=0.25)
        except KeyboardInterrupt:
            if not cancel_requested:
                progress.log("Canceling after the current page...", level="warning")
                cancel_requested = True
            job.cancel()
            continue
        if result is not None:
            return result


def handle_conversion(parsed_args: argparse.Namespace, config: CliConfig) -> int:
    """Run ``convert`` or ``create``.

    Returns
    -------
    int
        0 when every source succeeded, 1 when some failed, 130 when canceled

    """
    input_options = _input_options(parsed_args, config)
    output_options = _output_options(parsed_args, config)
    if parsed_args.command == "create" and not output_options.is_creation:
        raise ValidationError("create needs an output name (--name)", parameter_name="output_file_base_name")
    _check_output_format(output_options)

    sources = _make_sources(parsed_args.sources, input_options)
    orchestrator = BatchOrchestrator(temp_parent=_temp_parent(parsed_args, config), input_options=input_options)

    use_progress = _use_progress(parsed_args)
    description = "Creating" if output_options.is_creation else "Converting"
    with ProgressContext(use_progress=use_progress, total=len(sources), description=description) as progress:
        job = orchestrator.start_job(sources, output_options, progress_callback=create_progress_context_callback(progress))
        result = _wait_for_job(job, progress)

    return _report(result, use_progress)


def handle_convert_images(parsed_args: argparse.Namespace, config: CliConfig) -> int:
    """Run ``convert-images``.

    Returns
    -------
    int
        0 when every image converted, 1 when some failed, 130 when canceled

    """
    output_options = _output_options(parsed_args, config)
    images = [ImageSource.from_path(path) for path in parsed_args.sources]
    orchestrator = BatchOrchestrator(temp_parent=_temp_parent(parsed_args, config))

    use_progress = _use_progress(parsed_args)
    with ProgressContext(use_progress=use_progress, total=len(images), description="Converting images") as progress:
        job = orchestrator.start_image_job(
            images, output_options, progress_callback=create_progress_context_callback(progress)
        )
        result = _wait_for_job(job, progress)

    return _report(result, use_progress)


def _check_output_format(options: OutputOptions) -> None:
    if options.output_format not in available_output_formats():
        raise ValidationError(
            f"Output format {options.output_format} needs the rar command, which was not found on PATH",
            parameter_name="output_format",
            parameter_value=options.output_format,
        )


def _report(result: ConversionResult, use_progress: bool) -> int:
    renderer = SummaryRenderer(use_rich=use_progress)
    renderer.render_conversion_summary(result)
    renderer.render_failures(result.outcomes)
    for path in result.output_paths:
        print(path)

    if result.was_canceled:
        return EXIT_CANCELED
    return EXIT_ERROR if result.error_count else EXIT_SUCCESS


def handle_export_page(parsed_args: argparse.Namespace, config: CliConfig) -> int:
    """Run ``export-page``; prints the written file path."""
    if parsed_args.page < 1:
        print("Error: page numbers start at 1", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    input_options = _input_options(parsed_args, config)
    source = _make_sources([parsed_args.source], input_options)[0]
    orchestrator = BatchOrchestrator(temp_parent=_temp_parent(parsed_args, config), input_options=input_options)
    path = orchestrator.export_single_page(source, parsed_args.page - 1, parsed_args.output_folder)
    print(path)
    return EXIT_SUCCESS


def handle_list_pages(parsed_args: argparse.Namespace, config: CliConfig) -> int:
    """Run ``list-pages``; prints one numbered line per page."""
    input_options = _input_options(parsed_args, config)
    source = _make_sources([parsed_args.source], input_options)[0]

    with TempWorkspace(parent=_temp_parent(parsed_args, config)) as workspace:
        with open_reader(source, workspace, input_options) as reader:
            pages = reader.list_pages()
            width = len(str(len(pages)))
            for page in pages:
                print(f"{page.ordinal_index + 1:>{width}}  {page.container_local_path}")
    return EXIT_SUCCESS


COMMANDS = {
    "convert": handle_conversion,
    "create": handle_conversion,
    "convert-images": handle_convert_images,
    "export-page": handle_export_page,
    "list-pages": handle_list_pages,
}
