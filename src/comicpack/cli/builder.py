#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Argument parser construction for the comicpack CLI.

Option flags are generated from the OutputOptions and InputOptions
dataclasses: every field becomes a kebab-case flag whose help text, choices
and type come from the field metadata. Generated flags default to
``argparse.SUPPRESS``, so the parsed namespace only holds values the user
actually typed and config-file values are not overwritten by defaults.
"""

import argparse
import logging
from dataclasses import MISSING, Field, fields
from typing import Any, Dict, Optional, Type

from comicpack import __version__
from comicpack.exceptions import JobAlreadyRunningError, ValidationError, WorkspaceError
from comicpack.options import InputOptions, OutputOptions

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_VALIDATION_ERROR = 2
EXIT_WORKSPACE_ERROR = 3
EXIT_CANCELED = 130

# Fields with hand-picked flag names instead of the generated kebab-case form
DEDICATED_FLAGS: Dict[str, tuple[str, ...]] = {
    "output_folder": ("-o", "--output-dir"),
    "output_format": ("-f", "--format"),
    "output_file_base_name": ("-n", "--name"),
    "recursive_folders": ("-r", "--recursive"),
    "image_scale": ("-s", "--scale"),
}

# OutputOptions fields that apply to convert-images
IMAGE_BATCH_FIELDS: frozenset[str] = frozenset(
    {
        "output_folder",
        "image_format",
        "image_scale",
        "jpg_quality",
        "jpg_optimize",
        "png_quality",
        "webp_quality",
        "avif_quality",
    }
)


class DynamicCLIBuilder:
    """Build argparse arguments from option dataclass metadata."""

    def snake_to_kebab(self, name: str) -> str:
        """Convert snake_case to kebab-case."""
        return name.replace("_", "-")

    def infer_cli_names(self, field: Field) -> tuple[str, ...]:
        """Return the flag spellings for a field.

        Boolean fields that default to True get a ``--no-*`` flag.
        """
        if field.name in DEDICATED_FLAGS:
            return DEDICATED_FLAGS[field.name]
        kebab_name = self.snake_to_kebab(field.name)
        if field.default is True:
            kebab_name = f"no-{kebab_name}"
        return (f"--{kebab_name}",)

    def get_argument_kwargs(self, field: Field) -> Dict[str, Any]:
        """Build argparse kwargs from field metadata.

        Parameters
        ----------
        field : Field
            Dataclass field

        Returns
        -------
        dict
            Kwargs for argparse.add_argument()

        """
        metadata = field.metadata
        kwargs: Dict[str, Any] = {
            "dest": field.name,
            "default": argparse.SUPPRESS,
            "help": metadata.get("help", f"Configure {field.name}"),
        }

        if field.default is True:
            kwargs["action"] = "store_false"
        elif field.default is False:
            kwargs["action"] = "store_true"
        else:
            if metadata.get("type") in (int, float):
                kwargs["type"] = metadata["type"]
            if "choices" in metadata:
                kwargs["choices"] = metadata["choices"]
            if field.default is not MISSING and field.default is not None:
                kwargs["help"] = f"{kwargs['help']} (default: {field.default})"

        return kwargs

    def add_options_class_arguments(
        self,
        parser: argparse.ArgumentParser,
        options_class: Type[Any],
        title: str,
        exclude: frozenset[str] = frozenset(),
    ) -> None:
        """Add one argument group holding a flag per options field."""
        group = parser.add_argument_group(title)
        for field in fields(options_class):
            if field.name in exclude or field.metadata.get("exclude_from_cli", False):
                continue
            group.add_argument(*self.infer_cli_names(field), **self.get_argument_kwargs(field))

    def map_args_to_options(
        self, parsed_args: argparse.Namespace, options_class: Type[Any], config_values: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Build an options object from config values overridden by CLI flags.

        Raises
        ------
        ValueError
            If a config key is unknown or a value fails validation

        """
        values: Dict[str, Any] = {
            key.replace("-", "_"): value for key, value in (config_values or {}).items()
        }
        for field in fields(options_class):
            if hasattr(parsed_args, field.name):
                values[field.name] = getattr(parsed_args, field.name)
        return options_class.from_mapping(values)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Path to a configuration file (JSON, TOML or YAML)")
    parser.add_argument("--no-config", action="store_true", help="Do not auto-discover a configuration file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Set logging level (default: WARNING)",
    )
    parser.add_argument("--log-file", help="Also write log output to this file")
    parser.add_argument("--trace", action="store_true", help="Very verbose logging with timestamps and logger names")
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    parser.add_argument("--temp-dir", help="Parent directory for temporary files (default: system temp folder)")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    builder = DynamicCLIBuilder()

    common = argparse.ArgumentParser(add_help=False)
    _add_common_arguments(common)

    parser = argparse.ArgumentParser(
        prog="comicpack",
        description="Convert comic archives (CBZ, CBR, PDF, EPUB, image folders) between formats.",
    )
    parser.add_argument("--version", action="version", version=f"comicpack {__version__}")
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    convert = subparsers.add_parser(
        "convert", parents=[common], help="Convert each source into its own output file"
    )
    convert.add_argument("sources", nargs="+", help="Comic files or image folders, processed in order")
    builder.add_options_class_arguments(
        convert, OutputOptions, "output options", exclude=frozenset({"output_file_base_name"})
    )
    builder.add_options_class_arguments(convert, InputOptions, "input options")

    create = subparsers.add_parser("create", parents=[common], help="Merge all sources into one output file")
    create.add_argument("sources", nargs="+", help="Comic files or image folders, merged in order")
    builder.add_options_class_arguments(create, OutputOptions, "output options")
    builder.add_options_class_arguments(create, InputOptions, "input options")

    convert_images = subparsers.add_parser(
        "convert-images", parents=[common], help="Resize and re-encode loose image files"
    )
    convert_images.add_argument("sources", nargs="+", help="Image files, processed in order")
    builder.add_options_class_arguments(
        convert_images,
        OutputOptions,
        "image options",
        exclude=frozenset(f.name for f in fields(OutputOptions)) - IMAGE_BATCH_FIELDS,
    )

    export = subparsers.add_parser("export-page", parents=[common], help="Export a single page as an image")
    export.add_argument("source", help="Comic file or image folder")
    export.add_argument("page", type=int, help="Page number (1-based)")
    export.add_argument("-o", "--output-dir", dest="output_folder", required=True, help="Folder to write the image to")
    builder.add_options_class_arguments(export, InputOptions, "input options")

    list_pages = subparsers.add_parser("list-pages", parents=[common], help="List the pages of a source")
    list_pages.add_argument("source", help="Comic file or image folder")
    builder.add_options_class_arguments(list_pages, InputOptions, "input options")

    return parser


def get_exit_code_for_exception(exception: BaseException) -> int:
    """Map an exception to a CLI exit code.

    Parameters
    ----------
    exception : BaseException
        The exception to map

    Returns
    -------
    int
        The exit code for the exception type

    """
    if isinstance(exception, KeyboardInterrupt):
        return EXIT_CANCELED
    if isinstance(exception, WorkspaceError):
        return EXIT_WORKSPACE_ERROR
    if isinstance(exception, (ValidationError, JobAlreadyRunningError, ValueError, argparse.ArgumentTypeError)):
        return EXIT_VALIDATION_ERROR
    return EXIT_ERROR
