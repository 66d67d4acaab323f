"""Command-line interface for comicpack.

Examples
--------
Convert comics to CBZ::

    $ comicpack convert issue1.cbr issue2.pdf -o ./converted -f cbz

Shrink pages to 50% width and re-encode as WebP::

    $ comicpack convert ./scans -o ./converted --scale 50 --image-format webp

Merge several sources into one PDF, split into two parts::

    $ comicpack create vol1.cbz vol2.cbz -o ./out -n collected -f pdf --split-num-files 2

Shrink loose scans to 50% and save them as WebP::

    $ comicpack convert-images scan1.png scan2.png -o ./small --scale 50 --image-format webp

Export the cover::

    $ comicpack export-page issue1.cbz 1 -o ./covers

Configuration files (``.comicpack.toml``, ``.comicpack.yaml``,
``.comicpack.json`` or ``[tool.comicpack]`` in pyproject.toml) are
discovered from the working directory upwards, then in the home directory.
The ``COMICPACK_CONFIG`` environment variable names a file explicitly.

Exit codes: 0 success, 1 some sources failed, 2 invalid arguments,
3 temp folder failure, 130 canceled.
"""

#  Copyright (c) 2025 Tom Villani, Ph.D.

import argparse
import logging
import os
import sys

from comicpack.cli.builder import (
    EXIT_CANCELED,
    EXIT_VALIDATION_ERROR,
    create_parser,
    get_exit_code_for_exception,
)
from comicpack.cli.commands import COMMANDS
from comicpack.cli.config import CliConfig, load_config_with_priority
from comicpack.exceptions import ComicPackError
from comicpack.logging_utils import configure_logging

logger = logging.getLogger(__name__)

__all__ = ["main", "create_parser"]


def _setup_logging_level(parsed_args: argparse.Namespace) -> None:
    """Set up logging level based on command-line arguments.

    Parameters
    ----------
    parsed_args : argparse.Namespace
        Parsed command-line arguments

    """
    log_level = logging.DEBUG if parsed_args.trace else getattr(logging, parsed_args.log_level.upper())
    configure_logging(log_level, log_file=parsed_args.log_file, trace_mode=parsed_args.trace)


def _load_config(parsed_args: argparse.Namespace) -> CliConfig:
    if parsed_args.no_config and not parsed_args.config:
        return CliConfig()
    return load_config_with_priority(explicit_path=parsed_args.config, env_var_path=os.environ.get("COMICPACK_CONFIG"))


def main(args: list[str] | None = None) -> int:
    """Execute the CLI and return an exit code."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    _setup_logging_level(parsed_args)

    try:
        config = _load_config(parsed_args)
    except argparse.ArgumentTypeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    handler = COMMANDS[parsed_args.command]
    try:
        return handler(parsed_args, config)
    except KeyboardInterrupt:
        print("Canceled", file=sys.stderr)
        return EXIT_CANCELED
    except ComicPackError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e.message}", file=sys.stderr)
        return get_exit_code_for_exception(e)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR


if __name__ == "__main__":
    sys.exit(main())
