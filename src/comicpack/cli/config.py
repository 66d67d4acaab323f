#  Copyright (c) 2025 Tom Villani, Ph.D.

"""Configuration file discovery and loading for the comicpack CLI.

This module handles automatic discovery of configuration files, loading
configs from JSON, TOML or YAML, and turning them into option objects.

A configuration file has three optional keys::

    temp_folder_parent = "scratch"     # relative to the config file

    [output]
    output_format = "cbz"
    image_format = "webp"
    image_scale = 75

    [input]
    pdf_extraction_dpi = 200
"""

import argparse
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found,unused-ignore]
from typing import Any, Dict, Optional

import yaml

from comicpack.workspace import resolve_temp_parent

CONFIG_BASENAMES = [".comicpack.toml", ".comicpack.yaml", ".comicpack.yml", ".comicpack.json"]
CONFIG_FILENAMES = CONFIG_BASENAMES + ["pyproject.toml"]
CONFIG_KEYS = {"temp_folder_parent", "output", "input"}


@dataclass
class CliConfig:
    """Configuration loaded from a file.

    Parameters
    ----------
    path : Path, optional
        File the values came from; None when nothing was found
    temp_folder_parent : Path, optional
        Absolute temp-folder parent, resolved against the file's directory
    output : dict
        OutputOptions field values
    input : dict
        InputOptions field values

    """

    path: Optional[Path] = None
    temp_folder_parent: Optional[Path] = None
    output: Dict[str, Any] = field(default_factory=dict)
    input: Dict[str, Any] = field(default_factory=dict)


def _load_pyproject_section(pyproject_path: Path) -> Dict[str, Any]:
    """Load the [tool.comicpack] section from a pyproject.toml file.

    Returns an empty dict when the section is absent.

    Raises
    ------
    argparse.ArgumentTypeError
        If pyproject.toml cannot be parsed

    """
    try:
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)

        if "tool" in data and "comicpack" in data["tool"]:
            config = data["tool"]["comicpack"]
            if not isinstance(config, dict):
                raise argparse.ArgumentTypeError(
                    f"[tool.comicpack] section in {pyproject_path} must be a table, got {type(config).__name__}"
                )
            return config

        return {}

    except tomllib.TOMLDecodeError as e:
        raise argparse.ArgumentTypeError(f"Invalid TOML in pyproject.toml {pyproject_path}: {e}") from e
    except OSError as e:
        raise argparse.ArgumentTypeError(f"Error reading pyproject.toml {pyproject_path}: {e}") from e


def find_config_in_parents(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Find a configuration file by searching parent directories.

    Walks up from ``start_dir`` (default: cwd) to the filesystem root. In
    each directory the dedicated files are checked first, then a
    pyproject.toml that has a [tool.comicpack] section.

    Returns
    -------
    Path or None
        Path to the first config file found

    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        for filename in CONFIG_BASENAMES:
            config_path = current / filename
            if config_path.is_file():
                return config_path

        pyproject_path = current / "pyproject.toml"
        if pyproject_path.is_file():
            try:
                if _load_pyproject_section(pyproject_path):
                    return pyproject_path
            except argparse.ArgumentTypeError:
                # Invalid pyproject.toml, keep searching
                pass

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def discover_config_file(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Discover a configuration file in the standard locations.

    Searches parent directories first (see :func:`find_config_in_parents`),
    then the user's home directory.

    Returns
    -------
    Path or None
        Path to the discovered config file

    """
    found = find_config_in_parents(start_dir)
    if found:
        return found

    home = Path.home()
    for filename in CONFIG_BASENAMES:
        config_path = home / filename
        if config_path.is_file():
            return config_path

    return None


def load_config_file(config_path: Path | str) -> Dict[str, Any]:
    """Load raw configuration from a JSON, TOML, YAML or pyproject.toml file.

    Parameters
    ----------
    config_path : Path or str
        Path to the configuration file

    Returns
    -------
    dict
        Configuration dictionary loaded from the file

    Raises
    ------
    argparse.ArgumentTypeError
        If the file cannot be read, parsed, or has an invalid format

    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise argparse.ArgumentTypeError(f"Configuration file does not exist: {config_path}")
    if not config_path.is_file():
        raise argparse.ArgumentTypeError(f"Configuration path is not a file: {config_path}")

    filename = config_path.name.lower()
    ext = config_path.suffix.lower()

    try:
        if filename == "pyproject.toml":
            return _load_pyproject_section(config_path)
        elif ext == ".toml":
            with open(config_path, "rb") as f:
                config = tomllib.load(f)
        elif ext in (".yaml", ".yml"):
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
        elif ext == ".json":
            with open(config_path, "r", encoding="utf-8") as f:
                config = json.load(f)
        else:
            raise argparse.ArgumentTypeError(f"Unsupported config file format: {ext}. Use .json, .toml, or .yaml")
    except argparse.ArgumentTypeError:
        raise
    except tomllib.TOMLDecodeError as e:
        raise argparse.ArgumentTypeError(f"Invalid TOML in config file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise argparse.ArgumentTypeError(f"Invalid YAML in config file {config_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"Invalid JSON in config file {config_path}: {e}") from e
    except OSError as e:
        raise argparse.ArgumentTypeError(f"Error reading config file {config_path}: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise argparse.ArgumentTypeError(
            f"Config file {config_path} must contain a mapping at root level, got {type(config).__name__}"
        )
    return config


def parse_config(raw: Dict[str, Any], config_path: Optional[Path] = None) -> CliConfig:
    """Validate a raw config mapping and resolve its paths.

    Raises
    ------
    argparse.ArgumentTypeError
        If the mapping has unknown keys or sections of the wrong type

    """
    unknown = set(raw) - CONFIG_KEYS
    if unknown:
        raise argparse.ArgumentTypeError(f"Unknown configuration key(s): {', '.join(sorted(unknown))}")

    for section in ("output", "input"):
        if not isinstance(raw.get(section, {}), dict):
            raise argparse.ArgumentTypeError(f"Configuration section '{section}' must be a table")

    base = config_path.parent if config_path is not None else None
    return CliConfig(
        path=config_path,
        temp_folder_parent=resolve_temp_parent(raw.get("temp_folder_parent"), base_path=base),
        output=dict(raw.get("output", {})),
        input=dict(raw.get("input", {})),
    )


def load_config_with_priority(explicit_path: Optional[str] = None, env_var_path: Optional[str] = None) -> CliConfig:
    """Load configuration with priority handling.

    Priority order (highest to lowest):
    1. Explicit config file path (--config flag)
    2. Environment variable config path (COMICPACK_CONFIG)
    3. Auto-discovered config file

    Returns
    -------
    CliConfig
        Loaded configuration (empty when no file was found)

    Raises
    ------
    argparse.ArgumentTypeError
        If a config file is specified but cannot be loaded

    """
    path_value = explicit_path or env_var_path
    path = Path(path_value) if path_value else discover_config_file()
    if path is None:
        return CliConfig()
    return parse_config(load_config_file(path), path.resolve())
