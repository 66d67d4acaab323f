#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/comicpack/writers/cbr.py
"""CBR writer driving the external ``rar`` command.

RAR creation is proprietary, so this writer is only usable where the
``rar`` executable is installed. A password turns on ``-hp`` (encrypt file
data and headers).
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from comicpack.constants import RAR_EXECUTABLE_NAMES
from comicpack.exceptions import PackagingError
from comicpack.writers.base import ContainerWriter, positional_member_names

logger = logging.getLogger(__name__)

RAR_TIMEOUT_SECONDS = 900


def find_rar_executable() -> str | None:
    """Return the path of the ``rar`` command, or None if not installed."""
    for name in RAR_EXECUTABLE_NAMES:
        found = shutil.which(name)
        if found:
            return found
    return None


class CbrWriter(ContainerWriter):
    """Write pages to a .cbr archive with the rar command."""

    output_format = "cbr"
    extension = "cbr"

    def _write(self, pages: list[Path], output_path: Path, title: str) -> None:
        rar = find_rar_executable()
        if rar is None:
            raise PackagingError("CBR output needs the 'rar' command, which was not found on PATH", output_format="cbr")

        names = positional_member_names(pages)
        staging = output_path.parent / f".{output_path.stem}-rar-pages"
        staging.mkdir(parents=True, exist_ok=False)
        try:
            for page, name in zip(pages, names):
                shutil.copyfile(page, staging / name)

            cmd = [rar, "a", "-idq", "-ep1"]
            if self.options.password:
                cmd.append(f"-hp{self.options.password}")
            cmd.append(str(output_path.resolve()))
            cmd.extend(names)

            logger.debug(f"Running rar for {len(names)} pages into {output_path.name}")
            proc = subprocess.run(
                cmd,
                cwd=staging,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=RAR_TIMEOUT_SECONDS,
                check=False,
            )
            if proc.returncode != 0:
                stderr = proc.stderr.decode(errors="ignore").strip()
                raise PackagingError(f"rar exited with code {proc.returncode}: {stderr}", output_format="cbr")
        except subprocess.TimeoutExpired as e:
            raise PackagingError("rar timed out", output_format="cbr", original_error=e) from e
        finally:
            shutil.rmtree(staging, ignore_errors=True)
