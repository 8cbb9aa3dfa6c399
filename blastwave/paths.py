"""Helpers for preparing output file locations."""

from __future__ import annotations

import os
import sys
from typing import TextIO


def ensure_output_directory_exists(output_path: str | os.PathLike, notice_stream: TextIO | None = None) -> None:
    """Create the parent directory of ``output_path`` if it is missing.

    A notice is written to ``notice_stream`` (standard error by default) when
    the directory is created. Raises ``NotADirectoryError`` when the parent
    exists but is not a directory, and ``OSError`` when it cannot be inspected
    or created.
    """
    parent = os.path.dirname(os.fspath(output_path))
    if not parent:
        return

    try:
        parent_exists = os.path.lexists(parent) and os.path.exists(parent)
    except OSError as error:
        raise OSError(f"Failed to inspect output directory '{parent}': {error}") from error

    if parent_exists:
        if not os.path.isdir(parent):
            raise NotADirectoryError(f"Output path parent exists but is not a directory: {parent}")
        return

    stream = notice_stream if notice_stream is not None else sys.stderr
    stream.write(f"Output directory does not exist. Creating: {parent}\n")

    try:
        os.makedirs(parent, exist_ok=True)
    except OSError as error:
        raise OSError(f"Failed to create output directory '{parent}': {error}") from error