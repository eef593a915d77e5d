"""GitHub Actions workflow commands and step outputs.

See: https://docs.github.com/actions/using-workflows/workflow-commands-for-github-actions
"""

from __future__ import annotations

import sys
from collections.abc import Mapping
from pathlib import Path
from typing import TextIO


def escape_workflow_command(value: str) -> str:
    """Escape a string for use as a workflow command message."""

    return str(value).replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def set_failed(message: str, *, stream: TextIO | None = None) -> None:
    """Emit an `::error::` annotation; the caller is responsible for the exit code."""

    print(f"::error::{escape_workflow_command(message)}", file=stream or sys.stdout)


def set_warning(message: str, *, stream: TextIO | None = None) -> None:
    print(f"::warning::{escape_workflow_command(message)}", file=stream or sys.stdout)


def mask_value(value: str, *, stream: TextIO | None = None) -> None:
    """Ask the runner to hide `value` from every later line of the job log."""

    if value:
        print(f"::add-mask::{escape_workflow_command(value)}", file=stream or sys.stdout)


def write_outputs(output_file: str | Path, values: Mapping[str, str]) -> None:
    """Append `name=value` lines to the runner's `GITHUB_OUTPUT` file.

    Values must be single-line; every value written here is an id, URL or flag.
    """

    with open(output_file, "a", encoding="utf-8") as handle:
        for key, value in values.items():
            handle.write(f"{key}={value}\n")
