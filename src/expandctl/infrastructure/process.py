"""Subprocess helpers for the external expansion and compiler services."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import IO

logger = logging.getLogger(__name__)


def render_command(template: Sequence[str], **values: str) -> list[str]:
    """Fill ``{name}`` placeholders in each argument of *template*.

    Only the given names are substituted; any other braces pass through
    untouched, so arguments may carry literal ``{}``.
    """
    argv: list[str] = []
    for arg in template:
        for key, value in values.items():
            arg = arg.replace("{" + key + "}", value)
        argv.append(arg)
    return argv


def decode_diagnostics(raw: bytes | str | None) -> str:
    """Decode captured stderr/stdout for display without altering its content."""
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    return raw.decode("utf-8", errors="replace")


def run_service(
    argv: list[str],
    *,
    cwd: Path,
    stdout: IO[bytes] | None = None,
    timeout: float | None = None,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """Run an external service and wait for it.

    Output is captured as raw bytes. When *stdout* is a file object the
    service writes straight into it instead. Raises ``OSError`` when the
    executable cannot be launched and ``subprocess.TimeoutExpired`` when
    *timeout* elapses; non-zero exits are left to the caller.
    """
    logger.debug("Running %s (cwd=%s)", " ".join(argv), cwd)
    merged_env = {**os.environ, **env} if env else None
    return subprocess.run(
        argv,
        cwd=cwd,
        stdout=stdout if stdout is not None else subprocess.PIPE,
        stderr=subprocess.PIPE,
        timeout=timeout,
        env=merged_env,
        check=False,
    )
