"""Commands: run the expansion debug pipeline.

``debug`` uses the best-effort policy; ``debug-strict`` stops at the first
failure and exits non-zero. Both sweep stale scratch files before the run
and remove both scratch files after it.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import click

from expandctl.commands._base import ExpandctlCommand
from expandctl.domain.types import Policy

if TYPE_CHECKING:
    from expandctl.commands._context import AppContext


def _pipeline_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by both pipeline commands; unset values fall back to config."""
    options = [
        click.option("--bin", "binary", default=None, help="Binary target to expand."),
        click.option("-p", "--package", default=None, help="Package defining the binary."),
        click.option("--target", default=None, help="Standalone binary target to compile."),
        click.option("--toolchain", default=None, help="Toolchain channel, e.g. nightly."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _run(app: AppContext, policy: Policy, **overrides: str | None) -> None:
    from expandctl.services.debug import DebugService

    svc = DebugService(app.settings, plugins=app.plugins)
    app.emit(svc.run(policy, **overrides))


@click.command(
    "debug",
    cls=ExpandctlCommand,
    examples="""\
  expandctl debug
  expandctl debug --bin test-structured-sql -p test-structured-sql
  expandctl -v debug --toolchain nightly-2025-06-01
  expandctl --json debug""",
)
@_pipeline_options
@click.pass_obj
def debug(
    app: AppContext,
    binary: str | None,
    package: str | None,
    target: str | None,
    toolchain: str | None,
) -> None:
    """Expand, annotate, and compile; report failures without stopping."""
    _run(
        app,
        Policy.BEST_EFFORT,
        binary=binary,
        package=package,
        target=target,
        toolchain=toolchain,
    )


@click.command(
    "debug-strict",
    cls=ExpandctlCommand,
    examples="""\
  expandctl debug-strict
  expandctl debug-strict --target standalone
  expandctl --json debug-strict""",
)
@_pipeline_options
@click.pass_obj
def debug_strict(
    app: AppContext,
    binary: str | None,
    package: str | None,
    target: str | None,
    toolchain: str | None,
) -> None:
    """Expand, annotate, and compile; stop and exit 1 on the first failure."""
    _run(
        app,
        Policy.STRICT,
        binary=binary,
        package=package,
        target=target,
        toolchain=toolchain,
    )
