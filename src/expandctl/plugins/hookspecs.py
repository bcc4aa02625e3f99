"""Pluggy hook specifications for pipeline lifecycle events.

Hooks are dispatched synchronously on the pipeline's thread, in state
order. A failing hook never changes the outcome of a run.
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("expandctl")


class ExpandctlHookSpec:
    """Hook specifications for the expandctl plugin system."""

    @hookspec
    def post_stage(
        self,
        run_id: str,
        stage: str,
        ok: bool,
        duration_ms: float,
    ) -> None:
        """Called after the pipeline leaves a state."""

    @hookspec
    def post_run(
        self,
        run_id: str,
        policy: str,
        state: str,
        failures: list[dict[str, Any]],
    ) -> None:
        """Called once the run reaches ``done`` or ``aborted``."""
