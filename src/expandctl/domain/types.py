"""Pipeline policies, states, and artifact lifecycle.

The pipeline is a strictly sequential state machine. ``aborted`` is reachable
from any non-terminal state; ``cleanup`` always runs before a terminal state.
"""

from __future__ import annotations

from enum import StrEnum


class Policy(StrEnum):
    """Error policy for a pipeline run."""

    BEST_EFFORT = "best-effort"
    STRICT = "strict"


class PipelineState(StrEnum):
    """States of a single pipeline run."""

    IDLE = "idle"
    EXPANDING = "expanding"
    NORMALIZING = "normalizing"
    ANNOTATING = "annotating"
    COMPILING = "compiling"
    CLEANUP = "cleanup"
    DONE = "done"
    ABORTED = "aborted"


class ArtifactState(StrEnum):
    """Lifecycle of a scratch file."""

    ABSENT = "absent"
    CREATED = "created"
    WRITTEN = "written"
    CONSUMED = "consumed"


TERMINAL_STATES = frozenset({PipelineState.DONE, PipelineState.ABORTED})

PIPELINE_TRANSITIONS: dict[str, list[str]] = {
    "idle": ["expanding", "cleanup"],
    "expanding": ["normalizing", "cleanup"],
    "normalizing": ["annotating", "cleanup"],
    "annotating": ["compiling", "cleanup"],
    "compiling": ["cleanup"],
    "cleanup": ["done", "aborted"],
    "done": [],
    "aborted": [],
}

ARTIFACT_TRANSITIONS: dict[str, list[str]] = {
    "absent": ["created"],
    "created": ["written", "absent"],
    "written": ["consumed", "written", "absent"],
    "consumed": ["absent"],
}


def is_valid_transition(
    current: str,
    target: str,
    transitions: dict[str, list[str]],
) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    allowed = transitions.get(current, [])
    return target in allowed
