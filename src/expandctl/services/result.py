"""ServiceResult — what a pipeline command hands back to the CLI.

The CLI only formats a ServiceResult; it never looks at pipeline internals.
Absorbed failures travel as ``warnings``; an aborted run as ``error``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from expandctl.domain.errors import PipelineError


class ServiceError(BaseModel):
    """The failure that aborted a run, with external diagnostics in ``detail``."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: PipelineError, **context: Any) -> ServiceError:
        """Build from a pipeline error; *context* (state, run_id) joins its detail."""
        return cls(code=exc.code, message=exc.message, detail={**exc.to_detail(), **context})


class ServiceResult(BaseModel):
    """Outcome of one ``debug`` / ``debug_strict`` invocation.

    ``data`` is the serialized pipeline report and ``meta`` carries the run
    id and total stage time.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
