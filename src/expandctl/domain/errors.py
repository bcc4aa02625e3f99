"""Pipeline error taxonomy.

Every error carries a stable ``code`` (used in ``ServiceError.code``) and the
diagnostics captured from external services, surfaced verbatim.

Absorbable under the best-effort policy: ExpansionFailed, CompileFailed.
Fatal under every policy: EncodingLoss, ConfigurationError.
CleanupFailed is logged and returned as a warning, never raised out of cleanup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from expandctl.domain.sources import CompileResult


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    code = "PIPELINE_ERROR"
    absorbable = False

    def __init__(self, message: str, *, diagnostics: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.diagnostics = diagnostics
        # Attached by the pipeline when the failure aborts a run.
        self.report: Any = None

    def to_detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {}
        if self.diagnostics:
            detail["diagnostics"] = self.diagnostics
        return detail


class ExpansionFailed(PipelineError):
    """The expansion service exited non-zero or produced no output."""

    code = "EXPANSION_FAILED"
    absorbable = True


class EncodingLoss(PipelineError):
    """The payload holds characters outside the source/canonical intersection."""

    code = "ENCODING_LOSS"


class ConfigurationError(PipelineError):
    """Configuration that cannot produce a valid run (identifiers, encodings, scratch paths)."""

    code = "CONFIGURATION_ERROR"


class CompileFailed(PipelineError):
    """The compiler service exited non-zero."""

    code = "COMPILE_FAILED"
    absorbable = True

    def __init__(
        self,
        message: str,
        *,
        diagnostics: str = "",
        result: CompileResult | None = None,
    ) -> None:
        super().__init__(message, diagnostics=diagnostics)
        self.result = result

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        if self.result is not None:
            detail["returncode"] = self.result.returncode
        return detail


class CleanupFailed(PipelineError):
    """A scratch artifact could not be removed."""

    code = "CLEANUP_FAILED"
