"""DebugService — build a Pipeline from settings and report its outcome.

The two CLI commands differ only in the Policy they pass to :meth:`run`.
Absorbed failures (best-effort) become warnings on a successful result.
An aborted run becomes an error result carrying the external service's
diagnostics verbatim.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING, Any

from expandctl.domain.errors import PipelineError
from expandctl.domain.sources import ExpansionRequest
from expandctl.domain.types import Policy
from expandctl.infrastructure.compiler import Compiler
from expandctl.infrastructure.expander import Expander
from expandctl.infrastructure.scratch import TempResource
from expandctl.services.pipeline import Pipeline, PipelineReport
from expandctl.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from expandctl.config.settings import ExpandctlSettings
    from expandctl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class DebugService:
    """Runs the expand → normalize → annotate → compile pipeline."""

    def __init__(
        self,
        settings: ExpandctlSettings,
        plugins: PluginManager | None = None,
    ) -> None:
        self._settings = settings
        self._plugins = plugins

    def build_pipeline(
        self,
        policy: Policy,
        *,
        binary: str | None = None,
        package: str | None = None,
        target: str | None = None,
        toolchain: str | None = None,
        warnings: list[str] | None = None,
    ) -> Pipeline:
        """Assemble a Pipeline from settings, with per-invocation overrides."""
        s = self._settings
        root = s.workspace_root
        request = ExpansionRequest(
            binary=binary or s.expand.binary,
            package=package or s.expand.package,
        )
        scratch = TempResource(s.scratch_dir, unique_names=s.scratch.unique_names)
        on_event = partial(self._dispatch_event, warnings=warnings if warnings is not None else [])
        return Pipeline(
            Expander(s.expand, cwd=root),
            Compiler(s.compile, cwd=root),
            scratch,
            policy=policy,
            request=request,
            features=s.attributes.features,
            lints=s.attributes.lints,
            target=target or s.compile.target,
            toolchain=toolchain or s.compile.toolchain,
            raw_name=s.scratch.raw_name,
            normalized_name=s.scratch.normalized_name,
            canonical_encoding=s.scratch.canonical_encoding,
            on_event=on_event,
        )

    def run(self, policy: Policy, **overrides: str | None) -> ServiceResult:
        """Run one pipeline under *policy* and convert the outcome."""
        op = "debug" if policy is Policy.BEST_EFFORT else "debug_strict"
        warnings: list[str] = []
        pipeline = self.build_pipeline(policy, warnings=warnings, **overrides)

        try:
            report = pipeline.run()
        except PipelineError as exc:
            return self._failure(op, exc, warnings)

        warnings.extend(report.cleanup_warnings)
        warnings.extend(f"{exc.code}: {exc.message}" for exc in report.failures)
        return ServiceResult(
            ok=True,
            op=op,
            data=report.to_dict(),
            warnings=warnings,
            meta=self._meta(report),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _failure(self, op: str, exc: PipelineError, warnings: list[str]) -> ServiceResult:
        report: PipelineReport | None = exc.report
        context: dict[str, Any] = {}
        data: dict[str, Any] = {}
        if report is not None:
            context = {"state": str(report.state), "run_id": report.run_id}
            warnings.extend(report.cleanup_warnings)
            data = report.to_dict()
        return ServiceResult(
            ok=False,
            op=op,
            data=data,
            warnings=warnings,
            error=ServiceError.from_exception(exc, **context),
            meta=self._meta(report) if report is not None else None,
        )

    @staticmethod
    def _meta(report: PipelineReport) -> dict[str, Any]:
        total = sum(record.duration_ms for record in report.history)
        return {"run_id": report.run_id, "duration_ms": round(total, 2)}

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        *,
        warnings: list[str],
    ) -> None:
        """Dispatch a lifecycle event. No-op without a plugin manager.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        if self._plugins is None:
            return
        try:
            self._plugins.dispatch(hook_name, payload)
        except Exception:
            logger.debug("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")
