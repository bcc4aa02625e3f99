"""Pipeline — expand, normalize, annotate, compile, clean up.

State machine::

    idle -> expanding -> normalizing -> annotating -> compiling -> cleanup -> done
                                                                          \\-> aborted

Every non-terminal state may jump straight to ``cleanup``. Cleanup always
runs and releases every scratch artifact acquired during the run.

Policies:
- best-effort: ExpansionFailed and CompileFailed are recorded in
  ``report.failures`` and the run continues (an empty payload stands in for
  a failed expansion). ``run()`` returns the report.
- strict: the first failure goes to cleanup, then ``aborted``; ``run()``
  raises it with ``exc.report`` attached.

EncodingLoss and ConfigurationError abort under both policies. Configuration
is checked before the expansion service runs; a bad value goes straight from
``idle`` to ``cleanup``.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import structlog

from expandctl.domain.attributes import FeatureSet, LintSet, annotate
from expandctl.domain.encoding import normalize, resolve_encoding
from expandctl.domain.errors import (
    CleanupFailed,
    CompileFailed,
    ConfigurationError,
    PipelineError,
)
from expandctl.domain.sources import (
    AnnotatedSource,
    CompileResult,
    ExpandedSource,
    ExpansionRequest,
)
from expandctl.domain.types import (
    PIPELINE_TRANSITIONS,
    PipelineState,
    Policy,
    is_valid_transition,
)
from expandctl.infrastructure.compiler import Compiler
from expandctl.infrastructure.expander import Expander
from expandctl.infrastructure.scratch import TempArtifact, TempResource

log = structlog.get_logger(__name__)

EventSink = Callable[[str, dict[str, Any]], None]


@dataclass
class StageRecord:
    """One visited state and how it went."""

    state: PipelineState
    ok: bool = True
    duration_ms: float = 0.0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "state": str(self.state),
            "ok": self.ok,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class PipelineReport:
    """Outcome of one pipeline run."""

    run_id: str
    policy: Policy
    state: PipelineState = PipelineState.IDLE
    history: list[StageRecord] = field(default_factory=list)
    failures: list[PipelineError] = field(default_factory=list)
    compile_result: CompileResult | None = None
    cleanup_warnings: list[str] = field(default_factory=list)
    artifacts: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when the run reached ``done`` with nothing absorbed along the way."""
        return self.state is PipelineState.DONE and not self.failures

    def visited(self) -> list[PipelineState]:
        return [record.state for record in self.history]

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "policy": str(self.policy),
            "state": str(self.state),
            "stages": [record.to_dict() for record in self.history],
            "failures": [
                {"code": exc.code, "message": exc.message, **exc.to_detail()}
                for exc in self.failures
            ],
            "compile": self.compile_result.to_dict() if self.compile_result else None,
            "artifacts": list(self.artifacts),
        }


class Pipeline:
    """One debug run, parametrized by an error policy.

    Usage::

        pipeline = Pipeline(expander, compiler, scratch, policy=Policy.STRICT)
        report = pipeline.run()
    """

    def __init__(
        self,
        expander: Expander,
        compiler: Compiler,
        scratch: TempResource,
        *,
        policy: Policy = Policy.BEST_EFFORT,
        request: ExpansionRequest | None = None,
        features: list[str] | tuple[str, ...] = (),
        lints: list[str] | tuple[str, ...] = (),
        target: str = "standalone",
        toolchain: str = "nightly",
        raw_name: str = "tmp-raw.rs",
        normalized_name: str = "tmp.rs",
        canonical_encoding: str = "utf-8",
        on_event: EventSink | None = None,
    ) -> None:
        self.policy = policy
        self._expander = expander
        self._compiler = compiler
        self._scratch = scratch
        self._request = request or expander.request()
        self._features = tuple(features)
        self._lints = tuple(lints)
        self._feature_set = FeatureSet()
        self._lint_set = LintSet()
        self._target = target
        self._toolchain = toolchain
        self._raw_name = raw_name
        self._normalized_name = normalized_name
        self._canonical_encoding = canonical_encoding
        self._on_event = on_event

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> PipelineReport:
        """Run the pipeline once.

        Raises the first failure under the strict policy, and EncodingLoss
        or ConfigurationError under either policy, after cleanup.
        """
        report = PipelineReport(run_id=self._scratch.run_id, policy=self.policy)
        log.debug("run.start", run_id=report.run_id, policy=str(self.policy))
        report.cleanup_warnings.extend(
            self._scratch.sweep(self._raw_name, self._normalized_name)
        )

        abort: PipelineError | None = None
        try:
            self._preflight()
            self._execute(report)
        except PipelineError as exc:
            abort = exc
        finally:
            self._cleanup(report)

        if abort is not None and abort not in report.failures:
            report.failures.append(abort)
        self._enter(report, PipelineState.ABORTED if abort else PipelineState.DONE)
        log.debug("run.finish", run_id=report.run_id, state=str(report.state))
        self._emit(
            "post_run",
            {
                "run_id": report.run_id,
                "policy": str(self.policy),
                "state": str(report.state),
                "failures": report.to_dict()["failures"],
            },
        )

        if abort is not None:
            abort.report = report
            raise abort
        return report

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _preflight(self) -> None:
        """Reject bad configuration before any external service runs."""
        self._feature_set = FeatureSet.of(self._features)
        self._lint_set = LintSet.of(self._lints)
        resolve_encoding(self._expander.encoding)
        resolve_encoding(self._canonical_encoding)
        if self._scratch.unique_names and not self._compiler.reads_source:
            msg = (
                "Scratch names are unique per run but the compile command has no "
                "{source} placeholder; add {source} or set [scratch] unique_names = false"
            )
            raise ConfigurationError(msg)

    def _execute(self, report: PipelineReport) -> None:
        with self._stage(report, PipelineState.EXPANDING) as record:
            raw = self._acquire(report, self._raw_name)
            expanded = self._expand(report, record, raw)

        with self._stage(report, PipelineState.NORMALIZING):
            normalized = normalize(expanded, self._canonical_encoding)
            self._release(report, raw)

        with self._stage(report, PipelineState.ANNOTATING):
            annotated = annotate(
                normalized,
                self._feature_set,
                self._lint_set,
            )

        with self._stage(report, PipelineState.COMPILING) as record:
            target = self._acquire(report, self._normalized_name)
            self._compile(report, record, annotated, target)
            self._release(report, target)

    def _expand(
        self,
        report: PipelineReport,
        record: StageRecord,
        raw: TempArtifact,
    ) -> ExpandedSource:
        try:
            return self._expander.expand(self._request, raw)
        except PipelineError as exc:
            self._absorb(report, record, exc)
            return ExpandedSource(
                payload=b"",
                encoding=self._expander.encoding,
                diagnostics=exc.diagnostics,
            )

    def _compile(
        self,
        report: PipelineReport,
        record: StageRecord,
        source: AnnotatedSource,
        artifact: TempArtifact,
    ) -> None:
        try:
            report.compile_result = self._compiler.compile(
                source, self._target, self._toolchain, artifact
            )
        except PipelineError as exc:
            if isinstance(exc, CompileFailed):
                report.compile_result = exc.result
            self._absorb(report, record, exc)

    def _cleanup(self, report: PipelineReport) -> None:
        with self._stage(report, PipelineState.CLEANUP):
            report.cleanup_warnings.extend(self._scratch.release_all())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _absorb(self, report: PipelineReport, record: StageRecord, exc: PipelineError) -> None:
        """Record an absorbable failure, or re-raise it under the strict policy."""
        if self.policy is Policy.STRICT or not exc.absorbable:
            raise exc
        record.ok = False
        record.error = exc.code
        report.failures.append(exc)
        log.warning(
            "stage.failed",
            run_id=report.run_id,
            stage=str(record.state),
            code=exc.code,
            error=exc.message,
        )

    def _acquire(self, report: PipelineReport, name: str) -> TempArtifact:
        artifact = self._scratch.acquire(name)
        report.artifacts.append(str(artifact.path))
        return artifact

    def _release(self, report: PipelineReport, artifact: TempArtifact) -> None:
        try:
            self._scratch.release(artifact)
        except CleanupFailed as exc:
            log.warning("artifact.release_failed", run_id=report.run_id, error=exc.message)
            report.cleanup_warnings.append(exc.message)

    def _enter(self, report: PipelineReport, state: PipelineState) -> None:
        if not is_valid_transition(report.state, state, PIPELINE_TRANSITIONS):
            msg = f"Invalid pipeline transition {report.state} -> {state}"
            raise RuntimeError(msg)
        report.state = state
        log.debug("stage.enter", run_id=report.run_id, stage=str(state))

    @contextmanager
    def _stage(
        self,
        report: PipelineReport,
        state: PipelineState,
    ) -> Generator[StageRecord]:
        """Enter *state*, time it, and record the outcome."""
        self._enter(report, state)
        record = StageRecord(state=state)
        report.history.append(record)
        started = time.perf_counter()
        try:
            yield record
        except PipelineError as exc:
            record.ok = False
            record.error = exc.code
            raise
        finally:
            record.duration_ms = (time.perf_counter() - started) * 1000
            self._emit(
                "post_stage",
                {
                    "run_id": report.run_id,
                    "stage": str(state),
                    "ok": record.ok,
                    "duration_ms": round(record.duration_ms, 2),
                },
            )

    def _emit(self, hook_name: str, payload: dict[str, Any]) -> None:
        if self._on_event is not None:
            self._on_event(hook_name, payload)
