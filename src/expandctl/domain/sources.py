"""Documents flowing through the pipeline, one stage to the next.

ExpansionRequest -> ExpandedSource -> NormalizedSource -> AnnotatedSource.
None of them outlive a single pipeline run.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ExpansionRequest:
    """Target binary and the package that defines it."""

    binary: str
    package: str


@dataclass(frozen=True)
class ExpandedSource:
    """Raw expansion output plus the encoding it was produced in."""

    payload: bytes
    encoding: str
    diagnostics: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.payload


@dataclass(frozen=True)
class NormalizedSource:
    """Expansion output re-encoded into the canonical encoding."""

    data: bytes
    encoding: str

    @property
    def text(self) -> str:
        return self.data.decode(self.encoding)


@dataclass(frozen=True)
class AnnotatedSource:
    """Normalized body with the feature/lint header prepended."""

    text: str
    encoding: str
    header: tuple[str, ...] = ()

    def to_bytes(self) -> bytes:
        return self.text.encode(self.encoding)


@dataclass(frozen=True)
class CompileResult:
    """Outcome of one compiler service invocation."""

    ok: bool
    returncode: int | None
    diagnostics: str = ""
    command: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "ok": self.ok,
            "returncode": self.returncode,
            "command": " ".join(self.command),
            "diagnostics": self.diagnostics,
        }
