"""Crate-level header that lets an expansion compile standalone.

The header is two inner attributes: one enabling unstable features, one
allowing lints that fire on generated code. Both sets are configuration,
so the permissiveness can change without touching the pipeline.

Example::

    >>> src = NormalizedSource(data=b"fn main(){}", encoding="utf-8")
    >>> annotate(src, FeatureSet.of(["feat_a", "feat_b"]), LintSet.of(["lint_x"])).text
    '#![feature(feat_a, feat_b)]\\n#![allow(lint_x)]\\nfn main(){}'
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from expandctl.domain.errors import ConfigurationError
from expandctl.domain.sources import AnnotatedSource, NormalizedSource

# Plain identifiers, or tool-scoped paths such as ``clippy::needless_return``.
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(::[A-Za-z_][A-Za-z0-9_]*)*$")

DEFAULT_FEATURES: tuple[str, ...] = (
    "hint_must_use",
    "liballoc_internals",
    "derive_eq",
    "print_internals",
    "structural_match",
    "coverage_attribute",
    "fmt_helpers_for_derive",
)

DEFAULT_LINTS: tuple[str, ...] = (
    "unused_variables",
    "unused_mut",
    "unused_imports",
)


def _validated(kind: str, names: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    ordered: list[str] = []
    for name in names:
        if not isinstance(name, str) or not IDENTIFIER_PATTERN.match(name):
            msg = f"Malformed {kind} identifier: {name!r}"
            raise ConfigurationError(msg)
        if name in seen:
            msg = f"Duplicate {kind} identifier: {name!r}"
            raise ConfigurationError(msg)
        seen.add(name)
        ordered.append(name)
    return tuple(ordered)


@dataclass(frozen=True)
class FeatureSet:
    """Ordered, duplicate-free unstable feature names."""

    names: tuple[str, ...] = ()

    @classmethod
    def of(cls, names: Iterable[str]) -> FeatureSet:
        return cls(_validated("feature", names))

    def header_line(self) -> str | None:
        if not self.names:
            return None
        return f"#![feature({', '.join(self.names)})]"


@dataclass(frozen=True)
class LintSet:
    """Ordered, duplicate-free lint names to allow."""

    names: tuple[str, ...] = ()

    @classmethod
    def of(cls, names: Iterable[str]) -> LintSet:
        return cls(_validated("lint", names))

    def header_line(self) -> str | None:
        if not self.names:
            return None
        return f"#![allow({', '.join(self.names)})]"


def build_header(features: FeatureSet, lints: LintSet) -> tuple[str, ...]:
    """Header lines in emission order: features first, then lints."""
    # Re-validate so hand-built sets get the same guarantees as ``of()``.
    features = FeatureSet.of(features.names)
    lints = LintSet.of(lints.names)
    lines = (features.header_line(), lints.header_line())
    return tuple(line for line in lines if line is not None)


def annotate(
    source: NormalizedSource,
    features: FeatureSet,
    lints: LintSet,
) -> AnnotatedSource:
    """Prepend the feature/lint header to *source*. Pure and deterministic."""
    header = build_header(features, lints)
    text = "\n".join((*header, source.text))
    return AnnotatedSource(text=text, encoding=source.encoding, header=header)
