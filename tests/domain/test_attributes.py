"""Tests for the feature/lint header injector."""

from __future__ import annotations

import pytest

from expandctl.domain.attributes import (
    DEFAULT_FEATURES,
    DEFAULT_LINTS,
    FeatureSet,
    LintSet,
    annotate,
    build_header,
)
from expandctl.domain.errors import ConfigurationError
from expandctl.domain.sources import NormalizedSource


def _src(text: str) -> NormalizedSource:
    return NormalizedSource(data=text.encode("utf-8"), encoding="utf-8")


class TestAnnotate:
    def test_exact_output(self) -> None:
        result = annotate(
            _src("fn main(){}"),
            FeatureSet.of(["feat_a", "feat_b"]),
            LintSet.of(["lint_x"]),
        )
        assert result.text == "#![feature(feat_a, feat_b)]\n#![allow(lint_x)]\nfn main(){}"
        assert result.header == ("#![feature(feat_a, feat_b)]", "#![allow(lint_x)]")

    def test_deterministic(self) -> None:
        features = FeatureSet.of(DEFAULT_FEATURES)
        lints = LintSet.of(DEFAULT_LINTS)
        first = annotate(_src("struct A;"), features, lints)
        second = annotate(_src("struct A;"), features, lints)
        assert first.to_bytes() == second.to_bytes()

    def test_order_preserved(self) -> None:
        result = annotate(_src(""), FeatureSet.of(["zeta", "alpha"]), LintSet.of(["b", "a"]))
        assert result.header == ("#![feature(zeta, alpha)]", "#![allow(b, a)]")

    def test_body_unmodified(self) -> None:
        body = "#[derive(Debug)]\nstruct Point {\n    x: i32,\n}\n\n"
        result = annotate(_src(body), FeatureSet.of(["f"]), LintSet.of(["l"]))
        assert result.text.endswith(body)

    def test_empty_sets_omit_their_lines(self) -> None:
        result = annotate(_src("fn main(){}"), FeatureSet(), LintSet.of(["unused_mut"]))
        assert result.text == "#![allow(unused_mut)]\nfn main(){}"

    def test_keeps_source_encoding(self) -> None:
        src = NormalizedSource(data=b"fn main(){}", encoding="utf-8")
        assert annotate(src, FeatureSet(), LintSet()).encoding == "utf-8"


class TestValidation:
    def test_duplicate_feature_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Duplicate feature"):
            FeatureSet.of(["feat_a", "feat_b", "feat_a"])

    def test_duplicate_lint_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Duplicate lint"):
            LintSet.of(["unused_mut", "unused_mut"])

    @pytest.mark.parametrize("name", ["", "has space", "1leading_digit", "a,b", "x)]", "a::"])
    def test_malformed_identifier_rejected(self, name: str) -> None:
        with pytest.raises(ConfigurationError, match="Malformed"):
            FeatureSet.of([name])

    def test_tool_scoped_lint_accepted(self) -> None:
        assert LintSet.of(["clippy::needless_return"]).names == ("clippy::needless_return",)

    def test_hand_built_sets_are_revalidated(self) -> None:
        with pytest.raises(ConfigurationError):
            build_header(FeatureSet(("a", "a")), LintSet())

    def test_defaults_are_valid(self) -> None:
        header = build_header(FeatureSet.of(DEFAULT_FEATURES), LintSet.of(DEFAULT_LINTS))
        assert header[0].startswith("#![feature(hint_must_use, liballoc_internals")
        assert header[1] == "#![allow(unused_variables, unused_mut, unused_imports)]"
