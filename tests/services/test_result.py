"""Tests for ServiceResult and ServiceError."""

import json

import pytest

from expandctl.domain.errors import ExpansionFailed
from expandctl.services.result import ServiceError, ServiceResult


class TestServiceResult:
    def test_success_construction(self) -> None:
        result = ServiceResult(ok=True, op="debug", data={"state": "done"})
        assert result.ok is True
        assert result.op == "debug"
        assert result.data == {"state": "done"}
        assert result.warnings == []
        assert result.error is None
        assert result.meta is None

    def test_error_construction(self) -> None:
        error = ServiceError(code="EXPANSION_FAILED", message="no output")
        result = ServiceResult(ok=False, op="debug_strict", error=error)
        assert result.error is not None
        assert result.error.code == "EXPANSION_FAILED"

    def test_json_serialization(self) -> None:
        result = ServiceResult(ok=True, op="debug", data={"run_id": "1-abc"}, meta={"duration_ms": 4})
        parsed = json.loads(result.model_dump_json())
        assert parsed["data"]["run_id"] == "1-abc"
        assert parsed["meta"]["duration_ms"] == 4

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="debug")
        with pytest.raises(Exception):
            result.ok = False  # type: ignore[misc]


class TestServiceError:
    def test_default_detail(self) -> None:
        assert ServiceError(code="E", message="bad").detail == {}

    def test_from_exception_merges_context(self) -> None:
        exc = ExpansionFailed("Expansion produced no output", diagnostics="error: no bin")
        error = ServiceError.from_exception(exc, state="aborted", run_id="7-0badf00d")
        assert error.code == "EXPANSION_FAILED"
        assert error.message == "Expansion produced no output"
        assert error.detail == {
            "diagnostics": "error: no bin",
            "state": "aborted",
            "run_id": "7-0badf00d",
        }
