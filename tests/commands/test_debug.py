"""Tests for the debug and debug-strict commands."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from expandctl.cli import cli
from tests.conftest import (
    COMPILE_FAILING,
    COMPILE_OK,
    EXPAND_EMPTY,
    EXPANDED_BODY,
    expand_emitting,
    expand_failing,
    python_service,
    scratch_files,
    write_config,
)


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    yield
    root.handlers = original_handlers


@pytest.mark.usefixtures("_isolated_workspace")
class TestDebugCommand:
    def test_success(self, cli_runner: CliRunner, workspace: Path) -> None:
        write_config(workspace, expand=expand_emitting(EXPANDED_BODY), compile_=COMPILE_OK)
        result = cli_runner.invoke(cli, ["debug"])
        assert result.exit_code == 0, result.output
        assert "OK  debug" in result.output
        assert "state: done" in result.output
        assert "compiled: yes" in result.output
        assert scratch_files(workspace) == []

    def test_failures_are_warnings(self, cli_runner: CliRunner, workspace: Path) -> None:
        write_config(workspace, expand=EXPAND_EMPTY, compile_=COMPILE_FAILING)
        result = cli_runner.invoke(cli, ["debug"])
        assert result.exit_code == 0
        assert "WARNING: EXPANSION_FAILED" in result.output
        assert "WARNING: COMPILE_FAILED" in result.output
        assert scratch_files(workspace) == []

    def test_compiler_diagnostics_shown(self, cli_runner: CliRunner, workspace: Path) -> None:
        write_config(workspace, expand=expand_emitting(EXPANDED_BODY), compile_=COMPILE_FAILING)
        result = cli_runner.invoke(cli, ["debug"])
        assert result.exit_code == 0
        assert "error[E0601]: `main` function not found" in result.output

    def test_markup_in_target_name(self, cli_runner: CliRunner, workspace: Path) -> None:
        write_config(workspace, expand=expand_emitting(EXPANDED_BODY), compile_=COMPILE_FAILING)
        result = cli_runner.invoke(cli, ["debug-strict", "--target", "[/x]"])
        assert result.exit_code == 1
        assert "Compiling [/x]" in result.output

    def test_quiet(self, cli_runner: CliRunner, workspace: Path) -> None:
        write_config(workspace, expand=expand_emitting(EXPANDED_BODY), compile_=COMPILE_OK)
        result = cli_runner.invoke(cli, ["-q", "debug"])
        assert result.exit_code == 0
        assert result.output.strip() == "OK: debug done"

    def test_json(self, cli_runner: CliRunner, workspace: Path) -> None:
        write_config(workspace, expand=expand_emitting(EXPANDED_BODY), compile_=COMPILE_OK)
        result = cli_runner.invoke(cli, ["--json", "debug"])
        assert result.exit_code == 0
        parsed = json.loads(result.output)
        assert parsed["ok"] is True
        assert parsed["op"] == "debug"
        assert [s["state"] for s in parsed["data"]["stages"]] == [
            "expanding",
            "normalizing",
            "annotating",
            "compiling",
            "cleanup",
        ]

    def test_target_override(self, cli_runner: CliRunner, workspace: Path) -> None:
        write_config(
            workspace,
            expand=expand_emitting(EXPANDED_BODY),
            compile_=[*python_service("pass"), "+{toolchain}", "{target}"],
        )
        result = cli_runner.invoke(
            cli, ["--json", "debug", "--target", "other", "--toolchain", "beta"]
        )
        assert result.exit_code == 0
        command = json.loads(result.output)["data"]["compile"]["command"]
        assert command.endswith("+beta other")

    def test_examples(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["debug", "--examples"])
        assert result.exit_code == 0
        assert "expandctl debug --bin" in result.output


@pytest.mark.usefixtures("_isolated_workspace")
class TestDebugStrictCommand:
    def test_success(self, cli_runner: CliRunner, workspace: Path) -> None:
        write_config(workspace, expand=expand_emitting(EXPANDED_BODY), compile_=COMPILE_OK)
        result = cli_runner.invoke(cli, ["debug-strict"])
        assert result.exit_code == 0
        assert "OK  debug_strict" in result.output

    def test_expansion_failure_exits_nonzero(self, cli_runner: CliRunner, workspace: Path) -> None:
        write_config(
            workspace,
            expand=expand_failing("error: no bin target named `nope`"),
            compile_=COMPILE_OK,
        )
        result = cli_runner.invoke(cli, ["debug-strict"])
        assert result.exit_code == 1
        assert "ERROR" in result.output
        assert "state: aborted" in result.output
        assert "error: no bin target named `nope`" in result.output
        assert scratch_files(workspace) == []

    def test_compile_failure_json(self, cli_runner: CliRunner, workspace: Path) -> None:
        write_config(workspace, expand=expand_emitting(EXPANDED_BODY), compile_=COMPILE_FAILING)
        result = cli_runner.invoke(cli, ["--json", "debug-strict"])
        assert result.exit_code == 1
        parsed = json.loads(result.output)
        assert parsed["ok"] is False
        assert parsed["error"]["code"] == "COMPILE_FAILED"
        assert parsed["error"]["detail"]["returncode"] == 101
        assert "E0601" in parsed["error"]["detail"]["diagnostics"]
        assert scratch_files(workspace) == []

    def test_stale_scratch_removed(self, cli_runner: CliRunner, workspace: Path) -> None:
        write_config(workspace, expand=EXPAND_EMPTY, compile_=COMPILE_OK)
        (workspace / "tmp.rs").write_text("stale")
        result = cli_runner.invoke(cli, ["debug-strict"])
        assert result.exit_code == 1
        assert scratch_files(workspace) == []
