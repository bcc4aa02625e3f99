"""Shared pytest fixtures and test helpers for expandctl tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from expandctl.config.settings import ExpandctlSettings

# ---------------------------------------------------------------------------
# Fake external services
#
# The expansion and compiler services are replaced by tiny Python programs
# so tests never need cargo or a nightly toolchain.
# ---------------------------------------------------------------------------

EXPANDED_BODY = "fn main() {\n    println!(\"expanded\");\n}\n"


def python_service(script: str) -> list[str]:
    """Command template that runs *script* with the current interpreter."""
    return [sys.executable, "-c", script]


def expand_emitting(text: str, encoding: str = "utf-8") -> list[str]:
    """Expansion service that prints *text* in *encoding* and exits 0."""
    payload = text.encode(encoding)
    return python_service(f"import sys; sys.stdout.buffer.write({payload!r})")


def expand_failing(message: str = "error: no bin target named `nope`", code: int = 101) -> list[str]:
    """Expansion service that writes *message* to stderr and exits *code*."""
    return python_service(f"import sys; sys.stderr.write({message!r}); sys.exit({code})")


EXPAND_EMPTY = python_service("pass")

# Succeeds only if the annotated source reached it through {source}.
COMPILE_OK = [
    *python_service(
        "import sys; "
        "src = open(sys.argv[1], encoding='utf-8').read(); "
        "print('Finished dev profile'); "
        "sys.exit(0 if src.startswith('#![feature(') else 3)"
    ),
    "{source}",
]

COMPILE_FAILING = [
    *python_service(
        "import sys; sys.stderr.write('error[E0601]: `main` function not found'); sys.exit(101)"
    ),
    "{source}",
]

# Like a Cargo bin target: reads the fixed tmp.rs in its working directory.
COMPILE_FIXED_PATH = python_service(
    "import sys; "
    "src = open('tmp.rs', encoding='utf-8').read(); "
    "sys.exit(0 if src.startswith('#![feature(') else 3)"
)


def expand_marking(marker: Path) -> list[str]:
    """Expansion service that records it ran by creating *marker*."""
    return python_service(
        f"open({str(marker)!r}, 'w').close(); print('fn main() {{}}')"
    )


def make_settings(root: Path, **sections: Any) -> ExpandctlSettings:
    """Settings rooted at *root* with section overrides (``expand={...}``)."""
    return ExpandctlSettings.from_cli(workspace_root=root, **sections)


def scratch_files(root: Path) -> list[Path]:
    """Every scratch file left behind in *root*."""
    return sorted(root.glob("tmp*.rs"))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary workspace with no config file and no config env vars."""
    monkeypatch.delenv("EXPANDCTL_CONFIG", raising=False)
    return tmp_path


@pytest.fixture
def _isolated_workspace(workspace: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to the temp workspace so the CLI discovers its config there.

    Use via ``@pytest.mark.usefixtures("_isolated_workspace")`` on command
    test classes.
    """
    monkeypatch.chdir(workspace)


def write_config(root: Path, *, expand: list[str], compile_: list[str], extra: str = "") -> Path:
    """Write an expandctl.toml pointing both services at fake commands."""

    def _toml_list(items: list[str]) -> str:
        quoted = ", ".join(json.dumps(item) for item in items)
        return f"[{quoted}]"

    path = root / "expandctl.toml"
    path.write_text(
        "[expand]\n"
        f"command = {_toml_list(expand)}\n"
        "[compile]\n"
        f"command = {_toml_list(compile_)}\n"
        "[plugins]\n"
        "enabled = false\n"
        f"{extra}",
        encoding="utf-8",
    )
    return path
