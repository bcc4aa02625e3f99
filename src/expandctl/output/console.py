"""Rich Console factory and theme for expandctl output.

Consoles render into a StringIO buffer, preserving the
``format_result() -> str`` contract. In non-TTY environments (tests,
pipes) Rich disables color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

EXPANDCTL_THEME = Theme(
    {
        "exp.ok": "bold green",
        "exp.error": "bold red",
        "exp.warning": "bold yellow",
        "exp.op": "bold cyan",
        "exp.key": "dim",
        "exp.id": "bold blue",
        "exp.path": "dim",
        "exp.state.done": "green",
        "exp.state.aborted": "red",
        "exp.state.failed": "yellow",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=EXPANDCTL_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_state(state: str, *, ok: bool = True) -> str:
    """Rich style for a pipeline state cell."""
    if not ok:
        return "exp.state.failed"
    if state == "aborted":
        return "exp.state.aborted"
    if state == "done":
        return "exp.state.done"
    return ""
