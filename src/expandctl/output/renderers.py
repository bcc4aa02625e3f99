"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from expandctl.output.console import create_console, get_output, style_for_state

if TYPE_CHECKING:
    from rich.console import Console

    from expandctl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"
    state = result.data.get("state")
    return f"OK: {result.op} {state}" if state else f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="exp.ok")
    op = Text(f"  {result.op}", style="exp.op")
    console.print(label, op, sep="")


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="exp.key")
    if key == "run_id":
        v = Text(str(value), style="exp.id")
    elif key in ("path", "artifacts"):
        v = Text(str(value), style="exp.path")
    else:
        v = Text(str(value))
    console.print(k, v, sep="")


def _stage_table(stages: list[dict[str, Any]]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Stage", no_wrap=True)
    table.add_column("Result")
    table.add_column("Time", justify="right", style="dim")
    for stage in stages:
        ok = bool(stage.get("ok", True))
        name = str(stage.get("state", ""))
        result = "ok" if ok else str(stage.get("error", "failed"))
        table.add_row(
            Text(name, style=style_for_state(name, ok=ok)),
            result,
            f"{float(stage.get('duration_ms', 0.0)):.2f}ms",
        )
    return table


def _render_diagnostics(console: Console, label: str, text: str) -> None:
    if not text:
        return
    console.print(Text(f"  {label}:", style="exp.key"))
    # Diagnostics are shown verbatim; markup and highlighting off.
    console.print(Text(text.rstrip("\n")), markup=False, highlight=False)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="exp.error")
    op = Text(f"  {result.op}", style="exp.op")
    console.print(label, op, Text(" — "), Text(msg), sep="")

    if err is None:
        return
    for key in ("state", "run_id", "returncode"):
        if key in err.detail:
            _field(console, key, err.detail[key])
    _render_diagnostics(console, "diagnostics", str(err.detail.get("diagnostics", "")))
    if verbose and result.data.get("stages"):
        console.print()
        console.print(_stage_table(result.data["stages"]))


# ── Pipeline renderer ─────────────────────────────────────────────────


def _render_debug(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a completed pipeline run."""
    _status_line(console, result)
    d = result.data
    for key in ("run_id", "policy", "state"):
        if key in d:
            _field(console, key, d[key])

    compile_info = d.get("compile") or {}
    if compile_info:
        _field(console, "compiled", "yes" if compile_info.get("ok") else "no")

    console.print()
    console.print(_stage_table(d.get("stages", [])))

    for failure in d.get("failures", []):
        line = Text("  failed ", style="exp.warning")
        console.print(line, Text(f"{failure.get('code')}: {failure.get('message')}"), sep="")
        _render_diagnostics(console, "diagnostics", str(failure.get("diagnostics", "")))

    if verbose:
        if compile_info.get("command"):
            _field(console, "command", compile_info["command"])
        if compile_info.get("ok"):
            _render_diagnostics(console, "compiler output", str(compile_info.get("diagnostics", "")))
        if result.meta:
            console.print()
            console.print(Text("  meta:", style="dim"))
            for k, v in result.meta.items():
                console.print(Text(f"    {k}: {v}"))


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "debug": _render_debug,
    "debug_strict": _render_debug,
}
