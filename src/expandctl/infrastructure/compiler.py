"""Compiler — build the annotated source as a standalone binary target.

The compiler service runs against a toolchain channel that accepts unstable
features. Build outputs it produces are outside this pipeline's cleanup.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from expandctl.config.models import CompileConfig
from expandctl.domain.errors import CompileFailed
from expandctl.domain.sources import AnnotatedSource, CompileResult
from expandctl.infrastructure.process import decode_diagnostics, render_command, run_service
from expandctl.infrastructure.scratch import TempArtifact

logger = logging.getLogger(__name__)

# Exported to the compiler service so build scripts can locate the source.
SOURCE_ENV_VAR = "EXPANDCTL_SOURCE"


def _join_output(stdout: bytes | None, stderr: bytes | None) -> str:
    parts = [decode_diagnostics(stdout), decode_diagnostics(stderr)]
    return "".join(part for part in parts if part)


class Compiler:
    """Invokes the compiler service as a subprocess."""

    def __init__(self, config: CompileConfig | None = None, *, cwd: Path | None = None) -> None:
        self._config = config or CompileConfig()
        self._cwd = cwd or Path.cwd()

    @property
    def reads_source(self) -> bool:
        """Whether the command template names the scratch path via ``{source}``."""
        return any("{source}" in arg for arg in self._config.command)

    def command_for(self, target_binary: str, toolchain: str, source_path: Path) -> list[str]:
        return render_command(
            self._config.command,
            target=target_binary,
            toolchain=toolchain,
            source=str(source_path),
        )

    def compile(
        self,
        source: AnnotatedSource,
        target_binary: str,
        toolchain: str,
        artifact: TempArtifact,
    ) -> CompileResult:
        """Write *source* into *artifact* and compile it.

        Returns the successful CompileResult. Raises CompileFailed (with the
        result attached) on a non-zero exit, launch error, or timeout.
        """
        artifact.write_bytes(source.to_bytes())
        argv = self.command_for(target_binary, toolchain, artifact.path)
        env = {SOURCE_ENV_VAR: str(artifact.path.resolve())}

        try:
            proc = run_service(argv, cwd=self._cwd, timeout=self._config.timeout, env=env)
        except subprocess.TimeoutExpired as exc:
            diagnostics = _join_output(exc.stdout, exc.stderr)
            result = CompileResult(ok=False, returncode=None, diagnostics=diagnostics, command=argv)
            msg = f"Compiling {target_binary} timed out after {exc.timeout}s"
            raise CompileFailed(msg, diagnostics=diagnostics, result=result) from exc
        except OSError as exc:
            result = CompileResult(ok=False, returncode=None, diagnostics=str(exc), command=argv)
            msg = f"Could not launch compiler service {argv[0]!r}: {exc}"
            raise CompileFailed(msg, diagnostics=str(exc), result=result) from exc
        finally:
            artifact.mark_consumed()

        diagnostics = _join_output(proc.stdout, proc.stderr)
        result = CompileResult(
            ok=proc.returncode == 0,
            returncode=proc.returncode,
            diagnostics=diagnostics,
            command=argv,
        )
        if not result.ok:
            msg = f"Compiling {target_binary} on {toolchain} exited with status {proc.returncode}"
            raise CompileFailed(msg, diagnostics=diagnostics, result=result)

        logger.debug("Compiled %s on %s", target_binary, toolchain)
        return result
