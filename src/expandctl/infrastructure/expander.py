"""Expander — run the macro-expansion service for one package/binary pair.

The service's stdout is the raw payload. It is kept as bytes together with
the encoding the service writes in, which need not be the platform's.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from expandctl.config.models import ExpandConfig
from expandctl.domain.errors import ExpansionFailed
from expandctl.domain.sources import ExpandedSource, ExpansionRequest
from expandctl.infrastructure.process import decode_diagnostics, render_command, run_service
from expandctl.infrastructure.scratch import TempArtifact

logger = logging.getLogger(__name__)


class Expander:
    """Invokes the expansion service as a subprocess."""

    def __init__(self, config: ExpandConfig | None = None, *, cwd: Path | None = None) -> None:
        self._config = config or ExpandConfig()
        self._cwd = cwd or Path.cwd()

    @property
    def encoding(self) -> str:
        """Encoding the expansion service writes its output in."""
        return self._config.encoding

    def request(self) -> ExpansionRequest:
        """Build the request described by the configuration."""
        return ExpansionRequest(binary=self._config.binary, package=self._config.package)

    def command_for(self, request: ExpansionRequest) -> list[str]:
        return render_command(
            self._config.command,
            binary=request.binary,
            package=request.package,
        )

    def expand(
        self,
        request: ExpansionRequest,
        artifact: TempArtifact | None = None,
    ) -> ExpandedSource:
        """Expand *request*, streaming stdout into *artifact* when given.

        Raises ExpansionFailed on launch errors, timeouts, non-zero exits,
        or empty output. Diagnostics are the service's stderr, verbatim.
        """
        argv = self.command_for(request)
        try:
            if artifact is not None:
                with artifact.path.open("wb") as sink:
                    proc = run_service(
                        argv, cwd=self._cwd, stdout=sink, timeout=self._config.timeout
                    )
                artifact.mark_written()
                payload = artifact.consume()
            else:
                proc = run_service(argv, cwd=self._cwd, timeout=self._config.timeout)
                payload = proc.stdout or b""
        except subprocess.TimeoutExpired as exc:
            msg = f"Expansion of {request.package}/{request.binary} timed out after {exc.timeout}s"
            raise ExpansionFailed(msg, diagnostics=decode_diagnostics(exc.stderr)) from exc
        except OSError as exc:
            msg = f"Could not launch expansion service {argv[0]!r}: {exc}"
            raise ExpansionFailed(msg, diagnostics=str(exc)) from exc

        diagnostics = decode_diagnostics(proc.stderr)
        if proc.returncode != 0:
            msg = (
                f"Expansion of {request.package}/{request.binary} "
                f"exited with status {proc.returncode}"
            )
            raise ExpansionFailed(msg, diagnostics=diagnostics)
        if not payload:
            msg = f"Expansion of {request.package}/{request.binary} produced no output"
            raise ExpansionFailed(msg, diagnostics=diagnostics)

        logger.debug(
            "Expanded %s/%s: %d bytes (%s)",
            request.package,
            request.binary,
            len(payload),
            self._config.encoding,
        )
        return ExpandedSource(
            payload=payload,
            encoding=self._config.encoding,
            diagnostics=diagnostics,
        )
