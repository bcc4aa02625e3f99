"""Scratch files shared between pipeline stages.

INVARIANT: No artifact survives a completed run. ``release`` is idempotent
and safe even when ``acquire`` or the write in between never finished.

Names are fixed (``tmp-raw.rs`` / ``tmp.rs``) by default. With ``unique_names``
each run gets its own names so two runs in the same workspace never race.
Acquiring in an unwritable directory is a ``ConfigurationError``.
"""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from expandctl.domain.errors import CleanupFailed, ConfigurationError
from expandctl.domain.types import ARTIFACT_TRANSITIONS, ArtifactState, is_valid_transition

logger = logging.getLogger(__name__)


def new_run_id() -> str:
    """Process id plus a random suffix, e.g. ``4242-1a2b3c4d``."""
    return f"{os.getpid()}-{uuid.uuid4().hex[:8]}"


@dataclass
class TempArtifact:
    """A scratch file path plus where it is in its lifecycle."""

    name: str
    path: Path
    state: ArtifactState = ArtifactState.ABSENT
    history: list[ArtifactState] = field(default_factory=list)

    def _move(self, target: ArtifactState) -> None:
        if not is_valid_transition(self.state, target, ARTIFACT_TRANSITIONS):
            msg = f"Artifact {self.name}: invalid transition {self.state} -> {target}"
            raise RuntimeError(msg)
        self.history.append(self.state)
        self.state = target

    def write_bytes(self, data: bytes) -> None:
        self.path.write_bytes(data)
        self._move(ArtifactState.WRITTEN)

    def mark_written(self) -> None:
        """Record that something else (a subprocess) filled the file."""
        self._move(ArtifactState.WRITTEN)

    def mark_consumed(self) -> None:
        """Record that something else (a subprocess) read the file."""
        self._move(ArtifactState.CONSUMED)

    def consume(self) -> bytes:
        """Read the artifact's bytes; it is not read again afterward."""
        data = self.path.read_bytes()
        self._move(ArtifactState.CONSUMED)
        return data


class TempResource:
    """Acquire and release per-run scratch files in one directory.

    Usage::

        scratch = TempResource(workdir, run_id=new_run_id())
        with scratch.scoped("tmp.rs") as artifact:
            artifact.write_bytes(b"...")
    """

    def __init__(
        self,
        directory: Path,
        *,
        run_id: str | None = None,
        unique_names: bool = True,
    ) -> None:
        self.directory = directory
        self.run_id = run_id or new_run_id()
        self.unique_names = unique_names
        self._artifacts: list[TempArtifact] = []

    def path_for(self, name: str) -> Path:
        """Resolve the on-disk path for a logical artifact *name*."""
        if not self.unique_names:
            return self.directory / name
        stem, dot, suffix = name.partition(".")
        unique = f"{stem}-{self.run_id}"
        return self.directory / (f"{unique}.{suffix}" if dot else unique)

    def acquire(self, name: str) -> TempArtifact:
        """Create (or truncate) the file for *name* and track it for release.

        Raises ConfigurationError if the scratch directory is not writable.
        """
        artifact = TempArtifact(name=name, path=self.path_for(name))
        # Track before touching the disk so release_all() covers a failed create.
        self._artifacts.append(artifact)
        try:
            artifact.path.parent.mkdir(parents=True, exist_ok=True)
            artifact.path.write_bytes(b"")
        except OSError as exc:
            msg = f"Could not create scratch file {artifact.path}: {exc}"
            raise ConfigurationError(msg) from exc
        artifact._move(ArtifactState.CREATED)
        logger.debug("Acquired scratch file %s", artifact.path)
        return artifact

    def release(self, artifact: TempArtifact) -> None:
        """Delete the artifact's file if present. Idempotent.

        Raises CleanupFailed if the file exists but cannot be removed.
        """
        if artifact.state is ArtifactState.ABSENT:
            return
        try:
            artifact.path.unlink(missing_ok=True)
        except OSError as exc:
            msg = f"Could not remove scratch file {artifact.path}: {exc}"
            raise CleanupFailed(msg) from exc
        artifact._move(ArtifactState.ABSENT)
        logger.debug("Released scratch file %s", artifact.path)

    def release_all(self) -> list[str]:
        """Release every tracked artifact. Returns cleanup warnings, never raises."""
        warnings: list[str] = []
        for artifact in self._artifacts:
            try:
                self.release(artifact)
            except CleanupFailed as exc:
                logger.warning("%s", exc.message)
                warnings.append(exc.message)
        return warnings

    def sweep(self, *names: str) -> list[str]:
        """Remove stale files left at the fixed paths for *names*.

        Covers runs that were killed before their own cleanup could happen.
        """
        warnings: list[str] = []
        for name in names:
            stale = self.directory / name
            try:
                if stale.is_file():
                    stale.unlink()
                    logger.debug("Removed stale scratch file %s", stale)
            except OSError as exc:
                msg = f"Could not remove stale scratch file {stale}: {exc}"
                logger.warning("%s", msg)
                warnings.append(msg)
        return warnings

    @contextmanager
    def scoped(self, name: str) -> Generator[TempArtifact]:
        """Acquire *name* for the duration of a block; release on every exit path."""
        artifact = TempArtifact(name=name, path=self.path_for(name))
        try:
            artifact = self.acquire(name)
            yield artifact
        finally:
            try:
                self.release(artifact)
            except CleanupFailed as exc:
                logger.warning("%s", exc.message)
