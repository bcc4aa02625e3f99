"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, expandctl.toml only contains
overrides. The defaults target the structured-sql workspace's
``test-structured-sql`` binary and a ``standalone`` bin on nightly.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from expandctl.domain.attributes import DEFAULT_FEATURES, DEFAULT_LINTS
from expandctl.domain.encoding import DEFAULT_CANONICAL_ENCODING


class ExpandConfig(BaseModel):
    """[expand] section."""

    model_config = {"frozen": True}

    binary: str = "test-structured-sql"
    package: str = "test-structured-sql"
    command: list[str] = Field(
        default_factory=lambda: ["cargo", "expand", "--bin", "{binary}", "-p", "{package}"]
    )
    encoding: str = "utf-8"
    timeout: float | None = None


class CompileConfig(BaseModel):
    """[compile] section."""

    model_config = {"frozen": True}

    target: str = "standalone"
    toolchain: str = "nightly"
    command: list[str] = Field(
        default_factory=lambda: ["cargo", "+{toolchain}", "build", "--bin", "{target}"]
    )
    timeout: float | None = None


class AttributesConfig(BaseModel):
    """[attributes] section.

    Validation (order, duplicates, identifier shape) happens when the
    pipeline builds the header, so bad values surface as ConfigurationError.
    """

    model_config = {"frozen": True}

    features: list[str] = Field(default_factory=lambda: list(DEFAULT_FEATURES))
    lints: list[str] = Field(default_factory=lambda: list(DEFAULT_LINTS))


class ScratchConfig(BaseModel):
    """[scratch] section.

    Fixed names by default: the default compile command builds a Cargo bin
    target whose path is the fixed ``tmp.rs``. Unique per-run names need a
    compile command that takes the path through ``{source}``.
    """

    model_config = {"frozen": True}

    directory: str = "."
    raw_name: str = "tmp-raw.rs"
    normalized_name: str = "tmp.rs"
    unique_names: bool = False
    canonical_encoding: str = DEFAULT_CANONICAL_ENCODING


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True


class ExpandctlConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    expand: ExpandConfig = Field(default_factory=ExpandConfig)
    compile: CompileConfig = Field(default_factory=CompileConfig)
    attributes: AttributesConfig = Field(default_factory=AttributesConfig)
    scratch: ScratchConfig = Field(default_factory=ScratchConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
