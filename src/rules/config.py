from __future__ import annotations

from enum import Enum
from pathlib import Path

import tomllib
from pydantic import BaseModel, ConfigDict, Field, field_validator

from rules.severity import FailOn, Severity

CONFIG_FILENAME = "archguard.toml"

DEFAULT_SCHEMA_FILENAMES = ("archguard.schema.json", "archguard.schema.toml")


class CycleDetection(str, Enum):
    """How thoroughly the declared module graph is searched for cycles."""

    FULL = "full"
    MUTUAL = "mutual"


class ConnectionsConfig(BaseModel):
    """Policy for the connection-contract pipeline."""

    model_config = ConfigDict(extra="forbid")

    cycle_severity: Severity = Field(
        default=Severity.WARNING,
        description="Severity assigned to each detected dependency cycle",
    )
    self_loop_severity: Severity = Field(
        default=Severity.WARNING,
        description="Severity assigned to connections whose from == to",
    )
    cycle_detection: CycleDetection = Field(
        default=CycleDetection.FULL,
        description="'full' DFS search or only direct mutual pairs",
    )


class ArchGuardConfig(BaseModel):
    """Configuration for one archguard run."""

    schema_path: str | None = Field(
        default=None,
        alias="schema",
        description="Rule schema document, relative to the repo root",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to exclude from scanning",
    )
    nested_gitignore: bool = Field(
        default=False,
        description=(
            "Enable nested .gitignore composition (default: false for root-only)"
        ),
    )
    max_file_bytes: int = Field(
        default=1_048_576,
        gt=0,
        description="Files larger than this are reported as scan errors",
    )
    workers: int = Field(
        default=8,
        ge=1,
        description="Worker threads for per-file rule evaluation",
    )
    modules_dir: str = Field(
        default=".archguard/modules",
        description="Directory holding one sub-directory per declared module",
    )
    connections_dir: str = Field(
        default=".archguard/connections/contracts",
        description="Directory holding connection contract documents",
    )
    fail_on: FailOn = Field(default_factory=FailOn)
    connections: ConnectionsConfig = Field(default_factory=ConnectionsConfig)

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @field_validator("modules_dir", "connections_dir")
    @classmethod
    def validate_relative_dir(cls, v: str) -> str:
        if not v or v.startswith("~") or Path(v).is_absolute():
            msg = "directory settings must be non-empty relative paths"
            raise ValueError(msg)
        return v


class ConfigError(Exception):
    """Raised when config file exists but cannot be parsed."""


def resolve_within_root(root: Path, relative: str, *, setting: str) -> Path:
    """Resolve a config-provided path safely within the repo root.

    Absolute paths and paths that escape the root after resolution are
    rejected.
    """
    if not relative:
        msg = f"{setting} must be a non-empty relative path"
        raise ConfigError(msg)

    if relative.startswith("~") or Path(relative).is_absolute():
        msg = f"{setting} must be a relative path within the repo root"
        raise ConfigError(msg)

    try:
        resolved_root = root.resolve()
        resolved = (resolved_root / relative).resolve()
    except OSError as exc:
        msg = f"Failed to resolve {setting} '{relative}': {exc}"
        raise ConfigError(msg) from exc

    try:
        resolved.relative_to(resolved_root)
    except ValueError as exc:
        msg = f"{setting} '{relative}' escapes the repository root"
        raise ConfigError(msg) from exc

    return resolved


def find_schema(root: Path, config: ArchGuardConfig) -> Path | None:
    """Return the schema path from config, or the first default that exists."""
    if config.schema_path is not None:
        return resolve_within_root(root, config.schema_path, setting="schema")
    for name in DEFAULT_SCHEMA_FILENAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_config(root: Path) -> ArchGuardConfig:
    """Load configuration from archguard.toml if it exists."""
    config_path = Path(root) / CONFIG_FILENAME

    if not config_path.is_file():
        return ArchGuardConfig()

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return ArchGuardConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e
