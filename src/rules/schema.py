"""Rule schema documents and their compiled, immutable form."""

from __future__ import annotations

import logging
import re
import tomllib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import orjson
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from rules.errors import FatalLoadError
from rules.severity import Severity

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}


class _SchemaDoc(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class ForbiddenPatternDef(_SchemaDoc):
    """One forbidden-pattern entry as written in a schema document."""

    pattern: str = Field(description="Regular expression matched against file content")
    name: str = Field(description="Human readable rule name")
    severity: Severity = Field(default=Severity.ERROR)
    exceptions: list[str] = Field(
        default_factory=list,
        description="Globs of files the rule never applies to",
    )
    applies_to: str | None = Field(
        default=None,
        alias="appliesTo",
        description="Restrict the rule to files matching this glob",
    )
    flags: str = Field(
        default="",
        description="Regex flag letters: i (ignore case), m (multiline), s (dotall)",
    )


class PackageManifestRulesDef(_SchemaDoc):
    required_scripts: list[str] = Field(default_factory=list, alias="requiredScripts")
    required_dependencies: list[str] = Field(
        default_factory=list, alias="requiredDependencies"
    )
    required_dev_dependencies: list[str] = Field(
        default_factory=list, alias="requiredDevDependencies"
    )


class SchemaDocument(_SchemaDoc):
    """Top-level schema document (JSON or TOML)."""

    required_files: list[str] = Field(default_factory=list, alias="requiredFiles")
    forbidden_patterns: list[ForbiddenPatternDef] = Field(
        default_factory=list, alias="forbiddenPatterns"
    )
    required_imports: dict[str, list[str]] = Field(
        default_factory=dict, alias="requiredImports"
    )
    package_manifest_rules: PackageManifestRulesDef = Field(
        default_factory=PackageManifestRulesDef,
        validation_alias=AliasChoices(
            "packageManifestRules",
            "packageJsonRules",
            "package_manifest_rules",
        ),
    )


@dataclass(frozen=True)
class Rule:
    """A compiled forbidden-pattern rule."""

    pattern: re.Pattern[str]
    name: str
    severity: Severity
    exceptions: tuple[str, ...] = ()
    applies_to: str | None = None


@dataclass(frozen=True)
class RequiredImportRule:
    """Every file matching ``applies_to`` must contain all ``required``."""

    applies_to: str
    required: tuple[str, ...]
    severity: Severity = Severity.ERROR


@dataclass(frozen=True)
class PackageManifestRules:
    required_scripts: tuple[str, ...] = ()
    required_dependencies: tuple[str, ...] = ()
    required_dev_dependencies: tuple[str, ...] = ()

    @property
    def empty(self) -> bool:
        return not (
            self.required_scripts
            or self.required_dependencies
            or self.required_dev_dependencies
        )


@dataclass(frozen=True)
class RuleSchema:
    required_files: tuple[str, ...] = ()
    forbidden_patterns: tuple[Rule, ...] = ()
    required_imports: tuple[RequiredImportRule, ...] = ()
    package_manifest_rules: PackageManifestRules = field(
        default_factory=PackageManifestRules
    )


def compile_pattern(pattern: str, flags: str = "") -> re.Pattern[str]:
    """Compile a rule pattern, translating JavaScript-style flag letters."""
    value = 0
    for letter in flags:
        if letter not in _REGEX_FLAGS:
            msg = f"Unsupported regex flag {letter!r} (expected any of 'ims')"
            raise ValueError(msg)
        value |= _REGEX_FLAGS[letter]
    return re.compile(pattern, value)


def compile_schema(document: SchemaDocument) -> RuleSchema:
    """Turn a validated schema document into an immutable RuleSchema."""
    rules: list[Rule] = []
    for entry in document.forbidden_patterns:
        try:
            compiled = compile_pattern(entry.pattern, entry.flags)
        except (re.error, ValueError) as exc:
            msg = f"Invalid pattern for rule {entry.name!r}: {exc}"
            raise FatalLoadError(msg) from exc
        rules.append(
            Rule(
                pattern=compiled,
                name=entry.name,
                severity=entry.severity,
                exceptions=tuple(entry.exceptions),
                applies_to=entry.applies_to,
            )
        )

    manifest = document.package_manifest_rules
    return RuleSchema(
        required_files=tuple(document.required_files),
        forbidden_patterns=tuple(rules),
        required_imports=tuple(
            RequiredImportRule(applies_to=glob, required=tuple(required))
            for glob, required in document.required_imports.items()
        ),
        package_manifest_rules=PackageManifestRules(
            required_scripts=tuple(manifest.required_scripts),
            required_dependencies=tuple(manifest.required_dependencies),
            required_dev_dependencies=tuple(manifest.required_dev_dependencies),
        ),
    )


def parse_schema(data: Any, *, source: str = "<schema>") -> RuleSchema:
    """Validate raw schema data (already decoded) and compile it."""
    try:
        document = SchemaDocument.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid schema in {source}: {exc}"
        raise FatalLoadError(msg) from exc
    return compile_schema(document)


def load_schema(path: Path) -> RuleSchema:
    """Load a rule schema from a ``.json`` or ``.toml`` document.

    Any failure here is fatal: a run cannot start without its schema.
    """
    if not path.is_file():
        msg = f"Schema file not found: {path}"
        raise FatalLoadError(msg)

    try:
        raw = path.read_bytes()
    except OSError as exc:
        msg = f"Failed to read schema {path}: {exc}"
        raise FatalLoadError(msg) from exc

    try:
        if path.suffix == ".toml":
            data = tomllib.loads(raw.decode("utf-8"))
        else:
            data = orjson.loads(raw)
    except (tomllib.TOMLDecodeError, orjson.JSONDecodeError, UnicodeDecodeError) as exc:
        msg = f"Invalid schema document {path}: {exc}"
        raise FatalLoadError(msg) from exc

    schema = parse_schema(data, source=str(path))
    logger.debug(
        "Loaded schema %s: %d required files, %d forbidden patterns, "
        "%d required import rules",
        path,
        len(schema.required_files),
        len(schema.forbidden_patterns),
        len(schema.required_imports),
    )
    return schema


__all__ = [
    "ForbiddenPatternDef",
    "PackageManifestRules",
    "PackageManifestRulesDef",
    "RequiredImportRule",
    "Rule",
    "RuleSchema",
    "SchemaDocument",
    "compile_pattern",
    "compile_schema",
    "load_schema",
    "parse_schema",
]
