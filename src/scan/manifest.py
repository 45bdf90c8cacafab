"""Package manifest (package.json) constraints."""

from __future__ import annotations

from typing import TYPE_CHECKING

import orjson

from rules.severity import Severity
from scan.models import Finding

if TYPE_CHECKING:
    from pathlib import Path

    from rules.schema import PackageManifestRules

PACKAGE_MANIFEST = "package.json"

_SECTIONS = (
    ("scripts", "required_scripts", "script"),
    ("dependencies", "required_dependencies", "dependency"),
    ("devDependencies", "required_dev_dependencies", "dev dependency"),
)


def _finding(rule: str, message: str) -> Finding:
    return Finding(
        rule=rule,
        kind="package-manifest",
        file=PACKAGE_MANIFEST,
        severity=Severity.ERROR,
        message=message,
    )


def check_package_manifest(root: Path, rules: PackageManifestRules) -> list[Finding]:
    """Check that package.json declares every required script and dependency."""
    if rules.empty:
        return []

    path = root / PACKAGE_MANIFEST
    if not path.is_file():
        return [_finding("package-manifest", "Package manifest is missing.")]

    try:
        data = orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as exc:
        return [_finding("package-manifest", f"Invalid package manifest: {exc}.")]

    if not isinstance(data, dict):
        return [_finding("package-manifest", "Expected JSON object for package.json.")]

    findings: list[Finding] = []
    for section, attr, label in _SECTIONS:
        declared = data.get(section)
        if not isinstance(declared, dict):
            declared = {}
        for name in getattr(rules, attr):
            if name not in declared:
                findings.append(
                    _finding(
                        f"package-manifest:{section}",
                        f"Missing required {label} '{name}' in {section}.",
                    )
                )
    return findings


__all__ = ["PACKAGE_MANIFEST", "check_package_manifest"]
