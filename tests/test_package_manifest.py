from __future__ import annotations

import json
from pathlib import Path

from rules.schema import PackageManifestRules
from scan.manifest import check_package_manifest

RULES = PackageManifestRules(
    required_scripts=("start", "test"),
    required_dependencies=("express",),
    required_dev_dependencies=("typescript",),
)


def _write_manifest(root: Path, data: object) -> None:
    (root / "package.json").write_text(json.dumps(data), encoding="utf-8")


def test_no_rules_means_no_findings(tmp_path: Path) -> None:
    assert check_package_manifest(tmp_path, PackageManifestRules()) == []


def test_missing_manifest_is_one_error(tmp_path: Path) -> None:
    findings = check_package_manifest(tmp_path, RULES)

    assert [f.message for f in findings] == ["Package manifest is missing."]


def test_complete_manifest_passes(tmp_path: Path) -> None:
    _write_manifest(
        tmp_path,
        {
            "scripts": {"start": "node .", "test": "jest"},
            "dependencies": {"express": "^4"},
            "devDependencies": {"typescript": "^5"},
        },
    )

    assert check_package_manifest(tmp_path, RULES) == []


def test_each_missing_entry_is_reported(tmp_path: Path) -> None:
    _write_manifest(tmp_path, {"scripts": {"start": "node ."}})

    findings = check_package_manifest(tmp_path, RULES)

    assert [f.message for f in findings] == [
        "Missing required script 'test' in scripts.",
        "Missing required dependency 'express' in dependencies.",
        "Missing required dev dependency 'typescript' in devDependencies.",
    ]
    assert {f.file for f in findings} == {"package.json"}
    assert {f.kind for f in findings} == {"package-manifest"}


def test_invalid_manifest_is_one_error(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text("{", encoding="utf-8")

    findings = check_package_manifest(tmp_path, RULES)

    assert len(findings) == 1
    assert findings[0].message.startswith("Invalid package manifest")
