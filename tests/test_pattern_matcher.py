from __future__ import annotations

import os
from pathlib import Path

import pytest

from rules.schema import parse_schema
from rules.severity import Severity
from scan.matcher import rule_applies, scan, scan_file

PASSWORD_RULE = {
    "pattern": "password\\s*=\\s*['\"][^'\"]+['\"]",
    "name": "Hardcoded passwords",
    "severity": "error",
    "exceptions": [".env.example"],
}


def _write(root: Path, rel_path: str, content: str) -> Path:
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_password_scenario_respects_exception(tmp_path: Path) -> None:
    _write(tmp_path, "config.ts", 'const password = "x"\n')
    _write(tmp_path, ".env.example", 'password = "x"\n')
    schema = parse_schema({"forbiddenPatterns": [PASSWORD_RULE]})

    findings = scan(tmp_path, schema)

    assert len(findings) == 1
    finding = findings[0]
    assert finding.file == "config.ts"
    assert finding.severity == Severity.ERROR
    assert finding.kind == "forbidden-pattern"
    assert finding.rule == "Hardcoded passwords"
    assert (finding.line, finding.column) == (1, 7)


def test_each_match_is_a_separate_finding(tmp_path: Path) -> None:
    _write(
        tmp_path,
        "src/app.ts",
        "console.log(1)\nconst a = 1\nconsole.debug(2); console.info(3)\n",
    )
    schema = parse_schema(
        {
            "forbiddenPatterns": [
                {
                    "pattern": "console\\.(log|debug|info)",
                    "name": "Console statements",
                    "severity": "warning",
                }
            ]
        }
    )

    findings = scan(tmp_path, schema)

    assert [(f.line, f.column) for f in findings] == [(1, 1), (3, 1), (3, 19)]
    assert all(f.severity == Severity.WARNING for f in findings)


def test_glob_exceptions_skip_whole_directories(tmp_path: Path) -> None:
    _write(tmp_path, "scripts/seed.js", "console.log('seed')\n")
    _write(tmp_path, "src/utils/logger.ts", "console.info('x')\n")
    _write(tmp_path, "src/app.ts", "console.log('x')\n")
    schema = parse_schema(
        {
            "forbiddenPatterns": [
                {
                    "pattern": "console\\.(log|debug|info)",
                    "name": "Console statements",
                    "exceptions": ["src/utils/logger.ts", "scripts/**"],
                    "severity": "warning",
                }
            ]
        }
    )

    findings = scan(tmp_path, schema)

    assert [f.file for f in findings] == ["src/app.ts"]


def test_applies_to_restricts_scope(tmp_path: Path) -> None:
    _write(tmp_path, "src/routes/users.ts", "fetch('/x')\n")
    _write(tmp_path, "src/api/client.ts", "fetch('/x')\n")
    schema = parse_schema(
        {
            "forbiddenPatterns": [
                {
                    "pattern": "fetch\\(",
                    "name": "Direct fetch in routes",
                    "appliesTo": "src/routes/**",
                }
            ]
        }
    )

    findings = scan(tmp_path, schema)

    assert [f.file for f in findings] == ["src/routes/users.ts"]


def test_rule_applies_checks_exceptions_before_scope() -> None:
    schema = parse_schema(
        {
            "forbiddenPatterns": [
                {
                    "pattern": "x",
                    "name": "x",
                    "appliesTo": "src/**",
                    "exceptions": ["src/legacy/**"],
                }
            ]
        }
    )
    rule = schema.forbidden_patterns[0]

    assert rule_applies(rule, "src/app.ts") is True
    assert rule_applies(rule, "src/legacy/app.ts") is False
    assert rule_applies(rule, "lib/app.ts") is False


def test_required_imports_report_each_missing_import(tmp_path: Path) -> None:
    _write(
        tmp_path,
        "src/routes/ok.ts",
        "import express from 'express'\nimport { Router } from 'express'\n",
    )
    _write(tmp_path, "src/routes/partial.ts", "import express from 'express'\n")
    _write(tmp_path, "src/routes/v2/empty.ts", "export {}\n")
    _write(tmp_path, "src/other.ts", "export {}\n")
    schema = parse_schema(
        {
            "requiredImports": {
                "src/routes/**/*.ts": ["import express", "import { Router"]
            }
        }
    )

    findings = scan(tmp_path, schema)

    assert [(f.file, f.message) for f in findings] == [
        ("src/routes/partial.ts", "Missing required import 'import { Router'"),
        ("src/routes/v2/empty.ts", "Missing required import 'import express'"),
        ("src/routes/v2/empty.ts", "Missing required import 'import { Router'"),
    ]
    assert all(f.kind == "required-import" for f in findings)
    assert all(f.severity == Severity.ERROR for f in findings)


def test_required_files_checked_once_each(tmp_path: Path) -> None:
    _write(tmp_path, "README.md", "# x\n")
    schema = parse_schema(
        {"requiredFiles": ["README.md", "tsconfig.json", ".gitignore"]}
    )

    findings = scan(tmp_path, schema)

    assert [(f.kind, f.file) for f in findings] == [
        ("required-file", "tsconfig.json"),
        ("required-file", ".gitignore"),
    ]


def test_binary_file_becomes_scan_error_and_scan_continues(tmp_path: Path) -> None:
    (tmp_path / "image.bin").write_bytes(b"\x89PNG\x00\x01password = 'x'")
    _write(tmp_path, "main.ts", "password = 'y'\n")
    schema = parse_schema({"forbiddenPatterns": [PASSWORD_RULE]})

    findings = scan(tmp_path, schema)

    assert [(f.file, f.kind, f.severity) for f in findings] == [
        ("image.bin", "scan-error", Severity.WARNING),
        ("main.ts", "forbidden-pattern", Severity.ERROR),
    ]


def test_oversized_file_becomes_scan_error(tmp_path: Path) -> None:
    path = _write(tmp_path, "big.ts", "password = 'x'\n" * 100)
    schema = parse_schema({"forbiddenPatterns": [PASSWORD_RULE]})

    findings = scan_file(path, "big.ts", schema, max_file_bytes=64)

    assert len(findings) == 1
    assert findings[0].kind == "scan-error"
    assert "exceeds size limit" in findings[0].message


@pytest.mark.skipif(
    os.name == "nt" or (hasattr(os, "geteuid") and os.geteuid() == 0),
    reason="Permission bits are not enforced for this user.",
)
def test_unreadable_file_becomes_scan_error(tmp_path: Path) -> None:
    path = _write(tmp_path, "secret.ts", "password = 'x'\n")
    path.chmod(0)
    schema = parse_schema({"forbiddenPatterns": [PASSWORD_RULE]})

    try:
        findings = scan(tmp_path, schema)
    finally:
        path.chmod(0o644)

    assert [f.kind for f in findings] == ["scan-error"]


def test_files_without_applicable_rules_are_not_read(tmp_path: Path) -> None:
    (tmp_path / "image.bin").write_bytes(b"\x00\x01")
    schema = parse_schema(
        {"forbiddenPatterns": [{**PASSWORD_RULE, "appliesTo": "src/**"}]}
    )

    assert scan(tmp_path, schema) == []


def test_gitignore_and_exclude_patterns_skip_files(tmp_path: Path) -> None:
    _write(tmp_path, ".gitignore", "*.gen.ts\n")
    _write(tmp_path, "src/out.gen.ts", "password = 'x'\n")
    _write(tmp_path, "vendor/lib.ts", "password = 'x'\n")
    _write(tmp_path, "node_modules/pkg/index.js", "password = 'x'\n")
    _write(tmp_path, "src/app.ts", "password = 'x'\n")
    schema = parse_schema({"forbiddenPatterns": [PASSWORD_RULE]})

    findings = scan(tmp_path, schema, exclude_patterns=["vendor/**"])

    assert [f.file for f in findings] == ["src/app.ts"]


def test_scan_is_deterministic_across_worker_counts(tmp_path: Path) -> None:
    for index in range(25):
        _write(
            tmp_path,
            f"pkg{index % 4}/mod{index}.ts",
            "password = 'x'\nconsole.log(1)\n" * (index % 3 + 1),
        )
    schema = parse_schema(
        {
            "forbiddenPatterns": [
                PASSWORD_RULE,
                {"pattern": "console\\.log", "name": "console", "severity": "warning"},
            ]
        }
    )

    serial = scan(tmp_path, schema, workers=1)
    parallel = scan(tmp_path, schema, workers=8)

    assert serial == parallel
    assert scan(tmp_path, schema, workers=8) == parallel
    assert [f.file for f in serial] == sorted(f.file for f in serial)


def test_findings_are_ordered_by_file_then_rule(tmp_path: Path) -> None:
    _write(tmp_path, "a.ts", "console.log(1)\npassword = 'x'\n")
    _write(tmp_path, "b.ts", "password = 'x'\n")
    schema = parse_schema(
        {
            "forbiddenPatterns": [
                PASSWORD_RULE,
                {"pattern": "console\\.log", "name": "console", "severity": "warning"},
            ]
        }
    )

    findings = scan(tmp_path, schema)

    assert [(f.file, f.rule) for f in findings] == [
        ("a.ts", "Hardcoded passwords"),
        ("a.ts", "console"),
        ("b.ts", "Hardcoded passwords"),
    ]


def test_zero_width_match_is_a_finding(tmp_path: Path) -> None:
    _write(tmp_path, "src/run.ts", "const y = 1\nlet x = eval(x)\n")
    schema = parse_schema(
        {"forbiddenPatterns": [{"pattern": "(?=eval\\()", "name": "No eval"}]}
    )

    findings = scan(tmp_path, schema)

    assert [(f.line, f.column, f.message) for f in findings] == [
        (2, 9, "No eval: let x = eval(x)")
    ]
