"""Pattern matcher: applies a RuleSchema to a file tree."""

from __future__ import annotations

import logging
from bisect import bisect_right
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rules.severity import Severity
from scan.files import iter_files
from scan.manifest import check_package_manifest
from scan.models import SCAN_ERROR_RULE, Finding
from utils import match_any, match_glob

if TYPE_CHECKING:
    from pathlib import Path

    from rules.schema import RequiredImportRule, Rule, RuleSchema

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_BYTES = 1_048_576


@dataclass(frozen=True)
class _ReadResult:
    text: str | None
    error: str | None = None


def rule_applies(rule: Rule, rel_path: str) -> bool:
    """Return True when a forbidden-pattern rule covers the given path."""
    if rule.exceptions and match_any(rel_path, rule.exceptions):
        return False
    if rule.applies_to is not None:
        return match_glob(rel_path, rule.applies_to)
    return True


def _read_text(path: Path, max_file_bytes: int) -> _ReadResult:
    try:
        size = path.stat().st_size
    except OSError as exc:
        return _ReadResult(None, f"Failed to stat file: {exc}")
    if size > max_file_bytes:
        return _ReadResult(
            None, f"File exceeds size limit ({size} > {max_file_bytes} bytes)"
        )

    try:
        raw = path.read_bytes()
    except OSError as exc:
        return _ReadResult(None, f"Failed to read file: {exc}")

    if b"\x00" in raw:
        return _ReadResult(None, "Binary file (contains NUL bytes)")
    try:
        return _ReadResult(raw.decode("utf-8"))
    except UnicodeDecodeError as exc:
        return _ReadResult(None, f"File is not valid UTF-8: {exc}")


class _LineIndex:
    """Maps character offsets to 1-based (line, column) pairs."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._starts = [0]
        self._starts.extend(
            index + 1 for index, char in enumerate(text) if char == "\n"
        )

    def locate(self, offset: int) -> tuple[int, int]:
        line = bisect_right(self._starts, offset)
        return line, offset - self._starts[line - 1] + 1

    def line_text(self, line: int) -> str:
        start = self._starts[line - 1]
        end = self._text.find("\n", start)
        return self._text[start:] if end == -1 else self._text[start:end]


def _forbidden_findings(
    rule: Rule, rel_path: str, text: str, index: _LineIndex
) -> list[Finding]:
    findings: list[Finding] = []
    for match in rule.pattern.finditer(text):
        line, column = index.locate(match.start())
        # Lookaheads and anchors match empty text; quote the line instead.
        matched = match.group(0).splitlines()
        if matched and matched[0].strip():
            snippet = matched[0]
        else:
            snippet = index.line_text(line)
        findings.append(
            Finding(
                rule=rule.name,
                kind="forbidden-pattern",
                file=rel_path,
                severity=rule.severity,
                message=f"{rule.name}: {snippet.strip()[:120]}",
                line=line,
                column=column,
            )
        )
    return findings


def _required_import_findings(
    rule: RequiredImportRule, rel_path: str, text: str
) -> list[Finding]:
    return [
        Finding(
            rule=f"required-import:{rule.applies_to}",
            kind="required-import",
            file=rel_path,
            severity=rule.severity,
            message=f"Missing required import '{required}'",
        )
        for required in rule.required
        if required not in text
    ]


def scan_file(
    path: Path,
    rel_path: str,
    schema: RuleSchema,
    *,
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
) -> list[Finding]:
    """Evaluate every content rule against one file.

    Never raises for I/O problems: an unreadable, binary or oversized file
    becomes a single ``scan-error`` warning.
    """
    forbidden = [
        rule for rule in schema.forbidden_patterns if rule_applies(rule, rel_path)
    ]
    required = [
        rule
        for rule in schema.required_imports
        if match_glob(rel_path, rule.applies_to)
    ]
    if not forbidden and not required:
        return []

    result = _read_text(path, max_file_bytes)
    if result.text is None:
        logger.debug("Scan error for %s: %s", rel_path, result.error)
        return [
            Finding(
                rule=SCAN_ERROR_RULE,
                kind="scan-error",
                file=rel_path,
                severity=Severity.WARNING,
                message=result.error or "Unreadable file",
            )
        ]

    text = result.text
    index = _LineIndex(text)
    findings: list[Finding] = []
    for rule in forbidden:
        findings.extend(_forbidden_findings(rule, rel_path, text, index))
    for import_rule in required:
        findings.extend(_required_import_findings(import_rule, rel_path, text))
    return findings


def check_required_files(root: Path, schema: RuleSchema) -> list[Finding]:
    return [
        Finding(
            rule="required-file",
            kind="required-file",
            file=required,
            severity=Severity.ERROR,
            message=f"Required file is missing: {required}",
        )
        for required in schema.required_files
        if not (root / required).exists()
    ]


def scan(
    root: Path,
    schema: RuleSchema,
    *,
    exclude_patterns: list[str] | None = None,
    nested_gitignore: bool = False,
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
    workers: int = 1,
) -> list[Finding]:
    """Scan a file tree against a rule schema.

    Findings are ordered as: required files (schema order), per-file content
    findings (sorted relative path, then rule order), package manifest
    findings. Per-file work fans out over ``workers`` threads; results are
    gathered in submission order so the output never depends on which worker
    finishes first.
    """
    findings = check_required_files(root, schema)

    files = [
        (path, path.relative_to(root).as_posix())
        for path in iter_files(
            root,
            exclude_patterns=exclude_patterns,
            nested_gitignore=nested_gitignore,
        )
    ]
    logger.info(
        "Scanning %d files with %d rules", len(files), len(schema.forbidden_patterns)
    )

    if workers <= 1 or len(files) <= 1:
        for path, rel_path in files:
            findings.extend(
                scan_file(path, rel_path, schema, max_file_bytes=max_file_bytes)
            )
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(
                    scan_file, path, rel_path, schema, max_file_bytes=max_file_bytes
                )
                for path, rel_path in files
            ]
            for future in futures:
                findings.extend(future.result())

    findings.extend(check_package_manifest(root, schema.package_manifest_rules))
    return findings


__all__ = [
    "DEFAULT_MAX_FILE_BYTES",
    "check_required_files",
    "rule_applies",
    "scan",
    "scan_file",
]
