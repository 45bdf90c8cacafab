"""Human-readable rendering of a Report."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rules.severity import SEVERITY_ORDER

if TYPE_CHECKING:
    from report.models import Report


def render_text(report: Report) -> str:
    """Render every finding and contract error grouped by severity."""
    lines: list[str] = []

    for severity in SEVERITY_ORDER:
        findings = [f for f in report.findings if f.severity == severity]
        errors = [e for e in report.contract_errors if e.severity == severity]
        if not findings and not errors:
            continue
        lines.append(f"{severity.value.upper()} ({len(findings) + len(errors)})")
        for finding in findings:
            lines.append(f"  {finding.location()}: [{finding.rule}] {finding.message}")
        for error in errors:
            lines.append(f"  {error.location()}: [{error.kind}] {error.message}")
        lines.append("")

    if report.cycles:
        lines.append("Cycles:")
        for cycle in report.cycles:
            lines.append("  " + " -> ".join([*cycle, cycle[0]]))
        lines.append("")

    counts = ", ".join(
        f"{report.counts.get(severity.value, 0)} {severity.value}"
        for severity in SEVERITY_ORDER
    )
    status = "PASSED" if report.ok else "FAILED"
    lines.append(f"{status}: {counts}")
    return "\n".join(lines) + "\n"


__all__ = ["render_text"]
