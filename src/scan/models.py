"""Finding records produced by the pattern matcher."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from rules.severity import Severity

FindingKind = Literal[
    "forbidden-pattern",
    "required-import",
    "required-file",
    "package-manifest",
    "scan-error",
]

SCAN_ERROR_RULE = "scan-error"


class Finding(BaseModel):
    """One concrete rule violation produced by a scan."""

    model_config = ConfigDict(frozen=True)

    rule: str
    kind: FindingKind
    file: str
    severity: Severity
    message: str
    line: int | None = None
    column: int | None = None

    def location(self) -> str:
        if self.line is None:
            return self.file
        if self.column is None:
            return f"{self.file}:{self.line}"
        return f"{self.file}:{self.line}:{self.column}"


__all__ = ["SCAN_ERROR_RULE", "Finding", "FindingKind"]
