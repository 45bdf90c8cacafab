"""Run report model and its machine-readable form."""

from __future__ import annotations

import orjson
from pydantic import BaseModel, Field

from contract.validation import ContractError
from rules.severity import count_by_severity
from scan.models import Finding


def _empty_counts() -> dict[str, int]:
    return count_by_severity([])


class Report(BaseModel):
    """Outcome of one or both pipelines."""

    ok: bool = True
    counts: dict[str, int] = Field(default_factory=_empty_counts)
    findings: list[Finding] = Field(default_factory=list)
    contract_errors: list[ContractError] = Field(default_factory=list)
    cycles: list[list[str]] = Field(default_factory=list)
    self_loops: list[str] = Field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def merge(self, other: Report) -> Report:
        """Combine two pipeline reports; the result fails if either failed."""
        counts = {
            key: self.counts.get(key, 0) + other.counts.get(key, 0)
            for key in sorted(set(self.counts) | set(other.counts))
        }
        return Report(
            ok=self.ok and other.ok,
            counts=counts,
            findings=[*self.findings, *other.findings],
            contract_errors=[*self.contract_errors, *other.contract_errors],
            cycles=[*self.cycles, *other.cycles],
            self_loops=[*self.self_loops, *other.self_loops],
        )

    def to_json(self) -> bytes:
        opts = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2
        return orjson.dumps(self.model_dump(mode="json"), option=opts)

    @classmethod
    def from_json(cls, data: bytes | str) -> Report:
        return cls.model_validate(orjson.loads(data))


__all__ = ["Report"]
