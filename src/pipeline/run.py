"""Pipeline orchestration for pattern and connection checks.

Each run walks ``IDLE -> LOADING -> SCANNING|BUILDING -> AGGREGATING ->
REPORTED``. There is no retry: a failed run is fixed at the inputs and
started again.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from contract.loader import (
    build_registry,
    load_connection_documents,
    load_module_sources,
)
from contract.validation import (
    ContractError,
    build_graph,
    validate_module,
    validate_modules,
)
from graph.algos import find_cycles, find_mutual_pairs, find_self_loops
from report.models import Report
from rules.config import CycleDetection, find_schema, resolve_within_root
from rules.errors import FatalLoadError
from rules.schema import load_schema
from rules.severity import evaluate
from scan.matcher import scan

if TYPE_CHECKING:
    from pathlib import Path

    from contract.loader import ModuleSource
    from contract.registry import ModuleRegistry
    from graph.algos import ModuleGraph
    from rules.config import ArchGuardConfig, ConnectionsConfig
    from rules.schema import RuleSchema

logger = logging.getLogger(__name__)


class RunPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SCANNING = "scanning"
    BUILDING = "building"
    AGGREGATING = "aggregating"
    REPORTED = "reported"


_TRANSITIONS: dict[RunPhase, frozenset[RunPhase]] = {
    RunPhase.IDLE: frozenset({RunPhase.LOADING}),
    RunPhase.LOADING: frozenset({RunPhase.SCANNING, RunPhase.BUILDING}),
    RunPhase.SCANNING: frozenset({RunPhase.AGGREGATING}),
    RunPhase.BUILDING: frozenset({RunPhase.AGGREGATING}),
    RunPhase.AGGREGATING: frozenset({RunPhase.REPORTED}),
    RunPhase.REPORTED: frozenset(),
}


class CheckRun:
    """Tracks the phase of a single pipeline run."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.phase = RunPhase.IDLE
        self.report: Report | None = None

    def advance(self, phase: RunPhase) -> None:
        if phase not in _TRANSITIONS[self.phase]:
            msg = f"{self.name}: illegal transition {self.phase.value} -> {phase.value}"
            raise RuntimeError(msg)
        logger.debug("%s: %s -> %s", self.name, self.phase.value, phase.value)
        self.phase = phase

    def finish(self, report: Report) -> Report:
        self.advance(RunPhase.REPORTED)
        self.report = report
        logger.info(
            "%s: %s (%s)",
            self.name,
            "ok" if report.ok else "failed",
            ", ".join(f"{count} {name}" for name, count in report.counts.items()),
        )
        return report


def run_patterns(
    root: Path,
    config: ArchGuardConfig,
    *,
    schema: RuleSchema | None = None,
    schema_path: Path | None = None,
) -> Report:
    """Scan ``root`` against the rule schema and aggregate the findings.

    Raises:
        FatalLoadError: If no schema is given and none can be loaded.
    """
    run = CheckRun("patterns")
    run.advance(RunPhase.LOADING)
    if schema is None:
        path = schema_path or find_schema(root, config)
        if path is None:
            msg = f"No rule schema found under {root}"
            raise FatalLoadError(msg)
        schema = load_schema(path)

    run.advance(RunPhase.SCANNING)
    findings = scan(
        root,
        schema,
        exclude_patterns=config.exclude,
        nested_gitignore=config.nested_gitignore,
        max_file_bytes=config.max_file_bytes,
        workers=config.workers,
    )

    run.advance(RunPhase.AGGREGATING)
    evaluation = evaluate(findings, config.fail_on)
    return run.finish(
        Report(ok=evaluation.ok, counts=evaluation.counts, findings=findings)
    )


def detect_cycle_errors(
    graph: ModuleGraph, policy: ConnectionsConfig
) -> tuple[list[list[str]], list[str], list[ContractError]]:
    """Run cycle and self-loop detection and turn the results into errors."""
    adjacency = graph.adjacency()
    if policy.cycle_detection == CycleDetection.MUTUAL:
        cycles = find_mutual_pairs(adjacency)
    else:
        cycles = find_cycles(adjacency)
    self_loops = find_self_loops(adjacency)

    errors: list[ContractError] = []
    for cycle in cycles:
        closing = [*cycle[1:], cycle[0]]
        ids = [
            connection_id
            for source, target in zip(cycle, closing)
            for connection_id in graph.edge_ids(source, target)
        ]
        label = "Mutual dependency" if len(cycle) == 2 else "Circular dependency"
        errors.append(
            ContractError(
                kind="Cycle",
                severity=policy.cycle_severity,
                source=", ".join(ids),
                message=f"{label}: {' -> '.join([*cycle, cycle[0]])}",
                modules=tuple(cycle),
            )
        )
    for node in self_loops:
        errors.append(
            ContractError(
                kind="SelfLoop",
                severity=policy.self_loop_severity,
                source=", ".join(graph.edge_ids(node, node)),
                message=f"Module '{node}' declares a connection to itself.",
                modules=(node,),
            )
        )
    return cycles, self_loops, errors


def load_registry(
    root: Path, config: ArchGuardConfig
) -> tuple[list[ModuleSource], ModuleRegistry]:
    modules_dir = resolve_within_root(root, config.modules_dir, setting="modules_dir")
    sources = load_module_sources(modules_dir)
    return sources, build_registry(sources)


def run_connections(
    root: Path,
    config: ArchGuardConfig,
    *,
    registry: ModuleRegistry | None = None,
) -> Report:
    """Validate module contracts and the declared connection graph.

    A caller holding a long-lived registry may pass it in; otherwise the
    registry is loaded from ``config.modules_dir``.
    """
    run = CheckRun("connections")
    run.advance(RunPhase.LOADING)
    sources, loaded = load_registry(root, config)
    if registry is None:
        registry = loaded
    connections_dir = resolve_within_root(
        root, config.connections_dir, setting="connections_dir"
    )
    documents = load_connection_documents(connections_dir)

    run.advance(RunPhase.BUILDING)
    errors = validate_modules(sources, registry)
    built = build_graph(documents, registry)
    errors.extend(built.errors)
    cycles, self_loops, cycle_errors = detect_cycle_errors(
        built.graph, config.connections
    )
    errors.extend(cycle_errors)

    run.advance(RunPhase.AGGREGATING)
    evaluation = evaluate(errors, config.fail_on)
    return run.finish(
        Report(
            ok=evaluation.ok,
            counts=evaluation.counts,
            contract_errors=errors,
            cycles=cycles,
            self_loops=self_loops,
        )
    )


def run_module(root: Path, config: ArchGuardConfig, name: str) -> Report:
    """Validate a single module and the connections that touch it."""
    run = CheckRun(f"module:{name}")
    run.advance(RunPhase.LOADING)
    sources, registry = load_registry(root, config)
    source = next((s for s in sources if s.name == name), None)
    if source is None:
        msg = f"Module '{name}' not found in {config.modules_dir}"
        raise FatalLoadError(msg)
    connections_dir = resolve_within_root(
        root, config.connections_dir, setting="connections_dir"
    )
    documents = load_connection_documents(connections_dir)

    run.advance(RunPhase.BUILDING)
    errors = validate_module(source, registry)
    touching = [
        document
        for document in documents
        if isinstance(document.data, dict)
        and name in {document.data.get("from"), document.data.get("to")}
    ]
    errors.extend(build_graph(touching, registry).errors)

    run.advance(RunPhase.AGGREGATING)
    evaluation = evaluate(errors, config.fail_on)
    return run.finish(
        Report(ok=evaluation.ok, counts=evaluation.counts, contract_errors=errors)
    )


def run_all(
    root: Path,
    config: ArchGuardConfig,
    *,
    schema_path: Path | None = None,
) -> Report:
    """Run both pipelines and merge their reports."""
    return run_patterns(root, config, schema_path=schema_path).merge(
        run_connections(root, config)
    )


__all__ = [
    "CheckRun",
    "RunPhase",
    "detect_cycle_errors",
    "load_registry",
    "run_all",
    "run_connections",
    "run_module",
    "run_patterns",
]
