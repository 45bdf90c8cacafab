"""Validation of module contracts and connection contracts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict

from contract.loader import parse_status
from contract.models import (
    Connection,
    ConnectionKind,
    is_kebab_case,
    is_semver,
)
from graph.algos import Edge, ModuleGraph
from rules.severity import Severity

if TYPE_CHECKING:
    from contract.loader import ConnectionDocument, ModuleSource
    from contract.registry import ModuleRegistry

logger = logging.getLogger(__name__)

ContractErrorKind = Literal[
    "MalformedContract",
    "IncompleteContract",
    "DanglingModuleReference",
    "UnknownDependency",
    "Cycle",
    "SelfLoop",
]

REQUIRED_MODULE_DOC_SECTIONS = (
    "## Purpose",
    "## Responsibilities",
    "## Public Interface",
)
MODULE_DOC_PLACEHOLDER = "[MODULE_NAME]"

_BREAKING_CHANGES_KEYS = ("breaking_changes", "breakingChanges")


class ContractError(BaseModel):
    """One defect found in a module or connection contract."""

    model_config = ConfigDict(frozen=True)

    kind: ContractErrorKind
    severity: Severity
    source: str
    message: str
    connection_id: str | None = None
    modules: tuple[str, ...] = ()

    def location(self) -> str:
        if self.connection_id is None:
            return self.source
        return f"{self.source} ({self.connection_id})"


@dataclass
class GraphBuildResult:
    graph: ModuleGraph = field(default_factory=ModuleGraph)
    connections: list[Connection] = field(default_factory=list)
    errors: list[ContractError] = field(default_factory=list)


def _error(
    kind: ContractErrorKind,
    severity: Severity,
    source: str,
    message: str,
    **kwargs: Any,
) -> ContractError:
    return ContractError(
        kind=kind, severity=severity, source=source, message=message, **kwargs
    )


def _breaking_changes(data: dict[str, Any]) -> tuple[bool, Any]:
    for key in _BREAKING_CHANGES_KEYS:
        if key in data:
            return True, data[key]
    return False, None


def _check_connection(
    document: ConnectionDocument,
    registry: ModuleRegistry,
    errors: list[ContractError],
) -> Connection | None:
    source = document.path.as_posix()

    if document.error is not None:
        errors.append(
            _error("MalformedContract", Severity.ERROR, source, document.error)
        )
        return None

    data = document.data
    if not isinstance(data, dict):
        errors.append(
            _error(
                "MalformedContract",
                Severity.ERROR,
                source,
                "Expected JSON object for connection contract.",
            )
        )
        return None

    connection_id = data.get("id") if isinstance(data.get("id"), str) else None
    connection_id = connection_id or document.stem

    from_module = data.get("from")
    to_module = data.get("to")
    if not isinstance(from_module, str) or not from_module or (
        not isinstance(to_module, str) or not to_module
    ):
        errors.append(
            _error(
                "MalformedContract",
                Severity.ERROR,
                source,
                "Missing 'from' or 'to' field.",
                connection_id=connection_id,
            )
        )
        return None

    def incomplete(message: str) -> None:
        errors.append(
            _error(
                "IncompleteContract",
                Severity.WARNING,
                source,
                message,
                connection_id=connection_id,
            )
        )

    kind: ConnectionKind | None = None
    raw_kind = data.get("type")
    if raw_kind is not None:
        try:
            kind = ConnectionKind(raw_kind)
        except ValueError:
            expected = ", ".join(k.value for k in ConnectionKind)
            errors.append(
                _error(
                    "MalformedContract",
                    Severity.ERROR,
                    source,
                    f"Invalid 'type' {raw_kind!r} (expected one of: {expected}).",
                    connection_id=connection_id,
                )
            )

    if "interface" not in data:
        incomplete("Missing 'interface' field.")

    version = data.get("version")
    if version is None:
        incomplete("Missing 'version' field.")
    elif not isinstance(version, str) or not is_semver(version):
        incomplete(f"Version {version!r} is not a semver string.")
        version = None

    present, raw_breaking = _breaking_changes(data)
    breaking: tuple[str, ...] = ()
    if not present:
        incomplete("Missing 'breaking_changes' field (recommended for versioning).")
    elif not isinstance(raw_breaking, list) or not all(
        isinstance(item, str) for item in raw_breaking
    ):
        incomplete("'breaking_changes' must be a list of strings.")
    else:
        breaking = tuple(raw_breaking)

    unresolved = tuple(
        dict.fromkeys(
            endpoint
            for endpoint in (from_module, to_module)
            if registry.resolve(endpoint) is None
        )
    )
    if unresolved:
        names = ", ".join(f"'{name}'" for name in unresolved)
        errors.append(
            _error(
                "DanglingModuleReference",
                Severity.ERROR,
                source,
                f"Module {names} not found.",
                connection_id=connection_id,
                modules=unresolved,
            )
        )
        return None

    notes = data.get("notes")
    return Connection(
        id=connection_id,
        from_module=from_module,
        to_module=to_module,
        kind=kind,
        interface=data.get("interface"),
        version=version,
        breaking_changes=breaking,
        notes=notes if isinstance(notes, str) else None,
    )


def build_graph(
    documents: list[ConnectionDocument], registry: ModuleRegistry
) -> GraphBuildResult:
    """Parse connection documents into a module graph.

    Every document is checked, even after earlier ones fail, so one run
    reports the complete defect list. Only connections whose endpoints both
    resolve become edges.
    """
    result = GraphBuildResult()
    edges: list[Edge] = []

    for document in documents:
        connection = _check_connection(document, registry, result.errors)
        if connection is None:
            continue
        result.connections.append(connection)
        edges.append(
            Edge(
                source=connection.from_module,
                target=connection.to_module,
                connection_id=connection.id,
            )
        )
        logger.debug(
            "Edge %s -> %s (%s)",
            connection.from_module,
            connection.to_module,
            connection.id,
        )

    result.graph = ModuleGraph.from_edges(edges, nodes=registry.names())
    return result


def _check_module_doc(
    source: ModuleSource, path: str, errors: list[ContractError]
) -> None:
    if source.module_doc is None:
        errors.append(
            _error("MalformedContract", Severity.ERROR, path, "MODULE.md missing.")
        )
        return

    missing = [
        section
        for section in REQUIRED_MODULE_DOC_SECTIONS
        if section not in source.module_doc
    ]
    if missing:
        errors.append(
            _error(
                "IncompleteContract",
                Severity.WARNING,
                path,
                "MODULE.md missing required sections: "
                + ", ".join(section.lstrip("# ") for section in missing)
                + ".",
            )
        )

    if MODULE_DOC_PLACEHOLDER in source.module_doc:
        errors.append(
            _error(
                "IncompleteContract",
                Severity.WARNING,
                path,
                "MODULE.md appears to be an unmodified template.",
            )
        )

    raw_status = source.doc_field("Status")
    if parse_status(raw_status) is None:
        errors.append(
            _error(
                "MalformedContract",
                Severity.WARNING,
                path,
                f"Unknown module status {raw_status!r}; treating as active.",
            )
        )


def _check_module_contract(
    source: ModuleSource, path: str, errors: list[ContractError]
) -> None:
    contract = source.contract
    if contract is None:
        errors.append(
            _error("MalformedContract", Severity.ERROR, path, "contract.json missing.")
        )
        return

    missing = [key for key in ("version", "publicInterface") if key not in contract]
    if missing:
        errors.append(
            _error(
                "IncompleteContract",
                Severity.WARNING,
                path,
                f"contract.json missing required fields: {', '.join(missing)}.",
            )
        )

    interface = contract.get("publicInterface")
    if interface is None:
        return
    if not isinstance(interface, dict):
        errors.append(
            _error(
                "IncompleteContract",
                Severity.WARNING,
                path,
                "contract.json 'publicInterface' must be an object.",
            )
        )
        return
    for name, entry in interface.items():
        if (
            not isinstance(entry, dict)
            or not isinstance(entry.get("params", {}), dict)
            or "returns" not in entry
        ):
            errors.append(
                _error(
                    "IncompleteContract",
                    Severity.WARNING,
                    path,
                    f"Interface entry '{name}' needs 'params' and 'returns'.",
                )
            )


def validate_module(
    source: ModuleSource, registry: ModuleRegistry
) -> list[ContractError]:
    """Structural checks on one module's documents."""
    errors: list[ContractError] = []
    path = source.directory.as_posix()

    if not is_kebab_case(source.name):
        errors.append(
            _error(
                "MalformedContract",
                Severity.WARNING,
                path,
                f"Module name '{source.name}' is not kebab-case.",
            )
        )

    _check_module_doc(source, path, errors)
    _check_module_contract(source, path, errors)

    if source.dependencies is None:
        errors.append(
            _error(
                "IncompleteContract",
                Severity.WARNING,
                path,
                "dependencies.json missing (optional but recommended).",
            )
        )

    module = registry.resolve(source.name)
    if module is not None:
        for dependency in sorted(module.declared_dependencies):
            if dependency not in registry:
                errors.append(
                    _error(
                        "UnknownDependency",
                        Severity.WARNING,
                        path,
                        f"Dependency '{dependency}' is not a registered module.",
                        modules=(dependency,),
                    )
                )
    return errors


def validate_modules(
    sources: list[ModuleSource], registry: ModuleRegistry
) -> list[ContractError]:
    errors: list[ContractError] = []
    for source in sources:
        errors.extend(validate_module(source, registry))
    return errors


__all__ = [
    "ContractError",
    "ContractErrorKind",
    "GraphBuildResult",
    "build_graph",
    "validate_module",
    "validate_modules",
]
