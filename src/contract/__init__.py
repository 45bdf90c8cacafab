"""Declared modules, connection contracts and their validation."""

from contract.loader import (
    ConnectionDocument,
    ModuleSource,
    build_registry,
    load_connection_documents,
    load_module_sources,
)
from contract.models import Connection, ConnectionKind, Module, ModuleStatus
from contract.registry import DuplicateModuleError, ModuleRegistry
from contract.validation import (
    ContractError,
    GraphBuildResult,
    build_graph,
    validate_module,
    validate_modules,
)

__all__ = [
    "Connection",
    "ConnectionDocument",
    "ConnectionKind",
    "ContractError",
    "DuplicateModuleError",
    "GraphBuildResult",
    "Module",
    "ModuleRegistry",
    "ModuleSource",
    "ModuleStatus",
    "build_graph",
    "build_registry",
    "load_connection_documents",
    "load_module_sources",
    "validate_module",
    "validate_modules",
]
