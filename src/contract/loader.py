"""Loading of module and connection documents from disk.

Layout::

    <modules_dir>/<module-name>/MODULE.md
    <modules_dir>/<module-name>/contract.json
    <modules_dir>/<module-name>/dependencies.json
    <connections_dir>/<connection>.json
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import orjson
from pydantic import ValidationError

from contract.models import FunctionSignature, Module, ModuleStatus
from contract.registry import DuplicateModuleError, ModuleRegistry
from rules.errors import FatalLoadError

logger = logging.getLogger(__name__)

MODULE_DOC = "MODULE.md"
MODULE_CONTRACT = "contract.json"
MODULE_DEPENDENCIES = "dependencies.json"

_DOC_FIELD = re.compile(r"^\*\*(?P<key>[A-Za-z ]+):\*\*\s*(?P<value>.*?)\s*$", re.M)


@dataclass(frozen=True)
class ModuleSource:
    """Raw documents found in one module directory."""

    name: str
    directory: Path
    module_doc: str | None
    contract: dict[str, Any] | None
    dependencies: Any

    def doc_field(self, key: str) -> str | None:
        if self.module_doc is None:
            return None
        for match in _DOC_FIELD.finditer(self.module_doc):
            if match.group("key").strip().lower() == key.lower():
                return match.group("value")
        return None


@dataclass(frozen=True)
class ConnectionDocument:
    """One connection contract file, decoded when possible."""

    path: Path
    data: Any = None
    error: str | None = None

    @property
    def stem(self) -> str:
        return self.path.stem


def _read_json(path: Path) -> Any:
    try:
        return orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as exc:
        msg = f"Invalid JSON in {path}: {exc}"
        raise FatalLoadError(msg) from exc


def load_module_source(directory: Path) -> ModuleSource:
    module_doc = None
    doc_path = directory / MODULE_DOC
    if doc_path.is_file():
        try:
            module_doc = doc_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Failed to read {doc_path}: {exc}"
            raise FatalLoadError(msg) from exc

    contract = None
    contract_path = directory / MODULE_CONTRACT
    if contract_path.is_file():
        contract = _read_json(contract_path)
        if not isinstance(contract, dict):
            msg = f"Expected JSON object in {contract_path}"
            raise FatalLoadError(msg)

    dependencies = None
    dependencies_path = directory / MODULE_DEPENDENCIES
    if dependencies_path.is_file():
        dependencies = _read_json(dependencies_path)

    return ModuleSource(
        name=directory.name,
        directory=directory,
        module_doc=module_doc,
        contract=contract,
        dependencies=dependencies,
    )


def _string_list(value: Any) -> list[str]:
    if isinstance(value, dict):
        value = value.get("dependencies")
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def declared_dependencies(source: ModuleSource) -> frozenset[str]:
    """Union of contract.json ``dependencies`` and dependencies.json."""
    names: set[str] = set()
    if source.contract is not None:
        names.update(_string_list(source.contract.get("dependencies")))
    names.update(_string_list(source.dependencies))
    return frozenset(names)


def parse_status(raw: str | None) -> ModuleStatus | None:
    if raw is None:
        return ModuleStatus.ACTIVE
    try:
        return ModuleStatus(raw.strip().lower())
    except ValueError:
        return None


def parse_interface(contract: dict[str, Any] | None) -> dict[str, FunctionSignature]:
    """Parse ``publicInterface``; malformed entries are skipped."""
    if contract is None:
        return {}
    raw = contract.get("publicInterface")
    if not isinstance(raw, dict):
        return {}
    interface: dict[str, FunctionSignature] = {}
    for name, entry in raw.items():
        if not isinstance(entry, dict):
            continue
        try:
            interface[name] = FunctionSignature.model_validate({"name": name, **entry})
        except ValidationError:
            logger.debug("Skipping malformed interface entry %s", name)
    return interface


def module_from_source(source: ModuleSource) -> Module:
    version = source.contract.get("version") if source.contract else None
    return Module(
        name=source.name,
        owner=source.doc_field("Owner") or "",
        status=parse_status(source.doc_field("Status")) or ModuleStatus.ACTIVE,
        version=version if isinstance(version, str) else None,
        declared_interface=parse_interface(source.contract),
        declared_dependencies=declared_dependencies(source),
        source=source.directory.as_posix(),
    )


def load_module_sources(modules_dir: Path) -> list[ModuleSource]:
    """Load every module directory, sorted by name.

    A missing directory means no modules are declared. Unreadable documents
    are fatal: the registry cannot be built without them.
    """
    if not modules_dir.exists():
        logger.info("No modules directory at %s", modules_dir)
        return []
    if not modules_dir.is_dir():
        msg = f"Modules path is not a directory: {modules_dir}"
        raise FatalLoadError(msg)

    return [
        load_module_source(directory)
        for directory in sorted(modules_dir.iterdir(), key=lambda p: p.name)
        if directory.is_dir() and not directory.name.startswith(".")
    ]


def build_registry(sources: list[ModuleSource]) -> ModuleRegistry:
    registry = ModuleRegistry()
    for source in sources:
        try:
            registry.register(module_from_source(source))
        except DuplicateModuleError as exc:
            raise FatalLoadError(str(exc)) from exc
    return registry


def load_connection_documents(connections_dir: Path) -> list[ConnectionDocument]:
    """Read every ``*.json`` connection contract, sorted by filename.

    Decoding problems are kept on the document so validation can report
    them alongside every other contract error.
    """
    if not connections_dir.is_dir():
        logger.info("No connections directory at %s", connections_dir)
        return []

    documents: list[ConnectionDocument] = []
    for path in sorted(connections_dir.glob("*.json"), key=lambda p: p.name):
        if not path.is_file():
            continue
        try:
            data = orjson.loads(path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as exc:
            documents.append(
                ConnectionDocument(path=path, error=f"Invalid JSON: {exc}.")
            )
            continue
        documents.append(ConnectionDocument(path=path, data=data))
    return documents


__all__ = [
    "MODULE_CONTRACT",
    "MODULE_DEPENDENCIES",
    "MODULE_DOC",
    "ConnectionDocument",
    "ModuleSource",
    "build_registry",
    "declared_dependencies",
    "load_connection_documents",
    "load_module_source",
    "load_module_sources",
    "module_from_source",
    "parse_interface",
    "parse_status",
]
