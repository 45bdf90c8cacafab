"""In-memory registry of declared modules."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from contract.models import Module

logger = logging.getLogger(__name__)


class DuplicateModuleError(Exception):
    """Raised when a different module source claims an already registered name."""

    def __init__(self, name: str, existing: str | None, incoming: str | None) -> None:
        self.name = name
        self.existing = existing
        self.incoming = incoming
        super().__init__(
            f"Module {name!r} is already registered from {existing!r}; "
            f"refusing registration from {incoming!r}"
        )


class ModuleRegistry:
    """Modules keyed by name.

    Re-registering a name from the same source replaces the whole record.
    Writes (``register``, ``reload``) and reads are serialised by a single
    lock so one registry can be shared by a long-lived process.
    """

    def __init__(self, modules: Iterable[Module] = ()) -> None:
        self._lock = threading.RLock()
        self._modules: dict[str, Module] = {}
        for module in modules:
            self.register(module)

    def register(self, module: Module) -> None:
        with self._lock:
            existing = self._modules.get(module.name)
            if existing is not None and existing.source != module.source:
                raise DuplicateModuleError(module.name, existing.source, module.source)
            if existing is not None:
                logger.debug("Replacing module record %s", module.name)
            self._modules[module.name] = module

    def reload(self, modules: Iterable[Module]) -> None:
        """Replace every record at once with a freshly loaded set."""
        fresh = ModuleRegistry(modules)
        with self._lock:
            self._modules = fresh.snapshot()

    def resolve(self, name: str) -> Module | None:
        with self._lock:
            return self._modules.get(name)

    def snapshot(self) -> dict[str, Module]:
        with self._lock:
            return dict(self._modules)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._modules)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._modules

    def __len__(self) -> int:
        with self._lock:
            return len(self._modules)

    def __iter__(self) -> Iterator[Module]:
        snapshot = self.snapshot()
        return iter([snapshot[name] for name in sorted(snapshot)])


__all__ = ["DuplicateModuleError", "ModuleRegistry"]
