from __future__ import annotations

import threading

import pytest

from contract.models import Module, ModuleStatus
from contract.registry import DuplicateModuleError, ModuleRegistry


def _module(name: str, *, owner: str = "team-a", source: str | None = None) -> Module:
    return Module(name=name, owner=owner, source=source or f".archguard/modules/{name}")


def test_register_and_resolve() -> None:
    registry = ModuleRegistry()
    registry.register(_module("pricing-engine"))

    module = registry.resolve("pricing-engine")

    assert module is not None
    assert module.owner == "team-a"
    assert module.status == ModuleStatus.ACTIVE
    assert registry.resolve("missing") is None


def test_reregistration_replaces_whole_record() -> None:
    registry = ModuleRegistry([_module("pricing-engine")])

    registry.register(
        Module(
            name="pricing-engine",
            owner="team-b",
            status=ModuleStatus.DEPRECATED,
            source=".archguard/modules/pricing-engine",
        )
    )

    assert len(registry) == 1
    module = registry.resolve("pricing-engine")
    assert module is not None
    assert module.owner == "team-b"
    assert module.status == ModuleStatus.DEPRECATED


def test_conflicting_source_raises_duplicate_error() -> None:
    registry = ModuleRegistry([_module("user-auth")])

    with pytest.raises(DuplicateModuleError, match="user-auth"):
        registry.register(_module("user-auth", source="elsewhere/user-auth"))

    module = registry.resolve("user-auth")
    assert module is not None
    assert module.source == ".archguard/modules/user-auth"


def test_names_iteration_and_membership_are_sorted() -> None:
    registry = ModuleRegistry([_module("b"), _module("a"), _module("c")])

    assert registry.names() == ["a", "b", "c"]
    assert [module.name for module in registry] == ["a", "b", "c"]
    assert "a" in registry
    assert "z" not in registry


def test_reload_replaces_every_record() -> None:
    registry = ModuleRegistry([_module("a"), _module("b")])

    registry.reload([_module("c")])

    assert registry.names() == ["c"]


def test_concurrent_readers_during_reload() -> None:
    registry = ModuleRegistry([_module("a")])
    seen: list[bool] = []

    def reader() -> None:
        for _ in range(200):
            seen.append(len(registry.names()) in {1, 2})

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for thread in threads:
        thread.start()
    for _ in range(50):
        registry.reload([_module("a"), _module("b")])
        registry.reload([_module("a")])
    for thread in threads:
        thread.join()

    assert all(seen)
