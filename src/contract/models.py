"""Module and connection contract models."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

KEBAB_CASE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

SEMVER = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$"
)


class ModuleStatus(str, Enum):
    ACTIVE = "active"
    DEPRECATED = "deprecated"
    PLANNED = "planned"


class ConnectionKind(str, Enum):
    FUNCTION_CALL = "function-call"
    EVENT = "event"
    DATA_FLOW = "data-flow"


class FunctionSignature(BaseModel):
    """One entry of a module's declared public interface."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    params: dict[str, str] = Field(default_factory=dict)
    returns: str = ""
    description: str = ""


class Module(BaseModel):
    """A declared unit of ownership.

    ``source`` identifies where the record was loaded from; two records with
    the same name and the same source are the same module.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    owner: str = ""
    status: ModuleStatus = ModuleStatus.ACTIVE
    version: str | None = None
    declared_interface: dict[str, FunctionSignature] = Field(default_factory=dict)
    declared_dependencies: frozenset[str] = Field(default_factory=frozenset)
    source: str | None = None


class Connection(BaseModel):
    """A declared directed relationship between two modules."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    from_module: str = Field(alias="from")
    to_module: str = Field(alias="to")
    kind: ConnectionKind | None = Field(default=None, alias="type")
    interface: Any = None
    version: str | None = None
    breaking_changes: tuple[str, ...] = ()
    notes: str | None = None


def is_kebab_case(name: str) -> bool:
    return KEBAB_CASE.match(name) is not None


def is_semver(version: str) -> bool:
    return SEMVER.match(version) is not None


__all__ = [
    "Connection",
    "ConnectionKind",
    "FunctionSignature",
    "Module",
    "ModuleStatus",
    "is_kebab_case",
    "is_semver",
]
