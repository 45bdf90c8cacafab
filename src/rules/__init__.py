"""Rule schema, configuration and severity policy for archguard."""

from rules.config import (
    ArchGuardConfig,
    ConfigError,
    ConnectionsConfig,
    CycleDetection,
    find_schema,
    load_config,
)
from rules.errors import FatalLoadError
from rules.schema import Rule, RuleSchema, load_schema, parse_schema
from rules.severity import Evaluation, FailOn, Severity, evaluate

__all__ = [
    "ArchGuardConfig",
    "ConfigError",
    "ConnectionsConfig",
    "CycleDetection",
    "Evaluation",
    "FailOn",
    "FatalLoadError",
    "Rule",
    "RuleSchema",
    "Severity",
    "evaluate",
    "find_schema",
    "load_config",
    "load_schema",
    "parse_schema",
]
