"""Run orchestration for archguard pipelines."""

from pipeline.run import (
    CheckRun,
    RunPhase,
    run_all,
    run_connections,
    run_module,
    run_patterns,
)

__all__ = [
    "CheckRun",
    "RunPhase",
    "run_all",
    "run_connections",
    "run_module",
    "run_patterns",
]
