"""Declared module graph and cycle detection."""

from graph.algos import (
    Edge,
    ModuleGraph,
    find_cycles,
    find_mutual_pairs,
    find_self_loops,
)

__all__ = [
    "Edge",
    "ModuleGraph",
    "find_cycles",
    "find_mutual_pairs",
    "find_self_loops",
]
