"""Graph algorithms for the declared module graph."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    connection_id: str


@dataclass(frozen=True)
class ModuleGraph:
    """Directed edges between module names, labelled with connection ids.

    Built once per run from the connection documents; never mutated.
    """

    nodes: frozenset[str] = field(default_factory=frozenset)
    edges: tuple[Edge, ...] = ()

    @classmethod
    def from_edges(
        cls, edges: Iterable[Edge], nodes: Iterable[str] = ()
    ) -> ModuleGraph:
        edge_list = tuple(edges)
        all_nodes = set(nodes)
        for edge in edge_list:
            all_nodes.add(edge.source)
            all_nodes.add(edge.target)
        return cls(nodes=frozenset(all_nodes), edges=edge_list)

    def adjacency(self) -> dict[str, set[str]]:
        graph = build_dependency_graph(
            (edge.source, edge.target) for edge in self.edges
        )
        for node in self.nodes:
            graph.setdefault(node, set())
        return graph

    def edge_ids(self, source: str, target: str) -> list[str]:
        return [
            edge.connection_id
            for edge in self.edges
            if edge.source == source and edge.target == target
        ]


def build_dependency_graph(edges: Iterable[tuple[str, str]]) -> dict[str, set[str]]:
    """Build an adjacency mapping from (source, target) pairs.

    Returns:
        Dictionary where keys are module names and values are the sets of
        modules they depend on. Every endpoint appears as a key.
    """
    graph: dict[str, set[str]] = defaultdict(set)

    for source, target in edges:
        graph[source].add(target)
        graph.setdefault(target, set())

    return dict(graph)


class _TarjanState:
    """Mutable state container for Tarjan's SCC algorithm."""

    def __init__(self) -> None:
        self.index = 0
        self.indices: dict[str, int] = {}
        self.low_link: dict[str, int] = {}
        self.on_stack: set[str] = set()
        self.stack: list[str] = []
        self.sccs: list[list[str]] = []


def _extract_scc(state: _TarjanState, root: str) -> list[str]:
    """Extract a strongly connected component from the stack."""
    scc: list[str] = []
    while state.stack:
        w = state.stack.pop()
        state.on_stack.remove(w)
        scc.append(w)
        if w == root:
            break
    if root not in scc:
        msg = (
            f"Tarjan algorithm invariant violated: root node {root!r} "
            "not found in stack during SCC extraction."
        )
        raise RuntimeError(msg)
    return scc


def _sorted_neighbors(graph: dict[str, set[str]], node: str) -> Iterator[str]:
    return iter(sorted(graph.get(node, set())))


def _enter(node: str, state: _TarjanState) -> None:
    state.indices[node] = state.index
    state.low_link[node] = state.index
    state.index += 1
    state.stack.append(node)
    state.on_stack.add(node)


def _strongconnect(root: str, graph: dict[str, set[str]], state: _TarjanState) -> None:
    """Process one DFS tree of Tarjan's algorithm with an explicit work stack."""
    _enter(root, state)
    work: list[tuple[str, Iterator[str]]] = [(root, _sorted_neighbors(graph, root))]

    while work:
        node, neighbors = work[-1]
        descended = False
        for neighbor in neighbors:
            if neighbor not in state.indices:
                _enter(neighbor, state)
                work.append((neighbor, _sorted_neighbors(graph, neighbor)))
                descended = True
                break
            if neighbor in state.on_stack:
                state.low_link[node] = min(
                    state.low_link[node], state.indices[neighbor]
                )
        if descended:
            continue

        work.pop()
        if work:
            parent = work[-1][0]
            state.low_link[parent] = min(state.low_link[parent], state.low_link[node])
        if state.low_link[node] == state.indices[node]:
            state.sccs.append(_extract_scc(state, node))


def strongly_connected_components(graph: dict[str, set[str]]) -> list[list[str]]:
    """Return every strongly connected component, singletons included."""
    state = _TarjanState()

    for node in sorted(graph):
        if node not in state.indices:
            _strongconnect(node, graph, state)

    return state.sccs


def _unblock(node: str, blocked: set[str], blocked_by: dict[str, set[str]]) -> None:
    pending = {node}
    while pending:
        current = pending.pop()
        if current in blocked:
            blocked.remove(current)
            pending.update(blocked_by[current])
            blocked_by[current].clear()


def _circuits(start: str, graph: dict[str, set[str]]) -> list[list[str]]:
    """Elementary cycles through ``start`` inside one component (Johnson)."""
    cycles: list[list[str]] = []
    blocked = {start}
    blocked_by: dict[str, set[str]] = defaultdict(set)
    closed: set[str] = set()
    path = [start]
    work: list[tuple[str, Iterator[str]]] = [(start, _sorted_neighbors(graph, start))]

    while work:
        node, neighbors = work[-1]
        descended = False
        for neighbor in neighbors:
            if neighbor == start:
                cycles.append(list(path))
                closed.update(path)
            elif neighbor not in blocked:
                path.append(neighbor)
                closed.discard(neighbor)
                blocked.add(neighbor)
                work.append((neighbor, _sorted_neighbors(graph, neighbor)))
                descended = True
                break
        if descended:
            continue

        if node in closed:
            _unblock(node, blocked, blocked_by)
        else:
            for neighbor in graph[node]:
                blocked_by[neighbor].add(node)
        work.pop()
        path.pop()

    return cycles


def find_cycles(graph: dict[str, set[str]]) -> list[list[str]]:
    """Find every elementary cycle in a directed graph.

    Tarjan's algorithm narrows the search to strongly connected components;
    inside each one Johnson's circuit search starts from the smallest node,
    records the cycles through it, removes it and repeats on what remains.
    Each cycle therefore starts at its smallest node and is reported once.
    Self-loops are ignored here; see ``find_self_loops``.

    Both searches keep their own stacks, so path length is not bounded by the
    interpreter's recursion limit.

    Args:
        graph: Dictionary representing the graph

    Returns:
        Sorted list of cycles, where each cycle is an ordered list of nodes
    """
    adjacency = {
        node: {target for target in targets if target != node}
        for node, targets in graph.items()
    }
    for targets in list(adjacency.values()):
        for target in targets:
            adjacency.setdefault(target, set())

    cycles: list[list[str]] = []
    pending = [
        scc for scc in strongly_connected_components(adjacency) if len(scc) > 1
    ]
    while pending:
        component = set(pending.pop())
        start = min(component)
        subgraph = {
            node: adjacency[node] & component for node in sorted(component)
        }
        cycles.extend(_circuits(start, subgraph))

        component.discard(start)
        remainder = {node: subgraph[node] - {start} for node in component}
        pending.extend(
            scc for scc in strongly_connected_components(remainder) if len(scc) > 1
        )

    return sorted(cycles)


def find_mutual_pairs(graph: dict[str, set[str]]) -> list[list[str]]:
    """Find direct mutual dependencies (``A -> B`` and ``B -> A``).

    Every pair is also a two-node cycle of ``find_cycles``; longer loops
    such as ``A -> B -> C -> A`` are not detected here.
    """
    pairs: list[list[str]] = []
    for source in sorted(graph):
        for target in sorted(graph[source]):
            if source < target and source in graph.get(target, set()):
                pairs.append([source, target])
    return pairs


def find_self_loops(graph: dict[str, set[str]]) -> list[str]:
    return sorted(node for node, targets in graph.items() if node in targets)


__all__ = [
    "Edge",
    "ModuleGraph",
    "_TarjanState",
    "_extract_scc",
    "_strongconnect",
    "build_dependency_graph",
    "find_cycles",
    "find_mutual_pairs",
    "find_self_loops",
    "strongly_connected_components",
]
