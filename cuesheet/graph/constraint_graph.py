"""
Precedence graph over performers.

An edge ``A -> B`` means A must perform before B. Edges come from two loose
fields on each performer: ``precedes_ids`` (forward edges) and
``succeeds_ids`` (reverse edges, normalised to the same direction). Each edge
remembers which field(s) produced it.

Cycle detection is a depth-first search with an explicit recursion stack;
the first back edge found yields the offending cycle.

Complexity: O(V + E)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from cuesheet.models.entities import Performer
from cuesheet.models.errors import CyclicDependencyError, UnknownReferenceError

PRECEDES = "precedes"
SUCCEEDS = "succeeds"


@dataclass
class ConstraintGraph:
    nodes: List[str]  # input order, used for deterministic traversal
    successors: Dict[str, List[str]] = field(default_factory=dict)
    predecessors: Dict[str, List[str]] = field(default_factory=dict)
    edge_tags: Dict[Tuple[str, str], Set[str]] = field(default_factory=dict)

    def add_edge(self, before: str, after: str, tag: str) -> None:
        key = (before, after)
        if key not in self.edge_tags:
            self.edge_tags[key] = set()
            self.successors[before].append(after)
            self.predecessors[after].append(before)
        self.edge_tags[key].add(tag)

    def has_edge(self, before: str, after: str) -> bool:
        return (before, after) in self.edge_tags

    @property
    def edge_count(self) -> int:
        return len(self.edge_tags)


def build(performers: List[Performer]) -> ConstraintGraph:
    """
    Build and validate the precedence graph.

    Raises:
        UnknownReferenceError: a precedence list names an id not in the roster
        CyclicDependencyError: the precedence hints cannot all hold at once
    """
    known = {p.id for p in performers}
    graph = ConstraintGraph(
        nodes=[p.id for p in performers],
        successors={p.id: [] for p in performers},
        predecessors={p.id: [] for p in performers},
    )

    for p in performers:
        missing = [ref for ref in list(p.precedes_ids) + list(p.succeeds_ids) if ref not in known]
        if missing:
            raise UnknownReferenceError(p.id, sorted(set(missing)))
        for after in p.precedes_ids:
            graph.add_edge(p.id, after, PRECEDES)
        for before in p.succeeds_ids:
            graph.add_edge(before, p.id, SUCCEEDS)

    cycle = find_cycle(graph)
    if cycle:
        raise CyclicDependencyError(cycle)
    return graph


def find_cycle(graph: ConstraintGraph) -> List[str]:
    """Return the members of one cycle in visiting order, or [] if acyclic."""
    position = {node: i for i, node in enumerate(graph.nodes)}
    visited: Set[str] = set()
    stack: List[str] = []
    on_stack: Set[str] = set()

    def dfs(node: str) -> List[str]:
        visited.add(node)
        stack.append(node)
        on_stack.add(node)
        for nxt in sorted(graph.successors[node], key=position.__getitem__):
            if nxt in on_stack:
                return stack[stack.index(nxt):]
            if nxt not in visited:
                found = dfs(nxt)
                if found:
                    return found
        stack.pop()
        on_stack.discard(node)
        return []

    for node in graph.nodes:
        if node not in visited:
            cycle = dfs(node)
            if cycle:
                return list(cycle)
    return []
