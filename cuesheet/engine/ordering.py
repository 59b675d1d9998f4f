"""
Ordering Heuristic.

Produces a total order over performers that respects every precedence edge.
The sort is Kahn's algorithm: at each step the set of "ready" performers
(all predecessors already placed) is ranked by a comparator and the best one
is placed next.

The comparator is pluggable. The default one is a weighted sum of ordering
rules, each scoring a performer for the slot currently being filled:

- HazardPlacementRule: hazardous acts (fire, aerial) are held back while the
  show opens and pulled forward once it is closing
- PeakDurationRule: during the peak window (30%-70% of runtime) longer acts
  are preferred

Ties always fall back to input order, so the result is reproducible.

Complexity: O(n^2) comparisons in the worst case (n = performers), fine for
event-sized rosters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Callable, Dict, List, Optional, Sequence

from cuesheet.config.settings import EngineConfig
from cuesheet.graph.constraint_graph import ConstraintGraph
from cuesheet.models.entities import Performer
from cuesheet.models.errors import CyclicDependencyError

OPENING = "opening"
PEAK = "peak"
CLOSING = "closing"


@dataclass(frozen=True)
class OrderingContext:
    """Where in the show the next slot sits."""

    position: int  # index of the slot being filled
    total: int  # number of performers
    progress: float  # share of total perform minutes already placed, 0..1
    phase: str
    longest_perform: int


Comparator = Callable[[Performer, Performer, OrderingContext], int]


class OrderingRule(ABC):
    """
    Base class for pluggable ordering rules.
    Higher scores are placed earlier.
    """

    def __init__(self, weight: float = 1.0):
        self.weight = weight

    @abstractmethod
    def score(self, performer: Performer, context: OrderingContext) -> float:
        pass


class HazardPlacementRule(OrderingRule):
    """Hazard acts go late: penalised while opening, favoured when closing."""

    def __init__(self, weight: float = 1.0, hazard_categories: Sequence[str] = ("fire", "aerial")):
        super().__init__(weight)
        self.hazard_categories = set(hazard_categories)

    def score(self, performer: Performer, context: OrderingContext) -> float:
        if performer.category not in self.hazard_categories:
            return 0.0
        if context.phase == OPENING:
            return -self.weight
        if context.phase == CLOSING:
            return self.weight
        return 0.0


class PeakDurationRule(OrderingRule):
    """Longer acts preferred for peak slots."""

    def score(self, performer: Performer, context: OrderingContext) -> float:
        if context.phase != PEAK or context.longest_perform <= 0:
            return 0.0
        return self.weight * performer.perform_minutes / context.longest_perform


class RuleRegistry:
    """Collects ordering rules and turns them into a comparator."""

    def __init__(self, rules: Optional[List[OrderingRule]] = None):
        self.rules: List[OrderingRule] = list(rules or [])

    def register(self, rule: OrderingRule) -> None:
        self.rules.append(rule)

    def score(self, performer: Performer, context: OrderingContext) -> float:
        return sum(rule.score(performer, context) for rule in self.rules)

    def comparator(self) -> Comparator:
        def compare(a: Performer, b: Performer, context: OrderingContext) -> int:
            sa, sb = self.score(a, context), self.score(b, context)
            if sa > sb:
                return -1
            if sa < sb:
                return 1
            return 0

        return compare


def default_registry(config: Optional[EngineConfig] = None) -> RuleRegistry:
    config = config or EngineConfig()
    return RuleRegistry([
        HazardPlacementRule(weight=1.0, hazard_categories=config.hazard_categories),
        PeakDurationRule(weight=0.5),
    ])


def phase_for(progress: float, config: EngineConfig) -> str:
    if progress < config.peak_window_start:
        return OPENING
    if progress <= config.peak_window_end:
        return PEAK
    return CLOSING


def order(
    graph: ConstraintGraph,
    performers: List[Performer],
    comparator: Optional[Comparator] = None,
    config: Optional[EngineConfig] = None,
) -> List[str]:
    """
    Topologically sort performers, ranking ready nodes with ``comparator``.

    Args:
        graph: Validated (acyclic) precedence graph
        performers: Roster in input order
        comparator: ``(a, b, context) -> int``; negative places ``a`` first.
            Defaults to the weighted rule registry.
        config: Engine tuning (hazard categories, peak window)

    Returns:
        Performer ids, earliest first
    """
    config = config or EngineConfig()
    compare = comparator or default_registry(config).comparator()
    by_id: Dict[str, Performer] = {p.id: p for p in performers}
    input_index = {p.id: i for i, p in enumerate(performers)}

    remaining = {node: len(graph.predecessors[node]) for node in graph.nodes}
    ready = [node for node in graph.nodes if remaining[node] == 0]
    total_minutes = sum(p.perform_minutes for p in performers)
    longest = max((p.perform_minutes for p in performers), default=0)

    placed_minutes = 0
    result: List[str] = []
    while ready:
        progress = placed_minutes / total_minutes if total_minutes else 0.0
        context = OrderingContext(
            position=len(result),
            total=len(performers),
            progress=progress,
            phase=phase_for(progress, config),
            longest_perform=longest,
        )

        def rank(a: str, b: str) -> int:
            outcome = compare(by_id[a], by_id[b], context)
            if outcome:
                return outcome
            return input_index[a] - input_index[b]

        ready.sort(key=cmp_to_key(rank))
        chosen = ready.pop(0)
        result.append(chosen)
        placed_minutes += by_id[chosen].perform_minutes

        for nxt in graph.successors[chosen]:
            remaining[nxt] -= 1
            if remaining[nxt] == 0:
                ready.append(nxt)

    if len(result) != len(graph.nodes):
        # build() rejects cycles, so this only trips on a hand-made graph
        placed = set(result)
        raise CyclicDependencyError([node for node in graph.nodes if node not in placed])
    return result
