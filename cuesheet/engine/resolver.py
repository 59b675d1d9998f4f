"""
Conflict Resolver.

Removes overlaps between performances and milestones by moving things
forward in time, never backward:

1. A flexible milestone hit by a performance slides to the end of that
   performance, provided the total slide stays within its tolerance and the
   new slot is clear of other milestones.
2. Otherwise the performance gives way: it and everything scheduled after it
   (later performers' setups and performances, later fillers) shift forward
   so the performance starts when the milestone ends. The milestone stays put.

Because every shift is forward, one chronological pass terminates.
Filler entries are the lowest priority and are clipped (or dropped) last.

Complexity: O(n*m) where n = entries, m = milestones
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from cuesheet.config.settings import EngineConfig
from cuesheet.engine.allocator import free_intervals, sort_entries
from cuesheet.models.entities import FILLER_KINDS, EntryKind, Milestone, ScheduleEntry
from cuesheet.utils.timefmt import format_clock

logger = logging.getLogger(__name__)


def _first_clash(performance: ScheduleEntry, milestones: Dict[str, ScheduleEntry]) -> Optional[ScheduleEntry]:
    clashes = [m for m in milestones.values() if m.overlaps(performance.start, performance.end)]
    if not clashes:
        return None
    return min(clashes, key=lambda m: (m.start, m.ref_id))


def _try_slide_milestone(
    entry: ScheduleEntry,
    milestone: Optional[Milestone],
    performance: ScheduleEntry,
    placed: Dict[str, ScheduleEntry],
    default_tolerance: int,
) -> Optional[ScheduleEntry]:
    """Return the milestone moved past the performance, or None if it may not move."""
    if milestone is None or not milestone.flexible:
        return None
    tolerance = default_tolerance if milestone.tolerance_minutes is None else milestone.tolerance_minutes
    new_start = performance.end
    if new_start - milestone.time > tolerance:
        return None
    moved = entry.shifted(new_start - entry.start)
    for name, other in placed.items():
        if name != entry.ref_id and other.overlaps(moved.start, moved.end):
            return None
    return moved


def clip_fillers(fillers: List[ScheduleEntry], blocking: List[ScheduleEntry]) -> List[ScheduleEntry]:
    """Trim fillers so they sit only in time not taken by milestones or performances."""
    kept: List[ScheduleEntry] = []
    for f in fillers:
        free = free_intervals(f.start, f.end, blocking)
        if not free:
            continue
        start, end = free[0]
        kept.append(replace(f, start=start, end=end))
    return kept


def resolve(
    schedule: List[ScheduleEntry],
    milestones: List[Milestone],
    config: Optional[EngineConfig] = None,
) -> Tuple[List[ScheduleEntry], List[str]]:
    """
    Resolve performance/milestone overlaps with forward-only shifts.

    Args:
        schedule: Allocated entries
        milestones: Milestone definitions (flexibility and tolerance)
        config: Engine tuning; supplies the tolerance for milestones that
            carry none

    Returns:
        (resolved schedule sorted chronologically, warnings)
    """
    config = config or EngineConfig()
    definitions = {m.name: m for m in milestones}
    entries = sort_entries(schedule)

    placed: Dict[str, ScheduleEntry] = {e.ref_id: e for e in entries if e.kind == EntryKind.MILESTONE}
    performances: Dict[str, ScheduleEntry] = {e.ref_id: e for e in entries if e.kind == EntryKind.PERFORMANCE}
    setups: Dict[str, ScheduleEntry] = {e.ref_id: e for e in entries if e.kind == EntryKind.SETUP}
    fillers = [e for e in entries if e.kind in FILLER_KINDS]
    crew = [e for e in entries if e.kind == EntryKind.VENUE_SETUP]
    chain = [e.ref_id for e in entries if e.kind == EntryKind.PERFORMANCE]

    warnings: List[str] = []
    for idx, performer_id in enumerate(chain):
        while True:
            performance = performances[performer_id]
            clash = _first_clash(performance, placed)
            if clash is None:
                break

            moved = _try_slide_milestone(
                clash, definitions.get(clash.ref_id), performance, placed, config.milestone_tolerance_minutes
            )
            if moved is not None:
                placed[clash.ref_id] = moved
                warnings.append(
                    f"milestone {clash.ref_id} moved {moved.start - clash.start} min to "
                    f"{format_clock(moved.start)} to follow {performer_id}"
                )
                continue

            shift = clash.end - performance.start
            pivot = performance.start
            for later in chain[idx:]:
                performances[later] = performances[later].shifted(shift)
                if later in setups:
                    setups[later] = setups[later].shifted(shift)
            fillers = [f.shifted(shift) if f.start >= pivot else f for f in fillers]
            warnings.append(
                f"performer {performer_id} and {len(chain) - idx - 1} later act(s) shifted {shift} min; "
                f"{performer_id} now starts {format_clock(performances[performer_id].start)} "
                f"after milestone {clash.ref_id}"
            )
            logger.debug(f"Shifted chain from {performer_id} by {shift} min")

    blocking = list(placed.values()) + list(performances.values())
    fillers = clip_fillers(fillers, blocking)

    resolved = list(placed.values()) + crew + list(setups.values()) + list(performances.values()) + fillers
    return sort_entries(resolved), warnings
