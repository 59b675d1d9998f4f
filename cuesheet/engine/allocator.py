"""
Greedy Time Allocator.

Walks the ordered performer list once, laying setup and performance windows
onto a single shared timeline. Milestones are anchored first; performers are
then placed behind a moving cursor.

State is carried in an explicit AllocatorState that each step receives and
updates, so nothing lives at module level and every call is independent.

Per performer:
    setup_start   = cursor - setup_minutes   (never before venue access)
    perform_start = cursor
    perform_end   = perform_start + perform_minutes
    load_out      = perform_end + breakdown_minutes
    next cursor   = perform_end + max(break_minutes, safety_buffer)

A performer is deferred while, at some minute of its [setup_start, load_out),
as many performers are already on site as the simultaneous limit allows; it
waits until one of them loads out. Idle guest-facing gaps longer than the
filler threshold get one roaming activity (round-robin) or a break. A crew-only
venue setup block covers the lead time before the first act.

Complexity: O(n^2 + n*m) where n = performers, m = milestones
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from cuesheet.config.settings import EngineConfig
from cuesheet.models.entities import (
    Activity,
    CallSheetRow,
    Constraints,
    EntryKind,
    EventWindow,
    Milestone,
    Performer,
    ScheduleEntry,
    Venue,
)
from cuesheet.models.errors import WindowOverrunError
from cuesheet.utils.timefmt import format_clock

logger = logging.getLogger(__name__)

KIND_RANK = {
    EntryKind.MILESTONE: 0,
    EntryKind.SETUP: 1,
    EntryKind.PERFORMANCE: 2,
    EntryKind.ACTIVITY: 3,
    EntryKind.BREAK: 4,
    EntryKind.VENUE_SETUP: 5,
}

VENUE_REF = "venue"


@dataclass
class ActiveSlot:
    performer_id: str
    setup_start: int
    load_out: int


@dataclass
class AllocatorState:
    cursor: int
    last_guest_end: int
    entries: List[ScheduleEntry] = field(default_factory=list)
    call_sheet: List[CallSheetRow] = field(default_factory=list)
    active: List[ActiveSlot] = field(default_factory=list)
    activity_index: int = 0
    used_activities: Set[str] = field(default_factory=set)
    warnings: List[str] = field(default_factory=list)


@dataclass
class Allocation:
    schedule: List[ScheduleEntry]
    call_sheet: List[CallSheetRow]
    overrun: Optional[WindowOverrunError] = None
    warnings: List[str] = field(default_factory=list)


def sort_entries(entries: List[ScheduleEntry]) -> List[ScheduleEntry]:
    return sorted(entries, key=lambda e: (e.start, KIND_RANK[e.kind], e.end, e.ref_id))


def anchor_milestones(milestones: List[Milestone]) -> List[ScheduleEntry]:
    """Milestones reserve their slots before any performer is placed."""
    return [
        ScheduleEntry(m.time, m.end, EntryKind.MILESTONE, m.name, True, m.name)
        for m in sorted(milestones, key=lambda m: (m.time, m.name))
    ]


def initial_cursor(window: EventWindow, venue: Venue, config: EngineConfig) -> int:
    base = window.start if venue.access_time is None else max(window.start, venue.access_time)
    return base + config.lead_setup_minutes + config.opening_offset_minutes


def safety_buffer(performer: Performer, neighbour: Optional[Performer], config: EngineConfig) -> int:
    """Minutes of separation implied by the larger safety distance of two adjacent acts."""
    buffer = 0
    for p in (performer, neighbour):
        if p is not None and p.requires_safety_distance:
            buffer = max(buffer, math.ceil(p.requires_safety_distance / config.safety_meters_per_minute))
    return buffer


def peak_concurrency(intervals: List[Tuple[int, int]]) -> int:
    """Most half-open [start, end) intervals covering any single minute."""
    events = []
    for start, end in intervals:
        events.append((start, 1))
        events.append((end, -1))
    # departures sort before arrivals at the same minute
    events.sort()
    current = peak = 0
    for _, delta in events:
        current += delta
        peak = max(peak, current)
    return peak


def venue_setup_entry(window: EventWindow, venue: Venue, config: EngineConfig) -> ScheduleEntry:
    """Crew-only block covering the lead setup before the first act."""
    start = window.start if venue.access_time is None else max(window.start, venue.access_time)
    return ScheduleEntry(
        start,
        start + config.lead_setup_minutes,
        EntryKind.VENUE_SETUP,
        VENUE_REF,
        False,
        "Venue setup and sound check",
        notes="Confirm all performers have arrived",
    )


def staff_notes(performer: Performer) -> str:
    if not performer.requires_safety_distance:
        return ""
    return f"Maintain {performer.requires_safety_distance:g}m safety distance"


def free_intervals(start: int, end: int, blocked: List[ScheduleEntry]) -> List[Tuple[int, int]]:
    """Split [start, end) around blocked entries."""
    free: List[Tuple[int, int]] = []
    t = start
    for entry in sorted(blocked, key=lambda e: e.start):
        if entry.end <= t or entry.start >= end:
            continue
        if entry.start > t:
            free.append((t, entry.start))
        t = max(t, entry.end)
    if t < end:
        free.append((t, end))
    return free


def _next_activity(state: AllocatorState, activities: List[Activity]) -> Optional[Activity]:
    """Round-robin over activities, skipping non-repeatable ones already used."""
    for step in range(len(activities)):
        idx = (state.activity_index + step) % len(activities)
        candidate = activities[idx]
        if candidate.repeatable or candidate.id not in state.used_activities:
            state.activity_index = idx + 1
            state.used_activities.add(candidate.id)
            return candidate
    return None


def fill_gap(
    state: AllocatorState,
    gap_start: int,
    gap_end: int,
    milestone_entries: List[ScheduleEntry],
    activities: List[Activity],
    config: EngineConfig,
) -> None:
    for start, end in free_intervals(gap_start, gap_end, milestone_entries):
        if end - start <= config.filler_gap_threshold_minutes:
            continue
        activity = _next_activity(state, activities)
        if activity is not None:
            finish = min(start + activity.duration_minutes, end)
            state.entries.append(
                ScheduleEntry(start, finish, EntryKind.ACTIVITY, activity.id, True, activity.name or activity.id)
            )
        else:
            state.entries.append(ScheduleEntry(start, end, EntryKind.BREAK, "break", False, "Break"))


def place_performer(
    state: AllocatorState,
    performer: Performer,
    venue: Venue,
    constraints: Constraints,
) -> Tuple[int, int]:
    """
    Find (setup_start, perform_start) for the performer at the current cursor.

    Honors venue access and the simultaneous performer limit; perform_start
    never moves earlier than the cursor.
    """
    perform_start = state.cursor
    cap = max(1, constraints.simultaneous_performers_max)
    while True:
        setup_start = perform_start - performer.setup_minutes
        if venue.access_time is not None and setup_start < venue.access_time:
            setup_start = venue.access_time
            perform_start = max(perform_start, setup_start + performer.setup_minutes)
        load_out = perform_start + performer.perform_minutes + performer.breakdown_minutes
        overlapping = [a for a in state.active if a.setup_start < load_out and setup_start < a.load_out]
        on_site = peak_concurrency([(a.setup_start, a.load_out) for a in overlapping])
        if on_site < cap:
            break
        # setup may begin once the earliest overlapping performer has loaded out
        freed_at = min(a.load_out for a in overlapping)
        perform_start = max(perform_start, freed_at + performer.setup_minutes)

    if perform_start > state.cursor:
        delay = perform_start - state.cursor
        state.warnings.append(
            f"performer {performer.id} deferred {delay} min to {format_clock(perform_start)} "
            f"(simultaneous performer limit {cap} or venue access)"
        )
        logger.debug(f"Deferred {performer.id} by {delay} min")
    return setup_start, perform_start


def find_overrun(
    call_sheet: List[CallSheetRow],
    performers: Dict[str, Performer],
    window: EventWindow,
    venue: Venue,
) -> Optional[WindowOverrunError]:
    """
    Detect feasibility problems in a placed schedule.

    The overrun is the larger of two measures: how far the latest load-out
    runs past the curfew (or the window end when no curfew is set), and the
    excess of any performer that cannot fit inside the window even on its
    own. A lone oversized performer is reported with its exact excess.
    """
    oversized = [p for p in performers.values() if p.footprint > window.duration]
    excess = max((p.footprint - window.duration for p in oversized), default=0)
    if oversized and len(performers) == 1:
        return WindowOverrunError(excess, [p.id for p in oversized], limit=window.end)

    limit = venue.curfew if venue.curfew is not None else window.end
    late = [row for row in call_sheet if row.load_out > limit]
    late_by = max((row.load_out for row in late), default=limit) - limit
    if not oversized and not late:
        return None
    ids = list(dict.fromkeys([p.id for p in oversized] + [row.performer_id for row in late]))
    if excess > late_by:
        return WindowOverrunError(excess, ids, limit=window.end)
    return WindowOverrunError(late_by, ids, limit=limit)


def allocate(
    ordered_ids: List[str],
    performers: Dict[str, Performer],
    milestones: List[Milestone],
    window: EventWindow,
    venue: Venue,
    constraints: Constraints,
    activities: Optional[List[Activity]] = None,
    config: Optional[EngineConfig] = None,
) -> Allocation:
    """
    Place every performer on the timeline in the given order.

    Args:
        ordered_ids: Output of the ordering heuristic
        performers: Map of performer_id to Performer
        milestones: Fixed anchors; placed as-is, conflicts are left to the resolver
        window: Event window
        venue: Access time and curfew
        constraints: Break length and simultaneous performer limit
        activities: Filler activities for idle gaps
        config: Engine tuning

    Returns:
        Allocation with the schedule, call sheet, warnings and, when the
        schedule does not fit, a WindowOverrunError (the schedule is still
        returned so the caller can decide).
    """
    config = config or EngineConfig()
    activities = activities or []

    milestone_entries = anchor_milestones(milestones)
    state = AllocatorState(
        cursor=initial_cursor(window, venue, config),
        last_guest_end=window.start,
        entries=list(milestone_entries) + [venue_setup_entry(window, venue, config)],
    )

    latest: Optional[ScheduleEntry] = None
    for m in milestone_entries:
        if latest is not None and m.start < latest.end:
            message = f"milestones {latest.ref_id} and {m.ref_id} overlap"
            state.warnings.append(message)
            logger.warning(message)
        if latest is None or m.end > latest.end:
            latest = m

    for i, performer_id in enumerate(ordered_ids):
        performer = performers[performer_id]
        neighbour = performers[ordered_ids[i + 1]] if i + 1 < len(ordered_ids) else None

        setup_start, perform_start = place_performer(state, performer, venue, constraints)
        perform_end = perform_start + performer.perform_minutes
        load_out = perform_end + performer.breakdown_minutes

        fill_gap(state, state.last_guest_end, perform_start, milestone_entries, activities, config)

        title = performer.display_name
        state.entries.append(
            ScheduleEntry(setup_start, perform_start, EntryKind.SETUP, performer.id, False, f"{title} setup")
        )
        state.entries.append(
            ScheduleEntry(perform_start, perform_end, EntryKind.PERFORMANCE, performer.id, True, title,
                          notes=staff_notes(performer))
        )
        state.call_sheet.append(
            CallSheetRow(
                performer_id=performer.id,
                call_time=setup_start - config.call_buffer_minutes,
                setup_start=setup_start,
                perform_start=perform_start,
                perform_end=perform_end,
                load_out=load_out,
            )
        )
        state.active.append(ActiveSlot(performer.id, setup_start, load_out))
        state.last_guest_end = perform_end
        state.cursor = perform_end + max(constraints.break_minutes, safety_buffer(performer, neighbour, config))

    overrun = find_overrun(state.call_sheet, performers, window, venue)
    if overrun is not None:
        logger.info(f"Allocation overruns by {overrun.overrun_minutes} min")

    return Allocation(
        schedule=sort_entries(state.entries),
        call_sheet=state.call_sheet,
        overrun=overrun,
        warnings=state.warnings,
    )
