"""
Output Composer.

Summarises a finished schedule: call sheet, runtime and staffing summary,
guest-experience markers and the contingency catalogue. No scheduling
decisions are made here.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from cuesheet.config.settings import EngineConfig
from cuesheet.engine.allocator import peak_concurrency
from cuesheet.models.entities import (
    CallSheetRow,
    Constraints,
    EntryKind,
    EventWindow,
    Performer,
    ScheduleEntry,
    Venue,
    VenueType,
)
from cuesheet.models.errors import WindowOverrunError
from cuesheet.utils.timefmt import format_clock


@dataclass(frozen=True)
class RuntimeSummary:
    total_runtime: int
    number_of_performances: int
    setup_minutes_required: int
    max_concurrent_performers: int
    peak_staff_needed: int
    potential_issues: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PeakMoment:
    time: int
    description: str


@dataclass(frozen=True)
class GuestExperience:
    peak_moments: List[PeakMoment]
    flow_description: str
    energy_arc: str


@dataclass(frozen=True)
class ContingencyPlan:
    scenario: str
    trigger: str
    plan: str
    affected_items: List[str]


@dataclass
class TimelineResult:
    order: List[str]
    schedule: List[ScheduleEntry]
    call_sheet: List[CallSheetRow]
    summary: RuntimeSummary
    guest_experience: GuestExperience
    contingency_plans: List[ContingencyPlan]
    warnings: List[str] = field(default_factory=list)
    error: Optional[WindowOverrunError] = None


def build_call_sheet(
    schedule: List[ScheduleEntry],
    performers: Dict[str, Performer],
    config: EngineConfig,
) -> List[CallSheetRow]:
    """One row per performer, in performance order."""
    setups = {e.ref_id: e for e in schedule if e.kind == EntryKind.SETUP}
    rows: List[CallSheetRow] = []
    for entry in schedule:
        if entry.kind != EntryKind.PERFORMANCE:
            continue
        performer = performers[entry.ref_id]
        setup = setups.get(entry.ref_id)
        setup_start = setup.start if setup else entry.start - performer.setup_minutes
        rows.append(
            CallSheetRow(
                performer_id=performer.id,
                call_time=setup_start - config.call_buffer_minutes,
                setup_start=setup_start,
                perform_start=entry.start,
                perform_end=entry.end,
                load_out=entry.end + performer.breakdown_minutes,
            )
        )
    return rows


def max_concurrency(call_sheet: List[CallSheetRow]) -> int:
    """Largest number of performers on site at once, over [setup_start, load_out)."""
    return peak_concurrency([(row.setup_start, row.load_out) for row in call_sheet])


def summarize(
    call_sheet: List[CallSheetRow],
    performers: Dict[str, Performer],
    window: EventWindow,
    venue: Venue,
    config: EngineConfig,
    error: Optional[WindowOverrunError] = None,
) -> RuntimeSummary:
    concurrent = max_concurrency(call_sheet)
    issues: List[str] = []
    hazards = [p.id for p in performers.values() if p.category in config.hazard_categories]
    if hazards and venue.venue_type == VenueType.INDOOR:
        issues.append(f"Hazard act(s) {', '.join(hazards)} in indoor venue - verify safety clearance")
    if window.duration > config.long_event_minutes:
        issues.append("Long event - ensure staff rotation")
    if error is not None:
        issues.append(f"Schedule overruns by {error.overrun_minutes} min")
    return RuntimeSummary(
        total_runtime=window.duration,
        number_of_performances=len(call_sheet),
        setup_minutes_required=sum(p.setup_minutes for p in performers.values()) + config.lead_setup_minutes,
        max_concurrent_performers=concurrent,
        peak_staff_needed=math.ceil(concurrent / 2) + config.baseline_staff,
        potential_issues=issues,
    )


def guest_experience(window: EventWindow, config: EngineConfig) -> GuestExperience:
    # peak markers sit at fixed fractions of runtime regardless of content
    first = window.start + round(window.duration * config.peak_window_start)
    second = window.start + round(window.duration * config.peak_window_end)
    return GuestExperience(
        peak_moments=[
            PeakMoment(first, "First major performance peak"),
            PeakMoment(second, "Climactic entertainment moment"),
        ],
        flow_description=(
            "Gradual build from welcoming entertainment to peak excitement, "
            "with recovery moments between acts"
        ),
        energy_arc="Start medium -> Build -> Peak at 70% -> Sustain -> Memorable finale",
    )


def contingency_plans(
    schedule: List[ScheduleEntry],
    performers: Dict[str, Performer],
    venue: Venue,
    constraints: Constraints,
    config: EngineConfig,
) -> List[ContingencyPlan]:
    performances = [e.ref_id for e in schedule if e.kind == EntryKind.PERFORMANCE]
    plans = [
        ContingencyPlan(
            scenario="Performer no-show",
            trigger=f"Performer not present {config.call_buffer_minutes} min before call time",
            plan="Extend adjacent acts, add roaming entertainment",
            affected_items=performances,
        ),
    ]
    if venue.is_outdoor or constraints.weather_sensitive:
        plans.append(
            ContingencyPlan(
                scenario="Weather deterioration (outdoor)",
                trigger="Rain or high winds detected",
                plan="Move to backup indoor location or covered area",
                affected_items=list(dict.fromkeys(e.ref_id for e in schedule if e.guest_facing)),
            )
        )
    plans.append(
        ContingencyPlan(
            scenario="Technical failure",
            trigger="Sound or lighting malfunction",
            plan="Switch to acoustic/unplugged acts while resolving",
            affected_items=[pid for pid in performances if performers[pid].needs_power],
        )
    )
    return plans


def compose(
    schedule: List[ScheduleEntry],
    performers: List[Performer],
    window: EventWindow,
    venue: Venue,
    constraints: Constraints,
    config: Optional[EngineConfig] = None,
    warnings: Optional[List[str]] = None,
    error: Optional[WindowOverrunError] = None,
    order: Optional[List[str]] = None,
) -> TimelineResult:
    config = config or EngineConfig()
    by_id = {p.id: p for p in performers}
    call_sheet = build_call_sheet(schedule, by_id, config)
    return TimelineResult(
        order=list(order) if order is not None else [row.performer_id for row in call_sheet],
        schedule=list(schedule),
        call_sheet=call_sheet,
        summary=summarize(call_sheet, by_id, window, venue, config, error),
        guest_experience=guest_experience(window, config),
        contingency_plans=contingency_plans(schedule, by_id, venue, constraints, config),
        warnings=list(warnings or []),
        error=error,
    )


def describe_entry(entry: ScheduleEntry) -> str:
    return f"{format_clock(entry.start)}-{format_clock(entry.end)} {entry.kind.value}: {entry.title or entry.ref_id}"
