from functools import lru_cache
from typing import Dict, List, Optional, Union
import logging

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator

from cuesheet.config.settings import get_engine_config, get_settings
from cuesheet.engine.composer import TimelineResult
from cuesheet.engine.planner import generate_timeline, order_performers
from cuesheet.models.entities import (
    Activity,
    CallSheetRow,
    Constraints,
    EntryKind,
    EventWindow,
    Milestone,
    Performer,
    PerformerCategory,
    ScheduleEntry,
    TimelineRequest,
    Venue,
    VenueType,
)
from cuesheet.models.errors import (
    CyclicDependencyError,
    InvalidInputError,
    SchedulingError,
    UnknownReferenceError,
)
from cuesheet.storage.cache import TimelineCache
from cuesheet.utils.timefmt import format_clock, parse_clock

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)

Clock = Union[int, str]


def _to_minutes(v):
    if v is None:
        return v
    try:
        return parse_clock(v)
    except (TypeError, AttributeError):
        raise ValueError("time must be minutes (int) or 'HH:MM'")


class EventWindowDTO(BaseModel):
    start: Clock
    end: Clock

    @field_validator("start", "end", mode="after")
    @classmethod
    def validate_clock(cls, v: Clock) -> int:
        return _to_minutes(v)

    def to_domain(self) -> EventWindow:
        return EventWindow(start=self.start, end=self.end)


class VenueDTO(BaseModel):
    name: str = ""
    venue_type: VenueType = VenueType.INDOOR
    access_time: Optional[Clock] = None
    curfew: Optional[Clock] = None
    restrictions: List[str] = Field(default_factory=list)

    @field_validator("access_time", "curfew", mode="after")
    @classmethod
    def validate_clock(cls, v: Optional[Clock]) -> Optional[int]:
        return _to_minutes(v)

    def to_domain(self) -> Venue:
        return Venue(
            access_time=self.access_time,
            curfew=self.curfew,
            restrictions=tuple(self.restrictions),
            name=self.name,
            venue_type=self.venue_type,
        )


class PerformerDTO(BaseModel):
    id: str
    name: Optional[str] = None
    category: PerformerCategory = PerformerCategory.OTHER
    setup_minutes: int = Field(0, ge=0)
    perform_minutes: int = Field(..., gt=0)
    breakdown_minutes: int = Field(0, ge=0)
    requires_safety_distance: Optional[float] = Field(None, ge=0, description="meters")
    precedes_ids: List[str] = Field(default_factory=list)
    succeeds_ids: List[str] = Field(default_factory=list)
    needs_power: bool = False

    @field_validator("perform_minutes")
    @classmethod
    def validate_duration(cls, v: int):
        """Keep acts inside a single day."""
        if v > 1440:
            raise ValueError("perform_minutes must be at most 1440")
        return v

    def to_domain(self) -> Performer:
        return Performer(
            id=self.id,
            category=self.category.value,
            setup_minutes=self.setup_minutes,
            perform_minutes=self.perform_minutes,
            breakdown_minutes=self.breakdown_minutes,
            requires_safety_distance=self.requires_safety_distance,
            precedes_ids=tuple(self.precedes_ids),
            succeeds_ids=tuple(self.succeeds_ids),
            name=self.name,
            needs_power=self.needs_power,
        )


class ActivityDTO(BaseModel):
    id: str
    name: Optional[str] = None
    duration_minutes: int = Field(..., gt=0)
    repeatable: bool = False

    def to_domain(self) -> Activity:
        return Activity(id=self.id, duration_minutes=self.duration_minutes, repeatable=self.repeatable, name=self.name)


class MilestoneDTO(BaseModel):
    name: str
    time: Clock
    duration_minutes: Optional[int] = Field(None, gt=0)
    flexible: bool = False
    tolerance_minutes: Optional[int] = Field(None, ge=0)

    @field_validator("time", mode="after")
    @classmethod
    def validate_clock(cls, v: Clock) -> int:
        return _to_minutes(v)

    def to_domain(self) -> Milestone:
        duration = self.duration_minutes if self.duration_minutes is not None else settings.default_milestone_minutes
        return Milestone(
            name=self.name,
            time=self.time,
            duration_minutes=duration,
            flexible=self.flexible,
            tolerance_minutes=self.tolerance_minutes,
        )


class ConstraintsDTO(BaseModel):
    break_minutes: int = Field(10, ge=0)
    simultaneous_performers_max: int = Field(2, ge=1)
    weather_sensitive: bool = False

    def to_domain(self) -> Constraints:
        return Constraints(
            break_minutes=self.break_minutes,
            simultaneous_performers_max=self.simultaneous_performers_max,
            weather_sensitive=self.weather_sensitive,
        )


class TimelineRequestDTO(BaseModel):
    event_window: EventWindowDTO
    venue: VenueDTO = Field(default_factory=VenueDTO)
    performers: List[PerformerDTO] = Field(..., min_length=1)
    activities: List[ActivityDTO] = Field(default_factory=list)
    milestones: List[MilestoneDTO] = Field(default_factory=list)
    constraints: ConstraintsDTO = Field(default_factory=ConstraintsDTO)

    def to_domain(self) -> TimelineRequest:
        return TimelineRequest(
            event_window=self.event_window.to_domain(),
            venue=self.venue.to_domain(),
            performers=[p.to_domain() for p in self.performers],
            activities=[a.to_domain() for a in self.activities],
            milestones=[m.to_domain() for m in self.milestones],
            constraints=self.constraints.to_domain(),
        )


class ScheduleEntryDTO(BaseModel):
    start: int
    end: int
    time: str
    end_time: str
    kind: EntryKind
    ref_id: str
    guest_facing: bool
    title: str
    notes: str = ""

    @classmethod
    def from_domain(cls, e: ScheduleEntry) -> "ScheduleEntryDTO":
        return cls(
            start=e.start,
            end=e.end,
            time=format_clock(e.start),
            end_time=format_clock(e.end),
            kind=e.kind,
            ref_id=e.ref_id,
            guest_facing=e.guest_facing,
            title=e.title,
            notes=e.notes,
        )


class CallSheetRowDTO(BaseModel):
    performer_id: str
    call_time: int
    setup_start: int
    perform_start: int
    perform_end: int
    load_out: int

    @classmethod
    def from_domain(cls, row: CallSheetRow) -> "CallSheetRowDTO":
        return cls(
            performer_id=row.performer_id,
            call_time=row.call_time,
            setup_start=row.setup_start,
            perform_start=row.perform_start,
            perform_end=row.perform_end,
            load_out=row.load_out,
        )


class SummaryDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_runtime: int
    number_of_performances: int
    setup_minutes_required: int
    max_concurrent_performers: int
    peak_staff_needed: int
    potential_issues: List[str]


class PeakMomentDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    time: int
    description: str


class GuestExperienceDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    peak_moments: List[PeakMomentDTO]
    flow_description: str
    energy_arc: str


class ContingencyPlanDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    scenario: str
    trigger: str
    plan: str
    affected_items: List[str]


class TimelineResponse(BaseModel):
    order: List[str]
    schedule: List[ScheduleEntryDTO]
    call_sheet: List[CallSheetRowDTO]
    summary: SummaryDTO
    guest_experience: GuestExperienceDTO
    contingency_plans: List[ContingencyPlanDTO]
    warnings: List[str]
    error: Optional[Dict] = None
    cached: bool = False

    @classmethod
    def from_domain(cls, result: TimelineResult) -> "TimelineResponse":
        return cls(
            order=result.order,
            schedule=[ScheduleEntryDTO.from_domain(e) for e in result.schedule],
            call_sheet=[CallSheetRowDTO.from_domain(r) for r in result.call_sheet],
            summary=SummaryDTO.model_validate(result.summary),
            guest_experience=GuestExperienceDTO.model_validate(result.guest_experience),
            contingency_plans=[ContingencyPlanDTO.model_validate(p) for p in result.contingency_plans],
            warnings=result.warnings,
            error=result.error.to_dict() if result.error else None,
        )


class OrderResponse(BaseModel):
    order: List[str]


@lru_cache(maxsize=1)
def _shared_cache() -> TimelineCache:
    return TimelineCache(settings.redis_url)


def get_cache() -> Optional[TimelineCache]:
    return _shared_cache() if settings.cache_enabled else None


def _raise_http(exc: SchedulingError) -> None:
    status = 422 if isinstance(exc, CyclicDependencyError) else 400
    logger.warning(f"Rejected timeline request ({exc.code}): {exc.message}")
    raise HTTPException(status_code=status, detail=exc.to_dict())


@router.post("/timeline/generate", response_model=TimelineResponse, summary="Generate event timeline")
def generate(req: TimelineRequestDTO, cache: Optional[TimelineCache] = Depends(get_cache)):
    """
    Plan an event timeline: performer order, schedule, call sheet and
    derived planning artifacts.

    **Pipeline:**
    1. Validate input (DTO validators, then engine checks)
    2. Build precedence graph and reject cycles
    3. Order performers, allocate times, resolve milestone conflicts
    4. Compose call sheet, summary and contingency plans

    **Error Handling:**
    - 400: Invalid input or unknown performer references
    - 422: Cyclic precedence or malformed body
    - 200 with `error`: schedule overruns the curfew/window (best effort returned)
    """
    logger.info(
        f"Generate request: {len(req.performers)} performers, {len(req.milestones)} milestones, "
        f"{len(req.activities)} activities"
    )

    request_hash = None
    if cache is not None:
        request_hash = TimelineCache.hash_request(req.model_dump(mode="json"))
        cached_result = cache.get(request_hash)
        if cached_result:
            logger.info("Cache hit")
            cached_result["cached"] = True
            return cached_result

    try:
        result = generate_timeline(req.to_domain(), config=get_engine_config())
    except (InvalidInputError, UnknownReferenceError, CyclicDependencyError) as exc:
        _raise_http(exc)

    response = TimelineResponse.from_domain(result)
    logger.info(
        f"Timeline generated: {len(response.schedule)} entries, {len(response.warnings)} warnings, "
        f"overrun={'yes' if response.error else 'no'}"
    )

    if cache is not None:
        cache.set(request_hash, response.model_dump(mode="json"))
    return response


@router.post("/timeline/order", response_model=OrderResponse, summary="Order performers only")
def order_endpoint(req: TimelineRequestDTO):
    """Return the performer running order without allocating times."""
    try:
        ordered = order_performers(req.to_domain(), config=get_engine_config())
    except (InvalidInputError, UnknownReferenceError, CyclicDependencyError) as exc:
        _raise_http(exc)
    return {"order": ordered}
