from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple


class PerformerCategory(str, Enum):
    FIRE = "fire"
    AERIAL = "aerial"
    MAGIC = "magic"
    CIRCUS = "circus"
    MUSIC = "music"
    DANCE = "dance"
    COMEDY = "comedy"
    INTERACTIVE = "interactive"
    OTHER = "other"


class VenueType(str, Enum):
    INDOOR = "indoor"
    OUTDOOR = "outdoor"
    MIXED = "mixed"


class EntryKind(str, Enum):
    SETUP = "setup"
    PERFORMANCE = "performance"
    ACTIVITY = "activity"
    MILESTONE = "milestone"
    BREAK = "break"
    VENUE_SETUP = "venue_setup"


FILLER_KINDS = (EntryKind.ACTIVITY, EntryKind.BREAK)


@dataclass(frozen=True)
class EventWindow:
    start: int  # minutes on the event's time axis
    end: int

    @property
    def duration(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class Venue:
    access_time: Optional[int] = None  # earliest setup start
    curfew: Optional[int] = None  # latest load-out
    restrictions: Tuple[str, ...] = ()
    name: str = ""
    venue_type: VenueType = VenueType.INDOOR

    @property
    def is_outdoor(self) -> bool:
        return self.venue_type in (VenueType.OUTDOOR, VenueType.MIXED)


@dataclass(frozen=True)
class Performer:
    id: str
    category: str
    setup_minutes: int
    perform_minutes: int
    breakdown_minutes: int
    requires_safety_distance: Optional[float] = None  # meters
    precedes_ids: Tuple[str, ...] = ()
    succeeds_ids: Tuple[str, ...] = ()
    name: Optional[str] = None
    needs_power: bool = False

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def footprint(self) -> int:
        """Minutes from setup start to load-out when nothing intervenes."""
        return self.setup_minutes + self.perform_minutes + self.breakdown_minutes


@dataclass(frozen=True)
class Activity:
    id: str
    duration_minutes: int
    repeatable: bool = False
    name: Optional[str] = None


@dataclass(frozen=True)
class Milestone:
    name: str
    time: int
    duration_minutes: int = 15
    flexible: bool = False
    tolerance_minutes: Optional[int] = None  # falls back to the engine default (15)

    @property
    def end(self) -> int:
        return self.time + self.duration_minutes


@dataclass(frozen=True)
class Constraints:
    break_minutes: int = 10
    simultaneous_performers_max: int = 2
    weather_sensitive: bool = False


@dataclass(frozen=True)
class ScheduleEntry:
    start: int
    end: int
    kind: EntryKind
    ref_id: str
    guest_facing: bool
    title: str = ""
    notes: str = ""  # staff-only instructions

    def overlaps(self, start: int, end: int) -> bool:
        return max(self.start, start) < min(self.end, end)

    def shifted(self, minutes: int) -> "ScheduleEntry":
        return replace(self, start=self.start + minutes, end=self.end + minutes)


@dataclass(frozen=True)
class CallSheetRow:
    performer_id: str
    call_time: int
    setup_start: int
    perform_start: int
    perform_end: int
    load_out: int


@dataclass(frozen=True)
class TimelineRequest:
    event_window: EventWindow
    venue: Venue
    performers: List[Performer]
    activities: List[Activity] = field(default_factory=list)
    milestones: List[Milestone] = field(default_factory=list)
    constraints: Constraints = field(default_factory=Constraints)
