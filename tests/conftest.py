import pytest
from cuesheet.config.settings import EngineConfig
from cuesheet.models.entities import (
    Activity,
    Constraints,
    EventWindow,
    Milestone,
    Performer,
    TimelineRequest,
    Venue,
    VenueType,
)


@pytest.fixture
def config():
    """Engine defaults: 60 min lead setup, 15 min opening offset, 30 min call buffer."""
    return EngineConfig()


@pytest.fixture
def evening_window():
    """18:00 - 23:00."""
    return EventWindow(start=1080, end=1380)


@pytest.fixture
def indoor_venue():
    """Access from 17:00, no curfew."""
    return Venue(access_time=1020, name="Grand Hall")


@pytest.fixture
def fire_act():
    """Fire act needing a 5 m safety distance."""
    return Performer(
        id="fire-act",
        category="fire",
        setup_minutes=20,
        perform_minutes=15,
        breakdown_minutes=10,
        requires_safety_distance=5,
    )


@pytest.fixture
def magician():
    return Performer(id="magician", category="magic", setup_minutes=10, perform_minutes=20, breakdown_minutes=10)


@pytest.fixture
def band():
    return Performer(
        id="band",
        category="music",
        setup_minutes=30,
        perform_minutes=45,
        breakdown_minutes=15,
        needs_power=True,
    )


@pytest.fixture
def chained_roster():
    """opener -> headliner -> closer, declared through both precedence fields."""
    return [
        Performer(id="closer", category="dance", setup_minutes=10, perform_minutes=15, breakdown_minutes=5,
                  succeeds_ids=("headliner",)),
        Performer(id="headliner", category="circus", setup_minutes=25, perform_minutes=30, breakdown_minutes=20),
        Performer(id="opener", category="music", setup_minutes=15, perform_minutes=20, breakdown_minutes=10,
                  precedes_ids=("headliner",)),
    ]


@pytest.fixture
def roaming_activities():
    return [
        Activity(id="balloon-artist", duration_minutes=30, repeatable=True, name="Balloon artist"),
        Activity(id="stilt-walkers", duration_minutes=20, repeatable=False, name="Stilt walkers"),
    ]


@pytest.fixture
def gala_request(evening_window, fire_act, magician, band, roaming_activities):
    """Outdoor gala with a speech and a flexible toast."""
    return TimelineRequest(
        event_window=evening_window,
        venue=Venue(access_time=1020, curfew=1440, name="Garden", venue_type=VenueType.OUTDOOR),
        performers=[fire_act, magician, band],
        activities=roaming_activities,
        milestones=[
            Milestone(name="Welcome speech", time=1200, duration_minutes=15),
            Milestone(name="Toast", time=1260, duration_minutes=10, flexible=True),
        ],
        constraints=Constraints(break_minutes=10, simultaneous_performers_max=2),
    )
