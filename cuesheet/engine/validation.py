from collections import Counter
from typing import List

from cuesheet.models.entities import TimelineRequest
from cuesheet.models.errors import InvalidInputError


def validate_request(request: TimelineRequest) -> None:
    """
    Reject malformed requests before any scheduling work begins.

    Collects every problem rather than stopping at the first, so the caller
    can fix the request in one round trip.

    Raises:
        InvalidInputError: listing each problem and the ids involved
    """
    problems: List[str] = []
    ids: List[str] = []

    window = request.event_window
    if window.start >= window.end:
        problems.append(f"event window start ({window.start}) must precede end ({window.end})")

    venue = request.venue
    if venue.access_time is not None and venue.curfew is not None and venue.access_time >= venue.curfew:
        problems.append("venue access time must precede curfew")

    for pid, count in Counter(p.id for p in request.performers).items():
        if count > 1:
            problems.append(f"duplicate performer id {pid}")
            ids.append(pid)

    for p in request.performers:
        if p.perform_minutes <= 0:
            problems.append(f"performer {p.id}: perform_minutes must be positive")
            ids.append(p.id)
        if p.setup_minutes < 0 or p.breakdown_minutes < 0:
            problems.append(f"performer {p.id}: setup and breakdown minutes cannot be negative")
            ids.append(p.id)
        if p.requires_safety_distance is not None and p.requires_safety_distance < 0:
            problems.append(f"performer {p.id}: safety distance cannot be negative")
            ids.append(p.id)

    for aid, count in Counter(a.id for a in request.activities).items():
        if count > 1:
            problems.append(f"duplicate activity id {aid}")
            ids.append(aid)
    for a in request.activities:
        if a.duration_minutes <= 0:
            problems.append(f"activity {a.id}: duration must be positive")
            ids.append(a.id)

    for name, count in Counter(m.name for m in request.milestones).items():
        if count > 1:
            problems.append(f"duplicate milestone {name}")
            ids.append(name)
    for m in request.milestones:
        if m.duration_minutes <= 0:
            problems.append(f"milestone {m.name}: duration must be positive")
            ids.append(m.name)
        if m.tolerance_minutes is not None and m.tolerance_minutes < 0:
            problems.append(f"milestone {m.name}: tolerance cannot be negative")
            ids.append(m.name)

    constraints = request.constraints
    if constraints.break_minutes < 0:
        problems.append("break_minutes cannot be negative")
    if constraints.simultaneous_performers_max < 1:
        problems.append("simultaneous_performers_max must be at least 1")

    if problems:
        raise InvalidInputError(problems, list(dict.fromkeys(ids)))
