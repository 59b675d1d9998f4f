"""
Structured scheduling errors.

Every error carries the ids of the entities involved so a human scheduler can
act on it without reading logs. ``to_dict`` is the wire form used by the API.
"""

from typing import Dict, List, Optional, Sequence


class SchedulingError(Exception):
    code = "scheduling_error"

    def __init__(self, message: str, entity_ids: Sequence[str] = ()):
        super().__init__(message)
        self.message = message
        self.entity_ids: List[str] = list(entity_ids)

    def to_dict(self) -> Dict:
        return {"code": self.code, "message": self.message, "entity_ids": self.entity_ids}


class InvalidInputError(SchedulingError):
    """Request rejected before any scheduling work starts."""

    code = "invalid_input"

    def __init__(self, problems: Sequence[str], entity_ids: Sequence[str] = ()):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems), entity_ids)

    def to_dict(self) -> Dict:
        data = super().to_dict()
        data["problems"] = self.problems
        return data


class UnknownReferenceError(SchedulingError):
    code = "unknown_reference"

    def __init__(self, performer_id: str, missing_ids: Sequence[str]):
        self.performer_id = performer_id
        self.missing_ids = list(missing_ids)
        super().__init__(
            f"performer {performer_id} references unknown performer(s): {', '.join(self.missing_ids)}",
            [performer_id, *self.missing_ids],
        )


class CyclicDependencyError(SchedulingError):
    code = "cyclic_dependency"

    def __init__(self, cycle_ids: Sequence[str]):
        self.cycle_ids = list(cycle_ids)
        path = " -> ".join(self.cycle_ids + self.cycle_ids[:1])
        super().__init__(f"precedence cycle detected: {path}", self.cycle_ids)


class WindowOverrunError(SchedulingError):
    """Schedule runs past the venue curfew or event window.

    Feasibility errors travel alongside a best-effort schedule, so this one is
    returned by the allocator rather than raised.
    """

    code = "window_overrun"

    def __init__(self, overrun_minutes: int, performer_ids: Sequence[str], limit: Optional[int] = None):
        self.overrun_minutes = overrun_minutes
        self.limit = limit
        super().__init__(f"schedule overruns its limit by {overrun_minutes} min", performer_ids)

    def to_dict(self) -> Dict:
        data = super().to_dict()
        data["overrun_minutes"] = self.overrun_minutes
        data["limit"] = self.limit
        return data
