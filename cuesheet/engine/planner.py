import logging
from typing import List, Optional

from cuesheet.config.settings import EngineConfig, get_engine_config
from cuesheet.engine.allocator import allocate, find_overrun
from cuesheet.engine.composer import TimelineResult, build_call_sheet, compose, describe_entry
from cuesheet.engine.ordering import Comparator, order
from cuesheet.engine.resolver import resolve
from cuesheet.engine.validation import validate_request
from cuesheet.graph.constraint_graph import build
from cuesheet.models.entities import TimelineRequest

logger = logging.getLogger(__name__)


def order_performers(
    request: TimelineRequest,
    config: Optional[EngineConfig] = None,
    comparator: Optional[Comparator] = None,
) -> List[str]:
    """Validate the request and return the performer order only."""
    config = config or get_engine_config()
    validate_request(request)
    graph = build(request.performers)
    return order(graph, request.performers, comparator=comparator, config=config)


def generate_timeline(
    request: TimelineRequest,
    config: Optional[EngineConfig] = None,
    comparator: Optional[Comparator] = None,
) -> TimelineResult:
    """
    Run the full planning pipeline for one request.

    validate -> graph -> order -> allocate -> resolve -> compose

    Input and structural problems raise (InvalidInputError,
    UnknownReferenceError, CyclicDependencyError) before anything is
    scheduled. A schedule that does not fit is still returned, with the
    WindowOverrunError on ``result.error`` and a matching warning.
    """
    config = config or get_engine_config()
    validate_request(request)
    graph = build(request.performers)
    logger.debug(f"Constraint graph: {len(graph.nodes)} performers, {graph.edge_count} edges")

    ordered = order(graph, request.performers, comparator=comparator, config=config)
    performers = {p.id: p for p in request.performers}

    allocation = allocate(
        ordered,
        performers,
        request.milestones,
        request.event_window,
        request.venue,
        request.constraints,
        activities=request.activities,
        config=config,
    )
    schedule, resolver_warnings = resolve(allocation.schedule, request.milestones, config)
    warnings = allocation.warnings + resolver_warnings

    # resolution only moves things later, so the overrun is re-measured on the final schedule
    error = find_overrun(
        build_call_sheet(schedule, performers, config),
        performers,
        request.event_window,
        request.venue,
    )
    if error is not None:
        warnings.append(f"{error.message} (performers: {', '.join(error.entity_ids)})")
        logger.warning(f"Timeline overrun: {error.overrun_minutes} min")

    for entry in schedule:
        logger.debug(describe_entry(entry))

    return compose(
        schedule,
        request.performers,
        request.event_window,
        request.venue,
        request.constraints,
        config=config,
        warnings=warnings,
        error=error,
        order=ordered,
    )
