"""
Example: Extending CueSheet with custom ordering rules

This example shows how to add a domain-specific ordering rule
and use it when planning a timeline.
"""

from cuesheet.config.settings import EngineConfig
from cuesheet.engine.ordering import (
    CLOSING,
    OPENING,
    HazardPlacementRule,
    OrderingContext,
    OrderingRule,
    PeakDurationRule,
    RuleRegistry,
)
from cuesheet.engine.planner import generate_timeline
from cuesheet.models.entities import EventWindow, Performer, TimelineRequest, Venue


# 1. Define a custom ordering rule
class InteractiveWarmupRule(OrderingRule):
    """
    Prefer interactive acts while guests are still arriving and
    keep them away from the finale.
    """

    def score(self, performer: Performer, context: OrderingContext) -> float:
        if performer.category != "interactive":
            return 0.0
        if context.phase == OPENING:
            return self.weight
        if context.phase == CLOSING:
            return -self.weight
        return 0.0


# 2. Create a rule registry
def build_registry(config: EngineConfig) -> RuleRegistry:
    registry = RuleRegistry()

    # 3. Register built-in and custom rules
    registry.register(HazardPlacementRule(weight=1.0, hazard_categories=config.hazard_categories))
    registry.register(PeakDurationRule(weight=0.5))
    registry.register(InteractiveWarmupRule(weight=2.0))
    return registry


# 4. Use the registry's comparator when planning
def plan_with_warmup(request: TimelineRequest, config: EngineConfig = EngineConfig()):
    return generate_timeline(request, config=config, comparator=build_registry(config).comparator())


if __name__ == "__main__":
    request = TimelineRequest(
        event_window=EventWindow(start=18 * 60, end=23 * 60),
        venue=Venue(access_time=17 * 60, name="Grand Hall"),
        performers=[
            Performer(id="band", category="music", setup_minutes=30, perform_minutes=45, breakdown_minutes=15),
            Performer(id="caricaturist", category="interactive", setup_minutes=5, perform_minutes=30,
                      breakdown_minutes=5),
        ],
    )
    result = plan_with_warmup(request)
    print(result.order)
