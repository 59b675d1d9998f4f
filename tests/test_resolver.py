from cuesheet.engine.resolver import clip_fillers, resolve
from cuesheet.models.entities import EntryKind, Milestone, ScheduleEntry


def setup(pid, start, end):
    return ScheduleEntry(start, end, EntryKind.SETUP, pid, False, f"{pid} setup")


def show(pid, start, end):
    return ScheduleEntry(start, end, EntryKind.PERFORMANCE, pid, True, pid)


def anchor(milestone):
    return ScheduleEntry(milestone.time, milestone.end, EntryKind.MILESTONE, milestone.name, True, milestone.name)


def find(schedule, ref_id, kind):
    return next(e for e in schedule if e.ref_id == ref_id and e.kind == kind)


class TestImmovableMilestones:
    """Performers yield to fixed milestones."""

    def test_performer_moves_past_immovable_milestone(self):
        """Speech 20:00-20:30 against an act planned 19:50-20:20."""
        speech = Milestone(name="Speech", time=1200, duration_minutes=30)
        schedule = [setup("act", 1170, 1190), show("act", 1190, 1220), anchor(speech)]

        resolved, warnings = resolve(schedule, [speech])

        performance = find(resolved, "act", EntryKind.PERFORMANCE)
        assert (performance.start, performance.end) == (1230, 1260)
        assert find(resolved, "act", EntryKind.SETUP).start == 1210
        milestone = find(resolved, "Speech", EntryKind.MILESTONE)
        assert (milestone.start, milestone.end) == (1200, 1230)
        assert len(warnings) == 1
        assert "act" in warnings[0]

    def test_downstream_chain_shifts_together(self):
        speech = Milestone(name="Speech", time=1200, duration_minutes=30)
        schedule = [
            setup("first", 1170, 1190), show("first", 1190, 1220),
            setup("second", 1210, 1230), show("second", 1230, 1260),
            anchor(speech),
        ]
        resolved, _ = resolve(schedule, [speech])
        first = find(resolved, "first", EntryKind.PERFORMANCE)
        second = find(resolved, "second", EntryKind.PERFORMANCE)
        assert first.start == 1230
        assert second.start == 1270
        assert second.start - first.end == 10

    def test_earlier_entries_untouched(self):
        speech = Milestone(name="Speech", time=1200, duration_minutes=30)
        schedule = [
            setup("early", 1100, 1120), show("early", 1120, 1150),
            setup("late", 1170, 1190), show("late", 1190, 1220),
            anchor(speech),
        ]
        resolved, _ = resolve(schedule, [speech])
        assert find(resolved, "early", EntryKind.PERFORMANCE).start == 1120

    def test_successive_milestones(self):
        speech = Milestone(name="Speech", time=1200, duration_minutes=30)
        awards = Milestone(name="Awards", time=1240, duration_minutes=20)
        schedule = [setup("act", 1170, 1190), show("act", 1190, 1220), anchor(speech), anchor(awards)]
        resolved, warnings = resolve(schedule, [speech, awards])
        assert find(resolved, "act", EntryKind.PERFORMANCE).start == 1260
        assert len(warnings) == 2


class TestFlexibleMilestones:
    """Flexible milestones slide within tolerance."""

    def test_flexible_milestone_slides_within_tolerance(self):
        toast = Milestone(name="Toast", time=1215, duration_minutes=10, flexible=True, tolerance_minutes=15)
        schedule = [setup("act", 1170, 1190), show("act", 1190, 1220), anchor(toast)]
        resolved, warnings = resolve(schedule, [toast])
        moved = find(resolved, "Toast", EntryKind.MILESTONE)
        assert (moved.start, moved.end) == (1220, 1230)
        assert find(resolved, "act", EntryKind.PERFORMANCE).start == 1190
        assert any("Toast" in w for w in warnings)

    def test_beyond_tolerance_performer_yields(self):
        """Default tolerance is 15 min; sliding 25 min is too far."""
        toast = Milestone(name="Toast", time=1195, duration_minutes=15, flexible=True)
        schedule = [setup("act", 1170, 1190), show("act", 1190, 1220), anchor(toast)]
        resolved, _ = resolve(schedule, [toast])
        assert find(resolved, "Toast", EntryKind.MILESTONE).start == 1195
        assert find(resolved, "act", EntryKind.PERFORMANCE).start == 1210

    def test_slide_blocked_by_other_milestone(self):
        toast = Milestone(name="Toast", time=1215, duration_minutes=10, flexible=True, tolerance_minutes=15)
        cake = Milestone(name="Cake", time=1225, duration_minutes=10)
        schedule = [setup("act", 1170, 1190), show("act", 1190, 1220), anchor(toast), anchor(cake)]
        resolved, _ = resolve(schedule, [toast, cake])
        assert find(resolved, "Toast", EntryKind.MILESTONE).start == 1215
        assert find(resolved, "act", EntryKind.PERFORMANCE).start >= 1235


class TestResolverInvariants:
    """Forward-only shifts and filler handling."""

    def test_shifts_are_forward_only(self):
        speech = Milestone(name="Speech", time=1200, duration_minutes=30)
        toast = Milestone(name="Toast", time=1300, duration_minutes=10, flexible=True)
        schedule = [
            setup("a", 1170, 1190), show("a", 1190, 1220),
            setup("b", 1210, 1230), show("b", 1230, 1290),
            anchor(speech), anchor(toast),
        ]
        original = {(e.ref_id, e.kind): e.start for e in schedule}
        resolved, _ = resolve(schedule, [speech, toast])
        for e in resolved:
            assert e.start >= original[(e.ref_id, e.kind)]

    def test_no_guest_facing_overlap_after_resolution(self):
        speech = Milestone(name="Speech", time=1200, duration_minutes=30)
        schedule = [
            setup("a", 1170, 1190), show("a", 1190, 1220),
            setup("b", 1210, 1230), show("b", 1230, 1260),
            anchor(speech),
        ]
        resolved, _ = resolve(schedule, [speech])
        facing = [e for e in resolved if e.guest_facing]
        for i, x in enumerate(facing):
            for y in facing[i + 1:]:
                assert not x.overlaps(y.start, y.end)

    def test_clean_schedule_unchanged(self):
        schedule = [setup("act", 1170, 1190), show("act", 1190, 1220)]
        resolved, warnings = resolve(schedule, [])
        assert resolved == schedule
        assert warnings == []

    def test_filler_clipped_by_milestone(self):
        roaming = ScheduleEntry(1100, 1160, EntryKind.ACTIVITY, "roaming", True, "Roaming")
        speech = ScheduleEntry(1150, 1170, EntryKind.MILESTONE, "Speech", True, "Speech")
        assert clip_fillers([roaming], [speech]) == [
            ScheduleEntry(1100, 1150, EntryKind.ACTIVITY, "roaming", True, "Roaming")
        ]

    def test_fully_covered_filler_dropped(self):
        pause = ScheduleEntry(1150, 1160, EntryKind.BREAK, "break", False, "Break")
        speech = ScheduleEntry(1140, 1170, EntryKind.MILESTONE, "Speech", True, "Speech")
        assert clip_fillers([pause], [speech]) == []

    def test_filler_after_pivot_moves_with_chain(self):
        speech = Milestone(name="Speech", time=1200, duration_minutes=30)
        schedule = [
            setup("act", 1170, 1190), show("act", 1190, 1220),
            ScheduleEntry(1220, 1250, EntryKind.ACTIVITY, "roaming", True, "Roaming"),
            anchor(speech),
        ]
        resolved, _ = resolve(schedule, [speech])
        filler = find(resolved, "roaming", EntryKind.ACTIVITY)
        assert (filler.start, filler.end) == (1260, 1290)

    def test_crew_entries_kept_in_place(self):
        speech = Milestone(name="Speech", time=1200, duration_minutes=30)
        crew = ScheduleEntry(1080, 1140, EntryKind.VENUE_SETUP, "venue", False, "Venue setup and sound check",
                             notes="Confirm all performers have arrived")
        schedule = [crew, setup("act", 1170, 1190), show("act", 1190, 1220), anchor(speech)]
        resolved, _ = resolve(schedule, [speech])
        assert find(resolved, "venue", EntryKind.VENUE_SETUP) == crew

    def test_notes_travel_with_shifted_performance(self):
        speech = Milestone(name="Speech", time=1200, duration_minutes=30)
        fire = ScheduleEntry(1190, 1220, EntryKind.PERFORMANCE, "fire", True, "fire",
                             notes="Maintain 5m safety distance")
        resolved, _ = resolve([setup("fire", 1170, 1190), fire, anchor(speech)], [speech])
        moved = find(resolved, "fire", EntryKind.PERFORMANCE)
        assert moved.start == 1230
        assert moved.notes == "Maintain 5m safety distance"
