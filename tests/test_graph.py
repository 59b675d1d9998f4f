import pytest
from cuesheet.graph.constraint_graph import PRECEDES, SUCCEEDS, build, find_cycle
from cuesheet.models.entities import Performer
from cuesheet.models.errors import CyclicDependencyError, UnknownReferenceError


def act(pid, precedes=(), succeeds=()):
    return Performer(
        id=pid,
        category="other",
        setup_minutes=5,
        perform_minutes=10,
        breakdown_minutes=5,
        precedes_ids=tuple(precedes),
        succeeds_ids=tuple(succeeds),
    )


class TestGraphConstruction:
    """Edges derived from precedence hints."""

    def test_precedes_gives_forward_edge(self):
        graph = build([act("a", precedes=["b"]), act("b")])
        assert graph.has_edge("a", "b")
        assert not graph.has_edge("b", "a")
        assert graph.edge_tags[("a", "b")] == {PRECEDES}

    def test_succeeds_is_normalised_to_forward_edge(self):
        """b succeeds a means a -> b."""
        graph = build([act("a"), act("b", succeeds=["a"])])
        assert graph.has_edge("a", "b")
        assert graph.edge_tags[("a", "b")] == {SUCCEEDS}
        assert graph.predecessors["b"] == ["a"]

    def test_same_constraint_from_both_sides_is_one_edge(self):
        graph = build([act("a", precedes=["b"]), act("b", succeeds=["a"])])
        assert graph.edge_count == 1
        assert graph.edge_tags[("a", "b")] == {PRECEDES, SUCCEEDS}

    def test_nodes_keep_input_order(self):
        graph = build([act("z"), act("a"), act("m")])
        assert graph.nodes == ["z", "a", "m"]

    def test_diamond_is_acyclic(self):
        roster = [
            act("top", precedes=["left", "right"]),
            act("left", precedes=["bottom"]),
            act("right", precedes=["bottom"]),
            act("bottom"),
        ]
        graph = build(roster)
        assert graph.edge_count == 4
        assert find_cycle(graph) == []


class TestGraphValidation:
    """Unknown references and cycles are rejected."""

    def test_unknown_reference(self):
        with pytest.raises(UnknownReferenceError) as exc_info:
            build([act("a", precedes=["ghost"]), act("b")])
        err = exc_info.value
        assert err.performer_id == "a"
        assert err.missing_ids == ["ghost"]
        assert "ghost" in err.entity_ids

    def test_unknown_reference_in_succeeds(self):
        with pytest.raises(UnknownReferenceError):
            build([act("a", succeeds=["nobody"])])

    def test_two_node_cycle_names_both(self):
        with pytest.raises(CyclicDependencyError) as exc_info:
            build([act("a", precedes=["b"]), act("b", precedes=["a"])])
        assert set(exc_info.value.cycle_ids) == {"a", "b"}

    def test_cycle_through_mixed_fields(self):
        """a -> b -> c and a succeeds c closes the loop."""
        roster = [act("a", precedes=["b"], succeeds=["c"]), act("b", precedes=["c"]), act("c")]
        with pytest.raises(CyclicDependencyError) as exc_info:
            build(roster)
        assert set(exc_info.value.cycle_ids) == {"a", "b", "c"}

    def test_self_reference_is_a_cycle(self):
        with pytest.raises(CyclicDependencyError) as exc_info:
            build([act("solo", precedes=["solo"])])
        assert exc_info.value.cycle_ids == ["solo"]

    def test_cycle_error_is_structured(self):
        with pytest.raises(CyclicDependencyError) as exc_info:
            build([act("a", precedes=["b"]), act("b", precedes=["a"])])
        data = exc_info.value.to_dict()
        assert data["code"] == "cyclic_dependency"
        assert sorted(data["entity_ids"]) == ["a", "b"]

    def test_precedence_hints_are_immutable(self):
        performer = act("a", precedes=["b"])
        assert performer.precedes_ids == ("b",)
        assert performer.succeeds_ids == ()
        # frozen performers with tuple fields are hashable
        assert len({performer, act("a", precedes=["b"])}) == 1
