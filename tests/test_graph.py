"""Tests for the task multitree."""

import pytest
from datetime import datetime

from multitree_cli.errors import (
    AmbiguousParent,
    CycleError,
    InvalidRange,
    NotFound,
    ProtectedTask,
    StorageError,
)
from multitree_cli.graph import ROOT_ID, Direction, Mode, TaskGraph


def assert_symmetric(graph):
    """Every child edge has its parent edge and vice versa."""
    for task in [graph.get(ROOT_ID)] + list(graph.tasks()):
        for child_id in task.children:
            assert task.id in graph.parents(child_id)
        for parent_id in task.parents:
            assert task.id in graph.children(parent_id)


class TestTaskCreation:
    """Tests for adding tasks."""

    def test_empty_graph_has_only_the_root(self):
        graph = TaskGraph()
        assert len(graph) == 0
        assert ROOT_ID in graph
        assert graph.get(ROOT_ID).name == "/"

    def test_add_top_level_task(self):
        graph = TaskGraph()
        task_id = graph.add_child([], "Groceries")

        assert task_id == 1
        assert graph.parents(task_id) == {ROOT_ID}
        assert graph.children(ROOT_ID) == [task_id]

    def test_new_child_goes_last(self):
        """A new task starts with the lowest priority among its siblings."""
        graph = TaskGraph()
        first = graph.add_child([], "first")
        second = graph.add_child([], "second")
        assert graph.children(ROOT_ID) == [first, second]

    def test_add_under_several_parents_shares_the_task(self, diamond):
        graph, ids = diamond
        assert graph.parents(ids["C"]) == {ids["A"], ids["B"], ids["D"]}
        assert graph.is_shared(ids["C"])
        assert not graph.is_shared(ids["B"])
        assert_symmetric(graph)

    def test_unknown_parent_leaves_graph_untouched(self, diamond):
        graph, _ = diamond
        before = graph.to_dict()
        with pytest.raises(NotFound):
            graph.add_child([1, 99], "orphan")
        assert graph.to_dict() == before

    def test_ids_are_never_reused(self):
        graph = TaskGraph()
        first = graph.add_child([], "first")
        graph.delete(first)
        assert graph.add_child([], "second") == first + 1


class TestAttributes:
    """Tests for rename and due dates."""

    def test_rename_batch(self, diamond):
        graph, ids = diamond
        graph.rename([ids["A"], ids["D"], ids["A"]], "renamed")
        assert graph.get(ids["A"]).name == "renamed"
        assert graph.get(ids["D"]).name == "renamed"

    def test_root_cannot_be_renamed(self, diamond):
        graph, ids = diamond
        with pytest.raises(ProtectedTask, match="cannot rename the root task"):
            graph.rename([ids["A"], ROOT_ID], "x")
        assert graph.get(ROOT_ID).name == "/"
        assert graph.get(ids["A"]).name == "A"

    def test_set_and_clear_due(self, diamond):
        graph, ids = diamond
        due = datetime(2025, 10, 18, 16, 0)
        graph.set_due([ids["B"], ids["C"]], due)
        assert graph.get(ids["B"]).due == due
        assert graph.get(ids["C"]).due == due

        graph.clear_due([ids["B"]])
        assert graph.get(ids["B"]).due is None
        assert graph.get(ids["C"]).due == due

    def test_root_cannot_be_scheduled(self, diamond):
        graph, ids = diamond
        with pytest.raises(ProtectedTask):
            graph.set_due([ids["A"], ROOT_ID], datetime(2025, 1, 1))
        assert graph.get(ids["A"]).due is None


class TestSessions:
    """Tests for session records on the graph."""

    def test_add_session_to_each_target(self, diamond):
        graph, ids = diamond
        start, end = datetime(2025, 10, 17, 9, 0), datetime(2025, 10, 17, 10, 0)
        created = graph.add_session([ids["A"], ids["B"]], start, end)

        assert len(created) == 2
        assert [s.task_id for s in graph.sessions()] == [ids["A"], ids["B"]]
        assert graph.first_session(ids["A"]).start == start

    def test_backwards_range_is_rejected(self, diamond):
        graph, ids = diamond
        with pytest.raises(InvalidRange):
            graph.add_session([ids["A"]], datetime(2025, 10, 17, 11), datetime(2025, 10, 17, 9))
        assert list(graph.sessions()) == []

    def test_zero_length_session_is_allowed(self, diamond):
        graph, ids = diamond
        moment = datetime(2025, 10, 17, 9, 0)
        graph.add_session([ids["A"]], moment, moment)
        assert graph.first_session(ids["A"]).duration_minutes == 0

    def test_first_session_is_earliest_start(self, diamond):
        graph, ids = diamond
        graph.add_session([ids["A"]], datetime(2025, 10, 17, 9), datetime(2025, 10, 17, 10))
        graph.add_session([ids["A"]], datetime(2025, 10, 16, 9), datetime(2025, 10, 16, 10))
        assert graph.first_session(ids["A"]).start == datetime(2025, 10, 16, 9)

    def test_delete_session(self, diamond):
        graph, ids = diamond
        [session_id] = graph.add_session([ids["A"]], datetime(2025, 10, 17, 9), datetime(2025, 10, 17, 10))
        graph.delete_session(session_id)
        assert graph.sessions_of(ids["A"]) == []
        with pytest.raises(NotFound):
            graph.delete_session(session_id)


class TestReorder:
    """Tests for priority reordering."""

    def test_increase_then_decrease_restores_order(self):
        graph = TaskGraph()
        ids = [graph.add_child([], name) for name in "abcd"]

        graph.reorder(ids[2], Direction.INCREASE)
        assert graph.children(ROOT_ID) == [ids[0], ids[2], ids[1], ids[3]]

        graph.reorder(ids[2], Direction.DECREASE)
        assert graph.children(ROOT_ID) == ids

    def test_boundary_is_a_no_op(self):
        graph = TaskGraph()
        ids = [graph.add_child([], name) for name in "abc"]
        graph.reorder(ids[0], Direction.INCREASE)
        graph.reorder(ids[2], Direction.DECREASE)
        assert graph.children(ROOT_ID) == ids

    def test_shared_task_moves_in_every_parent(self, diamond):
        graph, ids = diamond
        other = graph.add_child([ids["D"]], "E")
        graph.reorder(other, Direction.INCREASE)
        assert graph.children(ids["D"]) == [other, ids["C"]]

        graph.reorder(ids["C"], Direction.INCREASE)
        assert graph.children(ids["A"]) == [ids["C"], ids["B"]]
        assert graph.children(ids["D"]) == [ids["C"], other]
        assert graph.children(ids["B"]) == [ids["C"]]


class TestReattach:
    """Tests for cut and share."""

    def test_cut_moves_single_parent_task(self, diamond):
        graph, ids = diamond
        graph.reattach([ids["B"]], ids["D"], Mode.CUT)

        assert graph.parents(ids["B"]) == {ids["D"]}
        assert ids["B"] not in graph.children(ids["A"])
        assert graph.children(ids["D"])[-1] == ids["B"]
        assert_symmetric(graph)

    def test_cut_shared_task_needs_the_viewed_parent(self, diamond):
        graph, ids = diamond
        before = graph.to_dict()
        with pytest.raises(AmbiguousParent):
            graph.reattach([ids["C"]], ROOT_ID, Mode.CUT)
        assert graph.to_dict() == before

    def test_cut_via_parent_keeps_other_edges(self, diamond):
        graph, ids = diamond
        graph.reattach([ids["C"]], ROOT_ID, Mode.CUT, via={ids["C"]: ids["A"]})
        assert graph.parents(ids["C"]) == {ids["B"], ids["D"], ROOT_ID}
        assert_symmetric(graph)

    def test_cut_onto_existing_parent_merges_edges(self, diamond):
        graph, ids = diamond
        graph.reattach([ids["C"]], ids["D"], Mode.CUT, via={ids["C"]: ids["A"]})
        assert graph.parents(ids["C"]) == {ids["B"], ids["D"]}
        assert graph.children(ids["D"]) == [ids["C"]]

    def test_cut_via_unknown_edge(self, diamond):
        graph, ids = diamond
        with pytest.raises(NotFound):
            graph.reattach([ids["B"]], ids["D"], Mode.CUT, via={ids["B"]: ids["D"]})

    def test_share_adds_an_edge(self, diamond):
        graph, ids = diamond
        graph.reattach([ids["B"]], ids["D"], Mode.SHARE)
        assert graph.parents(ids["B"]) == {ids["A"], ids["D"]}
        assert_symmetric(graph)

    def test_share_onto_existing_edge_is_a_no_op(self, diamond):
        graph, ids = diamond
        before = graph.to_dict()
        graph.reattach([ids["C"]], ids["D"], Mode.SHARE)
        assert graph.to_dict() == before

    @pytest.mark.parametrize("mode", [Mode.CUT, Mode.SHARE])
    def test_cycle_is_rejected_and_graph_unchanged(self, diamond, mode):
        """Attaching a task under its own descendant fails without side effects."""
        graph, ids = diamond
        before = graph.to_dict()
        with pytest.raises(CycleError):
            graph.reattach([ids["A"]], ids["C"], mode)
        assert graph.to_dict() == before

    def test_task_cannot_become_its_own_parent(self, diamond):
        graph, ids = diamond
        with pytest.raises(CycleError):
            graph.reattach([ids["D"]], ids["D"], Mode.SHARE)

    def test_batch_fails_as_a_whole(self, diamond):
        """One bad task in the batch leaves every other task where it was."""
        graph, ids = diamond
        before = graph.to_dict()
        with pytest.raises(CycleError):
            graph.reattach([ids["D"], ids["A"]], ids["B"], Mode.SHARE)
        assert graph.to_dict() == before

    def test_root_cannot_be_moved(self, diamond):
        graph, ids = diamond
        with pytest.raises(ProtectedTask):
            graph.reattach([ROOT_ID], ids["D"], Mode.SHARE)


class TestDelete:
    """Tests for cascading delete."""

    def test_cascade_spares_children_with_other_parents(self, diamond):
        """A -> B -> C, A -> C, D -> C: deleting A removes A and B, keeps C under D."""
        graph, ids = diamond
        graph.delete(ids["A"])

        assert ids["A"] not in graph
        assert ids["B"] not in graph
        assert ids["C"] in graph
        assert graph.parents(ids["C"]) == {ids["D"]}
        assert graph.children(ROOT_ID) == [ids["D"]]
        graph.check_invariants()

    def test_last_parent_takes_the_child_along(self, diamond):
        graph, ids = diamond
        graph.delete(ids["A"])
        graph.delete(ids["D"])
        assert len(graph) == 0

    def test_delete_removes_sessions(self, diamond):
        graph, ids = diamond
        graph.add_session([ids["B"], ids["D"]], datetime(2025, 10, 17, 9), datetime(2025, 10, 17, 10))
        graph.delete(ids["A"])
        assert [s.task_id for s in graph.sessions()] == [ids["D"]]

    def test_root_cannot_be_deleted(self, diamond):
        graph, _ = diamond
        with pytest.raises(ProtectedTask):
            graph.delete(ROOT_ID)

    def test_unknown_task(self, diamond):
        graph, _ = diamond
        with pytest.raises(NotFound):
            graph.delete(42)


class TestSerialization:
    """Tests for dictionary round trips and invariant checks."""

    def test_round_trip(self, diamond):
        graph, ids = diamond
        graph.set_due([ids["B"]], datetime(2025, 10, 18, 16, 0))
        graph.add_session([ids["C"]], datetime(2025, 10, 17, 9), datetime(2025, 10, 17, 10))

        restored = TaskGraph.from_dict(graph.to_dict())
        assert restored.to_dict() == graph.to_dict()
        assert restored.add_child([], "next") == graph.add_child([], "next")

    def test_cycle_in_data_is_rejected(self, diamond):
        graph, ids = diamond
        data = graph.to_dict()
        for task in data["tasks"]:
            if task["id"] == ids["A"]:
                task["parents"].append(ids["C"])
            if task["id"] == ids["C"]:
                task["children"].append(ids["A"])
        with pytest.raises(StorageError):
            TaskGraph.from_dict(data)

    def test_orphan_in_data_is_rejected(self, diamond):
        graph, ids = diamond
        data = graph.to_dict()
        for task in data["tasks"]:
            if task["id"] == ids["D"]:
                task["parents"] = []
            if task["id"] == ROOT_ID:
                task["children"].remove(ids["D"])
        with pytest.raises(StorageError):
            TaskGraph.from_dict(data)

    def test_in_memory_check_asserts(self, diamond):
        graph, ids = diamond
        graph.check_invariants()
        graph.get(ids["B"]).parents.add(ids["D"])
        with pytest.raises(AssertionError, match="does not list child"):
            graph.check_invariants()
