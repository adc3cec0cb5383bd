"""Tests for the session view."""

from datetime import datetime

from multitree_cli.controller import Action
from multitree_cli.sessions import SessionCommand, SessionController, project


class TestProject:
    """Tests for the chronological projection."""

    def test_orders_by_start_then_creation(self, diamond):
        """Sessions created at 09:00, 08:00, 08:00 list as 08:00 (first), 08:00 (second), 09:00."""
        graph, ids = diamond
        nine = datetime(2025, 10, 17, 9, 0)
        eight = datetime(2025, 10, 17, 8, 0)
        [late] = graph.add_session([ids["A"]], nine, nine.replace(hour=10))
        [first] = graph.add_session([ids["B"]], eight, eight.replace(hour=10))
        [second] = graph.add_session([ids["D"]], eight, eight.replace(hour=9))

        entries = project(graph)
        assert [e.session.id for e in entries] == [first, second, late]
        assert [e.task_name for e in entries] == ["B", "D", "A"]

    def test_filter_by_task(self, diamond):
        graph, ids = diamond
        graph.add_session([ids["A"], ids["B"]], datetime(2025, 10, 17, 9), datetime(2025, 10, 17, 10))
        entries = project(graph, ids["B"])
        assert [e.task_id for e in entries] == [ids["B"]]

    def test_empty_graph(self, diamond):
        graph, _ = diamond
        assert project(graph) == []


class TestSessionController:
    """Tests for cursor movement and deletion in the session view."""

    def setup_method(self):
        self.start = datetime(2025, 10, 17, 9, 0)
        self.end = datetime(2025, 10, 17, 10, 0)

    def test_cursor_is_clamped(self, diamond):
        graph, ids = diamond
        graph.add_session([ids["A"], ids["B"]], self.start, self.end)
        controller = SessionController(graph)

        controller.dispatch(SessionCommand.CURSOR_UP)
        assert controller.cursor == 0
        for _ in range(5):
            controller.dispatch(SessionCommand.CURSOR_DOWN)
        assert controller.cursor == 1

    def test_delete_removes_the_session_from_the_graph(self, diamond):
        graph, ids = diamond
        graph.add_session([ids["A"], ids["B"]], self.start, self.end)
        controller = SessionController(graph)
        controller.dispatch(SessionCommand.CURSOR_DOWN)
        controller.dispatch(SessionCommand.DELETE)

        assert [s.task_id for s in graph.sessions()] == [ids["A"]]
        assert len(controller.entries) == 1
        assert controller.cursor == 0

    def test_delete_on_empty_list_does_nothing(self, diamond):
        graph, _ = diamond
        controller = SessionController(graph)
        assert controller.dispatch(SessionCommand.DELETE) is Action.NONE
        assert controller.cursor_entry is None

    def test_view_switch_and_quit(self, diamond):
        graph, _ = diamond
        controller = SessionController(graph)
        assert controller.dispatch(SessionCommand.TREE_VIEW) is Action.TREE_VIEW
        assert controller.dispatch(SessionCommand.QUIT) is Action.QUIT

    def test_refresh_drops_filter_of_deleted_task(self, diamond):
        graph, ids = diamond
        graph.add_session([ids["A"], ids["D"]], self.start, self.end)
        controller = SessionController(graph, ids["A"])
        assert len(controller.entries) == 1

        graph.delete(ids["A"])
        controller.refresh()
        assert controller.task_id is None
        assert [e.task_id for e in controller.entries] == [ids["D"]]
