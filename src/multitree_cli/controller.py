"""Selection and restructuring controller for the tree view.

The controller turns discrete, already-decoded user commands into task graph
operations. It owns the view context (displayed root plus navigation stack),
the cursor and the selection set, and recomputes the layout after every
command so the renderer always sees a model consistent with the graph.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from .errors import MultitreeError, ProtectedTask
from .graph import ROOT_ID, Direction, Mode, TaskGraph
from .layout import Row, layout
from .temporal import TemporalParser

logger = logging.getLogger(__name__)


class Command(Enum):
    """Commands accepted by the tree view."""
    CURSOR_UP = "cursor_up"
    CURSOR_DOWN = "cursor_down"
    DESCEND = "descend"
    ASCEND = "ascend"
    TOGGLE_SELECT = "toggle_select"
    CLEAR_SELECTION = "clear_selection"
    ADD_CHILD = "add_child"
    RENAME = "rename"
    SET_DUE = "set_due"
    CLEAR_DUE = "clear_due"
    ADD_SESSION = "add_session"
    INCREASE_PRIORITY = "increase_priority"
    DECREASE_PRIORITY = "decrease_priority"
    DELETE = "delete"
    CUT = "cut"
    SHARE = "share"
    SESSION_VIEW = "session_view"
    TASK_SESSIONS = "task_sessions"
    IMPORT = "import"
    EXPORT = "export"
    QUIT = "quit"


# Commands that take the text typed in command mode
TEXT_COMMANDS = {Command.ADD_CHILD, Command.RENAME, Command.SET_DUE, Command.ADD_SESSION}


class Action(Enum):
    """What the outer loop should do after a command."""
    NONE = "none"
    QUIT = "quit"
    SESSION_VIEW = "session_view"
    TASK_SESSIONS = "task_sessions"
    TREE_VIEW = "tree_view"
    IMPORT = "import"
    EXPORT = "export"


@dataclass
class ViewContext:
    """The displayed root and the roots visited before it."""
    root: int = ROOT_ID
    stack: List[int] = field(default_factory=list)

    def descend(self, task_id: int) -> None:
        self.stack.append(self.root)
        self.root = task_id

    def ascend(self) -> bool:
        if not self.stack:
            return False
        self.root = self.stack.pop()
        return True

    def reset(self) -> None:
        self.root = ROOT_ID
        self.stack.clear()


class TreeController:
    """Applies tree-view commands to a task graph."""

    def __init__(self, graph: TaskGraph, height: int = 40, width: Optional[int] = None,
                 separators: bool = False, parser: Optional[TemporalParser] = None):
        self.graph = graph
        self.height = height
        self.width = width
        self.separators = separators
        self.parser = parser or TemporalParser()
        self.view = ViewContext()
        self.rows: List[Row] = []
        self.cursor = 0
        # task id -> parent it was selected under (None for the view root)
        self.selection: Dict[int, Optional[int]] = {}
        self.message: Optional[str] = None

        self._handlers: Dict[Command, Callable[..., Action]] = {
            Command.CURSOR_UP: self.cursor_up,
            Command.CURSOR_DOWN: self.cursor_down,
            Command.DESCEND: self.descend,
            Command.ASCEND: self.ascend,
            Command.TOGGLE_SELECT: self.toggle_select,
            Command.CLEAR_SELECTION: self.clear_selection,
            Command.ADD_CHILD: self.add_child,
            Command.RENAME: self.rename,
            Command.SET_DUE: self.set_due,
            Command.CLEAR_DUE: self.clear_due,
            Command.ADD_SESSION: self.add_session,
            Command.INCREASE_PRIORITY: lambda: self.reorder(Direction.INCREASE),
            Command.DECREASE_PRIORITY: lambda: self.reorder(Direction.DECREASE),
            Command.DELETE: self.delete,
            Command.CUT: lambda: self.reattach(Mode.CUT),
            Command.SHARE: lambda: self.reattach(Mode.SHARE),
            Command.SESSION_VIEW: lambda: Action.SESSION_VIEW,
            Command.TASK_SESSIONS: self.task_sessions,
            Command.IMPORT: lambda: Action.IMPORT,
            Command.EXPORT: lambda: Action.EXPORT,
            Command.QUIT: lambda: Action.QUIT,
        }
        self.refresh()

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def dispatch(self, command: Command, argument: Optional[str] = None) -> Action:
        """Apply one command. Graph errors are reported in ``message``."""
        self.message = None
        handler = self._handlers[command]
        try:
            if command in TEXT_COMMANDS:
                return handler(argument if argument is not None else "")
            return handler()
        except MultitreeError as e:
            self.message = str(e)
            logger.info("Rejected %s: %s", command.value, e)
            return Action.NONE

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def cursor_row(self) -> Optional[Row]:
        if not self.rows:
            return None
        return self.rows[self.cursor]

    @property
    def cursor_task_id(self) -> Optional[int]:
        row = self.cursor_row
        return row.task_id if row else None

    def is_cursor_at_root(self) -> bool:
        return self.cursor == 0

    def targets(self) -> List[int]:
        """The selection, or the cursor task when nothing is selected."""
        if self.selection:
            return list(self.selection)
        task_id = self.cursor_task_id
        return [task_id] if task_id is not None else []

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def cursor_up(self) -> Action:
        index = self.cursor - 1
        while index >= 0 and not self.rows[index].is_task:
            index -= 1
        if index >= 0:
            self.cursor = index
        return Action.NONE

    def cursor_down(self) -> Action:
        index = self.cursor + 1
        while index < len(self.rows) and not self.rows[index].is_task:
            index += 1
        if index < len(self.rows):
            self.cursor = index
        return Action.NONE

    def descend(self) -> Action:
        row = self.cursor_row
        if row is None or self.is_cursor_at_root():
            return Action.NONE
        self.view.descend(row.task_id)
        self.cursor = 0
        self.refresh(keep_cursor=False)
        return Action.NONE

    def ascend(self) -> Action:
        if self.view.ascend():
            self.cursor = 0
            self.refresh(keep_cursor=False)
        return Action.NONE

    def toggle_select(self) -> Action:
        row = self.cursor_row
        if row is None:
            return Action.NONE
        if row.task_id in self.selection:
            del self.selection[row.task_id]
        else:
            self.selection[row.task_id] = row.parent_id
        return Action.NONE

    def clear_selection(self) -> Action:
        self.selection.clear()
        return Action.NONE

    def task_sessions(self) -> Action:
        if self.cursor_task_id is None:
            return Action.NONE
        return Action.TASK_SESSIONS

    # ------------------------------------------------------------------
    # Batch operations
    # ------------------------------------------------------------------

    def add_child(self, name: str) -> Action:
        parents = self.targets()
        if not parents:
            return Action.NONE
        self.graph.add_child(parents, name)
        return self._restructured()

    def rename(self, name: str) -> Action:
        self.graph.rename(self.targets(), name)
        return self._restructured()

    def set_due(self, text: str) -> Action:
        due = self.parser.parse_due(text)
        self.graph.set_due(self.targets(), due)
        return self._restructured()

    def clear_due(self) -> Action:
        self.graph.clear_due(self.targets())
        return self._restructured()

    def add_session(self, text: str) -> Action:
        start, end = self.parser.parse_session(text)
        self.graph.add_session(self.targets(), start, end)
        return self._restructured()

    def delete(self) -> Action:
        doomed = [t for t in self.targets() if t != self.view.root]
        for task_id in doomed:
            self.graph.get(task_id)
            if task_id == ROOT_ID:
                raise ProtectedTask(task_id, "delete")
        if not doomed:
            return Action.NONE
        for task_id in doomed:
            # An earlier delete may already have cascaded into this one
            if task_id in self.graph:
                self.graph.delete(task_id)
        return self._restructured()

    def reorder(self, direction: Direction) -> Action:
        row = self.cursor_row
        if row is None or self.is_cursor_at_root():
            return Action.NONE
        self.graph.reorder(row.task_id, direction)
        return self._restructured()

    def reattach(self, mode: Mode) -> Action:
        row = self.cursor_row
        if row is None:
            return Action.NONE
        if self.selection:
            moved = dict(self.selection)
        else:
            moved = {row.task_id: row.parent_id}
        via = {task_id: parent for task_id, parent in moved.items() if parent is not None}
        self.graph.reattach(list(moved), row.task_id, mode, via=via)
        return self._restructured()

    # ------------------------------------------------------------------
    # Model maintenance
    # ------------------------------------------------------------------

    def replace_graph(self, graph: TaskGraph) -> None:
        """Swap in a freshly imported graph and reset the view."""
        self.graph = graph
        self.view.reset()
        self.selection.clear()
        self.cursor = 0
        self.refresh(keep_cursor=False)

    def resize(self, height: int, width: Optional[int] = None) -> None:
        self.height = height
        self.width = width
        self.refresh()

    def refresh(self, keep_cursor: bool = True) -> None:
        """Recompute rows, keeping the cursor on the same task where possible."""
        previous = self.cursor_row if keep_cursor else None

        while self.view.root not in self.graph:
            if not self.view.ascend():
                self.view.reset()

        self.rows = layout(self.graph, self.view.root, self.height,
                           width=self.width, separators=self.separators)
        self.cursor = self._retained_cursor(previous)

    def _retained_cursor(self, previous: Optional[Row]) -> int:
        if previous is None or not self.rows:
            return 0
        for index, row in enumerate(self.rows):
            if row.task_id == previous.task_id and row.parent_id == previous.parent_id:
                return index
        for index, row in enumerate(self.rows):
            if row.task_id == previous.task_id:
                return index
        for index, row in enumerate(self.rows):
            if row.is_task and row.parent_id == previous.parent_id:
                return index
        return 0

    def _restructured(self) -> Action:
        self.selection.clear()
        self.refresh()
        return Action.NONE
