"""Session view: every session in the graph as one chronological list."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .controller import Action
from .errors import MultitreeError
from .graph import TaskGraph
from .task import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionEntry:
    """A session paired with the name of the task that owns it."""
    task_id: int
    task_name: str
    session: Session


def project(graph: TaskGraph, task_id: Optional[int] = None) -> List[SessionEntry]:
    """List sessions ascending by start; ties keep creation order.

    With ``task_id`` only that task's sessions are listed.
    """
    if task_id is not None:
        sessions = graph.sessions_of(task_id)
    else:
        sessions = list(graph.sessions())
    ordered = sorted(sessions, key=lambda s: (s.start, s.id))
    return [SessionEntry(s.task_id, graph.get(s.task_id).name, s) for s in ordered]


class SessionCommand(Enum):
    CURSOR_UP = "cursor_up"
    CURSOR_DOWN = "cursor_down"
    DELETE = "delete"
    TREE_VIEW = "tree_view"
    QUIT = "quit"


class SessionController:
    """Cursor and deletion over the projected session list."""

    def __init__(self, graph: TaskGraph, task_id: Optional[int] = None):
        self.graph = graph
        self.task_id = task_id
        self.entries: List[SessionEntry] = []
        self.cursor = 0
        self.message: Optional[str] = None
        self.refresh()

    @property
    def cursor_entry(self) -> Optional[SessionEntry]:
        if not self.entries:
            return None
        return self.entries[self.cursor]

    def dispatch(self, command: SessionCommand) -> Action:
        """Apply one command to the session list."""
        self.message = None
        if command is SessionCommand.CURSOR_UP:
            self.cursor = max(self.cursor - 1, 0)
        elif command is SessionCommand.CURSOR_DOWN:
            self.cursor = min(self.cursor + 1, max(len(self.entries) - 1, 0))
        elif command is SessionCommand.DELETE:
            self.delete()
        elif command is SessionCommand.TREE_VIEW:
            return Action.TREE_VIEW
        elif command is SessionCommand.QUIT:
            return Action.QUIT
        return Action.NONE

    def delete(self) -> None:
        entry = self.cursor_entry
        if entry is None:
            return
        try:
            self.graph.delete_session(entry.session.id)
        except MultitreeError as e:
            self.message = str(e)
            logger.info("Rejected session delete: %s", e)
            return
        self.refresh()

    def refresh(self) -> None:
        if self.task_id is not None and self.task_id not in self.graph:
            self.task_id = None
        self.entries = project(self.graph, self.task_id)
        self.cursor = min(self.cursor, max(len(self.entries) - 1, 0))
