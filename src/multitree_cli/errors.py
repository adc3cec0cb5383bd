"""Error types raised by the multitree core.

All of them are recoverable at the command-handling boundary: the controller
and the CLI catch ``MultitreeError`` and report it without touching the graph.
"""

from typing import Any, Iterable, Optional


class MultitreeError(Exception):
    """Base class for user-facing multitree errors."""

    def __init__(self, message: str, value: Any = None):
        self.value = value
        super().__init__(message)


class NotFound(MultitreeError):
    """An operation referenced a task or session id absent from the graph."""

    def __init__(self, kind: str, ident: Any):
        self.kind = kind
        super().__init__(f"{kind} {ident} not found", ident)


class CycleError(MultitreeError):
    """A reattachment would make a task its own ancestor."""

    def __init__(self, moved_id: int, new_parent: int):
        self.moved_id = moved_id
        self.new_parent = new_parent
        super().__init__(
            f"cannot move task {moved_id} under {new_parent}: "
            f"{new_parent} is {moved_id} or one of its descendants",
            moved_id,
        )


class InvalidRange(MultitreeError):
    """A session ends before it starts."""

    def __init__(self, start: Any, end: Any):
        self.start = start
        self.end = end
        super().__init__(f"session end {end} precedes start {start}", (start, end))


class MalformedTemporal(MultitreeError):
    """Date, time or session text that matches no known form."""

    def __init__(self, text: str, suggestions: Optional[Iterable[str]] = None):
        self.text = text
        self.suggestions = list(suggestions or [])
        super().__init__(f"cannot understand date/time '{text}'", text)


class AmbiguousParent(MultitreeError):
    """A cut was requested for a shared task without saying which edge to cut."""

    def __init__(self, task_id: int, parents: Iterable[int]):
        self.parents = sorted(parents)
        super().__init__(
            f"task {task_id} has parents {self.parents}; specify which one to cut from",
            task_id,
        )


class ProtectedTask(MultitreeError):
    """The universal root cannot be renamed, deleted, moved or scheduled."""

    def __init__(self, task_id: int, action: str):
        self.action = action
        super().__init__(f"cannot {action} the root task", task_id)


class StorageError(MultitreeError):
    """The task store or an import file could not be read."""
