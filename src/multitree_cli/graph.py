"""The task multitree: an id-indexed arena of tasks and sessions.

Every mutating method validates all of its inputs before touching any record,
so a failing call leaves the graph exactly as it was.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set

from .errors import (
    AmbiguousParent,
    CycleError,
    InvalidRange,
    NotFound,
    ProtectedTask,
    StorageError,
)
from .task import Session, Task

logger = logging.getLogger(__name__)

ROOT_ID = 0
ROOT_NAME = "/"
FORMAT_VERSION = 1


class Direction(Enum):
    """Which way a task moves among its siblings."""
    INCREASE = "increase"  # towards position 0
    DECREASE = "decrease"


class Mode(Enum):
    """How ``reattach`` treats the existing parent edge."""
    CUT = "cut"
    SHARE = "share"


class TaskGraph:
    """Owns all tasks and sessions and enforces the multitree invariants."""

    def __init__(self):
        self._tasks: Dict[int, Task] = {ROOT_ID: Task(id=ROOT_ID, name=ROOT_NAME)}
        self._sessions: Dict[int, Session] = {}
        self._next_id = ROOT_ID + 1
        self._next_session_id = 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __contains__(self, task_id: int) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        """Number of user tasks (the root is not counted)."""
        return len(self._tasks) - 1

    def get(self, task_id: int) -> Task:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise NotFound("task", task_id) from None

    def get_session(self, session_id: int) -> Session:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise NotFound("session", session_id) from None

    def children(self, task_id: int) -> List[int]:
        return list(self.get(task_id).children)

    def parents(self, task_id: int) -> Set[int]:
        return set(self.get(task_id).parents)

    def is_shared(self, task_id: int) -> bool:
        return self.get(task_id).is_shared

    def tasks(self) -> Iterator[Task]:
        """Iterate user tasks in id order."""
        for task_id in sorted(self._tasks):
            if task_id != ROOT_ID:
                yield self._tasks[task_id]

    def sessions(self) -> Iterator[Session]:
        """Iterate sessions in creation order."""
        for session_id in sorted(self._sessions):
            yield self._sessions[session_id]

    def sessions_of(self, task_id: int) -> List[Session]:
        return [self._sessions[s] for s in self.get(task_id).sessions]

    def first_session(self, task_id: int) -> Optional[Session]:
        """The task's own session with the earliest start, if any."""
        own = self.sessions_of(task_id)
        if not own:
            return None
        return min(own, key=lambda s: (s.start, s.id))

    def is_descendant(self, subject: int, ancestor: int) -> bool:
        """True if ``subject`` is ``ancestor`` or reachable from it via child edges."""
        stack = [ancestor]
        seen = set()
        while stack:
            current = stack.pop()
            if current == subject:
                return True
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._tasks[current].children)
        return False

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_child(self, parent_ids: Iterable[int], name: str) -> int:
        """Create a task under every parent in ``parent_ids`` (lowest priority)."""
        parents = self._require(parent_ids)
        if not parents:
            parents = [ROOT_ID]

        task_id = self._next_id
        self._next_id += 1
        self._tasks[task_id] = Task(id=task_id, name=name, parents=set(parents))
        for parent_id in parents:
            self._tasks[parent_id].children.append(task_id)

        logger.debug("Added task %d %r under %s", task_id, name, parents)
        return task_id

    def rename(self, ids: Iterable[int], new_name: str) -> None:
        targets = self._require_user_tasks(ids, "rename")
        for task_id in targets:
            self._tasks[task_id].name = new_name
        logger.debug("Renamed %s to %r", targets, new_name)

    def set_due(self, ids: Iterable[int], due: datetime) -> None:
        targets = self._require_user_tasks(ids, "schedule")
        for task_id in targets:
            self._tasks[task_id].due = due
        logger.debug("Set due %s on %s", due, targets)

    def clear_due(self, ids: Iterable[int]) -> None:
        for task_id in self._require(ids):
            self._tasks[task_id].due = None

    def add_session(self, ids: Iterable[int], start: datetime, end: datetime) -> List[int]:
        """Create one session per task. Raises ``InvalidRange`` if ``start > end``."""
        targets = self._require_user_tasks(ids, "add a session to")
        if start > end:
            raise InvalidRange(start, end)

        created = []
        for task_id in targets:
            session = Session(id=self._next_session_id, task_id=task_id, start=start, end=end)
            self._next_session_id += 1
            self._sessions[session.id] = session
            self._tasks[task_id].sessions.append(session.id)
            created.append(session.id)

        logger.debug("Added sessions %s (%s - %s)", created, start, end)
        return created

    def delete_session(self, session_id: int) -> None:
        session = self.get_session(session_id)
        del self._sessions[session_id]
        self._tasks[session.task_id].sessions.remove(session_id)
        logger.debug("Deleted session %d of task %d", session_id, session.task_id)

    def reorder(self, task_id: int, direction: Direction) -> None:
        """Swap the task with its neighbour in every parent's child list.

        A list where the task is already at the boundary is left alone.
        """
        task = self.get(task_id)
        step = -1 if direction is Direction.INCREASE else 1

        for parent_id in sorted(task.parents):
            siblings = self._tasks[parent_id].children
            index = siblings.index(task_id)
            other = index + step
            if 0 <= other < len(siblings):
                siblings[index], siblings[other] = siblings[other], siblings[index]

        logger.debug("Reordered task %d (%s)", task_id, direction.value)

    def reattach(self, moved_ids: Iterable[int], new_parent: int, mode: Mode,
                 via: Optional[Mapping[int, int]] = None) -> None:
        """Move (``CUT``) or link (``SHARE``) tasks under ``new_parent``.

        ``via`` maps a moved id to the parent it was reached through; it is
        only consulted for ``CUT`` and may be omitted for single-parent tasks.
        """
        via = dict(via or {})
        moved = self._require(moved_ids)
        self.get(new_parent)

        detach_from: Dict[int, int] = {}
        for task_id in moved:
            if task_id == ROOT_ID:
                raise ProtectedTask(task_id, "move")
            if self.is_descendant(new_parent, task_id):
                raise CycleError(task_id, new_parent)
            if mode is Mode.CUT:
                detach_from[task_id] = self._viewed_parent(task_id, via)

        for task_id in moved:
            task = self._tasks[task_id]
            if mode is Mode.CUT:
                old_parent = detach_from[task_id]
                if old_parent == new_parent:
                    continue
                self._tasks[old_parent].children.remove(task_id)
                task.parents.discard(old_parent)
            if new_parent not in task.parents:
                self._tasks[new_parent].children.append(task_id)
                task.parents.add(new_parent)

        logger.debug("Reattached %s under %d (%s)", moved, new_parent, mode.value)

    def delete(self, task_id: int) -> None:
        """Delete a task; children die only once no other parent holds them."""
        if task_id == ROOT_ID:
            raise ProtectedTask(task_id, "delete")
        task = self.get(task_id)

        for parent_id in task.parents:
            self._tasks[parent_id].children.remove(task_id)
        task.parents.clear()

        pending = [task_id]
        while pending:
            doomed = self._tasks.pop(pending.pop())
            for session_id in doomed.sessions:
                del self._sessions[session_id]
            for child_id in doomed.children:
                child = self._tasks[child_id]
                child.parents.discard(doomed.id)
                if not child.parents:
                    pending.append(child_id)
            logger.debug("Deleted task %d %r", doomed.id, doomed.name)

    # ------------------------------------------------------------------
    # Validation and (de)serialization
    # ------------------------------------------------------------------

    def check_invariants(self) -> None:
        """Assert edge symmetry, session ownership and acyclicity."""
        problems = self.violations()
        assert not problems, "; ".join(problems)

    def violations(self) -> List[str]:
        """Describe every broken invariant; an empty list means the graph is sound."""
        problems = []
        for task in self._tasks.values():
            if len(task.children) != len(set(task.children)):
                problems.append(f"duplicate child in {task.id}")
            for child_id in task.children:
                if child_id not in self._tasks:
                    problems.append(f"dangling child {child_id} in {task.id}")
                elif task.id not in self._tasks[child_id].parents:
                    problems.append(f"{child_id} does not list parent {task.id}")
            for parent_id in task.parents:
                if parent_id not in self._tasks:
                    problems.append(f"dangling parent {parent_id} in {task.id}")
                elif task.id not in self._tasks[parent_id].children:
                    problems.append(f"{parent_id} does not list child {task.id}")
            if task.id != ROOT_ID and not task.parents:
                problems.append(f"orphaned task {task.id}")
            if task.id == ROOT_ID and task.sessions:
                problems.append("the root task owns sessions")
            for session_id in task.sessions:
                session = self._sessions.get(session_id)
                if session is None:
                    problems.append(f"task {task.id} lists missing session {session_id}")
                elif session.task_id != task.id:
                    problems.append(f"session {session_id} misowned by {task.id}")

        for session in self._sessions.values():
            owner = self._tasks.get(session.task_id)
            if owner is None:
                problems.append(f"session {session.id} belongs to missing task {session.task_id}")
            elif session.id not in owner.sessions:
                problems.append(f"task {owner.id} does not list session {session.id}")
            if session.start > session.end:
                problems.append(f"session {session.id} ends before it starts")

        if problems:
            return problems

        # Kahn's algorithm: every task must be reachable in topological order
        indegree = {tid: len(t.parents) for tid, t in self._tasks.items()}
        ready = [tid for tid, degree in indegree.items() if degree == 0]
        visited = 0
        while ready:
            current = ready.pop()
            visited += 1
            for child_id in self._tasks[current].children:
                indegree[child_id] -= 1
                if indegree[child_id] == 0:
                    ready.append(child_id)
        if visited != len(self._tasks):
            problems.append("cycle detected in task graph")
        return problems

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format_version": FORMAT_VERSION,
            "next_id": self._next_id,
            "next_session_id": self._next_session_id,
            "tasks": [self._tasks[tid].to_dict() for tid in sorted(self._tasks)],
            "sessions": [s.to_dict() for s in self.sessions()],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskGraph":
        """Rebuild a graph written by ``to_dict``.

        Raises:
            StorageError: If the data violates the multitree invariants
        """
        graph = cls()
        tasks = [Task.from_dict(t) for t in data.get("tasks", [])]
        sessions = [Session.from_dict(s) for s in data.get("sessions", [])]

        for task in tasks:
            if task.id == ROOT_ID:
                task.parents.clear()
            graph._tasks[task.id] = task
        for session in sessions:
            graph._sessions[session.id] = session

        graph._next_id = max([data.get("next_id", 0)] + [t + 1 for t in graph._tasks])
        graph._next_session_id = max(
            [data.get("next_session_id", 0), 1] + [s + 1 for s in graph._sessions]
        )
        problems = graph.violations()
        if problems:
            raise StorageError(f"inconsistent task graph: {'; '.join(problems)}")
        return graph

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require(self, ids: Iterable[int]) -> List[int]:
        """Deduplicate ``ids`` preserving order; raise ``NotFound`` on any unknown id."""
        result = []
        for task_id in ids:
            if task_id not in self._tasks:
                raise NotFound("task", task_id)
            if task_id not in result:
                result.append(task_id)
        return result

    def _require_user_tasks(self, ids: Iterable[int], action: str) -> List[int]:
        targets = self._require(ids)
        if ROOT_ID in targets:
            raise ProtectedTask(ROOT_ID, action)
        return targets

    def _viewed_parent(self, task_id: int, via: Mapping[int, int]) -> int:
        parents = self._tasks[task_id].parents
        if task_id in via:
            if via[task_id] not in parents:
                raise NotFound("parent edge", f"{via[task_id]}->{task_id}")
            return via[task_id]
        if len(parents) == 1:
            return next(iter(parents))
        raise AmbiguousParent(task_id, parents)
