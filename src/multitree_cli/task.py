"""Task and Session records owned by the task graph."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from .utils.datetime import from_iso_string, to_iso_string


@dataclass
class Task:
    """A node of the multitree.

    Tasks refer to each other only by id. ``children`` is ordered (position is
    priority); ``parents`` is an unordered set.
    """

    id: int
    name: str
    due: Optional[datetime] = None
    sessions: List[int] = field(default_factory=list)
    children: List[int] = field(default_factory=list)
    parents: Set[int] = field(default_factory=set)

    @property
    def is_shared(self) -> bool:
        """True if the task has two or more parents."""
        return len(self.parents) > 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert the Task to a dictionary with ISO timestamps."""
        return {
            "id": self.id,
            "name": self.name,
            "due": to_iso_string(self.due),
            "sessions": list(self.sessions),
            "children": list(self.children),
            "parents": sorted(self.parents),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create a Task from a dictionary."""
        return cls(
            id=int(data["id"]),
            name=data.get("name", ""),
            due=from_iso_string(data.get("due")),
            sessions=[int(s) for s in data.get("sessions", [])],
            children=[int(c) for c in data.get("children", [])],
            parents={int(p) for p in data.get("parents", [])},
        )


@dataclass
class Session:
    """A block of time spent (or planned) on one task."""

    id: int
    task_id: int
    start: datetime
    end: datetime

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "start": to_iso_string(self.start),
            "end": to_iso_string(self.end),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        return cls(
            id=int(data["id"]),
            task_id=int(data["task_id"]),
            start=from_iso_string(data["start"]),
            end=from_iso_string(data["end"]),
        )
