"""Adaptive breadth-first layout of a multitree onto a bounded terminal.

The engine walks the graph level by level from the view root. Within a level
the candidates are ordered by priority tier, then by breadth-first order, and
emitted until the height budget is spent. The surviving rows are then returned
in depth-first display order.
"""

import logging
import textwrap
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional, Set, Tuple

from .graph import TaskGraph
from .priority import Priority, Tier
from .task import Session

logger = logging.getLogger(__name__)

INDENT = 2


class RowKind(Enum):
    TASK = "task"
    SEPARATOR = "separator"


@dataclass
class Row:
    """One visible entry of the tree view."""
    kind: RowKind
    task_id: Optional[int] = None
    parent_id: Optional[int] = None
    depth: int = 0
    name: str = ""
    priority: Priority = field(default_factory=Priority)
    due: Optional[datetime] = None
    session: Optional[Session] = None
    shared: bool = False
    multi_parent: bool = False
    lines: List[str] = field(default_factory=lambda: [""])

    @property
    def tier(self) -> Tier:
        return self.priority.tier

    @property
    def height(self) -> int:
        return max(1, len(self.lines))

    @property
    def is_task(self) -> bool:
        return self.kind is RowKind.TASK


@dataclass
class _Placed:
    row: Row
    path: Tuple[int, ...]


def wrap_name(name: str, width: Optional[int]) -> List[str]:
    """Split a task name into display lines no wider than ``width``."""
    if width is None:
        return [name]
    return textwrap.wrap(name, width) or [""]


def layout(graph: TaskGraph, root: int, height_budget: int,
           width: Optional[int] = None, separators: bool = False) -> List[Row]:
    """Compute the rows visible under ``root`` within ``height_budget`` lines.

    Args:
        graph: The task graph to read
        root: Id of the task displayed at the top
        height_budget: Available terminal lines
        width: Name column width; ``None`` means one line per task
        separators: Emit a blank row between top-level subtrees

    Returns:
        Rows in display order. Nodes that did not fit are simply absent.
    """
    root_row = _make_row(graph, root, None, 0, Priority(), width)
    if root_row is None or root_row.height > height_budget:
        return []

    placed: List[_Placed] = [_Placed(root_row, (0,))]
    remaining = height_budget - root_row.height
    visited: Set[Tuple[int, Tuple[int, ...]]] = set()
    frontier = list(placed)
    top_level_seen = False
    exhausted = False

    while frontier and not exhausted:
        candidates = []
        for parent_order, parent in enumerate(frontier):
            parent_id = parent.row.task_id
            children = graph.children(parent_id)
            for position, child_id in enumerate(children):
                if (child_id, parent.path) in visited:
                    continue
                visited.add((child_id, parent.path))
                priority = Priority(position, len(children))
                candidates.append((priority.tier.rank, parent_order, position, parent, child_id, priority))
        candidates.sort(key=lambda c: c[:3])

        next_frontier = []
        for _, _, _, parent, child_id, priority in candidates:
            depth = parent.row.depth + 1
            row = _make_row(graph, child_id, parent.row.task_id, depth, priority, width)
            if row is None:
                continue

            cost = row.height
            if separators and depth == 1 and top_level_seen:
                cost += 1
            if cost > remaining:
                exhausted = True
                break

            remaining -= cost
            if depth == 1:
                top_level_seen = True
            child = _Placed(row, parent.path + (len(placed),))
            placed.append(child)
            next_frontier.append(child)
        frontier = next_frontier

    placed.sort(key=lambda p: p.path)
    emitted_ids = {p.row.task_id for p in placed}

    rows: List[Row] = []
    first_top_level = True
    for p in placed:
        row = p.row
        if row.depth == 1:
            if separators and not first_top_level:
                rows.append(Row(kind=RowKind.SEPARATOR, depth=1))
            first_top_level = False
        in_view_parents = graph.parents(row.task_id) & emitted_ids
        rows.append(replace(row, shared=len(in_view_parents) >= 2))

    logger.debug("Laid out %d rows under %d (budget %d, %d left)",
                 len(rows), root, height_budget, remaining)
    return rows


def _make_row(graph: TaskGraph, task_id: int, parent_id: Optional[int], depth: int,
              priority: Priority, width: Optional[int]) -> Optional[Row]:
    task = graph.get(task_id)
    name_width = None
    if width is not None:
        name_width = width - INDENT * depth
        if name_width < 1:
            return None
    return Row(
        kind=RowKind.TASK,
        task_id=task_id,
        parent_id=parent_id,
        depth=depth,
        name=task.name,
        priority=priority,
        due=task.due,
        session=graph.first_session(task_id),
        multi_parent=task.is_shared,
        lines=wrap_name(task.name, name_width),
    )
