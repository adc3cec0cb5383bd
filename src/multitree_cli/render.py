"""rich rendering of the tree view, the session view and the status line."""

from datetime import datetime
from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from .controller import TreeController
from .layout import Row
from .sessions import SessionController
from .utils.datetime import humanize, humanize_span

CITY_LIGHTS_COLORS = {
    'surface_light': '#41505E',
    'primary': '#68D5F3',
    'secondary': '#5CCFE6',
    'accent': '#B7C5D3',
    'success': '#8BD649',
    'warning': '#FFD93D',
    'critical': '#FF5370',
    'text_muted': '#4F5B66',
    'text_bright': '#FFFFFF',
}

MULTITREE_THEME = Theme({
    'muted': CITY_LIGHTS_COLORS['text_muted'],
    'header': f"{CITY_LIGHTS_COLORS['text_bright']} bold",
    'border': CITY_LIGHTS_COLORS['surface_light'],
    'due_date': CITY_LIGHTS_COLORS['primary'],
    'due_date_overdue': f"{CITY_LIGHTS_COLORS['critical']} bold",
    'session': CITY_LIGHTS_COLORS['secondary'],
    'success': f"{CITY_LIGHTS_COLORS['success']} bold",
    'warning': f"{CITY_LIGHTS_COLORS['warning']} bold",
    'error': f"{CITY_LIGHTS_COLORS['critical']} bold",
    'accent': CITY_LIGHTS_COLORS['accent'],
    'cursor': 'black on white',
    'selected': 'white on dark_blue',
    'cursor_selected': 'white on blue',
})

# Tree connectors; the heavy variants mark a task shared within the view
BRANCH, LAST_BRANCH = "├─", "└─"
SHARED_BRANCH, SHARED_LAST_BRANCH = "┣━", "┗━"
PIPE, BLANK = "│ ", "  "


def get_themed_console(no_color: bool = False) -> Console:
    """Get a console with the multitree theme."""
    return Console(theme=MULTITREE_THEME, no_color=no_color, highlight=False)


def _continues(rows: List[Row], index: int, depth: int) -> bool:
    """True if another row at ``depth`` follows before the branch closes."""
    for row in rows[index + 1:]:
        if not row.is_task:
            continue
        if row.depth < depth:
            return False
        if row.depth == depth:
            return True
    return False


def connectors(rows: List[Row]) -> List[str]:
    """Tree-drawing prefix for every row."""
    prefixes = []
    for index, row in enumerate(rows):
        if not row.is_task or row.depth == 0:
            prefixes.append("")
            continue
        parts = [PIPE if _continues(rows, index, level) else BLANK for level in range(1, row.depth)]
        last = not _continues(rows, index, row.depth)
        if row.shared:
            parts.append(SHARED_LAST_BRANCH if last else SHARED_BRANCH)
        else:
            parts.append(LAST_BRANCH if last else BRANCH)
        prefixes.append("".join(parts))
    return prefixes


def _row_style(controller: TreeController, index: int, row: Row) -> Optional[str]:
    at_cursor = index == controller.cursor
    selected = row.task_id in controller.selection
    if at_cursor and selected:
        return "cursor_selected"
    if at_cursor:
        return "cursor"
    if selected:
        return "selected"
    return None


def render_tree(controller: TreeController, now: Optional[datetime] = None,
                show_cursor: bool = True, show_ids: bool = False) -> Table:
    """Build the tree view table from the controller's current rows.

    Args:
        controller: Supplies rows, cursor and selection
        now: Reference time for humanized dates
        show_cursor: Highlight the cursor and selection (interactive view)
        show_ids: Add an id column for use with the one-shot commands
    """
    table = Table(box=None, expand=True, show_header=True, header_style="header", pad_edge=False)
    if show_ids:
        table.add_column("ID", justify="right", style="muted")
    table.add_column("Task", ratio=3, no_wrap=True)
    table.add_column("Session", ratio=2, style="session")
    table.add_column("Due", ratio=1, style="due_date")

    prefixes = connectors(controller.rows)
    for index, row in enumerate(controller.rows):
        leading = [str(row.task_id) if row.is_task else ""] if show_ids else []
        if not row.is_task:
            table.add_row(*leading, "", "", "")
            continue

        name = Text(prefixes[index], style="border")
        indent = " " * len(prefixes[index])
        name.append(f"\n{indent}".join(row.lines), style=row.priority.color)
        if row.multi_parent and not row.shared:
            name.append(" ⑂", style="muted")

        session = humanize_span(row.session.start, row.session.end, now) if row.session else ""
        due = Text(humanize(row.due, now))
        if row.due and row.due < (now or datetime.now()):
            due.stylize("due_date_overdue")

        style = _row_style(controller, index, row) if show_cursor else None
        table.add_row(*leading, name, session, due, style=style)
    return table


def render_sessions(controller: SessionController, now: Optional[datetime] = None,
                    show_cursor: bool = True, show_ids: bool = False) -> Table:
    """Build the session view table."""
    title = "Sessions"
    if controller.task_id is not None:
        title = f"Sessions of {controller.graph.get(controller.task_id).name}"
    table = Table(title=title, box=None, expand=True, header_style="header")
    if show_ids:
        table.add_column("ID", justify="right", style="muted")
    table.add_column("Task", ratio=2)
    table.add_column("Session", ratio=2, style="session")
    table.add_column("Minutes", justify="right", style="muted")

    for index, entry in enumerate(controller.entries):
        session = entry.session
        leading = [str(session.id)] if show_ids else []
        table.add_row(
            *leading,
            entry.task_name,
            humanize_span(session.start, session.end, now),
            str(session.duration_minutes),
            style="cursor" if show_cursor and index == controller.cursor else None,
        )
    return table


def render_status(message: Optional[str], selected: int = 0) -> Text:
    """One-line status: the last error, or the selection size."""
    if message:
        return Text(message, style="error")
    if selected:
        return Text(f"{selected} selected", style="accent")
    return Text("")
