"""Command-line interface for multitree."""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape

from .config import Config, get_config
from .controller import TEXT_COMMANDS, Action, Command, TreeController
from .errors import MultitreeError
from .graph import ROOT_ID, Direction, Mode, TaskGraph
from .logging_setup import setup_logging
from .render import get_themed_console, render_sessions, render_status, render_tree
from .sessions import SessionCommand, SessionController
from .storage import Storage, get_storage, reset_storage
from .temporal import EXAMPLES, TemporalParser

logger = logging.getLogger(__name__)

# Lines used by the header and status line around the tree table
CHROME_LINES = 3

TREE_KEYS = {
    "q": Command.QUIT,
    "j": Command.CURSOR_DOWN,
    "k": Command.CURSOR_UP,
    "h": Command.ASCEND,
    "l": Command.DESCEND,
    " ": Command.TOGGLE_SELECT,
    "\x1b": Command.CLEAR_SELECTION,
    ".": Command.SHARE,
    "x": Command.CUT,
    "a": Command.ADD_CHILD,
    "r": Command.RENAME,
    "z": Command.SET_DUE,
    "s": Command.ADD_SESSION,
    "Z": Command.CLEAR_DUE,
    "K": Command.INCREASE_PRIORITY,
    "J": Command.DECREASE_PRIORITY,
    "D": Command.DELETE,
    "v": Command.TASK_SESSIONS,
    "2": Command.SESSION_VIEW,
    "I": Command.IMPORT,
    "E": Command.EXPORT,
}

SESSION_KEYS = {
    "q": SessionCommand.QUIT,
    "j": SessionCommand.CURSOR_DOWN,
    "k": SessionCommand.CURSOR_UP,
    "d": SessionCommand.DELETE,
    "1": SessionCommand.TREE_VIEW,
}

# Arrow keys as returned by click.getchar on ANSI and Windows terminals
ARROW_KEYS = {
    "\x1b[A": "k", "\x1b[B": "j", "\x1b[D": "h", "\x1b[C": "l",
    "\xe0H": "k", "\xe0P": "j", "\xe0K": "h", "\xe0M": "l",
}

PROMPTS = {
    Command.ADD_CHILD: "New task",
    Command.RENAME: "Rename to",
    Command.SET_DUE: "Due",
    Command.ADD_SESSION: "Session",
}

# Tree commands that change the graph and therefore trigger a save
MUTATING_COMMANDS = TEXT_COMMANDS | {
    Command.CLEAR_DUE,
    Command.INCREASE_PRIORITY,
    Command.DECREASE_PRIORITY,
    Command.DELETE,
    Command.CUT,
    Command.SHARE,
}


def get_console() -> Console:
    """Get a themed console that reflects current configuration."""
    return get_themed_console(no_color=get_config().no_color)


def fail(error: Exception) -> None:
    """Report an error in red and exit with status 1."""
    get_console().print(f"[red]Error: {escape(str(error))}[/red]")
    if getattr(error, "suggestions", None):
        get_console().print(f"[blue]💡 Try: {', '.join(error.suggestions)}[/blue]")
    sys.exit(1)


def load_graph() -> Tuple[Storage, TaskGraph]:
    storage = get_storage()
    return storage, storage.load()


def print_tree(graph: TaskGraph, root: int = ROOT_ID, height: Optional[int] = None) -> None:
    config = get_config()
    controller = TreeController(graph, height=height or config.tree_height,
                                width=config.wrap, separators=config.separators)
    if root != ROOT_ID:
        graph.get(root)
        controller.view.descend(root)
        controller.refresh(keep_cursor=False)
    get_console().print(render_tree(controller, show_cursor=False, show_ids=True))


@click.group()
@click.option("--config", type=click.Path(), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx, config, verbose):
    """Multitree - a terminal task manager for tasks with several parents."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    # Load configuration
    try:
        if config:
            Config.reload(Path(config))
            reset_storage()
        settings = get_config()
    except (OSError, TypeError, ValueError) as e:
        get_console().print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)

    console_level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    setup_logging(log_dir=settings.get_log_dir(), log_file=settings.log_file,
                  console_level=console_level)
    logger.debug("Using store %s", settings.get_store_path())


@cli.command()
@click.argument("root", type=int, default=ROOT_ID)
@click.option("--height", "-h", type=int, help="Number of lines available for the tree")
def tree(root, height):
    """Show the task tree below ROOT (default: everything)."""
    try:
        _, graph = load_graph()
        print_tree(graph, root, height)
    except (MultitreeError, OSError) as e:
        fail(e)


@cli.command()
@click.argument("name")
@click.option("--parent", "-p", "parents", type=int, multiple=True,
              help="Parent task id (repeat to share the new task)")
def add(name, parents):
    """Add a task named NAME.

    Examples:
      multitree add "Write report"
      multitree add "Book venue" -p 3 -p 7
    """
    try:
        storage, graph = load_graph()
        task_id = graph.add_child(parents, name)
        storage.save(graph)
        get_console().print(f"[success]✅ Added task {task_id}: {escape(name)}[/success]")
    except (MultitreeError, OSError) as e:
        fail(e)


@cli.command()
@click.argument("task_ids", type=int, nargs=-1, required=True)
@click.option("--name", "-n", required=True, help="New name")
def rename(task_ids, name):
    """Rename one or more tasks."""
    try:
        storage, graph = load_graph()
        graph.rename(task_ids, name)
        storage.save(graph)
        get_console().print(f"[success]✅ Renamed {len(set(task_ids))} task(s)[/success]")
    except (MultitreeError, OSError) as e:
        fail(e)


@cli.command()
@click.argument("task_ids", type=int, nargs=-1, required=True)
@click.argument("when")
def due(task_ids, when):
    """Set the due date of tasks, e.g. ``due 4 7 "tomorrow 4pm"``."""
    try:
        storage, graph = load_graph()
        deadline = TemporalParser().parse_due(when)
        graph.set_due(task_ids, deadline)
        storage.save(graph)
        get_console().print(f"[success]✅ Due {deadline:%Y-%m-%d %H:%M}[/success]")
    except (MultitreeError, OSError) as e:
        fail(e)


@cli.command()
@click.argument("task_ids", type=int, nargs=-1, required=True)
def undue(task_ids):
    """Clear the due date of tasks."""
    try:
        storage, graph = load_graph()
        graph.clear_due(task_ids)
        storage.save(graph)
        get_console().print("[success]✅ Due date cleared[/success]")
    except (MultitreeError, OSError) as e:
        fail(e)


@cli.group()
def session():
    """Add or delete work sessions."""
    pass


@session.command("add")
@click.argument("task_ids", type=int, nargs=-1, required=True)
@click.argument("span")
def session_add(task_ids, span):
    """Record a session on tasks, e.g. ``session add 4 "today 9am to 11am"``."""
    try:
        storage, graph = load_graph()
        start, end = TemporalParser().parse_session(span)
        created = graph.add_session(task_ids, start, end)
        storage.save(graph)
        get_console().print(f"[success]✅ Added session(s) {', '.join(map(str, created))}[/success]")
    except (MultitreeError, OSError) as e:
        fail(e)


@session.command("delete")
@click.argument("session_id", type=int)
def session_delete(session_id):
    """Delete one session."""
    try:
        storage, graph = load_graph()
        graph.delete_session(session_id)
        storage.save(graph)
        get_console().print(f"[success]✅ Deleted session {session_id}[/success]")
    except (MultitreeError, OSError) as e:
        fail(e)


@cli.command()
@click.option("--task", "-t", "task_id", type=int, help="Only sessions of this task")
def sessions(task_id):
    """List sessions in chronological order."""
    try:
        _, graph = load_graph()
        if task_id is not None:
            graph.get(task_id)
        controller = SessionController(graph, task_id)
        get_console().print(render_sessions(controller, show_cursor=False, show_ids=True))
    except (MultitreeError, OSError) as e:
        fail(e)


def _reorder(task_id: int, direction: Direction) -> None:
    try:
        storage, graph = load_graph()
        graph.reorder(task_id, direction)
        storage.save(graph)
        print_tree(graph)
    except (MultitreeError, OSError) as e:
        fail(e)


@cli.command()
@click.argument("task_id", type=int)
def up(task_id):
    """Raise the priority of a task under all of its parents."""
    _reorder(task_id, Direction.INCREASE)


@cli.command()
@click.argument("task_id", type=int)
def down(task_id):
    """Lower the priority of a task under all of its parents."""
    _reorder(task_id, Direction.DECREASE)


@cli.command()
@click.argument("task_ids", type=int, nargs=-1, required=True)
@click.option("--to", "new_parent", type=int, required=True, help="New parent id")
@click.option("--from", "old_parent", type=int, help="Parent edge to cut (needed for shared tasks)")
def cut(task_ids, new_parent, old_parent):
    """Move tasks under a new parent."""
    try:
        storage, graph = load_graph()
        via = {task_id: old_parent for task_id in task_ids} if old_parent is not None else None
        graph.reattach(task_ids, new_parent, Mode.CUT, via=via)
        storage.save(graph)
        get_console().print(f"[success]✅ Moved {len(set(task_ids))} task(s) under {new_parent}[/success]")
    except (MultitreeError, OSError) as e:
        fail(e)


@cli.command()
@click.argument("task_ids", type=int, nargs=-1, required=True)
@click.option("--to", "new_parent", type=int, required=True, help="Additional parent id")
def share(task_ids, new_parent):
    """Give tasks an additional parent."""
    try:
        storage, graph = load_graph()
        graph.reattach(task_ids, new_parent, Mode.SHARE)
        storage.save(graph)
        get_console().print(f"[success]✅ Shared {len(set(task_ids))} task(s) under {new_parent}[/success]")
    except (MultitreeError, OSError) as e:
        fail(e)


@cli.command()
@click.argument("task_id", type=int)
def delete(task_id):
    """Delete a task; children survive while another parent holds them."""
    try:
        storage, graph = load_graph()
        before = len(graph)
        graph.delete(task_id)
        storage.save(graph)
        get_console().print(f"[success]✅ Deleted {before - len(graph)} task(s)[/success]")
    except (MultitreeError, OSError) as e:
        fail(e)


@cli.command("export")
@click.argument("path", type=click.Path(), required=False)
def export_cmd(path):
    """Write the task store to PATH (default: the configured export path)."""
    try:
        storage, graph = load_graph()
        target = storage.export_graph(graph, Path(path) if path else None)
        get_console().print(f"[success]✅ Exported {len(graph)} tasks to {target}[/success]")
    except (MultitreeError, OSError) as e:
        fail(e)


@cli.command("import")
@click.argument("path", type=click.Path(), required=False)
def import_cmd(path):
    """Replace the task store with an exported file."""
    try:
        storage = get_storage()
        graph = storage.import_graph(Path(path) if path else None)
        storage.save(graph)
        get_console().print(f"[success]✅ Imported {len(graph)} tasks[/success]")
    except (MultitreeError, OSError) as e:
        fail(e)


@cli.command()
def ui():
    """Interactive tree view.

    Keys: j/k move, h/l leave/enter, space select, a add, r rename, z due,
    Z clear due, s session, K/J priority, x cut, . share, D delete,
    v task sessions, 2 session view, 1 tree view, I/E import/export, q quit.
    """
    try:
        storage, graph = load_graph()
    except (MultitreeError, OSError) as e:
        fail(e)
    InteractiveSession(storage, graph).run()


class InteractiveSession:
    """Key loop that feeds decoded keys to the tree and session controllers."""

    def __init__(self, storage: Storage, graph: TaskGraph):
        config = get_config()
        self.storage = storage
        self.console = get_console()
        self.tree = TreeController(graph, height=self._tree_height(), width=config.wrap,
                                   separators=config.separators)
        self.sessions: Optional[SessionController] = None
        self.notice: Optional[str] = None

    def run(self) -> None:
        while True:
            self.draw()
            raw = click.getchar()
            key = ARROW_KEYS.get(raw, raw)
            self.notice = None
            if self.sessions is not None:
                action = self.handle_session_key(key)
            else:
                action = self.handle_tree_key(key)
            if action is Action.QUIT:
                break
            self.perform(action)

    def draw(self) -> None:
        self.console.clear()
        if self.sessions is not None:
            self.console.print(render_sessions(self.sessions))
            self.console.print(render_status(self.sessions.message))
            return

        height = self._tree_height()
        if height != self.tree.height:
            self.tree.resize(height, self.tree.width)
        self.console.print(render_tree(self.tree))
        if self.notice:
            self.console.print(f"[success]{self.notice}[/success]")
        else:
            self.console.print(render_status(self.tree.message, len(self.tree.selection)))

    def handle_tree_key(self, key: str) -> Action:
        command = TREE_KEYS.get(key)
        if command is None:
            return Action.NONE

        argument = None
        if command in TEXT_COMMANDS:
            if command is Command.SET_DUE or command is Command.ADD_SESSION:
                self.console.print(f"[muted]e.g. {', '.join(EXAMPLES)}[/muted]")
            argument = click.prompt(PROMPTS[command], default="", show_default=False)
            if not argument.strip():
                return Action.NONE

        action = self.tree.dispatch(command, argument)
        if command in MUTATING_COMMANDS and self.tree.message is None:
            self.save()
        return action

    def handle_session_key(self, key: str) -> Action:
        command = SESSION_KEYS.get(key)
        if command is None:
            return Action.NONE
        action = self.sessions.dispatch(command)
        if command is SessionCommand.DELETE and self.sessions.message is None:
            self.save()
        return action

    def perform(self, action: Action) -> None:
        """Carry out the view switches and file transfers a command asked for."""
        if action is Action.SESSION_VIEW:
            self.sessions = SessionController(self.tree.graph)
        elif action is Action.TASK_SESSIONS:
            self.sessions = SessionController(self.tree.graph, self.tree.cursor_task_id)
        elif action is Action.TREE_VIEW:
            self.sessions = None
            self.tree.refresh()
        elif action is Action.EXPORT:
            try:
                target = self.storage.export_graph(self.tree.graph)
                self.notice = f"Exported to {target}"
            except (MultitreeError, OSError) as e:
                self.tree.message = str(e)
        elif action is Action.IMPORT:
            try:
                graph = self.storage.import_graph()
            except (MultitreeError, OSError) as e:
                self.tree.message = str(e)
                return
            self.tree.replace_graph(graph)
            self.save()
            self.notice = f"Imported {len(graph)} tasks"

    def save(self) -> None:
        try:
            self.storage.save(self.tree.graph)
        except OSError as e:
            logger.error("Failed to save task store: %s", e)
            self.tree.message = f"save failed: {e}"

    def _tree_height(self) -> int:
        return max(self.console.size.height - CHROME_LINES, 1)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
