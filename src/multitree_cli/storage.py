"""Storage layer for multitree using a markdown file with YAML frontmatter.

The frontmatter carries the full graph (tasks, edges, due dates, sessions and
id counters). The markdown body is a readable outline of the tree for humans
and is ignored when the file is read back.
"""

import logging
from pathlib import Path
from typing import List, Optional, Set

import frontmatter
import yaml

from .config import ConfigModel
from .errors import StorageError
from .graph import ROOT_ID, TaskGraph

logger = logging.getLogger(__name__)


class GraphMarkdownFormat:
    """Handles conversion between a TaskGraph and its markdown file."""

    @staticmethod
    def to_markdown(graph: TaskGraph) -> str:
        """Convert the graph to markdown with the serialized graph as frontmatter."""
        content_lines = ["# Tasks", ""]
        content_lines.extend(GraphMarkdownFormat.outline(graph))
        post = frontmatter.Post("\n".join(content_lines), **graph.to_dict())
        return frontmatter.dumps(post)

    @staticmethod
    def from_markdown(content: str) -> TaskGraph:
        """Parse a markdown file back into a TaskGraph.

        Raises:
            StorageError: If the frontmatter is missing or inconsistent
        """
        try:
            post = frontmatter.loads(content)
        except yaml.YAMLError as e:
            raise StorageError(f"invalid frontmatter: {e}") from e

        if "tasks" not in post.metadata:
            raise StorageError("no task data found in frontmatter")

        try:
            return TaskGraph.from_dict(post.metadata)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"malformed task data: {e}") from e

    @staticmethod
    def outline(graph: TaskGraph) -> List[str]:
        """Nested markdown list of the tree; shared subtrees are expanded once."""
        lines: List[str] = []
        expanded: Set[int] = set()

        def walk(task_id: int, depth: int) -> None:
            task = graph.get(task_id)
            line = f"{'  ' * depth}- {task.name}"
            if task.due:
                line += f" !{task.due.strftime('%Y-%m-%d %H:%M')}"
            if task.is_shared:
                line += " (shared)"
            if task_id in expanded and task.children:
                lines.append(line + " ...")
                return
            lines.append(line)
            expanded.add(task_id)
            for child_id in task.children:
                walk(child_id, depth + 1)

        for top_id in graph.children(ROOT_ID):
            walk(top_id, 0)
        return lines


class Storage:
    """File-based storage for the task graph."""

    def __init__(self, config: ConfigModel):
        self.config = config
        Path(self.config.data_dir).mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self.config.get_store_path()

    def load(self) -> TaskGraph:
        """Load the task graph, or an empty graph if no store exists yet."""
        if not self.path.exists():
            logger.info("No task store at %s; starting empty", self.path)
            return TaskGraph()
        return self._read(self.path)

    def save(self, graph: TaskGraph) -> None:
        """Write the task graph to the store."""
        self._write(graph, self.path)

    def export_graph(self, graph: TaskGraph, path: Optional[Path] = None) -> Path:
        """Write the graph to ``path`` (default: the configured export path)."""
        target = Path(path) if path else self.config.get_export_path()
        self._write(graph, target)
        logger.info("Exported %d tasks to %s", len(graph), target)
        return target

    def import_graph(self, path: Optional[Path] = None) -> TaskGraph:
        """Read a graph written by ``export_graph``."""
        source = Path(path) if path else self.config.get_export_path()
        if not source.exists():
            raise StorageError(f"import file {source} does not exist", str(source))
        graph = self._read(source)
        logger.info("Imported %d tasks from %s", len(graph), source)
        return graph

    def _read(self, path: Path) -> TaskGraph:
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            raise StorageError(f"cannot read {path}: {e}", str(path)) from e
        return GraphMarkdownFormat.from_markdown(content)

    def _write(self, graph: TaskGraph, path: Path) -> None:
        content = GraphMarkdownFormat.to_markdown(graph)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Replace atomically
        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(content)
        tmp_path.replace(path)
        logger.debug("Wrote %d tasks to %s", len(graph), path)


# Global storage instance
_storage_instance: Optional[Storage] = None


def get_storage() -> Storage:
    """Get the global storage instance.

    Returns:
        Storage instance initialized with current config
    """
    global _storage_instance

    if _storage_instance is None:
        from .config import get_config
        _storage_instance = Storage(get_config())

    return _storage_instance


def reset_storage() -> None:
    """Reset the global storage instance (useful for testing)."""
    global _storage_instance
    _storage_instance = None
