"""Pytest configuration and shared fixtures."""

import logging
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from multitree_cli.config import Config  # noqa: E402
from multitree_cli.graph import Mode, TaskGraph  # noqa: E402
from multitree_cli.storage import reset_storage  # noqa: E402

# Friday 17 October 2025, 18:00
FRIDAY_EVENING = datetime(2025, 10, 17, 18, 0)


@pytest.fixture
def now():
    return FRIDAY_EVENING


@pytest.fixture
def diamond():
    """A -> B -> C, A -> C and D -> C, with ids returned by name."""
    graph = TaskGraph()
    a = graph.add_child([], "A")
    b = graph.add_child([a], "B")
    c = graph.add_child([b, a], "C")
    d = graph.add_child([], "D")
    graph.reattach([c], d, Mode.SHARE)
    return graph, {"A": a, "B": b, "C": c, "D": d}


@pytest.fixture
def config_file(tmp_path):
    """A config file pointing the data directory into ``tmp_path``."""
    data_dir = tmp_path / "data"
    path = tmp_path / "config.yaml"
    path.write_text(
        f"data_dir: {data_dir}\n"
        f"export_path: {tmp_path / 'export' / 'tasks.md'}\n"
        "no_color: true\n"
    )
    root = logging.getLogger()
    handlers = list(root.handlers)
    yield path
    Config._instance = None
    reset_storage()
    # Drop handlers installed by the CLI; their streams belong to the runner
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
