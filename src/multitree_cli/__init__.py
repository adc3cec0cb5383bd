"""Multitree CLI - a terminal task manager where a task can have several parents."""

__version__ = "0.1.0"
__author__ = "Multitree CLI Team"

from .graph import ROOT_ID, Direction, Mode, TaskGraph
from .task import Session, Task

__all__ = ["TaskGraph", "Task", "Session", "Direction", "Mode", "ROOT_ID", "__version__"]
