"""Logging configuration for the multitree CLI."""

import logging
import sys
from pathlib import Path
from typing import Union


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable while the tree is drawn on it:
    - multitree logs pass at the handler's level
    - third-party loggers only at ERROR and above
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("multitree_cli"):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: Union[str, Path] = "~/.multitree",
    log_file: str = "multitree.log",
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Configure logging with:
    - Console handler on stderr, filtered for interactive use
    - File handler with full detail for debugging

    Call this once, before the first command runs.
    """
    log_dir = Path(log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_dir / log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)
