from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

DEFAULT_LOG_PATH = str(Path.home() / ".mac-setup.log")

_CONFIGURED_ATTR = "_macsetup_configured"
_PATH_ATTR = "_macsetup_log_path"


class DryRunFormatter(logging.Formatter):
    """Formatter that tags every record while a dry run is active."""

    def __init__(self, fmt: str, datefmt: Optional[str] = None, *, dry_run: bool = False) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.dry_run = dry_run

    def format(self, record: logging.LogRecord) -> str:
        record.mode = "[DRY RUN] " if self.dry_run else ""
        return super().format(record)


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    *,
    verbose: bool = False,
    dry_run: bool = False,
    also_console: bool = True,
) -> str:
    """Configure logging.

    Every run appends to the log file (default ~/.mac-setup.log). If the
    requested location is not writable we fall back to a file in the current
    working directory and keep going.

    Returns the actual file path being used.
    """

    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(root, _CONFIGURED_ATTR, False):
        return getattr(root, _PATH_ATTR, log_path)

    file_fmt = DryRunFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(mode)s%(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
        dry_run=dry_run,
    )
    console_fmt = DryRunFormatter(fmt="%(levelname)-7s %(mode)s%(message)s", dry_run=dry_run)

    handlers: list[logging.Handler] = []
    chosen_path = log_path
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler: logging.Handler = logging.FileHandler(log_path)
    except OSError:
        chosen_path = str(Path.cwd() / "mac-setup.log")
        file_handler = logging.FileHandler(chosen_path)
    file_handler.setFormatter(file_fmt)
    # The file always gets full detail; console follows --verbose.
    file_handler.setLevel(logging.DEBUG)
    handlers.append(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(console_fmt)
        console.setLevel(logging.DEBUG if verbose else logging.INFO)
        handlers.append(console)

    for h in handlers:
        root.addHandler(h)
    root.setLevel(logging.DEBUG)

    setattr(root, _CONFIGURED_ATTR, True)
    setattr(root, _PATH_ATTR, chosen_path)

    logging.getLogger(__name__).debug(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
