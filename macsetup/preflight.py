from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .lib.macos import is_macos
from .settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreflightIssue:
    check: str
    message: str
    fatal: bool = True


def _nearest_existing(path: Path) -> Path:
    for p in (path, *path.parents):
        if p.exists():
            return p
    return Path("/")


def run_preflight(
    settings: Settings,
    *,
    config_path: Optional[Path] = None,
    dry_run: bool = False,
) -> List[PreflightIssue]:
    """Environment checks run before the pipeline starts.

    Dry runs only describe what would happen, so fatal issues are downgraded
    to warnings there.
    """

    cfg = config_path or settings.config_path
    issues: List[PreflightIssue] = []

    if not is_macos():
        issues.append(PreflightIssue("platform", "This tool only supports macOS"))

    if hasattr(os, "geteuid") and os.geteuid() == 0:
        issues.append(PreflightIssue("user", "Do not run as root; sudo is requested when needed"))

    if not cfg.is_file():
        issues.append(PreflightIssue("config", f"Configuration file not found: {cfg}"))

    parent = _nearest_existing(settings.dev_root)
    if not os.access(parent, os.W_OK):
        issues.append(
            PreflightIssue("dev-root", f"{parent} is not writable; cannot create {settings.dev_root}", fatal=False)
        )

    if dry_run:
        issues = [PreflightIssue(i.check, i.message, fatal=False) for i in issues]

    for i in issues:
        if i.fatal:
            logger.error("Preflight %s: %s", i.check, i.message)
        else:
            logger.warning("Preflight %s: %s", i.check, i.message)
    return issues
