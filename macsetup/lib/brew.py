from __future__ import annotations

import logging
from typing import List, Sequence

from .command import ShellRunner

logger = logging.getLogger(__name__)


def is_installed(runner: ShellRunner, name: str, *, cask: bool = False) -> bool:
    argv = ["brew", "list", "--cask", name] if cask else ["brew", "list", "--formula", name]
    return runner.query(argv).ok


def install(runner: ShellRunner, name: str, *, cask: bool = False, timeout: float | None = None) -> bool:
    """Install one formula/cask. Returns True on success (always True in dry-run)."""

    argv = ["brew", "install", "--cask", name] if cask else ["brew", "install", name]
    r = runner.run(argv, timeout=timeout)
    if not r.ok:
        logger.error("Failed to install %s%s: %s", name, " (cask)" if cask else "", r.stderr.strip())
    return r.ok


def install_missing(
    runner: ShellRunner,
    names: Sequence[str],
    *,
    cask: bool = False,
    timeout: float | None = None,
) -> List[str]:
    """Install every name not already present; return the names that failed."""

    failed: List[str] = []
    for name in names:
        if is_installed(runner, name, cask=cask):
            logger.debug("Already installed: %s", name)
            continue
        logger.info("Installing: %s", name)
        if not install(runner, name, cask=cask, timeout=timeout):
            failed.append(name)
    return failed


def clean_names(names: Sequence[str]) -> List[str]:
    """Drop blanks, comments and anything that looks like a key/value pair."""

    out: List[str] = []
    for n in names:
        n = n.strip()
        if not n or n.startswith("#") or "=" in n:
            continue
        if n not in out:
            out.append(n)
    return out
