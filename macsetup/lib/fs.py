from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

logger = logging.getLogger(__name__)


def ensure_directory(path: Path, *, dry_run: bool = False) -> bool:
    """Create a directory tree. Returns True when it had to be created."""

    if path.is_dir():
        return False
    if dry_run:
        logger.info("Would create: %s", path)
        return True
    path.mkdir(parents=True, exist_ok=True)
    return True


def backup_path(src: Path, backup_root: Path, *, home: Path, dry_run: bool = False) -> Path:
    """Move ``src`` under ``backup_root``, keeping its path relative to home."""

    try:
        rel = src.relative_to(home)
    except ValueError:
        rel = Path(src.name)
    dst = backup_root / rel
    if dst.exists():
        dst = dst.with_name(f"{dst.name}.{time.strftime('%Y%m%d-%H%M%S')}")

    if dry_run:
        logger.info("Would back up %s -> %s", src, dst)
        return dst

    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(src), str(dst))
    logger.info("Backed up %s -> %s", src, dst)
    return dst
