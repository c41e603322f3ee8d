from __future__ import annotations

import logging
from typing import List

from ..context import ModuleCtx
from ..errors import ModuleError
from ..lib.fs import ensure_directory
from ..repos.destinations import DestinationRules

logger = logging.getLogger(__name__)


class DirectoriesModule:
    """Creates the dev root and every configured clone destination under it."""

    name = "directories"
    display_name = "Directory Structure"

    def run(self, ctx: ModuleCtx) -> None:
        dev_root = ctx.settings.dev_root
        ensure_directory(dev_root, dry_run=ctx.dry_run)
        logger.info("Development root: %s", dev_root)

        destinations = DestinationRules.from_config(ctx.store).known_paths()
        if not destinations:
            logger.warning("No destinations found in configuration; only the development root was created")
            return

        created = 0
        existed = 0
        failed: List[str] = []
        for rel in destinations:
            try:
                if ensure_directory(dev_root / rel, dry_run=ctx.dry_run):
                    created += 1
                else:
                    existed += 1
            except OSError as e:
                logger.error("Failed to create %s: %s", dev_root / rel, e)
                failed.append(rel)

        logger.info("Directories created: %d, already existed: %d", created, existed)
        if failed:
            raise ModuleError(f"Failed to create: {', '.join(failed)}")
