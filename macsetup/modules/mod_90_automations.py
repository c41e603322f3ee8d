from __future__ import annotations

import logging
from typing import List

from ..automations import build_registry, is_enabled
from ..context import ModuleCtx
from ..errors import ModuleError

logger = logging.getLogger(__name__)


class AutomationsModule:
    name = "automations"
    display_name = "Automations"

    def run(self, ctx: ModuleCtx) -> None:
        registry = build_registry(ctx.settings.resolved_automations_dir)

        attempted = 0
        failed: List[str] = []
        for automation in registry:
            if not is_enabled(ctx.store, automation.name):
                logger.info("Skipping automation %s (disabled)", automation.name)
                continue

            attempted += 1
            logger.info("Running automation: %s", automation.name)
            try:
                automation.run(ctx)
            except ModuleError as e:
                logger.error("Automation %s failed: %s", automation.name, e)
                failed.append(automation.name)

        if attempted == 0:
            logger.info("No automations enabled")
            return

        logger.info("Automations: %d run, %d failed", attempted, len(failed))
        if failed and len(failed) == attempted:
            raise ModuleError(f"All automations failed: {', '.join(failed)}")
