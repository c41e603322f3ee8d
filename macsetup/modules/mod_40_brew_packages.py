from __future__ import annotations

import logging
from typing import List

from ..context import ModuleCtx
from ..errors import ModuleError
from ..lib import brew

logger = logging.getLogger(__name__)


class BrewPackagesModule:
    """Formulae from ``[brew.packages.<category>]`` arrays."""

    name = "brew-packages"
    display_name = "Brew Packages"
    section = "brew.packages"
    cask = False

    def run(self, ctx: ModuleCtx) -> None:
        categories = ctx.store.section_keys(self.section)
        if not categories:
            logger.warning("No %s categories found in configuration", self.section)
            return

        processed = 0
        failed: List[str] = []
        for category in categories:
            names, ok = ctx.store.get_array(f'{self.section}."{category}"')
            names = brew.clean_names(names) if ok else []
            if not names:
                continue
            logger.info("Category: %s", category)
            processed += len(names)
            failed += brew.install_missing(
                ctx.runner,
                names,
                cask=self.cask,
                timeout=ctx.settings.brew_install_timeout,
            )

        logger.info("Processed %d %s", processed, "casks" if self.cask else "brew packages")
        if failed:
            raise ModuleError(f"Failed to install: {', '.join(failed)}")
