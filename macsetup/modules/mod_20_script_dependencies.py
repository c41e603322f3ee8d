from __future__ import annotations

import logging

from ..context import ModuleCtx
from ..errors import ModuleError
from ..lib import brew

logger = logging.getLogger(__name__)


class ScriptDependenciesModule:
    """Tools the provisioner itself needs, plus a parse check of the setup file.

    Every later module reads the configuration, so this module failing ends
    the run.
    """

    name = "script-dependencies"
    display_name = "Script Dependencies"

    def run(self, ctx: ModuleCtx) -> None:
        runner = ctx.runner
        if runner.which("brew") is None and not ctx.dry_run:
            raise ModuleError("Homebrew not found. Please run the homebrew module first")

        installed = 0
        present = 0
        for tool in ctx.settings.script_dependencies:
            if runner.which(tool) is not None:
                logger.debug("%s is already installed", tool)
                present += 1
                continue
            logger.info("Installing required tool: %s", tool)
            if not brew.install(runner, tool, timeout=ctx.settings.brew_install_timeout):
                raise ModuleError(f"Failed to install {tool}, which the setup script requires")
            installed += 1

        if not ctx.settings.config_path.is_file():
            raise ModuleError(f"Configuration file not found: {ctx.settings.config_path}")

        logger.info("Script dependencies ready (installed=%d, already present=%d)", installed, present)
