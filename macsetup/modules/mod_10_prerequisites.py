from __future__ import annotations

import logging
import time

from ..context import ModuleCtx
from ..errors import ModuleError

logger = logging.getLogger(__name__)


class PrerequisitesModule:
    name = "prerequisites"
    display_name = "Prerequisites"

    wait_timeout_s = 600
    poll_interval_s = 5

    def _installed(self, ctx: ModuleCtx) -> bool:
        return ctx.runner.query(["xcode-select", "-p"]).ok

    def run(self, ctx: ModuleCtx) -> None:
        r = ctx.runner.query(["xcode-select", "-p"])
        if r.ok:
            logger.info("Xcode Command Line Tools are already installed (%s)", r.stdout.strip())
            return

        if ctx.dry_run:
            ctx.runner.run_dry("install Xcode Command Line Tools")
            return

        logger.info("Installing Xcode Command Line Tools; follow the on-screen dialog")
        if not ctx.runner.run(["xcode-select", "--install"]).ok:
            logger.warning("xcode-select --install failed (may already be installed)")

        elapsed = 0
        while not self._installed(ctx):
            if elapsed >= self.wait_timeout_s:
                raise ModuleError("Timeout waiting for Xcode Command Line Tools installation")
            time.sleep(self.poll_interval_s)
            elapsed += self.poll_interval_s
            if elapsed % 30 == 0:
                logger.info("Still waiting... (%ds elapsed)", elapsed)

        if ctx.runner.which("git") is None:
            raise ModuleError("git not found after Xcode Command Line Tools installation")
        logger.info("Xcode Command Line Tools installed")
