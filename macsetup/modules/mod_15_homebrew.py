from __future__ import annotations

import logging

from ..context import ModuleCtx
from ..errors import ModuleError

logger = logging.getLogger(__name__)


class HomebrewModule:
    name = "homebrew"
    display_name = "Homebrew"

    def run(self, ctx: ModuleCtx) -> None:
        runner = ctx.runner
        s = ctx.settings

        if runner.which("brew") is not None:
            logger.info("Homebrew is already installed")
            if not runner.run(["brew", "update"], timeout=s.brew_install_timeout).ok:
                logger.warning("Failed to update Homebrew")
            return

        logger.info("Installing Homebrew from %s", s.homebrew_install_url)
        if ctx.dry_run:
            runner.run_dry("install Homebrew")
            return

        script = runner.run(["curl", "-fsSL", s.homebrew_install_url], timeout=s.curl_timeout)
        if not script.ok:
            raise ModuleError(f"Failed to download the Homebrew installer: {script.stderr.strip()}")

        r = runner.run(
            ["/bin/bash", "-c", script.stdout],
            timeout=s.brew_install_timeout,
            env={"NONINTERACTIVE": "1"},
        )
        if not r.ok:
            raise ModuleError(f"Failed to install Homebrew (exit {r.returncode})")

        brew_bin = s.homebrew_prefix / "bin" / "brew"
        if not brew_bin.exists():
            raise ModuleError(f"Homebrew not found after installation at {brew_bin}")

        zprofile = s.home / ".zprofile"
        existing = zprofile.read_text(encoding="utf-8") if zprofile.exists() else ""
        if "brew shellenv" not in existing:
            with zprofile.open("a", encoding="utf-8") as fh:
                fh.write(f"\n# Homebrew\neval \"$({brew_bin} shellenv)\"\n")
            logger.info("Added Homebrew initialization to %s", zprofile)
        logger.info("Homebrew installed")
