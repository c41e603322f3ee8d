from __future__ import annotations

import logging
import re
from typing import List, Optional

from ..context import ModuleCtx
from ..errors import ModuleError

logger = logging.getLogger(__name__)

_DOWNLOADER = re.compile(r"\b(curl|wget)\b")
_DANGEROUS = re.compile(r"rm\s+-rf|mkfs|dd\s+if=|>\s*/dev/")

# Config key -> binary used to detect an existing install.
BINARY_NAMES = {"claude_cli": "claude"}


def validate_install_command(cmd: str) -> bool:
    return bool(_DOWNLOADER.search(cmd)) and not _DANGEROUS.search(cmd)


class CurlToolsModule:
    name = "curl-tools"
    display_name = "Curl Tools"

    def _already_installed(self, ctx: ModuleCtx, tool: str) -> bool:
        if tool == "oh_my_zsh":
            return (ctx.settings.home / ".oh-my-zsh").is_dir()
        binary: Optional[str] = BINARY_NAMES.get(tool, tool)
        return ctx.runner.which(binary) is not None

    def run(self, ctx: ModuleCtx) -> None:
        tools = ctx.store.get_table("curl_tools")
        if not tools:
            logger.warning("No curl tools found in configuration")
            return

        failed: List[str] = []
        for tool, raw in tools.items():
            cmd = str(raw).strip().strip("'")
            if not cmd:
                logger.error("No installation command found for: %s", tool)
                failed.append(tool)
                continue

            if self._already_installed(ctx, tool):
                logger.info("%s is already installed", tool)
                continue

            if not validate_install_command(cmd):
                logger.error("Refusing install command for %s (must use curl or wget): %s", tool, cmd)
                failed.append(tool)
                continue

            logger.info("Installing %s...", tool)
            r = ctx.runner.run(["/bin/bash", "-c", cmd], timeout=ctx.settings.curl_timeout)
            if r.ok:
                if not ctx.dry_run:
                    logger.info("%s installed", tool)
            else:
                logger.error("Failed to install %s (exit %s)", tool, r.returncode)
                failed.append(tool)

        if failed:
            raise ModuleError(f"Curl tools failed: {', '.join(failed)}")
