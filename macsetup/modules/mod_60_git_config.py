from __future__ import annotations

import logging
from typing import List

from ..context import ModuleCtx
from ..errors import ModuleError

logger = logging.getLogger(__name__)

HTTPS_REWRITES = (
    ("https://github.com/", "ssh://git@github.com/"),
    ("https://gitlab.com/", "ssh://git@gitlab.com/"),
)


class GitConfigModule:
    name = "git-config"
    display_name = "Git Configuration"

    def _set(self, ctx: ModuleCtx, key: str, value: str, *, replace_all: bool = False) -> bool:
        argv = ["git", "config", "--global"]
        if replace_all:
            argv.append("--replace-all")
        r = ctx.runner.run([*argv, key, value])
        if not r.ok:
            logger.error("Failed to set git %s", key)
        return r.ok

    def run(self, ctx: ModuleCtx) -> None:
        store = ctx.store
        failed: List[str] = []

        for cfg_key, git_key in (("git.user_name", "user.name"), ("git.user_email", "user.email")):
            value, ok = store.get_string(cfg_key)
            if ok and value:
                logger.info("Setting git %s: %s", git_key, value)
                if not self._set(ctx, git_key, value):
                    failed.append(git_key)
            else:
                logger.warning("No %s found in configuration", cfg_key)

        if store.get_bool("git.push_auto_setup_remote", False):
            if not self._set(ctx, "push.autoSetupRemote", "true"):
                failed.append("push.autoSetupRemote")

        logger.info("Configuring HTTPS protocol for GitHub and GitLab")
        for https, ssh in HTTPS_REWRITES:
            if not self._set(ctx, f"url.{https}.insteadOf", ssh):
                logger.warning("Failed to set URL rewrite for %s", https)

        runner = ctx.runner
        if runner.which("gh") is not None and runner.query(["gh", "auth", "status"]).ok:
            logger.info("Configuring GitHub CLI as credential helper")
            runner.run(["gh", "auth", "setup-git"])
        else:
            logger.debug("GitHub CLI not authenticated - skipping credential helper setup")

        glab = runner.which("glab")
        if glab is not None and runner.query(["glab", "auth", "status"]).ok:
            logger.info("Configuring GitLab CLI as credential helper")
            self._set(
                ctx,
                "credential.https://gitlab.com.helper",
                f'!"{glab}" auth git-credential',
                replace_all=True,
            )
        else:
            logger.debug("GitLab CLI not authenticated - skipping credential helper setup")

        if failed:
            raise ModuleError(f"Failed to set: {', '.join(failed)}")
