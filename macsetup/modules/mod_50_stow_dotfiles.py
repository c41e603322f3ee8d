from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from ..context import ModuleCtx
from ..errors import ModuleError
from ..lib.fs import backup_path

logger = logging.getLogger(__name__)

CONFLICT_MARKER = "existing target is"
_EXCLUDED_PREFIXES = (".", "README", "LICENSE", "CLAUDE")


def detect_packages(dotfiles_dir: Path, excludes: tuple[str, ...]) -> List[str]:
    """Top-level directories of the dotfiles repo that stow should link."""

    if not dotfiles_dir.is_dir():
        return []
    return sorted(
        p.name
        for p in dotfiles_dir.iterdir()
        if p.is_dir() and not p.name.startswith(_EXCLUDED_PREFIXES) and p.name not in excludes
    )


def conflicting_targets(stow_output: str) -> List[str]:
    """Relative paths stow refused to overwrite, parsed from a ``stow -n`` run."""

    out: List[str] = []
    for line in stow_output.splitlines():
        if CONFLICT_MARKER in line:
            parts = line.split()
            if parts:
                out.append(parts[-1])
    return out


class StowDotfilesModule:
    name = "stow-dotfiles"
    display_name = "Stow Dotfiles"

    def _stow_argv(self, ctx: ModuleCtx, package: str, *extra: str) -> List[str]:
        s = ctx.settings
        argv = ["stow", "-d", str(s.resolved_dotfiles_dir), "-t", str(s.home)]
        if s.stow_force:
            argv.append("--restow")
        if s.stow_verbose:
            argv.append("-v")
        return [*argv, *extra, package]

    def _ensure_repo(self, ctx: ModuleCtx) -> None:
        s = ctx.settings
        runner = ctx.runner
        target = s.resolved_dotfiles_dir

        if (target / ".git").is_dir():
            logger.info("Updating existing dotfiles repository in %s", target)
            if not runner.run(["git", "-C", str(target), "fetch", "origin"]).ok:
                logger.warning("Failed to fetch from origin")
            if not runner.run(["git", "-C", str(target), "pull", "origin", s.dotfiles_branch]).ok:
                logger.warning("Failed to pull from origin")
            return

        if target.exists():
            logger.warning("Dotfiles directory exists but is not a git repository: %s", target)
            if not s.backup_existing:
                raise ModuleError(f"{target} exists and backups are disabled (--no-backup)")
            backup_path(target, s.resolved_backup_dir, home=s.home, dry_run=ctx.dry_run)

        logger.info("Cloning %s (branch %s) into %s", s.dotfiles_repo, s.dotfiles_branch, target)
        r = runner.run(
            ["git", "clone", "--branch", s.dotfiles_branch, s.dotfiles_repo, str(target)],
            timeout=s.git_clone_timeout,
        )
        if not r.ok:
            raise ModuleError(f"Failed to clone dotfiles repository (exit {r.returncode}): {r.stderr.strip()}")

    def _stow_one(self, ctx: ModuleCtx, package: str) -> bool:
        s = ctx.settings
        runner = ctx.runner

        probe = runner.query(self._stow_argv(ctx, package, "-n"))
        if not probe.ok:
            output = f"{probe.stdout}\n{probe.stderr}"
            if CONFLICT_MARKER not in output:
                logger.error("Stow failed for %s", package)
                logger.debug("%s", output.strip())
                return False

            logger.warning("Conflicts detected for package: %s", package)
            if s.stow_adopt:
                logger.info("Adopting existing files for: %s", package)
                return runner.run(self._stow_argv(ctx, package, "--adopt")).ok
            if not s.backup_existing:
                logger.error("Conflicts exist and backup/adopt are disabled for: %s", package)
                return False
            for rel in conflicting_targets(output):
                existing = s.home / rel
                if existing.exists() or existing.is_symlink():
                    backup_path(existing, s.resolved_backup_dir, home=s.home, dry_run=ctx.dry_run)

        return runner.run(self._stow_argv(ctx, package)).ok

    def run(self, ctx: ModuleCtx) -> None:
        runner = ctx.runner
        for tool in ("git", "stow"):
            if runner.which(tool) is None:
                if not ctx.dry_run:
                    raise ModuleError(f"{tool} not found. Run the prerequisites/brew-packages modules first")
                logger.warning("%s not found (expected to be installed by an earlier module)", tool)

        self._ensure_repo(ctx)

        s = ctx.settings
        packages = detect_packages(s.resolved_dotfiles_dir, s.stow_excludes)
        if not packages:
            if ctx.dry_run and not s.resolved_dotfiles_dir.exists():
                runner.run_dry("detect stow packages after cloning the dotfiles repository")
            else:
                logger.warning("No stow packages detected in %s", s.resolved_dotfiles_dir)
            return

        logger.info("Detected %d stow packages: %s", len(packages), ", ".join(packages))

        failed: List[str] = []
        for package in packages:
            if ctx.dry_run:
                runner.run_dry(f"stow: {package}")
                continue
            if self._stow_one(ctx, package):
                logger.info("Stowed: %s", package)
            else:
                failed.append(package)

        if failed:
            raise ModuleError(f"Failed to stow: {', '.join(failed)}")
