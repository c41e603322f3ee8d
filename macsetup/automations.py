"""Post-install automations.

Each automation is a plain callable taking the module context and raising
``ModuleError`` on failure. Built-ins are listed in ``BUILTIN_AUTOMATIONS``;
shell scripts dropped into the automations directory are picked up by
``build_registry`` under their file stem.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Callable, Dict, List

from .config_store import ConfigStore
from .context import ModuleCtx
from .errors import ModuleError

logger = logging.getLogger(__name__)

AutomationFn = Callable[[ModuleCtx], None]


@dataclass(frozen=True)
class Automation:
    name: str
    description: str
    run: AutomationFn


def _find_fnm(ctx: ModuleCtx) -> str | None:
    found = ctx.runner.which("fnm")
    if found is not None:
        return found
    for candidate in (
        ctx.settings.home / ".local" / "share" / "fnm" / "fnm",
        ctx.settings.home / ".fnm" / "fnm",
    ):
        if candidate.is_file():
            return str(candidate)
    return None


def setup_nodejs(ctx: ModuleCtx) -> None:
    fnm = _find_fnm(ctx)
    if fnm is None:
        raise ModuleError("fnm is not installed (expected from the curl-tools module)")

    version = ctx.settings.nodejs_default_version
    logger.info("Installing Node.js %s via fnm", version)
    r = ctx.runner.run([fnm, "install", version])
    if not r.ok:
        raise ModuleError(f"fnm install {version} failed: {r.stderr.strip()}")

    r = ctx.runner.run([fnm, "default", version])
    if not r.ok:
        raise ModuleError(f"fnm default {version} failed: {r.stderr.strip()}")

    if not ctx.dry_run:
        current = ctx.runner.query([fnm, "current"])
        logger.info("Active Node.js version: %s", current.stdout.strip() or "unknown")

    if ctx.runner.which("pnpm") is None:
        logger.warning("pnpm is not installed (expected from the curl-tools module)")


def configure_docker(ctx: ModuleCtx) -> None:
    runner = ctx.runner
    for tool in ("colima", "docker"):
        if runner.which(tool) is None:
            logger.warning("%s is not installed; skipping Docker configuration", tool)
            return

    if runner.query(["colima", "status"]).ok:
        logger.info("colima is already running")
        logger.info("To reconfigure, stop it first: colima stop && colima delete")
        return

    s = ctx.settings
    logger.info("Starting colima (cpu=%d, memory=%dGB, disk=%dGB)", s.colima_cpu, s.colima_memory, s.colima_disk)
    r = runner.run(
        [
            "colima",
            "start",
            "--cpu",
            str(s.colima_cpu),
            "--memory",
            str(s.colima_memory),
            "--disk",
            str(s.colima_disk),
        ]
    )
    if not r.ok:
        raise ModuleError(f"colima start failed: {r.stderr.strip()}")

    if not ctx.dry_run and not runner.query(["docker", "info"]).ok:
        raise ModuleError("Docker is not responding after starting colima")


BUILTIN_AUTOMATIONS = (
    Automation("setup-nodejs", "Install the default Node.js version with fnm", setup_nodejs),
    Automation("configure-docker", "Start colima with the configured resources", configure_docker),
)


def run_script(script: Path, ctx: ModuleCtx) -> None:
    env = dict(os.environ)
    env["DRY_RUN"] = "true" if ctx.dry_run else "false"
    env["MAC_SETUP_CONFIG"] = str(ctx.settings.config_path)
    r = ctx.runner.run(["/bin/bash", str(script)], env=env)
    if not r.ok:
        raise ModuleError(f"{script.name} exited with {r.returncode}")


def discover_scripts(directory: Path) -> List[Automation]:
    if not directory.is_dir():
        return []
    return [
        Automation(p.stem, f"Shell script {p.name}", partial(run_script, p))
        for p in sorted(directory.glob("*.sh"))
        if p.is_file()
    ]


def build_registry(directory: Path) -> List[Automation]:
    """Built-ins first, then user scripts. A script may not shadow a built-in."""

    registry: Dict[str, Automation] = {a.name: a for a in BUILTIN_AUTOMATIONS}
    for a in discover_scripts(directory):
        if a.name in registry:
            logger.warning("Ignoring %s: an automation named %r is already registered", a.description, a.name)
            continue
        registry[a.name] = a
    return list(registry.values())


def is_enabled(store: ConfigStore, name: str) -> bool:
    if not store.get_bool("automations.enabled", True):
        return False
    return store.get_bool(f'automations."{name}"', True)
