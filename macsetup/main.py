from __future__ import annotations

import argparse
import logging
from typing import Optional

from .config_store import ConfigStore
from .context import ModuleCtx
from .errors import FatalModuleError
from .lib.command import ShellRunner
from .lib.selector import FzfSelector
from .logging_utils import configure_logging
from .pipeline import RunOptions, RunReport, log_summary, run_pipeline
from .preflight import run_preflight
from .registry import CONFIG_AFTER, MODULE_NAMES, build_modules, canonical_module_name, unknown_module_names
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_MODULE_FAILURES = 1
EXIT_ABORTED = 3
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mac-setup", description="Provision a macOS machine from a declarative file")
    p.add_argument("-d", "--dry-run", action="store_true", help="Describe every action without changing anything")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug output on the console")
    p.add_argument("-m", "--module", default=None, metavar="NAME", help="Run only this module")
    p.add_argument(
        "-s",
        "--skip",
        action="append",
        default=[],
        metavar="NAME",
        help="Skip a module (repeatable)",
    )
    p.add_argument("--skip-repos", action="store_true", help="Shortcut for --skip clone-repos")
    p.add_argument("--skip-macos", action="store_true", help="Do not apply macOS defaults")
    p.add_argument("--no-backup", action="store_true", help="Fail on dotfile conflicts instead of backing up")
    p.add_argument("--adopt", action="store_true", help="Adopt existing dotfiles into the stow repository")
    p.add_argument("--no-force-stow", action="store_true", help="Stow without --restow")
    p.add_argument("--config", default=None, help="Path to mac-setup.toml (or .yaml)")
    p.add_argument("--log", default=None, help="Path to the log file")
    p.add_argument("--no-preflight", action="store_true", help="Skip environment checks")
    p.epilog = "Modules: " + ", ".join(MODULE_NAMES)
    return p


def run(args: argparse.Namespace, settings: Settings, actual_log: str) -> RunReport:
    """Build the run context and execute the pipeline.

    Raises FatalModuleError when the bootstrap module or config init fails.
    """

    skips = {canonical_module_name(n) for n in args.skip}
    if args.skip_repos:
        skips.add("clone-repos")
    if args.skip_macos:
        skips.add("macos-defaults")

    for name in unknown_module_names(sorted(skips)):
        logger.warning("Unknown module in --skip: %s", name)
    only = canonical_module_name(args.module) if args.module else None
    if only and unknown_module_names([only]):
        logger.warning("Unknown module in --module: %s (nothing will run)", only)

    options = RunOptions(
        dry_run=args.dry_run,
        verbose=args.verbose,
        only_module=only,
        skip_modules=frozenset(skips),
    )

    store = ConfigStore(settings.config_path)
    ctx = ModuleCtx(
        settings=settings,
        options=options,
        store=store,
        runner=ShellRunner(dry_run=args.dry_run),
        selector=FzfSelector(),
    )

    logger.info("mac-setup starting (config=%s, log=%s)", settings.config_path, actual_log)
    report = run_pipeline(
        build_modules(ctx),
        options,
        init_config=store.load,
        config_after=CONFIG_AFTER,
    )
    log_summary(report, log_path=actual_log)
    return report


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(
        config_path=args.config,
        log_path=args.log,
        adopt=args.adopt,
        no_backup=args.no_backup,
        no_force_stow=args.no_force_stow,
        skip_macos=args.skip_macos,
    )
    actual_log = configure_logging(str(settings.log_path), verbose=args.verbose, dry_run=args.dry_run)

    if not args.no_preflight:
        if any(i.fatal for i in run_preflight(settings, dry_run=args.dry_run)):
            logger.error("Preflight checks failed (use --no-preflight to bypass)")
            return EXIT_ABORTED

    try:
        report = run(args, settings, actual_log)
    except FatalModuleError as e:
        logger.exception("Setup aborted")
        log_summary(e.report)
        return EXIT_ABORTED
    except KeyboardInterrupt:
        logger.error("Setup interrupted; later modules were not run")
        return EXIT_INTERRUPTED

    return EXIT_OK if report.failed == 0 else EXIT_MODULE_FAILURES


if __name__ == "__main__":
    raise SystemExit(main())
