from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, Optional, Sequence, Tuple

from .errors import FatalModuleError, RegistryError

logger = logging.getLogger(__name__)


class Outcome(enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ModuleDescriptor:
    """A named unit of provisioning work. Constructed once, never mutated."""

    name: str
    display_name: str
    run: Callable[[], None]
    depends_on: Tuple[str, ...] = ()
    fatal: bool = False


@dataclass(frozen=True)
class RunOptions:
    dry_run: bool = False
    verbose: bool = False
    only_module: Optional[str] = None
    skip_modules: FrozenSet[str] = frozenset()

    def selects(self, name: str) -> bool:
        if self.only_module is not None:
            # --module wins over --skip for the same name.
            return name == self.only_module
        return name not in self.skip_modules


@dataclass(frozen=True)
class ModuleResult:
    name: str
    display_name: str
    outcome: Outcome
    error: Optional[str] = None
    duration_s: float = 0.0


@dataclass
class RunReport:
    results: List[ModuleResult] = field(default_factory=list)
    elapsed_s: float = 0.0
    aborted_by: Optional[str] = None

    def record(self, result: ModuleResult) -> None:
        self.results.append(result)

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def succeeded(self) -> int:
        return self._count(Outcome.SUCCESS)

    @property
    def failed(self) -> int:
        return self._count(Outcome.FAILURE)

    @property
    def skipped(self) -> int:
        return self._count(Outcome.SKIPPED)

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.aborted_by is None

    def outcome_of(self, name: str) -> Optional[Outcome]:
        for r in self.results:
            if r.name == name:
                return r.outcome
        return None


def validate_order(modules: Sequence[ModuleDescriptor]) -> None:
    """Check that the static order is a topological order of depends_on."""

    seen: set[str] = set()
    for m in modules:
        if m.name in seen:
            raise RegistryError(f"Duplicate module name: {m.name}")
        missing = [d for d in m.depends_on if d not in seen]
        if missing:
            raise RegistryError(
                f"Module {m.name} depends on {', '.join(missing)} which must run before it"
            )
        seen.add(m.name)


def run_pipeline(
    modules: Sequence[ModuleDescriptor],
    options: RunOptions,
    *,
    init_config: Optional[Callable[[], None]] = None,
    config_after: Optional[str] = None,
) -> RunReport:
    """Run modules in order, honouring --module / --skip.

    Module failures are recorded and the run continues, except for modules
    flagged ``fatal``. ``init_config`` runs once right after ``config_after``
    has been handled (run or skipped); no earlier module may query the
    config store.
    """

    report = RunReport()
    started = time.monotonic()

    def _abort(name: str, cause: BaseException) -> FatalModuleError:
        report.aborted_by = name
        report.elapsed_s = time.monotonic() - started
        return FatalModuleError(name, report, cause)

    for module in modules:
        if not options.selects(module.name):
            logger.debug("Skipping module %s", module.name)
            report.record(ModuleResult(module.name, module.display_name, Outcome.SKIPPED))
        else:
            logger.info("==> %s", module.display_name)
            t0 = time.monotonic()
            try:
                module.run()
            except Exception as e:
                duration = time.monotonic() - t0
                logger.error("Module %s failed: %s", module.name, e)
                logger.debug("Module %s traceback", module.name, exc_info=True)
                report.record(
                    ModuleResult(module.name, module.display_name, Outcome.FAILURE, str(e), duration)
                )
                if module.fatal:
                    logger.error("%s is required by every later module. Cannot continue.", module.display_name)
                    raise _abort(module.name, e) from e
            else:
                report.record(
                    ModuleResult(
                        module.name,
                        module.display_name,
                        Outcome.SUCCESS,
                        duration_s=time.monotonic() - t0,
                    )
                )

        if init_config is not None and module.name == config_after:
            try:
                init_config()
            except Exception as e:
                logger.error("Configuration could not be initialized: %s", e)
                raise _abort(module.name, e) from e

    report.elapsed_s = time.monotonic() - started
    return report


def format_duration(seconds: float) -> str:
    total = int(seconds)
    return f"{total // 60}m {total % 60}s"


def log_summary(report: RunReport, *, log_path: Optional[str] = None) -> None:
    logger.info("")
    logger.info("Summary")
    logger.info("  Modules attempted: %d", report.attempted)
    logger.info("  Succeeded:         %d", report.succeeded)
    logger.info("  Failed:            %d", report.failed)
    logger.info("  Skipped:           %d", report.skipped)
    for r in report.results:
        if r.outcome is Outcome.FAILURE:
            logger.info("  x %s: %s", r.name, r.error)
    if report.aborted_by:
        logger.error("Run aborted by %s", report.aborted_by)
    logger.info("Total execution time: %s", format_duration(report.elapsed_s))
    if log_path:
        logger.info("Log file: %s", log_path)
