"""Bounded-parallel repository cloning.

Destinations are resolved before this runs, so no worker ever waits on the
terminal. Each worker holds one concurrency token for the whole clone and
gives it back on every exit path; results are collected on the calling thread
only, which keeps the success/failure tally free of races.
"""

from __future__ import annotations

import contextlib
import enum
import logging
import signal
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from ..lib.command import CmdResult, ShellRunner, fmt_argv
from .diagnostics import CloneDiagnostic, classify_exit_code, diagnose, log_diagnostic

logger = logging.getLogger(__name__)

REPO_MARKER = ".git"


class CloneStatus(enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class CloneTask:
    repo_name: str
    clone_url: str
    destination: Path
    status: CloneStatus = CloneStatus.PENDING
    action: Optional[str] = None
    reason: Optional[str] = None
    diagnostic: Optional[CloneDiagnostic] = None

    @property
    def repo_path(self) -> Path:
        return Path(self.destination) / self.repo_name

    @property
    def done(self) -> bool:
        return self.status in (CloneStatus.SUCCEEDED, CloneStatus.FAILED)


@dataclass
class CloneBatchResult:
    tasks: List[CloneTask]
    dry_run_lines: List[str] = field(default_factory=list)
    cancelled: bool = False
    interrupted_by: Optional[int] = None

    @property
    def succeeded(self) -> int:
        return sum(1 for t in self.tasks if t.status is CloneStatus.SUCCEEDED)

    @property
    def failed(self) -> int:
        return sum(1 for t in self.tasks if t.status is CloneStatus.FAILED)

    def failures(self) -> List[CloneTask]:
        return [t for t in self.tasks if t.status is CloneStatus.FAILED]

    def with_action(self, action: str) -> List[CloneTask]:
        return [t for t in self.tasks if t.action == action]


@dataclass(frozen=True)
class _WorkerOutcome:
    ok: bool
    action: str
    reason: Optional[str] = None
    diagnostic: Optional[CloneDiagnostic] = None


CloneFn = Callable[[CloneTask], CmdResult]


@contextlib.contextmanager
def stop_dispatch_on_signal(stop: threading.Event, *, enabled: bool = True) -> Iterator[List[int]]:
    """Turn SIGINT/SIGTERM into ``stop.set()`` for the duration of a batch.

    Yields the list of signal numbers received while the handlers were
    installed. Handlers can only be installed from the main thread; elsewhere
    this is a no-op and the batch simply runs to completion.
    """

    received: List[int] = []
    if not enabled or threading.current_thread() is not threading.main_thread():
        yield received
        return

    def _handler(signum, _frame) -> None:
        received.append(signum)
        if not stop.is_set():
            logger.warning(
                "Received %s: letting running clones finish, not starting new ones",
                signal.Signals(signum).name,
            )
        stop.set()

    previous = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.signal(sig, _handler)
    try:
        yield received
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)


class CloneScheduler:
    def __init__(
        self,
        runner: ShellRunner,
        *,
        max_parallel: int,
        timeout_s: float,
        dry_run: Optional[bool] = None,
        clone_fn: Optional[CloneFn] = None,
        marker: str = REPO_MARKER,
        handle_signals: bool = True,
    ) -> None:
        if max_parallel < 1:
            raise ValueError("max_parallel must be >= 1")
        self.runner = runner
        self.max_parallel = max_parallel
        self.timeout_s = timeout_s
        self.dry_run = runner.dry_run if dry_run is None else dry_run
        self.clone_fn: CloneFn = clone_fn or self._git_clone
        self.marker = marker
        self.handle_signals = handle_signals
        self.stop = threading.Event()

    def is_present(self, task: CloneTask) -> bool:
        return (task.repo_path / self.marker).is_dir()

    def _git_clone(self, task: CloneTask) -> CmdResult:
        Path(task.destination).mkdir(parents=True, exist_ok=True)
        return self.runner.run(
            ["git", "clone", task.clone_url, str(task.repo_path)],
            timeout=self.timeout_s,
            check=False,
        )

    def run(self, tasks: Sequence[CloneTask]) -> CloneBatchResult:
        task_list = list(tasks)
        result = CloneBatchResult(tasks=task_list)

        pending: List[CloneTask] = []
        for task in task_list:
            if self.is_present(task):
                logger.debug("Repository already exists: %s", task.repo_path)
                task.status = CloneStatus.SUCCEEDED
                task.action = "present"
            else:
                pending.append(task)

        if not pending:
            return result

        if self.dry_run:
            for task in pending:
                line = f"Would clone: {task.clone_url} -> {task.repo_path}"
                logger.info(line)
                result.dry_run_lines.append(line)
                task.status = CloneStatus.SUCCEEDED
                task.action = "would-clone"
            return result

        logger.info("Cloning %d repositories (max %d parallel jobs)...", len(pending), self.max_parallel)
        signum = self._run_pool(pending)

        for task in pending:
            if task.status is CloneStatus.PENDING:
                task.status = CloneStatus.FAILED
                task.action = "cancelled"
                task.reason = "not started: run interrupted"
                result.cancelled = True

        if signum is not None:
            result.interrupted_by = signum
            # Handlers are restored by now; the signal gets its usual effect
            # (KeyboardInterrupt for SIGINT) once running clones are done.
            logger.warning(
                "Running clones finished (%d ok, %d failed); re-raising %s",
                result.succeeded,
                result.failed,
                signal.Signals(signum).name,
            )
            signal.raise_signal(signum)
        return result

    def _acquire(self, tokens: threading.BoundedSemaphore) -> bool:
        while not self.stop.is_set():
            if tokens.acquire(timeout=0.1):
                if self.stop.is_set():
                    tokens.release()
                    return False
                return True
        return False

    def _run_pool(self, pending: Sequence[CloneTask]) -> Optional[int]:
        """Dispatch and join; returns the first termination signal received, if any."""

        tokens = threading.BoundedSemaphore(self.max_parallel)
        futures: Dict[object, CloneTask] = {}

        with stop_dispatch_on_signal(self.stop, enabled=self.handle_signals) as received:
            with ThreadPoolExecutor(max_workers=self.max_parallel, thread_name_prefix="clone") as pool:
                for task in pending:
                    if not self._acquire(tokens):
                        break
                    try:
                        futures[pool.submit(self._worker, task, tokens)] = task
                    except BaseException:
                        tokens.release()
                        raise

                # Single aggregation point: one outcome per dispatched worker.
                for fut in as_completed(futures):
                    self._apply(futures[fut], fut.result())

        return received[0] if received else None

    def _worker(self, task: CloneTask, tokens: threading.BoundedSemaphore) -> _WorkerOutcome:
        try:
            task.status = CloneStatus.RUNNING
            res = self.clone_fn(task)
            command = fmt_argv(res.argv) if res.argv else f"git clone {task.clone_url} {task.repo_path}"

            if res.returncode != 0:
                diag = diagnose(
                    command,
                    res.returncode,
                    res.stderr,
                    clone_url=task.clone_url,
                    timeout_s=self.timeout_s,
                )
                return _WorkerOutcome(False, "failed", diag.summary, diag)

            if not self.is_present(task):
                diag = CloneDiagnostic(
                    command=command,
                    exit_code=res.returncode,
                    exit_class=classify_exit_code(res.returncode),
                    stderr=res.stderr.strip(),
                    issue="Repository not found at expected location",
                    remediation=f"Expected {task.repo_path / self.marker}; check the destination mapping",
                )
                return _WorkerOutcome(False, "failed", "cloned to wrong location", diag)

            return _WorkerOutcome(True, "cloned")
        except Exception as e:
            logger.debug("Clone worker for %s raised", task.repo_name, exc_info=True)
            return _WorkerOutcome(False, "failed", f"{type(e).__name__}: {e}")
        finally:
            tokens.release()

    def _apply(self, task: CloneTask, outcome: _WorkerOutcome) -> None:
        task.action = outcome.action
        task.reason = outcome.reason
        task.diagnostic = outcome.diagnostic
        if outcome.ok:
            task.status = CloneStatus.SUCCEEDED
            logger.info("  ✓ %s", task.repo_name)
            return

        task.status = CloneStatus.FAILED
        logger.info("  ✗ %s (%s)", task.repo_name, outcome.reason)
        if outcome.diagnostic is not None:
            log_diagnostic(task.repo_name, outcome.diagnostic)
