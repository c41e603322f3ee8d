from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

from ..errors import CommandError

logger = logging.getLogger(__name__)

# Same code GNU `timeout` reports, so diagnostics treat both alike.
TIMEOUT_EXIT_CODE = 124
COMMAND_NOT_FOUND_EXIT_CODE = 127


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def _text(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    timeout: float | None = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command.
    - Captures stdout/stderr so callers can build diagnostics.
    - A timeout is reported as exit code 124, never raised.
    - dry_run logs but does not execute.
    """

    argv_list = list(argv)

    if dry_run:
        logger.info("Would execute: %s", fmt_argv(argv_list))
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    logger.debug("CMD %s", fmt_argv(argv_list))

    try:
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        logger.warning("Command timed out after %ss: %s", timeout, fmt_argv(argv_list))
        result = CmdResult(
            argv=argv_list,
            returncode=TIMEOUT_EXIT_CODE,
            stdout=_text(e.stdout),
            stderr=_text(e.stderr),
            timed_out=True,
        )
    except FileNotFoundError:
        result = CmdResult(
            argv=argv_list,
            returncode=COMMAND_NOT_FOUND_EXIT_CODE,
            stdout="",
            stderr=f"{argv_list[0]}: command not found",
        )
    else:
        result = CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout, stderr=p.stderr)

    if result.stdout:
        logger.debug("STDOUT %s", result.stdout.strip())
    if result.stderr:
        logger.debug("STDERR %s", result.stderr.strip())

    if check and result.returncode != 0:
        raise CommandError(
            result,
            f"Command failed ({result.returncode}): {fmt_argv(argv_list)}\n{result.stderr}",
        )

    return result


class ShellRunner:
    """Binds the run-wide dry-run flag to command execution.

    ``run`` is for side effects and is suppressed in dry-run mode. ``query``
    always executes and is meant for read-only probes (``brew list``,
    ``gh auth status``) whose answers decide what a real run would do.
    """

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run

    def run(
        self,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
        check: bool = False,
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
        input_text: str | None = None,
    ) -> CmdResult:
        return run_cmd(
            argv,
            check=check,
            cwd=cwd,
            env=env,
            input_text=input_text,
            timeout=timeout,
            dry_run=self.dry_run,
        )

    def run_dry(self, description: str) -> None:
        logger.info("Would %s", description)

    def query(self, argv: Sequence[str], *, timeout: float | None = 60) -> CmdResult:
        return run_cmd(argv, check=False, timeout=timeout)

    def which(self, tool: str) -> str | None:
        return shutil.which(tool)
