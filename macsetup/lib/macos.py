from __future__ import annotations

import logging
import platform

from .command import ShellRunner

logger = logging.getLogger(__name__)

_TYPE_FLAGS = {"bool": "-bool", "int": "-int", "float": "-float", "string": "-string"}


def is_macos() -> bool:
    return platform.system() == "Darwin"


def set_default(runner: ShellRunner, domain: str, key: str, value_type: str, value: str) -> bool:
    flag = _TYPE_FLAGS.get(value_type)
    if flag is None:
        raise ValueError(f"Unsupported defaults type: {value_type}")
    r = runner.run(["defaults", "write", domain, key, flag, value])
    if not r.ok:
        logger.warning("Failed to set %s %s: %s", domain, key, r.stderr.strip())
    return r.ok


def restart_service(runner: ShellRunner, process: str) -> None:
    # killall fails when the process isn't running; that's fine.
    runner.run(["killall", process])
