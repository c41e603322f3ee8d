from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .lib.command import CmdResult
    from .pipeline import RunReport


class MacSetupError(Exception):
    """Base class for mac-setup errors."""


class ModuleError(MacSetupError):
    """Raised by a module body to report that it failed."""


class FatalModuleError(MacSetupError):
    """A module whose failure aborts the whole run has failed."""

    def __init__(self, module_name: str, report: "RunReport", cause: BaseException | None = None) -> None:
        super().__init__(f"Fatal module failed: {module_name}")
        self.module_name = module_name
        self.report = report
        self.cause = cause


class ConfigError(MacSetupError):
    pass


class ConfigNotLoadedError(ConfigError):
    """The config store was queried before the orchestrator initialized it."""


class RegistryError(MacSetupError):
    pass


class CommandError(MacSetupError):
    def __init__(self, result: "CmdResult", message: str) -> None:
        super().__init__(message)
        self.result = result
