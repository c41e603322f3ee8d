from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .config_store import ConfigStore
from .lib.command import ShellRunner
from .lib.selector import Selector, ask_text, ask_yes_no
from .pipeline import RunOptions
from .settings import Settings


@dataclass(frozen=True)
class ModuleCtx:
    """Everything a module may touch. Shared by all modules, never mutated."""

    settings: Settings
    options: RunOptions
    store: ConfigStore
    runner: ShellRunner
    selector: Selector
    ask_text: Callable[[str], str] = ask_text
    ask_yes_no: Callable[[str, bool], bool] = ask_yes_no

    @property
    def dry_run(self) -> bool:
        return self.options.dry_run
