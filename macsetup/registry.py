from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Type

from .context import ModuleCtx
from .modules import (
    AutomationsModule,
    BrewCasksModule,
    BrewPackagesModule,
    CloneReposModule,
    CurlToolsModule,
    DirectoriesModule,
    GitConfigModule,
    HomebrewModule,
    MacosDefaultsModule,
    PrerequisitesModule,
    ScriptDependenciesModule,
    StowDotfilesModule,
)
from .pipeline import ModuleDescriptor, validate_order

# Loaded config is available to every module after this one.
CONFIG_AFTER = "script-dependencies"


@dataclass(frozen=True)
class ModuleEntry:
    name: str
    display_name: str
    cls: Type
    depends_on: Tuple[str, ...] = ()


# Pipeline order. Must stay a topological order of depends_on.
MODULES: Tuple[ModuleEntry, ...] = (
    ModuleEntry("prerequisites", "Prerequisites", PrerequisitesModule),
    ModuleEntry("homebrew", "Homebrew", HomebrewModule, ("prerequisites",)),
    ModuleEntry("script-dependencies", "Script Dependencies", ScriptDependenciesModule, ("homebrew",)),
    ModuleEntry("curl-tools", "Curl Tools", CurlToolsModule, ("script-dependencies",)),
    ModuleEntry("brew-packages", "Brew Packages", BrewPackagesModule, ("script-dependencies",)),
    ModuleEntry("brew-casks", "Brew Casks", BrewCasksModule, ("script-dependencies",)),
    ModuleEntry("stow-dotfiles", "Stow Dotfiles", StowDotfilesModule, ("brew-packages",)),
    ModuleEntry("git-config", "Git Configuration", GitConfigModule, ("script-dependencies",)),
    ModuleEntry("directories", "Directory Structure", DirectoriesModule, ("script-dependencies",)),
    ModuleEntry("clone-repos", "Clone Repositories", CloneReposModule, ("git-config", "directories")),
    ModuleEntry("macos-defaults", "macOS Defaults", MacosDefaultsModule, ("prerequisites",)),
    ModuleEntry("automations", "Automations", AutomationsModule, ("curl-tools", "brew-casks")),
)

MODULE_NAMES: Tuple[str, ...] = tuple(m.name for m in MODULES)

FATAL_MODULES = frozenset({"script-dependencies"})

# Former spellings still accepted by --module and --skip.
MODULE_ALIASES = {"automatisations": "automations"}


def build_modules(ctx: ModuleCtx, entries: Optional[Iterable[ModuleEntry]] = None) -> List[ModuleDescriptor]:
    """Instantiate every registered module and bind it to the shared context."""

    descriptors: List[ModuleDescriptor] = []
    for entry in MODULES if entries is None else entries:
        module = entry.cls()

        def _run(module=module) -> None:
            module.run(ctx)

        descriptors.append(
            ModuleDescriptor(
                name=entry.name,
                display_name=entry.display_name,
                run=_run,
                depends_on=entry.depends_on,
                fatal=entry.name in FATAL_MODULES,
            )
        )
    validate_order(descriptors)
    return descriptors


def canonical_module_name(name: str) -> str:
    return MODULE_ALIASES.get(name, name)


def unknown_module_names(names: Iterable[str]) -> List[str]:
    known = set(MODULE_NAMES)
    return [n for n in names if canonical_module_name(n) not in known]
