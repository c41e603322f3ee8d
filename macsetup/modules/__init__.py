from .mod_10_prerequisites import PrerequisitesModule
from .mod_15_homebrew import HomebrewModule
from .mod_20_script_dependencies import ScriptDependenciesModule
from .mod_30_curl_tools import CurlToolsModule
from .mod_40_brew_packages import BrewPackagesModule
from .mod_45_brew_casks import BrewCasksModule
from .mod_50_stow_dotfiles import StowDotfilesModule
from .mod_60_git_config import GitConfigModule
from .mod_70_directories import DirectoriesModule
from .mod_80_clone_repos import CloneReposModule
from .mod_85_macos_defaults import MacosDefaultsModule
from .mod_90_automations import AutomationsModule

__all__ = [
    "PrerequisitesModule",
    "HomebrewModule",
    "ScriptDependenciesModule",
    "CurlToolsModule",
    "BrewPackagesModule",
    "BrewCasksModule",
    "StowDotfilesModule",
    "GitConfigModule",
    "DirectoriesModule",
    "CloneReposModule",
    "MacosDefaultsModule",
    "AutomationsModule",
]
