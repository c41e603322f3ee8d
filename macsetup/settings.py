from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

DEFAULT_CONFIG_NAME = "mac-setup.toml"

DEFAULT_STOW_EXCLUDES: Tuple[str, ...] = (
    "mac-setup",
    ".git",
    ".github",
    "README.md",
    "CLAUDE.md",
    ".DS_Store",
)


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    """Run-wide settings, built once at startup and passed explicitly."""

    home: Path
    config_path: Path
    log_path: Path
    dev_root: Path

    dotfiles_repo: str = "https://github.com/walid-mos/dotfiles.git"
    dotfiles_dir: Optional[Path] = None
    dotfiles_branch: str = "v3"
    stow_excludes: Tuple[str, ...] = DEFAULT_STOW_EXCLUDES
    stow_adopt: bool = False
    stow_force: bool = True
    stow_verbose: bool = False
    backup_existing: bool = True
    backup_dir: Optional[Path] = None

    homebrew_prefix: Path = Path("/opt/homebrew")
    homebrew_install_url: str = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"

    clone_parallel_jobs: int = 5
    git_clone_timeout: int = 600
    brew_install_timeout: int = 1800
    curl_timeout: int = 300

    apply_macos_defaults: bool = True
    restart_services: bool = True

    nodejs_default_version: str = "latest"
    colima_cpu: int = 4
    colima_memory: int = 8
    colima_disk: int = 60

    # Tools the provisioner itself needs before any config-driven module runs.
    script_dependencies: Tuple[str, ...] = ("fzf",)
    automations_dir: Optional[Path] = None

    @property
    def resolved_dotfiles_dir(self) -> Path:
        return self.dotfiles_dir or (self.home / ".stow_repository")

    @property
    def resolved_backup_dir(self) -> Path:
        return self.backup_dir or (self.home / ".mac-setup-backup")

    @property
    def resolved_automations_dir(self) -> Path:
        return self.automations_dir or (self.config_path.parent / "automations")

    def __post_init__(self) -> None:
        if self.clone_parallel_jobs < 1:
            raise ValueError("clone_parallel_jobs must be >= 1")


def load_settings(
    *,
    env: Mapping[str, str] | None = None,
    config_path: str | None = None,
    log_path: str | None = None,
    adopt: bool = False,
    no_backup: bool = False,
    no_force_stow: bool = False,
    skip_macos: bool = False,
) -> Settings:
    """Build Settings from environment overrides plus CLI pass-through flags."""

    e = dict(os.environ if env is None else env)
    home = Path(e.get("HOME") or Path.home())

    cfg = config_path or e.get("MAC_SETUP_CONFIG") or str(Path.cwd() / DEFAULT_CONFIG_NAME)
    log = log_path or e.get("LOG_FILE") or str(home / ".mac-setup.log")

    def _path(key: str) -> Optional[Path]:
        v = e.get(key)
        return Path(v).expanduser() if v else None

    return Settings(
        home=home,
        config_path=Path(cfg).expanduser(),
        log_path=Path(log).expanduser(),
        dev_root=_path("DEV_ROOT") or (home / "Development"),
        dotfiles_repo=e.get("DOTFILES_REPO") or Settings.dotfiles_repo,
        dotfiles_dir=_path("DOTFILES_DIR"),
        dotfiles_branch=e.get("DOTFILES_BRANCH") or Settings.dotfiles_branch,
        stow_adopt=adopt or _env_bool(e, "STOW_ADOPT", False),
        stow_force=(not no_force_stow) and _env_bool(e, "STOW_FORCE", True),
        stow_verbose=_env_bool(e, "STOW_VERBOSE", False),
        backup_existing=(not no_backup) and _env_bool(e, "BACKUP_EXISTING_CONFIGS", True),
        backup_dir=_path("BACKUP_DIR"),
        homebrew_prefix=_path("HOMEBREW_PREFIX") or Settings.homebrew_prefix,
        homebrew_install_url=e.get("HOMEBREW_INSTALL_URL") or Settings.homebrew_install_url,
        clone_parallel_jobs=_env_int(e, "CLONE_PARALLEL_JOBS", Settings.clone_parallel_jobs),
        git_clone_timeout=_env_int(e, "GIT_CLONE_TIMEOUT", Settings.git_clone_timeout),
        brew_install_timeout=_env_int(e, "BREW_INSTALL_TIMEOUT", Settings.brew_install_timeout),
        curl_timeout=_env_int(e, "CURL_TIMEOUT", Settings.curl_timeout),
        apply_macos_defaults=(not skip_macos) and _env_bool(e, "APPLY_MACOS_DEFAULTS", True),
        restart_services=_env_bool(e, "RESTART_SERVICES", True),
        nodejs_default_version=e.get("NODEJS_DEFAULT_VERSION") or Settings.nodejs_default_version,
        colima_cpu=_env_int(e, "COLIMA_CPU", Settings.colima_cpu),
        colima_memory=_env_int(e, "COLIMA_MEMORY", Settings.colima_memory),
        colima_disk=_env_int(e, "COLIMA_DISK", Settings.colima_disk),
        automations_dir=_path("AUTOMATIONS_DIR"),
    )
