from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..context import ModuleCtx
from ..errors import ModuleError
from ..lib.macos import is_macos, restart_service, set_default

logger = logging.getLogger(__name__)

RESTART_PROCESSES = ("Dock", "Finder", "SystemUIServer")


@dataclass(frozen=True)
class DefaultsEntry:
    config_key: str
    domain: str
    key: str
    value_type: str
    # None: only written when the config sets the key.
    default: Optional[str] = None


DEFAULTS: Tuple[DefaultsEntry, ...] = (
    DefaultsEntry("macos.dock.autohide", "com.apple.dock", "autohide", "bool", "false"),
    DefaultsEntry("macos.dock.size", "com.apple.dock", "tilesize", "int", "48"),
    DefaultsEntry("macos.dock.magnification", "com.apple.dock", "magnification", "bool"),
    DefaultsEntry("macos.dock.magnification_size", "com.apple.dock", "largesize", "int"),
    DefaultsEntry("macos.dock.mru_spaces", "com.apple.dock", "mru-spaces", "bool", "false"),
    DefaultsEntry("macos.finder.show_hidden", "com.apple.finder", "AppleShowAllFiles", "bool", "true"),
    DefaultsEntry("macos.finder.show_extensions", "NSGlobalDomain", "AppleShowAllExtensions", "bool", "true"),
    DefaultsEntry("macos.finder.view_style", "com.apple.finder", "FXPreferredViewStyle", "string", "Clmv"),
    DefaultsEntry("macos.finder.show_recent_tags", "com.apple.finder", "ShowRecentTags", "bool"),
    DefaultsEntry(
        "macos.finder.disable_ds_store",
        "com.apple.desktopservices",
        "DSDontWriteNetworkStores",
        "bool",
        "true",
    ),
    DefaultsEntry("macos.system.spaces_span_displays", "com.apple.spaces", "spans-displays", "bool", "true"),
    DefaultsEntry("macos.system.press_and_hold", "-g", "ApplePressAndHoldEnabled", "bool", "false"),
)

_TRUE = {"1", "true", "yes", "on"}


def normalize_value(value_type: str, raw: str) -> str:
    raw = raw.strip()
    if value_type == "bool":
        return "true" if raw.lower() in _TRUE else "false"
    if value_type == "int":
        int(raw)
    elif value_type == "float":
        float(raw)
    return raw


class MacosDefaultsModule:
    name = "macos-defaults"
    display_name = "macOS Defaults"

    def planned(self, ctx: ModuleCtx) -> List[Tuple[DefaultsEntry, str]]:
        """Entries to write, paired with their normalized value."""

        out: List[Tuple[DefaultsEntry, str]] = []
        for entry in DEFAULTS:
            raw, ok = ctx.store.get_string(entry.config_key)
            if not ok:
                if entry.default is None:
                    continue
                raw = entry.default
            try:
                out.append((entry, normalize_value(entry.value_type, raw)))
            except ValueError:
                logger.error("Invalid %s value for %s: %r", entry.value_type, entry.config_key, raw)
                raise ModuleError(f"Invalid value for {entry.config_key}: {raw!r}") from None
        return out

    def run(self, ctx: ModuleCtx) -> None:
        s = ctx.settings
        if not s.apply_macos_defaults:
            logger.info("Skipping macOS defaults (disabled)")
            return
        if not ctx.dry_run and not is_macos():
            raise ModuleError("macOS defaults can only be applied on macOS")

        failed: List[str] = []
        for entry, value in self.planned(ctx):
            logger.info("%s %s = %s", entry.domain, entry.key, value)
            if not set_default(ctx.runner, entry.domain, entry.key, entry.value_type, value):
                failed.append(f"{entry.domain} {entry.key}")

        if s.restart_services:
            logger.info("Restarting %s to apply changes", ", ".join(RESTART_PROCESSES))
            for process in RESTART_PROCESSES:
                restart_service(ctx.runner, process)

        if failed:
            raise ModuleError(f"Failed to write defaults: {', '.join(failed)}")
