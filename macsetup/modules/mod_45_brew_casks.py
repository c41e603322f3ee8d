from __future__ import annotations

from .mod_40_brew_packages import BrewPackagesModule


class BrewCasksModule(BrewPackagesModule):
    """Applications from ``[brew.casks.<category>]`` arrays."""

    name = "brew-casks"
    display_name = "Brew Casks"
    section = "brew.casks"
    cask = True
