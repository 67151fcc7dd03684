"""
wincompat - manage Wine and Proton prefixes and apply DXVK to them.

Example usage:
    from wincompat import Wine, WineArch, WineLoader, install_dxvk, get_version

    wine = (
        Wine.from_binary("/opt/wine-ge/bin/wine64")
        .with_prefix("/home/user/Games/prefix")
        .with_arch(WineArch.WIN64)
        .with_loader(WineLoader.current())
    )
    wine.update_prefix()

    install_dxvk(wine, "/tmp/dxvk-2.1")
    print(get_version(wine.prefix))

    # Proton keeps the wine prefix in pfx/
    proton = Proton.from_path("/opt/GE-Proton9-27", "/home/user/Games/proton-prefix")
    proton.update_prefix()
"""

import logging

from wincompat.dxvk import InstallParams, get_version, install_dxvk, scan_version, uninstall_dxvk
from wincompat.errors import (
    BootHelperNotFoundError,
    InvalidPrefixError,
    MissingDllError,
    NothingToRestoreError,
    PrefixNotConfiguredError,
    ProcessError,
    WincompatError,
)
from wincompat.overrides import DllOverride
from wincompat.proton import Proton
from wincompat.types import (
    LibsMode,
    LoaderMode,
    OverrideMode,
    SharedLibs,
    UnixBoot,
    WindowsBoot,
    WineArch,
    WineLoader,
)
from wincompat.wine import Wine

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "Wine",
    "Proton",
    "WineArch",
    "WineLoader",
    "LoaderMode",
    "UnixBoot",
    "WindowsBoot",
    "SharedLibs",
    "LibsMode",
    "OverrideMode",
    "DllOverride",
    "InstallParams",
    "install_dxvk",
    "uninstall_dxvk",
    "get_version",
    "scan_version",
    "WincompatError",
    "InvalidPrefixError",
    "PrefixNotConfiguredError",
    "BootHelperNotFoundError",
    "ProcessError",
    "MissingDllError",
    "NothingToRestoreError",
]
