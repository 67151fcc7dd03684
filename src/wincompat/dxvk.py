"""
DXVK detection and installation.

DXVK builds embed their version as ``"DXVK: \\0v<version>\\0"`` in
d3d11.dll and dxgi.dll. There is no resource or header to read it from,
so the files are searched for that byte pattern.
"""

from __future__ import annotations

import logging
from contextlib import nullcontext
from pathlib import Path
from typing import TYPE_CHECKING, Union

from pydantic import BaseModel, Field

from wincompat.errors import InvalidPrefixError, MissingDllError, NothingToRestoreError, PrefixNotConfiguredError
from wincompat.lock import prefix_lock
from wincompat.overrides import DllOverride
from wincompat.types import WineArch

if TYPE_CHECKING:
    from wincompat.proton import Proton
    from wincompat.wine import Wine

    WineLike = Union[Wine, Proton]

logger = logging.getLogger(__name__)

DXVK_DLLS = ("dxgi", "d3d9", "d3d10core", "d3d11")

MARKER = b"DXVK: \x00v"

# [DXVK:] [ ] [\0] [v] [#] [.] [#] [.] [#] [\0]
MIN_MATCH_LENGTH = 14

# Where the marker usually sits in DXVK 2.x builds, as (close, wide) windows.
# Only an optimization: the rest of the file is searched afterwards.
SCAN_WINDOWS = {
    "d3d11": ((2_500_000, 2_900_000), (2_000_000, 3_200_000)),
    "dxgi": ((1_600_000, 2_000_000), (1_000_000, 2_300_000)),
}

SYSTEM32 = "C:\\windows\\system32"


def scan_regions(size: int, dll: str) -> list[tuple[int, int]]:
    """
    Regions of a file to search, in order.

    The regions cover the whole file exactly once. Files too small to
    contain the wide window are searched in one go.
    """
    windows = SCAN_WINDOWS.get(dll)
    if windows is None:
        return [(0, size)]

    (close_start, close_end), (wide_start, wide_end) = windows
    if size < wide_end:
        return [(0, size)]

    return [
        (close_start, close_end),
        (wide_start, close_start),
        (close_end, wide_end),
        (0, wide_start),
        (wide_end, size),
    ]


def _decode_at(data: bytes, pos: int) -> str | None:
    if len(data) - pos < MIN_MATCH_LENGTH:
        return None

    start = pos + len(MARKER)
    end = data.find(b"\x00", start)
    if end <= start:
        return None

    return data[start:end].decode("latin-1")


def _scan_region(data: bytes, start: int, end: int) -> str | None:
    # A marker starting before `end` may run past it
    limit = min(end + len(MARKER) - 1, len(data))

    pos = data.find(MARKER, start, limit)
    while pos != -1:
        version = _decode_at(data, pos)
        if version is not None:
            return version
        pos = data.find(MARKER, pos + 1, limit)

    return None


def scan_version(data: bytes, dll: str = "d3d11") -> str | None:
    """
    Find the DXVK version embedded in a dll.

    Args:
        data: Raw dll contents
        dll: "d3d11" or "dxgi", selects where to look first

    Returns:
        Version string like "2.1", or None if the dll isn't DXVK
    """
    for start, end in scan_regions(len(data), dll):
        version = _scan_region(data, start, end)
        if version is not None:
            return version
    return None


def get_version(prefix: Path | str) -> str | None:
    """
    DXVK version applied to a prefix.

    Returns None if DXVK is not applied. Raises OSError if neither
    d3d11.dll nor dxgi.dll can be read, which usually means the prefix
    path is wrong.
    """
    system32 = Path(prefix) / "drive_c" / "windows" / "system32"

    try:
        data = (system32 / "d3d11.dll").read_bytes()
        dll = "d3d11"
    except OSError:
        data = (system32 / "dxgi.dll").read_bytes()
        dll = "dxgi"

    return scan_version(data, dll)


class InstallParams(BaseModel):
    """What install_dxvk / uninstall_dxvk act on."""
    dxgi: bool = Field(default=True)
    d3d9: bool = Field(default=True)
    d3d10core: bool = Field(default=True)
    d3d11: bool = Field(default=True)
    repair_dlls: bool = Field(default=True, description="Run wineboot -u around the operation")
    arch: WineArch = Field(default=WineArch.WIN64, description="Selects the x64 or x32 dlls")
    lock: bool = Field(default=True, description="Hold the prefix lock during the operation")

    def dlls(self) -> list[str]:
        return [name for name in DXVK_DLLS if getattr(self, name)]

    @property
    def source_folder(self) -> str:
        return "x64" if self.arch == WineArch.WIN64 else "x32"


def _configured_prefix(wine: WineLike) -> Path:
    if wine.prefix is None:
        raise PrefixNotConfiguredError("No prefix path given")
    return wine.prefix


def _check_prefix(prefix: Path) -> None:
    if not (prefix / "system.reg").exists():
        raise InvalidPrefixError(f"Not a wine prefix, system.reg is missing: {prefix}", prefix)


def install_dxvk(
    wine: WineLike,
    dxvk_folder: Path | str,
    params: InstallParams | None = None,
) -> None:
    """
    Install DXVK from an extracted release folder into the wine prefix.

    Usage:
        install_dxvk(wine, "/path/to/dxvk-2.1", InstallParams(d3d9=False))
    """
    params = params or InstallParams()
    prefix = _configured_prefix(wine)
    source_dir = Path(dxvk_folder) / params.source_folder

    for name in params.dlls():
        source = source_dir / f"{name}.dll"
        if not source.is_file():
            raise MissingDllError(source, "source")

    if params.repair_dlls:
        wine.update_prefix()

    _check_prefix(prefix)

    with prefix_lock(prefix) if params.lock else nullcontext():
        system32 = wine.winepath(SYSTEM32)

        for name in params.dlls():
            DllOverride(name, system32, source_dir).install(wine)

    logger.info("Installed DXVK from %s into %s", dxvk_folder, prefix)


def uninstall_dxvk(wine: WineLike, params: InstallParams | None = None) -> None:
    """
    Restore the original dlls replaced by install_dxvk.

    Raises NothingToRestoreError, before touching anything, if one of the
    selected dlls has no backup.
    """
    params = params or InstallParams()
    prefix = _configured_prefix(wine)
    _check_prefix(prefix)

    with prefix_lock(prefix) if params.lock else nullcontext():
        system32 = wine.winepath(SYSTEM32)
        overrides = [DllOverride(name, system32) for name in params.dlls()]

        for override in overrides:
            if not override.is_installed:
                raise NothingToRestoreError(override.backup)

        for override in overrides:
            override.restore(wine)

    if params.repair_dlls:
        wine.update_prefix()

    logger.info("Uninstalled DXVK from %s", prefix)
