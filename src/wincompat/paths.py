"""
Locate helper binaries (wineboot, wineserver) next to a wine binary.

Wine builds are laid out in a few different ways:

    bin/wine, bin/wineboot, bin/wineserver          (classic build)
    lib/wine/x86_64-windows/wineboot.exe            (new-style PE build)
    <prefix>/drive_c/windows/system32/wineboot.exe  (already in the prefix)

Resolution never invents a default path; when nothing is found the result
is ``None`` and the caller decides what to do.
"""

from __future__ import annotations

import logging
from pathlib import Path

from wincompat.types import UnixBoot, WindowsBoot, WineArch

logger = logging.getLogger(__name__)

LIB_DIRS = {
    WineArch.WIN64: [("lib64", "x86_64"), ("lib", "x86_64")],
    WineArch.WIN32: [("lib32", "i386"), ("lib", "i386")],
}

DEFAULT_LIB_DIRS = [
    ("lib64", "x86_64"),
    ("lib", "x86_64"),
    ("lib32", "i386"),
    ("lib", "i386"),
]


def is_system_binary(binary: Path | str) -> bool:
    """True if the binary is a bare command name looked up in PATH."""
    return Path(binary).parent == Path(".") and "/" not in str(binary)


def resolve_sibling(binary: Path | str, name: str, explicit: Path | None = None) -> Path | None:
    """
    Resolve a helper binary.

    Args:
        binary: Main wine binary
        name: Helper file name, e.g. "wineserver"
        explicit: Path given by the caller, always wins

    Returns:
        Path to the helper or None if it isn't next to the binary
    """
    if explicit is not None:
        return explicit

    binary = Path(binary)
    if is_system_binary(binary):
        return None

    sibling = binary.parent / name
    if sibling.exists():
        return sibling

    return None


def windows_boot_candidates(binary: Path | str, arch: WineArch | None = None) -> list[Path]:
    """wineboot.exe locations inside a PE-style wine build, in lookup order."""
    root = Path(binary).parent.parent
    lib_dirs = LIB_DIRS[arch] if arch is not None else DEFAULT_LIB_DIRS

    return [
        root / lib / "wine" / f"{machine}-windows" / "wineboot.exe"
        for lib, machine in lib_dirs
    ]


def resolve_wineboot(
    binary: Path | str,
    explicit: UnixBoot | WindowsBoot | None = None,
    arch: WineArch | None = None,
    prefix: Path | None = None,
) -> UnixBoot | WindowsBoot | None:
    """
    Resolve the boot helper for a wine binary.

    Lookup order: explicit value, unix ``wineboot`` next to the binary,
    ``wineboot.exe`` in the build's ``lib*/wine/*-windows`` folder,
    ``wineboot.exe`` in the prefix's system32.
    """
    if explicit is not None:
        return explicit

    if not is_system_binary(binary):
        sibling = Path(binary).parent / "wineboot"
        if sibling.exists():
            return UnixBoot(path=sibling)

        for candidate in windows_boot_candidates(binary, arch):
            if candidate.exists():
                return WindowsBoot(path=candidate)

    if prefix is not None:
        in_prefix = prefix / "drive_c" / "windows" / "system32" / "wineboot.exe"
        if in_prefix.exists():
            return WindowsBoot(path=in_prefix)

    logger.debug("No wineboot found for %s", binary)
    return None
