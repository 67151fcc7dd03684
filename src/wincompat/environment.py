"""
Environment variables for processes spawned through wine.

Composition is pure: it does no filesystem lookups, so the same
configuration always produces the same mapping. Path resolution happens
before calling in here.
"""

from __future__ import annotations

from pathlib import Path

from wincompat.types import LibsMode, LoaderMode, SharedLibs, WineArch, WineLoader

WINE_LIBS = [
    "lib",
    "lib64",
    "lib/wine/x86_64-unix",
    "lib32/wine/x86_64-unix",
    "lib64/wine/x86_64-unix",
    "lib/wine/i386-unix",
    "lib32/wine/i386-unix",
    "lib64/wine/i386-unix",
]

GSTREAMER_LIBS = [
    "lib64/gstreamer-1.0",
    "lib/gstreamer-1.0",
    "lib32/gstreamer-1.0",
]


def library_paths(libs: SharedLibs, standard_dirs: list[str]) -> str | None:
    """Colon-joined search path for the given mode, or None to leave the variable unset."""
    if libs.mode == LibsMode.NONE:
        return None

    if libs.mode == LibsMode.STANDARD:
        if libs.root is None:
            raise ValueError("standard shared libraries mode requires a root folder")
        paths = [libs.root / folder for folder in standard_dirs]
    else:
        paths = list(libs.paths)

    return ":".join(str(path) for path in paths)


def loader_path(binary: Path, loader: WineLoader) -> Path | None:
    """WINELOADER value, None for the default loader."""
    if loader.mode == LoaderMode.CURRENT:
        return binary
    if loader.mode == LoaderMode.CUSTOM:
        return loader.path
    return None


def compose_env(
    binary: Path,
    *,
    prefix: Path | None = None,
    arch: WineArch | None = None,
    wineserver: Path | None = None,
    loader: WineLoader | None = None,
    wine_libs: SharedLibs | None = None,
    gstreamer_libs: SharedLibs | None = None,
) -> dict[str, str]:
    """
    Build the environment mapping for a wine configuration.

    Only variables that carry information are set:

    - ``WINEPREFIX`` if a prefix is given
    - ``WINEARCH`` if an architecture is given
    - ``WINESERVER`` if the server binary is known
    - ``WINELOADER`` unless the default loader is used
    - ``LD_LIBRARY_PATH`` / ``GST_PLUGIN_PATH`` for non-empty library modes
    """
    env: dict[str, str] = {}

    if prefix is not None:
        env["WINEPREFIX"] = str(prefix)

    if arch is not None:
        env["WINEARCH"] = arch.value

    if wineserver is not None:
        env["WINESERVER"] = str(wineserver)

    wineloader = loader_path(binary, loader or WineLoader.default())
    if wineloader is not None:
        env["WINELOADER"] = str(wineloader)

    if wine_libs is not None:
        paths = library_paths(wine_libs, WINE_LIBS)
        if paths is not None:
            env["LD_LIBRARY_PATH"] = paths

    if gstreamer_libs is not None:
        paths = library_paths(gstreamer_libs, GSTREAMER_LIBS)
        if paths is not None:
            env["GST_PLUGIN_PATH"] = paths

    return env
