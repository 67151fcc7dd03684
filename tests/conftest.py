"""Shared fixtures: fake prefixes, fake wine builds and a fake registry."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from wincompat.dxvk import DXVK_DLLS, MARKER

FAKE_WINE = """\
#!/bin/sh
case "$1" in
    --version)
        echo "wine-9.0 (Staging)"
        ;;
    winepath)
        echo "$WINEPREFIX/drive_c/windows/system32"
        ;;
    reg)
        echo "$@" >> "$WINEPREFIX/reg.log"
        if [ -n "$FAKE_REG_FAIL" ]; then
            echo "reg: Running"
            echo "reg: Unable to find the specified registry key"
            exit 1
        fi
        ;;
    *)
        echo "$@"
        ;;
esac
"""

FAKE_WINEBOOT = """\
#!/bin/sh
mkdir -p "$WINEPREFIX/drive_c/windows/system32"
touch "$WINEPREFIX/system.reg"
echo "$1" >> "$WINEPREFIX/wineboot.log"
echo "WINEARCH=$WINEARCH"
echo "WINELOADER=$WINELOADER"
echo "SteamAppId=$SteamAppId"
echo "STEAM_COMPAT_DATA_PATH=$STEAM_COMPAT_DATA_PATH"
"""

FAILING_WINEBOOT = """\
#!/bin/sh
echo "wineboot: starting"
echo "wineboot: could not load kernel32.dll"
exit 3
"""


def write_script(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body)
    path.chmod(0o755)
    return path


def sha256(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def dxvk_dll(version: str, offset: int = 64, size: int = 4096) -> bytes:
    """Fake dll with the DXVK marker at ``offset``."""
    payload = MARKER + version.encode("latin-1") + b"\x00"
    data = bytearray(b"\x90" * max(size, offset + len(payload)))
    data[offset:offset + len(payload)] = payload
    return bytes(data)


class FakeRegistry:
    """Records override edits; fails on demand."""

    def __init__(self, fail_add: bool = False, fail_delete: bool = False):
        self.overrides: dict[str, str] = {}
        self.fail_add = fail_add
        self.fail_delete = fail_delete
        self.calls: list[tuple[str, str]] = []

    def add_override(self, dll_name, modes=()):
        self.calls.append(("add", dll_name))
        if self.fail_add:
            raise RuntimeError("reg add failed")
        self.overrides[dll_name] = ",".join(mode.value for mode in modes)

    def delete_override(self, dll_name):
        self.calls.append(("delete", dll_name))
        if self.fail_delete:
            raise RuntimeError("reg delete failed")
        self.overrides.pop(dll_name, None)


@pytest.fixture
def prefix(tmp_path: Path) -> Path:
    """Minimal valid prefix with wine's own d3d dlls in system32."""
    prefix = tmp_path / "prefix"
    system32 = prefix / "drive_c" / "windows" / "system32"
    system32.mkdir(parents=True)
    (prefix / "system.reg").write_text("WINE REGISTRY Version 2\n\n#arch=win64\n")

    for name in DXVK_DLLS:
        (system32 / f"{name}.dll").write_bytes(f"builtin {name}".encode())

    return prefix


@pytest.fixture
def system32(prefix: Path) -> Path:
    return prefix / "drive_c" / "windows" / "system32"


@pytest.fixture
def dxvk_folder(tmp_path: Path) -> Path:
    """Extracted DXVK release with x64 and x32 dlls."""
    folder = tmp_path / "dxvk-2.1"
    for arch in ("x64", "x32"):
        (folder / arch).mkdir(parents=True)
        for name in DXVK_DLLS:
            (folder / arch / f"{name}.dll").write_bytes(dxvk_dll("2.1") + f"{arch} {name}".encode())
    return folder


@pytest.fixture
def wine_build(tmp_path: Path) -> Path:
    """Fake wine build folder: bin/wine, bin/wineboot, bin/wineserver."""
    build = tmp_path / "wine-build"
    write_script(build / "bin" / "wine", FAKE_WINE)
    write_script(build / "bin" / "wineboot", FAKE_WINEBOOT)
    write_script(build / "bin" / "wineserver", "#!/bin/sh\nexit 0\n")
    return build


@pytest.fixture
def proton_build(tmp_path: Path) -> Path:
    """Fake Proton install."""
    build = tmp_path / "GE-Proton9-27"
    write_script(build / "proton", '#!/usr/bin/env python3\nCURRENT_PREFIX_VERSION="9.0-200"\n')
    write_script(build / "files" / "bin" / "wine64", FAKE_WINE)
    write_script(build / "files" / "bin" / "wine", FAKE_WINE)
    write_script(build / "files" / "bin" / "wineboot", FAKE_WINEBOOT)
    write_script(build / "files" / "bin" / "wineserver", "#!/bin/sh\nexit 0\n")
    (build / "proton_dist.tracked_files").write_text("drive_c/windows/system32/d3d11.dll\n")
    return build
