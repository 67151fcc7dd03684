"""Tests for installing and uninstalling DXVK through a fake wine build."""

from __future__ import annotations

import pytest

from conftest import sha256
from wincompat.dxvk import DXVK_DLLS, InstallParams, get_version, install_dxvk, uninstall_dxvk
from wincompat.errors import (
    InvalidPrefixError,
    MissingDllError,
    NothingToRestoreError,
    PrefixNotConfiguredError,
    ProcessError,
)
from wincompat.lock import LOCK_FILE
from wincompat.proton import Proton
from wincompat.types import WineArch
from wincompat.wine import Wine


@pytest.fixture
def wine(wine_build, prefix):
    return Wine.from_binary(wine_build / "bin" / "wine").with_prefix(prefix)


def _snapshot(folder):
    return {path.name: sha256(path) for path in folder.iterdir()}


def test_params():
    params = InstallParams(d3d9=False, arch=WineArch.WIN32)
    assert params.dlls() == ["dxgi", "d3d10core", "d3d11"]
    assert params.source_folder == "x32"
    assert InstallParams().source_folder == "x64"


def test_install(wine, prefix, system32, dxvk_folder):
    install_dxvk(wine, dxvk_folder)

    assert get_version(prefix) == "2.1"
    for name in DXVK_DLLS:
        assert (system32 / f"{name}.dll").read_bytes().endswith(f"x64 {name}".encode())
        assert (system32 / f"{name}.dll.old").read_bytes() == f"builtin {name}".encode()

    assert (prefix / "wineboot.log").read_text().split() == ["-u"]
    assert (prefix / "reg.log").read_text().count("add") == len(DXVK_DLLS)
    assert (prefix / LOCK_FILE).exists()


def test_install_x32(wine, system32, dxvk_folder):
    install_dxvk(wine, dxvk_folder, InstallParams(arch=WineArch.WIN32, repair_dlls=False))
    assert (system32 / "d3d11.dll").read_bytes().endswith(b"x32 d3d11")


def test_install_selected(wine, prefix, system32, dxvk_folder):
    install_dxvk(wine, dxvk_folder, InstallParams(d3d9=False, repair_dlls=False))

    assert not (system32 / "d3d9.dll.old").exists()
    assert (system32 / "d3d9.dll").read_bytes() == b"builtin d3d9"
    assert not (prefix / "wineboot.log").exists()


def test_install_without_lock(wine, prefix, dxvk_folder):
    install_dxvk(wine, dxvk_folder, InstallParams(lock=False, repair_dlls=False))
    assert not (prefix / LOCK_FILE).exists()


def test_install_missing_source(wine, prefix, system32, dxvk_folder):
    (dxvk_folder / "x64" / "d3d11.dll").unlink()
    before = _snapshot(system32)

    with pytest.raises(MissingDllError):
        install_dxvk(wine, dxvk_folder)

    assert _snapshot(system32) == before
    assert not (prefix / "wineboot.log").exists()


def test_install_without_prefix(wine_build, dxvk_folder):
    with pytest.raises(PrefixNotConfiguredError):
        install_dxvk(Wine.from_binary(wine_build / "bin" / "wine"), dxvk_folder)


def test_install_invalid_prefix(wine, prefix, dxvk_folder):
    (prefix / "system.reg").unlink()

    with pytest.raises(InvalidPrefixError):
        install_dxvk(wine, dxvk_folder, InstallParams(repair_dlls=False))


def test_install_registry_failure(wine, prefix, system32, dxvk_folder, monkeypatch):
    monkeypatch.setenv("FAKE_REG_FAIL", "1")
    before = _snapshot(system32)

    with pytest.raises(ProcessError):
        install_dxvk(wine, dxvk_folder, InstallParams(repair_dlls=False))

    assert _snapshot(system32) == before
    assert get_version(prefix) is None


def test_uninstall(wine, prefix, system32, dxvk_folder):
    before = _snapshot(system32)
    install_dxvk(wine, dxvk_folder)

    uninstall_dxvk(wine)

    assert get_version(prefix) is None
    assert _snapshot(system32) == before
    assert (prefix / "wineboot.log").read_text().split() == ["-u", "-u"]
    assert (prefix / "reg.log").read_text().count("delete") == len(DXVK_DLLS)


def test_uninstall_not_installed(wine, prefix, system32):
    before = _snapshot(system32)

    with pytest.raises(NothingToRestoreError):
        uninstall_dxvk(wine)

    assert _snapshot(system32) == before
    assert not (prefix / "reg.log").exists()


def test_uninstall_partial_install(wine, prefix, system32, dxvk_folder):
    install_dxvk(wine, dxvk_folder, InstallParams(d3d9=False, repair_dlls=False))
    before = _snapshot(system32)

    with pytest.raises(NothingToRestoreError):
        uninstall_dxvk(wine, InstallParams(repair_dlls=False))

    assert _snapshot(system32) == before
    assert get_version(prefix) == "2.1"


def test_proton_install(proton_build, tmp_path, dxvk_folder):
    proton = Proton.from_path(proton_build, tmp_path / "game")
    proton.update_prefix()

    system32 = proton.prefix / "drive_c" / "windows" / "system32"
    for name in DXVK_DLLS:
        (system32 / f"{name}.dll").write_bytes(f"builtin {name}".encode())

    install_dxvk(proton, dxvk_folder, InstallParams(repair_dlls=False))
    assert get_version(proton.prefix) == "2.1"

    uninstall_dxvk(proton)
    assert get_version(proton.prefix) is None
    assert (tmp_path / "game" / "version").read_text() == "9.0-200"
