"""Tests for the command line interface."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from conftest import dxvk_dll
from wincompat import __version__
from wincompat.cli import cli
from wincompat.config import PROFILE_ENV


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.delenv(PROFILE_ENV, raising=False)
    return CliRunner()


@pytest.fixture
def wine_args(wine_build, prefix):
    return ["--wine", str(wine_build / "bin" / "wine"), "--prefix", str(prefix)]


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_analyze(runner, prefix, system32):
    (system32 / "d3d11.dll").write_bytes(dxvk_dll("2.1"))
    (system32 / "d3d11.dll.old").write_bytes(b"builtin d3d11")

    result = runner.invoke(cli, ["analyze", str(prefix)])

    assert result.exit_code == 0
    assert "win64" in result.output
    assert "2.1" in result.output
    assert "replaced" in result.output


def test_analyze_not_a_prefix(runner, tmp_path):
    result = runner.invoke(cli, ["analyze", str(tmp_path)])
    assert "Not a valid Wine prefix" in result.output


def test_prefix_update(runner, wine_args, prefix):
    result = runner.invoke(cli, [*wine_args, "prefix", "update"])

    assert result.exit_code == 0, result.output
    assert (prefix / "wineboot.log").read_text().split() == ["-u"]


def test_prefix_stop_force(runner, wine_args, prefix):
    result = runner.invoke(cli, [*wine_args, "prefix", "stop", "--force"])

    assert result.exit_code == 0, result.output
    assert (prefix / "wineboot.log").read_text().split() == ["-f"]


def test_prefix_without_prefix(runner, wine_build):
    result = runner.invoke(cli, ["--wine", str(wine_build / "bin" / "wine"), "prefix", "restart"])

    assert result.exit_code == 1
    assert "Error" in result.output


def test_run(runner, wine_args):
    result = runner.invoke(cli, [*wine_args, "run", "notepad", "file.txt"])

    assert result.exit_code == 0
    assert "notepad file.txt" in result.output


def test_dxvk_install_and_uninstall(runner, wine_args, dxvk_folder):
    result = runner.invoke(cli, [*wine_args, "dxvk", "install", str(dxvk_folder), "--no-repair"])
    assert result.exit_code == 0, result.output
    assert "DXVK installed: 2.1" in result.output

    result = runner.invoke(cli, [*wine_args, "dxvk", "version"])
    assert "DXVK applied: 2.1" in result.output

    result = runner.invoke(cli, [*wine_args, "dxvk", "uninstall", "--no-repair"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli, [*wine_args, "dxvk", "version"])
    assert "DXVK is not applied" in result.output


def test_dxvk_install_selected(runner, wine_args, dxvk_folder, system32):
    result = runner.invoke(
        cli, [*wine_args, "dxvk", "install", str(dxvk_folder), "--dll", "d3d11", "--no-repair"]
    )

    assert result.exit_code == 0, result.output
    assert (system32 / "d3d11.dll.old").exists()
    assert not (system32 / "dxgi.dll.old").exists()


def test_dxvk_uninstall_nothing(runner, wine_args):
    result = runner.invoke(cli, [*wine_args, "dxvk", "uninstall", "--no-repair"])

    assert result.exit_code == 1
    assert "Nothing to restore" in result.output


def test_dxvk_version_without_prefix(runner):
    result = runner.invoke(cli, ["dxvk", "version"])
    assert result.exit_code == 1


def test_profile_save_and_show(runner, wine_args, tmp_path, wine_build):
    result = runner.invoke(cli, [*wine_args, "profile", "save", str(tmp_path)])
    assert result.exit_code == 0, result.output

    saved = json.loads((tmp_path / "profile.json").read_text())
    assert saved["wine"]["binary"] == str(wine_build / "bin" / "wine")

    result = runner.invoke(cli, ["--profile", str(tmp_path), "profile", "show"])
    assert result.exit_code == 0
    assert "\"binary\"" in result.output


def test_proton_option_keeps_profile(runner, proton_build, tmp_path):
    profile_dir = tmp_path / "profile"
    profile_dir.mkdir()
    (profile_dir / "profile.json").write_text(json.dumps({
        "proton": {
            "path": str(proton_build),
            "prefix": str(tmp_path / "game"),
            "steam_app_id": 570,
            "python": "/usr/bin/python3.12",
        },
    }))
    other_proton = tmp_path / "GE-Proton10-1"
    other_proton.mkdir()

    result = runner.invoke(cli, [
        "--profile", str(profile_dir), "--proton", str(other_proton),
        "profile", "save", str(tmp_path / "effective.json"),
    ])
    assert result.exit_code == 0, result.output

    saved = json.loads((tmp_path / "effective.json").read_text())["proton"]
    assert saved["path"] == str(other_proton)
    assert saved["prefix"] == str(tmp_path / "game")
    assert saved["steam_app_id"] == 570
    assert saved["python"] == "/usr/bin/python3.12"


def test_bad_profile(runner, tmp_path):
    (tmp_path / "profile.json").write_text("{not json")

    result = runner.invoke(cli, ["--profile", str(tmp_path), "profile", "show"])

    assert result.exit_code == 1
    assert "Failed to load profile" in result.output
