"""Tests for reading wine registry files."""

from __future__ import annotations

from wincompat.registry import RegistryParser, get_dll_overrides

USER_REG = """\
WINE REGISTRY Version 2
;; All keys relative to \\\\User\\\\S-1-5-21-0-0-0-1000

#arch=win64

[Software\\\\Wine\\\\Direct3D] 1700000000
#time=1da0000000000000
"renderer"="vulkan"

[Software\\\\Wine\\\\DllOverrides] 1700000000
#time=1da0000000000000
"*d3d11"="native"
"dxgi"="native,builtin"
"winemenubuilder.exe"=""

[Software\\\\Wine\\\\Fonts] 1700000000
"Codepages"="1252,437"
"""


def _write(tmp_path, content, encoding="utf-8"):
    path = tmp_path / "user.reg"
    path.write_text(content, encoding=encoding)
    return path


def test_dll_overrides(tmp_path):
    parser = RegistryParser(_write(tmp_path, USER_REG))
    assert parser.get_dll_overrides() == {
        "d3d11": "native",
        "dxgi": "native,builtin",
        "winemenubuilder.exe": "",
    }


def test_get_value(tmp_path):
    parser = RegistryParser(_write(tmp_path, USER_REG))
    assert parser.get_value("Software\\Wine\\Direct3D", "renderer") == "vulkan"
    assert parser.get_value("Software\\Wine\\Direct3D", "missing") is None
    assert parser.get_value("Software\\Wine\\Nothing", "renderer") is None


def test_section_stops_at_next_key(tmp_path):
    parser = RegistryParser(_write(tmp_path, USER_REG))
    assert parser.get_value("Software\\Wine\\DllOverrides", "Codepages") is None


def test_arch(tmp_path):
    assert RegistryParser(_write(tmp_path, USER_REG)).get_arch() == "win64"
    assert RegistryParser(_write(tmp_path, "WINE REGISTRY Version 2\n")).get_arch() is None


def test_latin1_fallback(tmp_path):
    content = USER_REG + '"Caf\xe9"="1"\n'
    parser = RegistryParser(_write(tmp_path, content, encoding="latin-1"))
    assert parser.get_value("Software\\Wine\\Fonts", "Caf\xe9") == "1"


def test_prefix_overrides(tmp_path):
    _write(tmp_path, USER_REG)
    assert get_dll_overrides(tmp_path)["d3d11"] == "native"


def test_prefix_without_user_reg(tmp_path):
    assert get_dll_overrides(tmp_path) == {}
