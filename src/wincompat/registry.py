"""
Read-only access to Wine registry files.

Wine keeps the registry as text files in the prefix (system.reg,
user.reg, userdef.reg). Writes go through ``wine reg``; this module only
reads them to report state.
"""

from __future__ import annotations

import re
from pathlib import Path


class RegistryParser:
    """
    Parse Wine registry files.

    Wine registry files have this format:

        WINE REGISTRY Version 2
        ;; All keys relative to \\\\User\\\\S-1-5-21-0-0-0-1000

        #arch=win64

        [Software\\\\Wine\\\\DllOverrides] 1700000000
        #time=1da0000000000000
        "d3d11"="native"

    Keys are in square brackets with doubled backslashes, values follow.
    """

    def __init__(self, reg_path: Path):
        self.reg_path = reg_path
        self._content: str | None = None

    @property
    def content(self) -> str:
        if self._content is None:
            try:
                self._content = self.reg_path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                self._content = self.reg_path.read_text(encoding="latin-1")
        return self._content

    def _section(self, key_path: str) -> str | None:
        escaped_key = re.escape(key_path.replace("\\", "\\\\"))
        match = re.search(rf'^\[{escaped_key}\][^\n]*\n(.*?)(?=^\[|\Z)', self.content,
                          re.IGNORECASE | re.DOTALL | re.MULTILINE)
        return match.group(1) if match else None

    def get_value(self, key_path: str, value_name: str) -> str | None:
        """
        Get a string value from the registry.

        Args:
            key_path: Key path with single backslashes, e.g. "Software\\\\Wine\\\\DllOverrides"
            value_name: Value name to retrieve

        Returns:
            Value string or None if not found
        """
        section = self._section(key_path)
        if section is None:
            return None

        escaped_name = re.escape(value_name)
        value_match = re.search(rf'^"{escaped_name}"="([^"]*)"', section,
                                re.IGNORECASE | re.MULTILINE)
        return value_match.group(1) if value_match else None

    def get_dll_overrides(self) -> dict[str, str]:
        """Get DLL override settings as {dll name: mode}."""
        overrides: dict[str, str] = {}

        section = self._section("Software\\Wine\\DllOverrides")
        if section is None:
            return overrides

        for m in re.finditer(r'^"([^"]+)"="([^"]*)"', section, re.MULTILINE):
            # Leading * means "any path"
            dll_name = m.group(1).lstrip("*")
            overrides[dll_name] = m.group(2)

        return overrides

    def get_arch(self) -> str | None:
        """Architecture recorded in the file header, "win32" or "win64"."""
        match = re.search(r'^#arch=(\w+)', self.content, re.MULTILINE)
        return match.group(1) if match else None


def get_dll_overrides(prefix_path: Path) -> dict[str, str]:
    """DLL overrides registered in a prefix."""
    user_reg = prefix_path / "user.reg"
    if not user_reg.exists():
        return {}

    return RegistryParser(user_reg).get_dll_overrides()
