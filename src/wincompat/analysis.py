"""
Prefix analysis - inspect a prefix's structure and DXVK state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from wincompat.dxvk import DXVK_DLLS, get_version
from wincompat.overrides import DllOverride
from wincompat.registry import RegistryParser, get_dll_overrides


class DllState(str, Enum):
    """State of a dll in system32."""
    ORIGINAL = "original"    # No backup, the live file is wine's own
    REPLACED = "replaced"    # Backup present, the live file is a replacement
    MISSING = "missing"      # Neither file exists


@dataclass
class PrefixAnalysis:
    """Results of analyzing a Wine prefix."""
    prefix_path: Path
    exists: bool = False
    is_valid_prefix: bool = False

    # Structure
    arch: str | None = None                # win32 or win64
    has_syswow64: bool = False

    # Graphics stack
    dxvk_version: str | None = None
    dlls: dict[str, DllState] = field(default_factory=dict)

    # Registry
    dll_overrides: dict[str, str] = field(default_factory=dict)

    # Potential issues
    warnings: list[str] = field(default_factory=list)

    @property
    def has_dxvk(self) -> bool:
        return self.dxvk_version is not None


class PrefixAnalyzer:
    """Analyzes Wine prefix contents."""

    def __init__(self, prefix_path: Path | str):
        self.prefix_path = Path(prefix_path).expanduser().resolve()

    @property
    def system32(self) -> Path:
        return self.prefix_path / "drive_c" / "windows" / "system32"

    def analyze(self) -> PrefixAnalysis:
        """Perform full analysis of the prefix."""
        result = PrefixAnalysis(prefix_path=self.prefix_path)

        if not self.prefix_path.exists():
            result.warnings.append(f"Prefix path does not exist: {self.prefix_path}")
            return result

        result.exists = True
        result.is_valid_prefix = (self.prefix_path / "system.reg").exists()

        if not result.is_valid_prefix:
            result.warnings.append("Missing system.reg - not a valid Wine prefix")
            return result

        result.has_syswow64 = (self.prefix_path / "drive_c" / "windows" / "syswow64").exists()
        result.arch = self._detect_arch(result.has_syswow64)

        result.dlls = self._dll_states()
        result.dll_overrides = get_dll_overrides(self.prefix_path)

        try:
            result.dxvk_version = get_version(self.prefix_path)
        except OSError as e:
            result.warnings.append(f"Could not read d3d11.dll or dxgi.dll: {e}")

        self._check_issues(result)

        return result

    def _detect_arch(self, has_syswow64: bool) -> str:
        """Header of system.reg, or syswow64 presence if it has none."""
        arch = RegistryParser(self.prefix_path / "system.reg").get_arch()
        if arch:
            return arch
        return "win64" if has_syswow64 else "win32"

    def _dll_states(self) -> dict[str, DllState]:
        states = {}

        for name in DXVK_DLLS:
            override = DllOverride(name, self.system32)
            if override.is_installed:
                states[name] = DllState.REPLACED
            elif override.destination.exists():
                states[name] = DllState.ORIGINAL
            else:
                states[name] = DllState.MISSING

        return states

    def _check_issues(self, result: PrefixAnalysis) -> None:
        """Flag leftovers of interrupted or half-done installs."""
        for name, state in result.dlls.items():
            override = DllOverride(name, self.system32)

            if state == DllState.REPLACED and name not in result.dll_overrides:
                result.warnings.append(f"{name}.dll is replaced but has no dll override registered")

            if state == DllState.REPLACED and not override.destination.exists():
                result.warnings.append(f"{name}.dll is missing, only its backup exists")

            if override.staged.exists():
                result.warnings.append(f"Leftover {override.staged.name} from an interrupted install")

        replaced = [name for name, state in result.dlls.items() if state == DllState.REPLACED]
        if replaced and not result.has_dxvk:
            result.warnings.append("Dlls are replaced but no DXVK version was found in them")


def analyze_prefix(prefix_path: Path | str) -> PrefixAnalysis:
    """Convenience function to analyze a prefix."""
    return PrefixAnalyzer(prefix_path).analyze()
