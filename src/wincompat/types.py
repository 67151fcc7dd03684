"""
Value types shared by the Wine and Proton models.

Everything here is immutable; configuration objects are replaced, never
edited in place.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class WineArch(str, Enum):
    """Prefix architecture. ``None`` on a Wine model means Wine's default (64-bit with 32-bit support)."""
    WIN32 = "win32"    # 32-bit only
    WIN64 = "win64"    # 64-bit only


class LoaderMode(str, Enum):
    """How the WINELOADER variable is set."""
    CURRENT = "current"    # Use the configured wine binary
    DEFAULT = "default"    # Leave unset, wine falls back to its system binary
    CUSTOM = "custom"      # Use an explicit path


class WineLoader(BaseModel):
    """WINELOADER selection."""
    model_config = ConfigDict(frozen=True)

    mode: LoaderMode = Field(default=LoaderMode.DEFAULT)
    path: Optional[Path] = Field(default=None, description="Loader path, only for custom mode")

    @model_validator(mode="after")
    def _check_path(self) -> WineLoader:
        if self.mode == LoaderMode.CUSTOM and self.path is None:
            raise ValueError("custom loader requires a path")
        if self.mode != LoaderMode.CUSTOM and self.path is not None:
            raise ValueError(f"{self.mode.value} loader does not take a path")
        return self

    @classmethod
    def current(cls) -> WineLoader:
        return cls(mode=LoaderMode.CURRENT)

    @classmethod
    def default(cls) -> WineLoader:
        return cls(mode=LoaderMode.DEFAULT)

    @classmethod
    def custom(cls, path: Path | str) -> WineLoader:
        return cls(mode=LoaderMode.CUSTOM, path=Path(path))


class UnixBoot(BaseModel):
    """wineboot as a unix executable (usually the shell script shipped with wine)."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["unix"] = "unix"
    path: Path


class WindowsBoot(BaseModel):
    """wineboot.exe, which has to be launched through the wine binary."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["windows"] = "windows"
    path: Path


WineBoot = Annotated[Union[UnixBoot, WindowsBoot], Field(discriminator="kind")]


class LibsMode(str, Enum):
    """Shared library search path mode."""
    NONE = "none"            # Don't set the variable
    STANDARD = "standard"    # Standard folders inside a wine build
    CUSTOM = "custom"        # Explicit list of folders


class SharedLibs(BaseModel):
    """Shared library folders for either the wine runtime or gstreamer."""
    model_config = ConfigDict(frozen=True)

    mode: LibsMode = Field(default=LibsMode.NONE)
    root: Optional[Path] = Field(default=None, description="Wine build folder for standard mode")
    paths: tuple[Path, ...] = Field(default=(), description="Folders for custom mode")

    @model_validator(mode="after")
    def _check_fields(self) -> SharedLibs:
        if self.mode == LibsMode.STANDARD and self.root is None:
            raise ValueError("standard shared libraries mode requires a root folder")
        return self

    @classmethod
    def none(cls) -> SharedLibs:
        return cls()

    @classmethod
    def standard(cls, root: Path | str) -> SharedLibs:
        return cls(mode=LibsMode.STANDARD, root=Path(root))

    @classmethod
    def custom(cls, paths: list[Path | str] | tuple[Path | str, ...]) -> SharedLibs:
        return cls(mode=LibsMode.CUSTOM, paths=tuple(Path(p) for p in paths))


class OverrideMode(str, Enum):
    """
    Dll override modes.

    See https://wiki.winehq.org/Wine_User%27s_Guide#DLL_Overrides
    """
    NATIVE = "native"
    BUILTIN = "builtin"
    DISABLED = "disabled"
