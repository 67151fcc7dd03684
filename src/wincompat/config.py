"""
Profile configuration.

A profile stores how to build a Wine or Proton environment so the CLI
doesn't need every path on the command line. It is saved as
profile.json.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field, model_validator

from wincompat.proton import Proton
from wincompat.types import LoaderMode, SharedLibs, WineArch, WineLoader
from wincompat.wine import Wine

PROFILE_FILE = "profile.json"
PROFILE_ENV = "WINCOMPAT_PROFILE"


class WineProfile(BaseModel):
    """Settings for a plain wine build."""
    binary: str = Field(default="wine", description="Wine binary")
    prefix: Optional[str] = Field(default=None, description="Wine prefix")
    arch: Optional[WineArch] = Field(default=None, description="win32 or win64, unset for wine's default")
    loader: LoaderMode = Field(default=LoaderMode.DEFAULT)
    loader_path: Optional[str] = Field(default=None, description="Loader for custom mode")
    server: Optional[str] = Field(default=None, description="Explicit wineserver")
    wine_libs: Optional[str] = Field(default=None, description="Wine build folder for LD_LIBRARY_PATH")
    gstreamer_libs: Optional[str] = Field(default=None, description="Wine build folder for GST_PLUGIN_PATH")

    def build(self) -> Wine:
        wine = Wine.from_binary(Path(self.binary).expanduser())

        if self.prefix:
            wine = wine.with_prefix(Path(self.prefix).expanduser())
        if self.arch:
            wine = wine.with_arch(self.arch)
        if self.server:
            wine = wine.with_server(Path(self.server).expanduser())

        if self.loader == LoaderMode.CUSTOM:
            if not self.loader_path:
                raise ValueError("custom loader requires loader_path")
            wine = wine.with_loader(WineLoader.custom(Path(self.loader_path).expanduser()))
        else:
            wine = wine.with_loader(WineLoader(mode=self.loader))

        if self.wine_libs:
            wine = wine.with_wine_libs(SharedLibs.standard(Path(self.wine_libs).expanduser()))
        if self.gstreamer_libs:
            wine = wine.with_gstreamer_libs(SharedLibs.standard(Path(self.gstreamer_libs).expanduser()))

        return wine


class ProtonProfile(BaseModel):
    """Settings for a Proton bundle."""
    path: str = Field(description="Proton install folder")
    prefix: Optional[str] = Field(default=None, description="Proton prefix (wine prefix is prefix/pfx)")
    steam_client_path: Optional[str] = Field(default=None)
    steam_app_id: int = Field(default=0)
    python: str = Field(default="python3")

    def build(self) -> Proton:
        prefix = Path(self.prefix).expanduser() if self.prefix else None
        proton = Proton.from_path(Path(self.path).expanduser(), prefix)

        if self.steam_client_path:
            proton = proton.with_steam_client(Path(self.steam_client_path).expanduser())

        return proton.with_steam_app_id(self.steam_app_id).with_python(self.python)


class Profile(BaseModel):
    """Complete profile. At most one of ``wine`` and ``proton`` is set."""
    schema_version: str = Field(default="1")
    wine: Optional[WineProfile] = Field(default=None)
    proton: Optional[ProtonProfile] = Field(default=None)

    @model_validator(mode="after")
    def _check_runtime(self) -> Profile:
        if self.wine is not None and self.proton is not None:
            raise ValueError("profile can't configure both wine and proton")
        return self

    def build(self) -> Union[Wine, Proton]:
        """Environment described by this profile, system wine if it's empty."""
        if self.proton is not None:
            return self.proton.build()
        return (self.wine or WineProfile()).build()

    def save(self, path: Path | str) -> Path:
        """Save profile to profile.json, or to ``path`` if it names a file."""
        path = Path(path)
        profile_path = path / PROFILE_FILE if path.is_dir() else path
        profile_path.parent.mkdir(parents=True, exist_ok=True)
        profile_path.write_text(self.model_dump_json(indent=2, exclude_none=True))
        return profile_path

    @classmethod
    def load(cls, path: Path | str) -> Profile:
        """Load profile from profile.json or a directory containing it."""
        path = Path(path)
        profile_path = path / PROFILE_FILE if path.is_dir() else path
        data = json.loads(profile_path.read_text())
        return cls.model_validate(data)
