"""
Proton bundle support.

A Proton install wraps a wine build (``files/bin``) with its own launcher
script and prefix metadata. Its prefix has two levels:

    <proton prefix>/          STEAM_COMPAT_DATA_PATH
    ├── version               prefix version written by proton
    ├── tracked_files         files proton manages inside the prefix
    └── pfx/                  WINEPREFIX

The wine prefix is always ``pfx`` inside the proton prefix.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from wincompat import process
from wincompat.types import OverrideMode, SharedLibs, UnixBoot, WindowsBoot, WineArch, WineLoader
from wincompat.wine import (
    BOOT_END_SESSION,
    BOOT_FORCE_KILL,
    BOOT_INIT,
    BOOT_KILL,
    BOOT_RESTART,
    BOOT_SHUTDOWN,
    BOOT_UPDATE,
    Wine,
)

logger = logging.getLogger(__name__)

PREFIX_VERSION_PATTERN = re.compile(r'CURRENT_PREFIX_VERSION\s*=\s*"([^"]*)"')

TRACKED_FILES = "tracked_files"
TRACKED_FILES_PREFIX = "proton"


def _wine_binary(path: Path) -> Path:
    """wine64 where the build still ships it, wine otherwise."""
    wine64 = path / "files" / "bin" / "wine64"
    if wine64.exists():
        return wine64
    return path / "files" / "bin" / "wine"


def _split_prefix(prefix: Path) -> tuple[Path, Path]:
    """
    Split a prefix path into (proton prefix, wine prefix).

    The path is taken as the proton prefix, unless it is itself an
    existing ``pfx`` wine prefix, in which case its parent is.
    """
    if prefix.name == "pfx" and (prefix / "system.reg").exists():
        return prefix.parent, prefix
    return prefix, prefix / "pfx"


class Proton(BaseModel):
    """A Proton install and the prefix it runs in."""
    model_config = ConfigDict(frozen=True)

    path: Path = Field(description="Proton install folder")
    wine: Wine = Field(description="Wine build inside the bundle")
    proton_prefix: Optional[Path] = Field(default=None, description="STEAM_COMPAT_DATA_PATH")
    steam_client_path: Optional[Path] = Field(default=None, description="STEAM_COMPAT_CLIENT_INSTALL_PATH")
    steam_app_id: int = Field(default=0, description="SteamAppId")
    python: Path = Field(default=Path("python3"), description="Interpreter for the proton script")

    @model_validator(mode="after")
    def _check_prefixes(self) -> Proton:
        if self.proton_prefix is not None and self.wine.prefix != self.proton_prefix / "pfx":
            raise ValueError(
                f"wine prefix {self.wine.prefix} must be {self.proton_prefix / 'pfx'}"
            )
        return self

    @classmethod
    def from_path(cls, path: Path | str, prefix: Path | str | None = None) -> Proton:
        """
        Create a bundle from a Proton install folder.

        Args:
            path: Proton folder (the one containing the ``proton`` script)
            prefix: Proton prefix; the wine prefix becomes ``prefix/pfx``
        """
        path = Path(path)
        wine = Wine(
            binary=_wine_binary(path),
            arch=WineArch.WIN64,
            server=path / "files" / "bin" / "wineserver",
            loader=WineLoader.current(),
        )

        proton = cls(path=path, wine=wine)
        if prefix is not None:
            proton = proton.with_prefix(prefix)
        return proton

    # Builders

    def with_prefix(self, prefix: Path | str) -> Proton:
        """Set the proton prefix; the wine prefix follows as ``pfx`` inside it."""
        proton_prefix, wine_prefix = _split_prefix(Path(prefix))
        return self.model_copy(update={
            "proton_prefix": proton_prefix,
            "wine": self.wine.with_prefix(wine_prefix),
        })

    def with_boot(self, boot: UnixBoot | WindowsBoot) -> Proton:
        return self.model_copy(update={"wine": self.wine.with_boot(boot)})

    def with_server(self, server: Path | str) -> Proton:
        return self.model_copy(update={"wine": self.wine.with_server(server)})

    def with_wine_libs(self, wine_libs: SharedLibs) -> Proton:
        return self.model_copy(update={"wine": self.wine.with_wine_libs(wine_libs)})

    def with_gstreamer_libs(self, gstreamer_libs: SharedLibs) -> Proton:
        return self.model_copy(update={"wine": self.wine.with_gstreamer_libs(gstreamer_libs)})

    def with_steam_client(self, steam_client_path: Path | str) -> Proton:
        return self.model_copy(update={"steam_client_path": Path(steam_client_path)})

    def with_steam_app_id(self, steam_app_id: int) -> Proton:
        return self.model_copy(update={"steam_app_id": steam_app_id})

    def with_python(self, python: Path | str) -> Proton:
        return self.model_copy(update={"python": Path(python)})

    # Environment

    @property
    def prefix(self) -> Path | None:
        """Wine prefix, so a bundle can stand in for a Wine."""
        return self.wine.prefix

    def get_envs(self) -> dict[str, str]:
        """Wine variables plus the Steam compatibility variables."""
        env = self.wine.get_envs()

        if self.proton_prefix is not None:
            env["STEAM_COMPAT_DATA_PATH"] = str(self.proton_prefix)

        if self.steam_client_path is not None:
            env["STEAM_COMPAT_CLIENT_INSTALL_PATH"] = str(self.steam_client_path)

        env["SteamAppId"] = str(self.steam_app_id)

        return env

    def resolve_prefixes(self, path: Path | str | None = None) -> tuple[Path | None, Path]:
        """(proton prefix, wine prefix) for an operation, a call-supplied path winning."""
        if path is not None:
            return _split_prefix(Path(path))
        return self.proton_prefix, self.wine.resolve_prefix()

    # Prefix metadata

    def prefix_version(self) -> str | None:
        """CURRENT_PREFIX_VERSION from the proton script, if it has one."""
        script = self.path / "proton"
        if not script.is_file():
            return None

        match = PREFIX_VERSION_PATTERN.search(script.read_text(errors="replace"))
        if match and match.group(1):
            return match.group(1)
        return None

    def tracked_files(self) -> Path | None:
        """tracked_files manifest shipped with the bundle."""
        exact = self.path / TRACKED_FILES
        if exact.is_file():
            return exact

        if not self.path.is_dir():
            return None

        for entry in sorted(self.path.iterdir()):
            if (
                entry.is_file()
                and entry.name.startswith(TRACKED_FILES_PREFIX)
                and entry.name.endswith(TRACKED_FILES)
            ):
                return entry

        return None

    def sync_prefix_metadata(self, proton_prefix: Path | None = None) -> None:
        """
        Copy version and tracked_files from the bundle into the proton prefix.

        Missing sources are skipped; errors while writing propagate.
        """
        proton_prefix = proton_prefix or self.proton_prefix
        if proton_prefix is None:
            return

        proton_prefix.mkdir(parents=True, exist_ok=True)

        version = self.prefix_version()
        if version is not None:
            (proton_prefix / "version").write_text(version)
        elif (self.path / "version").is_file():
            shutil.copyfile(self.path / "version", proton_prefix / "version")

        tracked = self.tracked_files()
        if tracked is not None:
            shutil.copyfile(tracked, proton_prefix / TRACKED_FILES)

        logger.debug("Synced prefix metadata into %s", proton_prefix)

    # Boot

    def run_boot(
        self,
        flag: str,
        path: Path | str | None = None,
        create: bool = False,
    ) -> subprocess.CompletedProcess[bytes]:
        """Run wineboot with the bundle environment, then sync prefix metadata."""
        proton_prefix, wine_prefix = self.resolve_prefixes(path)

        envs = self.get_envs()
        if proton_prefix is not None:
            envs["STEAM_COMPAT_DATA_PATH"] = str(proton_prefix)

        result = self.wine.run_boot(flag, wine_prefix, envs, create=create)
        self.sync_prefix_metadata(proton_prefix)
        return result

    def init_prefix(self, path: Path | str | None = None) -> subprocess.CompletedProcess[bytes]:
        return self.run_boot(BOOT_INIT, path, create=True)

    def update_prefix(self, path: Path | str | None = None) -> subprocess.CompletedProcess[bytes]:
        return self.run_boot(BOOT_UPDATE, path, create=True)

    def stop_processes(self, force: bool = False) -> subprocess.CompletedProcess[bytes]:
        return self.run_boot(BOOT_FORCE_KILL if force else BOOT_KILL)

    def restart(self) -> subprocess.CompletedProcess[bytes]:
        return self.run_boot(BOOT_RESTART)

    def shutdown(self) -> subprocess.CompletedProcess[bytes]:
        return self.run_boot(BOOT_SHUTDOWN)

    def end_session(self) -> subprocess.CompletedProcess[bytes]:
        return self.run_boot(BOOT_END_SESSION)

    # Running

    def _proton_command(
        self,
        verb: str,
        args: Sequence[Path | str],
        env: Mapping[str, str] | None = None,
    ) -> subprocess.Popen[bytes]:
        envs = self.get_envs()
        if env:
            envs.update(env)
        return process.spawn([self.python, self.path / "proton", verb, *args], envs)

    def run(self, binary: Path | str) -> subprocess.Popen[bytes]:
        """``proton run <binary>``"""
        return self.run_args([binary])

    def run_args(
        self,
        args: Sequence[Path | str],
        env: Mapping[str, str] | None = None,
    ) -> subprocess.Popen[bytes]:
        """``proton run <args>``"""
        return self._proton_command("run", args, env)

    def run_in_prefix(
        self,
        args: Sequence[Path | str],
        env: Mapping[str, str] | None = None,
    ) -> subprocess.Popen[bytes]:
        """``proton runinprefix <args>``, roughly ``files/bin/wine <args>``."""
        return self._proton_command("runinprefix", args, env)

    def wait_for_exit_and_run(
        self,
        binary: Path | str,
        env: Mapping[str, str] | None = None,
    ) -> subprocess.Popen[bytes]:
        """``proton waitforexitandrun <binary>``: wait for wineserver, then run through steam.exe."""
        return self._proton_command("waitforexitandrun", [binary], env)

    def version(self) -> str:
        return self.wine.version()

    def winepath(self, path: str) -> Path:
        return self.wine.winepath(path, self.get_envs())

    def add_override(
        self,
        dll_name: str,
        modes: Sequence[OverrideMode] = (OverrideMode.NATIVE,),
    ) -> None:
        self.wine.add_override(dll_name, modes, self.get_envs())

    def delete_override(self, dll_name: str) -> None:
        self.wine.delete_override(dll_name, self.get_envs())
