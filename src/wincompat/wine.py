"""
Wine environment model.

A ``Wine`` value describes how to invoke one wine build against one
prefix. It is immutable: the ``with_*`` methods return modified copies.

Usage:
    wine = (
        Wine.from_binary("/opt/wine-ge/bin/wine64")
        .with_prefix("~/Games/prefix")
        .with_arch(WineArch.WIN64)
        .with_loader(WineLoader.current())
    )
    wine.update_prefix()
    process = wine.run("notepad")
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from wincompat import process
from wincompat.environment import compose_env, loader_path
from wincompat.errors import BootHelperNotFoundError, InvalidPrefixError, PrefixNotConfiguredError
from wincompat.paths import is_system_binary, resolve_sibling, resolve_wineboot
from wincompat.types import (
    OverrideMode,
    SharedLibs,
    UnixBoot,
    WindowsBoot,
    WineArch,
    WineBoot,
    WineLoader,
)

logger = logging.getLogger(__name__)

DLL_OVERRIDES_KEY = "HKEY_CURRENT_USER\\Software\\Wine\\DllOverrides"

# wineboot flags
BOOT_INIT = "-i"
BOOT_UPDATE = "-u"
BOOT_KILL = "-k"
BOOT_FORCE_KILL = "-f"
BOOT_RESTART = "-r"
BOOT_SHUTDOWN = "-s"
BOOT_END_SESSION = "-e"


class Wine(BaseModel):
    """A wine binary plus the prefix and settings it runs with."""
    model_config = ConfigDict(frozen=True)

    binary: Path = Field(default=Path("wine"), description="Main wine binary")
    prefix: Optional[Path] = Field(default=None, description="WINEPREFIX")
    arch: Optional[WineArch] = Field(default=None, description="WINEARCH, None for wine's default")
    boot: Optional[WineBoot] = Field(default=None, description="Explicit wineboot")
    server: Optional[Path] = Field(default=None, description="Explicit wineserver")
    loader: WineLoader = Field(default_factory=WineLoader.default)
    wine_libs: SharedLibs = Field(default_factory=SharedLibs.none)
    gstreamer_libs: SharedLibs = Field(default_factory=SharedLibs.none)

    @classmethod
    def from_binary(cls, binary: Path | str = "wine") -> Wine:
        return cls(binary=Path(binary))

    # Builders

    def with_prefix(self, prefix: Path | str) -> Wine:
        return self.model_copy(update={"prefix": Path(prefix)})

    def with_arch(self, arch: WineArch) -> Wine:
        return self.model_copy(update={"arch": arch})

    def with_boot(self, boot: UnixBoot | WindowsBoot) -> Wine:
        return self.model_copy(update={"boot": boot})

    def with_server(self, server: Path | str) -> Wine:
        return self.model_copy(update={"server": Path(server)})

    def with_loader(self, loader: WineLoader) -> Wine:
        return self.model_copy(update={"loader": loader})

    def with_wine_libs(self, wine_libs: SharedLibs) -> Wine:
        return self.model_copy(update={"wine_libs": wine_libs})

    def with_gstreamer_libs(self, gstreamer_libs: SharedLibs) -> Wine:
        return self.model_copy(update={"gstreamer_libs": gstreamer_libs})

    # Paths

    def resolve_prefix(self, path: Path | str | None = None) -> Path:
        """
        Prefix an operation should act on.

        A path passed to the call wins over the configured one. Raises
        PrefixNotConfiguredError if neither is available.
        """
        if path is not None:
            return Path(path)
        if self.prefix is not None:
            return self.prefix
        raise PrefixNotConfiguredError("No prefix path given")

    def wineboot(self, prefix: Path | None = None) -> UnixBoot | WindowsBoot | None:
        """Resolved boot helper, or None if it can't be found."""
        return resolve_wineboot(self.binary, self.boot, self.arch, prefix or self.prefix)

    def wineserver(self) -> Path | None:
        """Resolved wineserver, or None if it isn't known."""
        return resolve_sibling(self.binary, "wineserver", self.server)

    def wineloader(self) -> Path:
        """Binary wine uses to start new processes."""
        return loader_path(self.binary, self.loader) or Path("wine")

    def get_envs(self) -> dict[str, str]:
        """Environment variables every process spawned through this wine gets."""
        return compose_env(
            self.binary,
            prefix=self.prefix,
            arch=self.arch,
            wineserver=self.wineserver(),
            loader=self.loader,
            wine_libs=self.wine_libs,
            gstreamer_libs=self.gstreamer_libs,
        )

    # Boot

    def wineboot_command(self, prefix: Path | None = None) -> list[str]:
        """
        Command line prefix that invokes wineboot.

        A unix wineboot is run directly, wineboot.exe is run through the
        wine binary. With no wineboot found, ``wine wineboot`` is only used
        for a system wine; for a custom build that would silently pick up
        the system wine, so it fails instead.
        """
        boot = self.wineboot(prefix)

        if isinstance(boot, UnixBoot):
            return [str(boot.path)]

        if isinstance(boot, WindowsBoot):
            return [str(self.binary), str(boot.path)]

        if is_system_binary(self.binary):
            return [str(self.binary), "wineboot"]

        raise BootHelperNotFoundError(f"wineboot not found for wine binary {self.binary}")

    def run_boot(
        self,
        flag: str,
        path: Path | str | None = None,
        envs: Mapping[str, str] | None = None,
        create: bool = False,
    ) -> subprocess.CompletedProcess[bytes]:
        """
        Run wineboot with a single flag and wait for it.

        Args:
            flag: wineboot mode flag, e.g. "-u"
            path: Prefix overriding the configured one
            envs: Environment to use instead of ``get_envs()``
            create: Create the prefix folder first
        """
        prefix = self.resolve_prefix(path)

        if create and not prefix.exists():
            prefix.mkdir(parents=True, exist_ok=True)

        env = dict(envs) if envs is not None else self.get_envs()
        env["WINEPREFIX"] = str(prefix)

        command = self.wineboot_command(prefix) + [flag]
        logger.info("Running wineboot %s in %s", flag, prefix)

        result = process.run(command, env)
        return process.check(result, f"wineboot {flag} failed")

    def init_prefix(self, path: Path | str | None = None) -> subprocess.CompletedProcess[bytes]:
        """Initialize a prefix (``wineboot -i``)."""
        return self.run_boot(BOOT_INIT, path, create=True)

    def update_prefix(self, path: Path | str | None = None) -> subprocess.CompletedProcess[bytes]:
        """Create or update a prefix (``wineboot -u``)."""
        return self.run_boot(BOOT_UPDATE, path, create=True)

    def stop_processes(self, force: bool = False) -> subprocess.CompletedProcess[bytes]:
        """Stop running processes (``wineboot -k``, or ``-f`` if forced)."""
        return self.run_boot(BOOT_FORCE_KILL if force else BOOT_KILL)

    def restart(self) -> subprocess.CompletedProcess[bytes]:
        """Imitate a windows restart (``wineboot -r``)."""
        return self.run_boot(BOOT_RESTART)

    def shutdown(self) -> subprocess.CompletedProcess[bytes]:
        """Imitate a windows shutdown (``wineboot -s``)."""
        return self.run_boot(BOOT_SHUTDOWN)

    def end_session(self) -> subprocess.CompletedProcess[bytes]:
        """End the wineboot session (``wineboot -e``)."""
        return self.run_boot(BOOT_END_SESSION)

    # Running

    def version(self) -> str:
        """Output of ``wine --version``."""
        result = process.run([self.binary, "--version"])
        process.check(result, "wine --version failed")
        return result.stdout.decode("utf-8", errors="replace")

    def run(self, binary: Path | str) -> subprocess.Popen[bytes]:
        """Start a program through wine."""
        return self.run_args([binary])

    def run_args(
        self,
        args: Sequence[Path | str],
        env: Mapping[str, str] | None = None,
    ) -> subprocess.Popen[bytes]:
        """
        Start wine with the given arguments.

        Extra ``env`` values are applied after the composed environment.
        The process is returned with piped streams and is not waited for.
        """
        envs = self.get_envs()
        if env:
            envs.update(env)
        return process.spawn([self.binary, *args], envs)

    def run_args_wait(
        self,
        args: Sequence[Path | str],
        envs: Mapping[str, str] | None = None,
    ) -> subprocess.CompletedProcess[bytes]:
        """Run wine with the given arguments and wait for it."""
        return process.run([self.binary, *args], envs if envs is not None else self.get_envs())

    def winepath(self, path: str, envs: Mapping[str, str] | None = None) -> Path:
        """
        Unix path of a windows path in the prefix.

        Example:
            system32 = wine.winepath("C:\\\\windows\\\\system32")
        """
        result = process.check(
            self.run_args_wait(["winepath", "-u", path], envs),
            "Failed to find wine path",
        )

        unix_path = Path(result.stdout.decode("utf-8", errors="surrogateescape").rstrip("\n"))
        if not unix_path.exists():
            raise InvalidPrefixError(f"Wine path is not correct: {unix_path}", self.prefix)

        return unix_path

    # Dll overrides

    def add_override(
        self,
        dll_name: str,
        modes: Iterable[OverrideMode] = (OverrideMode.NATIVE,),
        envs: Mapping[str, str] | None = None,
    ) -> None:
        """Add a dll override to the prefix registry."""
        value = ",".join(mode.value for mode in modes)
        logger.debug("Adding dll override %s=%s", dll_name, value)

        result = self.run_args_wait(
            ["reg", "add", DLL_OVERRIDES_KEY, "/v", dll_name, "/d", value, "/f"],
            envs,
        )
        process.check(result, "Failed to add dll override")

    def delete_override(self, dll_name: str, envs: Mapping[str, str] | None = None) -> None:
        """Remove a dll override from the prefix registry."""
        logger.debug("Removing dll override %s", dll_name)

        result = self.run_args_wait(
            ["reg", "delete", DLL_OVERRIDES_KEY, "/v", dll_name, "/f"],
            envs,
        )
        process.check(result, "Failed to remove dll override")
