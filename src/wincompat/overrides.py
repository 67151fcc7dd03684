"""
Transactional dll replacement.

Installing an override swaps a dll in system32 for a replacement and
registers a native override for it. The original file is kept next to
it with an ``.old`` suffix:

    system32/d3d11.dll        replacement (while installed)
    system32/d3d11.dll.old    original

A backup file therefore always means "the original is archived and the
live file is a replacement". Restoring moves the backup back.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from wincompat.errors import MissingDllError, NothingToRestoreError
from wincompat.types import OverrideMode

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".old"
STAGED_SUFFIX = ".staged"


class OverrideRegistry(Protocol):
    """Anything that can edit the prefix DllOverrides key (Wine, Proton)."""

    def add_override(self, dll_name: str, modes: Iterable[OverrideMode] = ...) -> None: ...

    def delete_override(self, dll_name: str) -> None: ...


@dataclass(frozen=True)
class DllOverride:
    """One dll in a prefix's system32 and, when installing, its replacement."""
    name: str                       # Base name without extension, e.g. "d3d11"
    system32: Path                  # Live system32 folder
    source_dir: Path | None = None  # Folder with the replacement dll

    @property
    def filename(self) -> str:
        return f"{self.name}.dll"

    @property
    def source(self) -> Path:
        if self.source_dir is None:
            raise ValueError(f"No source folder set for {self.name}")
        return self.source_dir / self.filename

    @property
    def destination(self) -> Path:
        return self.system32 / self.filename

    @property
    def backup(self) -> Path:
        return self.destination.with_name(self.filename + BACKUP_SUFFIX)

    @property
    def staged(self) -> Path:
        return self.destination.with_name(self.filename + STAGED_SUFFIX)

    @property
    def is_installed(self) -> bool:
        """True if the original is archived, meaning a replacement is live."""
        return self.backup.exists()

    def install(
        self,
        registry: OverrideRegistry,
        modes: Iterable[OverrideMode] = (OverrideMode.NATIVE,),
    ) -> None:
        """
        Replace the dll and register the override.

        Installing over an existing installation is fine: the backup keeps
        the original and only the live replacement is swapped. If the
        registry update fails, the destination is put back exactly as it
        was before the call and the error is re-raised.

        Raises:
            MissingDllError: source dll, or destination dll of a fresh install, is missing
        """
        source = self.source
        if not source.is_file():
            raise MissingDllError(source, "source")

        reinstall = self.backup.exists()
        if not reinstall and not self.destination.exists():
            raise MissingDllError(self.destination, "destination")

        if reinstall:
            # Live file is a previous replacement, park it until commit
            if self.destination.exists():
                self.destination.rename(self.staged)
            logger.debug("Reinstalling %s, backup already present", self.filename)
        else:
            self.destination.rename(self.backup)
            logger.debug("Archived original %s to %s", self.filename, self.backup)

        shutil.copyfile(source, self.destination)
        logger.debug("Copied %s to %s", source, self.destination)

        try:
            registry.add_override(self.name, modes)
        except BaseException:
            logger.warning("Failed to register override for %s, rolling back", self.name)
            self._rollback(reinstall)
            raise

        if reinstall and self.staged.exists():
            self.staged.unlink()

        logger.info("Installed %s", self.filename)

    def _rollback(self, reinstall: bool) -> None:
        self.destination.unlink(missing_ok=True)

        if reinstall:
            if self.staged.exists():
                self.staged.rename(self.destination)
        else:
            self.backup.rename(self.destination)

    def restore(self, registry: OverrideRegistry) -> None:
        """
        Remove the override and put the original dll back.

        Raises:
            NothingToRestoreError: no backup of the original exists
        """
        if not self.backup.exists():
            raise NothingToRestoreError(self.backup)

        registry.delete_override(self.name)

        self.destination.unlink(missing_ok=True)
        self.backup.rename(self.destination)

        logger.info("Restored original %s", self.filename)
