"""
Exceptions raised by wincompat.

I/O failures are left as plain ``OSError``; everything here describes a
condition the caller is expected to tell apart from a broken filesystem.
"""

from __future__ import annotations

from pathlib import Path


class WincompatError(Exception):
    """Base class for all wincompat errors."""
    pass


class InvalidPrefixError(WincompatError):
    """Prefix is missing its system.reg marker or a path inside it is wrong."""

    def __init__(self, message: str, prefix: Path | None = None):
        super().__init__(message)
        self.prefix = prefix


class PrefixNotConfiguredError(WincompatError):
    """An operation needs a prefix but none was configured or given."""
    pass


class BootHelperNotFoundError(WincompatError):
    """No wineboot could be found for a non-system wine binary."""
    pass


class ProcessError(WincompatError):
    """
    A helper process exited with a nonzero status.

    ``message`` is the last non-empty line of the process output, which is
    where wine tools print their diagnostics. The full output is kept on
    ``stdout`` and ``stderr``.
    """

    def __init__(
        self,
        what: str,
        message: str,
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(f"{what}: {message}" if message else what)
        self.what = what
        self.message = message
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class MissingDllError(WincompatError):
    """Source or destination dll of an override is missing."""

    def __init__(self, path: Path, role: str):
        super().__init__(f"{role.capitalize()} dll not found: {path}")
        self.path = path
        self.role = role


class NothingToRestoreError(WincompatError):
    """No backup of the original dll exists, so it cannot be restored."""

    def __init__(self, path: Path):
        super().__init__(f"Nothing to restore, backup not found: {path}")
        self.path = path
