"""
Thin layer over subprocess used by every spawning operation.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from wincompat.errors import ProcessError

logger = logging.getLogger(__name__)

Argv = Sequence[str | Path]


def build_env(envs: Mapping[str, str] | None = None) -> dict[str, str]:
    """Inherit the current environment and apply composed variables on top."""
    env = os.environ.copy()
    if envs:
        env.update(envs)
    return env


def run(
    argv: Argv,
    envs: Mapping[str, str] | None = None,
    stdin: int | None = subprocess.DEVNULL,
) -> subprocess.CompletedProcess[bytes]:
    """Run a process to completion, capturing stdout and stderr."""
    args = [str(arg) for arg in argv]
    logger.debug("Running %s", args)
    if envs:
        logger.debug("With environment %s", dict(envs))

    return subprocess.run(
        args,
        env=build_env(envs),
        stdin=stdin,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )


def spawn(argv: Argv, envs: Mapping[str, str] | None = None) -> subprocess.Popen[bytes]:
    """Start a process with all standard streams piped and return without waiting."""
    args = [str(arg) for arg in argv]
    logger.debug("Spawning %s", args)
    if envs:
        logger.debug("With environment %s", dict(envs))

    return subprocess.Popen(
        args,
        env=build_env(envs),
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )


def last_line(output: bytes | str) -> str:
    """Last non-empty line of some process output."""
    if isinstance(output, bytes):
        output = output.decode("utf-8", errors="replace")

    for line in reversed(output.splitlines()):
        if line.strip():
            return line.strip()
    return ""


def check(result: subprocess.CompletedProcess[bytes], what: str) -> subprocess.CompletedProcess[bytes]:
    """
    Raise ProcessError if the process failed.

    Wine tools print their diagnostics on stdout, so the last stdout line
    is used as the message, falling back to stderr when stdout is empty.
    """
    if result.returncode == 0:
        return result

    stdout = (result.stdout or b"").decode("utf-8", errors="replace")
    stderr = (result.stderr or b"").decode("utf-8", errors="replace")
    message = last_line(stdout) or last_line(stderr)

    raise ProcessError(what, message, result.returncode, stdout=stdout, stderr=stderr)
