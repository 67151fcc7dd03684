"""
Prefix-scoped exclusive lock.

Dll swaps and registry edits on the same prefix must not interleave, so
the dxvk installer holds this lock for the whole transaction. Boot
helper runs don't take it.
"""

from __future__ import annotations

import fcntl
import logging
import os
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

LOCK_FILE = ".wincompat.lock"


@contextmanager
def prefix_lock(prefix: Path | str) -> Generator[Path, None, None]:
    """Hold an exclusive flock on ``<prefix>/.wincompat.lock`` while in the block."""
    lock_path = Path(prefix) / LOCK_FILE
    fd = os.open(lock_path, os.O_CREAT | os.O_WRONLY, 0o644)

    try:
        logger.debug("Acquiring %s", lock_path)
        fcntl.flock(fd, fcntl.LOCK_EX)
        logger.debug("Acquired %s", lock_path)
        yield lock_path
    finally:
        fcntl.flock(fd, fcntl.LOCK_UN)
        os.close(fd)
        logger.debug("Released %s", lock_path)
