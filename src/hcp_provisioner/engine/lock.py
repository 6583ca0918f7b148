"""Advisory lock guarding writes to a local state file."""

from __future__ import annotations

import contextlib
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from hcp_provisioner.engine.errors import StateLockError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from typing import IO

logger = logging.getLogger(__name__)


def lock_path_for(state_path: Path) -> Path:
    return Path(f"{state_path}.lock")


def _lock(fh: IO[str]) -> None:
    if sys.platform == "win32":  # pragma: no cover
        import msvcrt

        msvcrt.locking(fh.fileno(), msvcrt.LK_LOCK, 1)
    else:
        import fcntl

        fcntl.flock(fh.fileno(), fcntl.LOCK_EX)


def _unlock(fh: IO[str]) -> None:
    if sys.platform == "win32":  # pragma: no cover
        import msvcrt

        msvcrt.locking(fh.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        import fcntl

        fcntl.flock(fh.fileno(), fcntl.LOCK_UN)


@contextlib.contextmanager
def state_lock(state_path: Path) -> Iterator[None]:
    """Hold an exclusive lock on ``<state_path>.lock`` for the duration of the block.

    Blocks until any other holder releases it. The lock file is left on disk.
    """
    path = lock_path_for(state_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a+", encoding="utf-8") as fh:
        try:
            _lock(fh)
        except OSError as e:
            raise StateLockError(f"cannot lock {path}: {e}") from e
        logger.debug("Acquired state lock %s", path)
        try:
            yield
        finally:
            _unlock(fh)
            logger.debug("Released state lock %s", path)
