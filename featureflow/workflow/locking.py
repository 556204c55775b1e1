"""
Session lock for featureflow.

Uses flock so only one process drives a project's workflow session at a
time. Acquisition never waits: a second caller fails immediately with
SessionAlreadyActive instead of interleaving with the first.
"""

import atexit
import fcntl
import os
from contextlib import contextmanager
from pathlib import Path

from featureflow.lib.errors import SessionAlreadyActive


def is_session_locked(lock_file: Path) -> bool:
    """Check whether some process currently holds the session lock."""
    if not lock_file.exists():
        return False

    try:
        fd = open(lock_file, 'r')
    except OSError:
        return False
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        # Got lock - nobody else has it, release immediately
        fcntl.flock(fd, fcntl.LOCK_UN)
        return False
    except BlockingIOError:
        return True
    finally:
        fd.close()


@contextmanager
def session_lock(lock_file: Path, project_dir: Path | None = None):
    """
    Acquire the project's session lock, yield, release on exit.

    The lock file is never deleted; deleting it would let two processes hold
    "exclusive" locks on different inodes with the same path.

    Raises:
        SessionAlreadyActive: if another process holds the lock
    """
    lock_file.parent.mkdir(parents=True, exist_ok=True)

    # Append mode so a failed attempt doesn't wipe the holder's pid
    fd = open(lock_file, 'a+')
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        fd.seek(0)
        holder = fd.read().strip()
        fd.close()
        raise SessionAlreadyActive(project_dir or lock_file.parent, holder) from None

    def cleanup():
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
            fd.close()
        except (OSError, ValueError):
            pass

    atexit.register(cleanup)
    try:
        fd.seek(0)
        fd.truncate()
        fd.write(f"{os.getpid()}\n")
        fd.flush()
        yield
    finally:
        atexit.unregister(cleanup)
        cleanup()
