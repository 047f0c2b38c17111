# data/file_lock.py
"""
Advisory locking around snapshot files (POSIX flock).

The writer holds LOCK_EX for the whole write; readers take LOCK_SH without
blocking and get FileLockedError while a write is in progress.
"""
import fcntl
import os
from contextlib import contextmanager
from pathlib import Path

from shift_sync.exceptions import FileLockedError


@contextmanager
def exclusive_lock(path: Path):
    """Blocking exclusive lock on `<path>.lock`, held for the duration of the block."""
    lock_path = Path(str(path) + ".lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(str(lock_path), os.O_RDWR | os.O_CREAT, 0o644)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)


@contextmanager
def shared_lock(path: Path):
    """Non-blocking shared lock; raises FileLockedError when a writer holds it."""
    lock_path = Path(str(path) + ".lock")
    if not lock_path.exists():
        # nobody has written through the lock file yet
        yield
        return
    fd = os.open(str(lock_path), os.O_RDONLY)
    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_SH | fcntl.LOCK_NB)
        except BlockingIOError as exc:
            raise FileLockedError(path) from exc
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)


def read_text_locked(path: Path) -> str:
    with shared_lock(path):
        return Path(path).read_text(encoding="utf-8")
