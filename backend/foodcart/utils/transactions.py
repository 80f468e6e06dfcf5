import hashlib
import os
import tempfile
from contextlib import contextmanager
from typing import Iterator

from filelock import FileLock, Timeout
from sqlalchemy.orm import Session


class TransactionLockError(Exception):
    pass


def _lock_path(name: str) -> str:
    locks_dir = os.path.join(tempfile.gettempdir(), "foodcart_locks")
    os.makedirs(locks_dir, exist_ok=True)
    # names may carry client input; only a digest reaches the filesystem
    digest = hashlib.sha256(name.encode("utf-8")).hexdigest()
    return os.path.join(locks_dir, f"{digest}.lock")


@contextmanager
def locked_transaction(session: Session, lock_name: str, timeout: float = 10) -> Iterator:
    """
    Serialize writers on `lock_name` across processes, then commit the
    session on success or roll it back on error.
    Usage:
        with locked_transaction(db, f"cart_{cart_uuid}"):
            ... DB work ...
    """
    lock = FileLock(_lock_path(lock_name))
    try:
        lock.acquire(timeout=timeout)
    except Timeout:
        raise TransactionLockError(f"Could not acquire lock {lock_name}; try again")
    try:
        yield
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        lock.release()
