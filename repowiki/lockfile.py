"""File-based mutual exclusion for update cycles in one repository."""

from __future__ import annotations

import fcntl
import os
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Callable, Iterator, Optional

from .config import tool_dir
from .errors import LockBusyError
from .logging import get_logger

LOCK_FILE_NAME = ".repowiki.lock"
STALE_AFTER = timedelta(minutes=30)

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def lock_path(root: Path) -> Path:
    return tool_dir(root) / LOCK_FILE_NAME


@dataclass(frozen=True)
class LockRecord:
    """Parsed contents of the lock file."""

    pid: int
    created_at: datetime


def pid_alive(pid: int) -> bool:
    """Probe ``pid`` with signal 0."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # The process exists but belongs to another user.
        return True
    except OSError:
        return False
    return True


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ProcessLock:
    """At most one update cycle per repository, coordinated through a lock file.

    The file's existence is the lock state. Its content (pid and UTC creation
    time) only feeds the staleness judgement made by later acquirers:
    a lock is stale when it cannot be parsed, when its owner is gone, or when
    it is older than ``stale_after`` even if the owner still answers.
    """

    def __init__(
        self,
        root: Path,
        *,
        stale_after: timedelta = STALE_AFTER,
        pid_alive: Callable[[int], bool] = pid_alive,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.path = lock_path(root)
        self.reclaim_path = self.path.with_name(f"{LOCK_FILE_NAME}.reclaim")
        self.stale_after = stale_after
        self._pid_alive = pid_alive
        self._now = now
        self._written: Optional[str] = None
        self.logger = get_logger("lockfile")

    def acquire(self) -> None:
        """Create the lock file or raise :class:`LockBusyError`.

        Reclaiming a stale lock happens under an ``flock`` on a sibling file,
        and only if the lock still holds the exact content judged stale.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self._try_create():
            return
        observed = self._read_text()
        if observed is not None and not self._is_stale_text(observed):
            raise LockBusyError(self.path)
        with self._reclaim_guard():
            current = self._read_text()
            if current is not None and current != observed:
                # Reclaimed by another process after we looked.
                raise LockBusyError(self.path)
            self.logger.info("Removing stale lock %s", self.path)
            self.path.unlink(missing_ok=True)
            if not self._try_create():
                raise LockBusyError(self.path)

    def release(self) -> None:
        """Remove the lock file if it is still the one this instance wrote."""
        if self._written is None:
            return
        if self._read_text() == self._written:
            self.path.unlink(missing_ok=True)
        self._written = None

    def is_locked(self) -> bool:
        return self.path.exists()

    def read_record(self) -> Optional[LockRecord]:
        text = self._read_text()
        return parse_record(text) if text is not None else None

    def is_stale(self) -> bool:
        text = self._read_text()
        return text is None or self._is_stale_text(text)

    def __enter__(self) -> "ProcessLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def _is_stale_text(self, text: str) -> bool:
        record = parse_record(text)
        if record is None:
            return True
        if not self._pid_alive(record.pid):
            return True
        return self._now() - record.created_at > self.stale_after

    def _read_text(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError:
            return None

    @contextmanager
    def _reclaim_guard(self) -> Iterator[None]:
        fd = os.open(self.reclaim_path, os.O_CREAT | os.O_RDWR, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)

    def _try_create(self) -> bool:
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        created = self._now().astimezone(UTC).strftime(_TIMESTAMP_FORMAT)
        text = f"{os.getpid()}\n{created}\n"
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        self._written = text
        self.logger.debug("Lock acquired: %s", self.path)
        return True


def parse_record(text: str) -> Optional[LockRecord]:
    lines = text.splitlines()
    if len(lines) < 2:
        return None
    try:
        pid = int(lines[0].strip())
        created_at = datetime.strptime(lines[1].strip(), _TIMESTAMP_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        return None
    return LockRecord(pid=pid, created_at=created_at)


__all__ = [
    "LOCK_FILE_NAME",
    "LockRecord",
    "ProcessLock",
    "STALE_AFTER",
    "lock_path",
    "parse_record",
    "pid_alive",
]
