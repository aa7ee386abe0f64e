"""Thread-safe status tracking for launched processes.

One StatusTracker is owned by each orchestration run and shared by
reference with the output reader threads (writers of status text) and the
live view (reader of snapshots). All access goes through a single lock.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

from migrunner.core.models import StatusRow, TrackedStatus

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_STATUS = "Running..."

Subscriber = Callable[[list[StatusRow]], None]


class StatusTracker:
    """
    Ordered, lock-protected collection of TrackedStatus entries.

    Design:
    - Entries are registered once, before any output is consumed, and never
      removed; registration order is display order.
    - update() after mark_exited() is ignored so an exited entry keeps the
      status it had when its process was reported gone.
    - Subscribers are called with a fresh snapshot after every accepted
      change while the lock is held, so deliveries arrive in change order
      and the last one always carries the latest state.
    """

    def __init__(self, initial_status: str = DEFAULT_INITIAL_STATUS):
        self.initial_status = initial_status
        self._entries: dict[str, TrackedStatus] = {}
        self._lock = threading.RLock()
        self._subscribers: list[Subscriber] = []

    def register(self, name: str, handle: Any = None) -> TrackedStatus:
        """Add an entry at the initial status. Names must be unique."""
        with self._lock:
            if name in self._entries:
                raise ValueError(f"Status entry '{name}' is already registered")
            entry = TrackedStatus(name=name, status_text=self.initial_status, handle=handle)
            self._entries[name] = entry
            return entry

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def update(self, name: str, new_text: str) -> bool:
        """Replace the status text of an entry.

        Returns:
            True if the entry changed, False if it is unknown or already exited.
        """
        with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                logger.debug(f"Ignoring status for unknown entry '{name}'")
                return False
            if entry.exited:
                return False
            entry.status_text = new_text

        self.notify()
        return True

    def mark_exited(self, name: str, returncode: int | None = None) -> bool:
        """Record process exit. Only the first call has an effect."""
        with self._lock:
            entry = self._entries.get(name)
            if entry is None or entry.exited:
                return False
            entry.exited = True
            entry.returncode = returncode
        return True

    def is_exited(self, name: str) -> bool:
        with self._lock:
            entry = self._entries.get(name)
            return entry is not None and entry.exited

    def get(self, name: str) -> TrackedStatus | None:
        with self._lock:
            return self._entries.get(name)

    def snapshot(self) -> list[StatusRow]:
        """Consistent copy of all (name, status) pairs in registration order."""
        with self._lock:
            return [StatusRow(e.name, e.status_text) for e in self._entries.values()]

    def returncodes(self) -> dict[str, int | None]:
        with self._lock:
            return {e.name: e.returncode for e in self._entries.values()}

    def notify(self) -> None:
        """Push the current snapshot to every subscriber."""
        with self._lock:
            if not self._subscribers:
                return
            rows = self.snapshot()
            for callback in list(self._subscribers):
                callback(rows)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries
