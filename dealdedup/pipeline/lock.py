"""Advisory lock preventing overlapping cleanup runs."""

import threading
from typing import Optional

from ..errors import RunInProgressError


class RunLock:
    """Non-blocking "is a run active" flag.

    Owned by whoever triggers runs and handed to the orchestrator, so separate
    services (or tests) can share or isolate it explicitly.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.holder: Optional[str] = None

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    def acquire(self, run_id: str) -> None:
        """Take the lock or raise RunInProgressError at once."""
        if not self._lock.acquire(blocking=False):
            raise RunInProgressError(f"Cleanup run {self.holder} is already in progress")
        self.holder = run_id

    def release(self) -> None:
        self.holder = None
        self._lock.release()
