"""Bookkeeping for cancelling superseded duplicate requests.

Each API client owns one CancellationRegistry. It maps a cancellation key
(`"METHOD /path"`) to the handle of the request currently running under that key.
All mutations happen on the event loop thread, so no lock is needed.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


class CancellationHandle:
    """Handle of one in-flight request task."""

    def __init__(self, key: str, task: asyncio.Future):
        self.key = key
        self.task = task
        self.superseded = False

    @property
    def done(self) -> bool:
        return self.task.done()

    def cancel(self) -> bool:
        """Cancel the request if it is still running.

        Does not wait for the cancellation to be observed.

        Returns:
            True if a running request was cancelled
        """
        if self.task.done():
            return False
        self.superseded = True
        return self.task.cancel()

    def __repr__(self) -> str:
        state = "superseded" if self.superseded else "done" if self.done else "running"
        return f"<CancellationHandle {self.key!r} {state}>"


class CancellationRegistry:
    """At most one live handle per cancellation key."""

    def __init__(self):
        self._handles: dict[str, CancellationHandle] = {}

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, key: str) -> bool:
        return key in self._handles

    def get(self, key: str) -> CancellationHandle | None:
        return self._handles.get(key)

    def cancel(self, key: str) -> bool:
        """Cancel the running request registered under `key`, if any."""
        handle = self._handles.get(key)
        if handle is None or not handle.cancel():
            return False
        logger.debug(f"Cancelling request {key}")
        return True

    def register(self, key: str, task: asyncio.Future) -> CancellationHandle:
        """Register `task` as the live request for `key`, replacing any previous handle."""
        handle = CancellationHandle(key, task)
        self._handles[key] = handle
        return handle

    def remove(self, handle: CancellationHandle) -> None:
        """Forget `handle` unless a newer request already replaced it."""
        if self._handles.get(handle.key) is handle:
            del self._handles[handle.key]
