"""In-memory registry of which sockets belong to which user.

Process-local by nature: a second server process has its own registry and
its own sockets. Each user id maps to an ordered set of connection handles
(one per open tab/device); the newest handle is what ``lookup`` returns.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Hashable


class SessionRegistry:
    """Thread-safe map of user id -> live connection handles.

    The lock guards dictionary access only; callers never perform I/O while
    holding it, so it is safe to use from the event loop and from request
    threads alike.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # dict preserves insertion order; values are ordered sets of handles.
        self._sessions: dict[int, dict[Hashable, None]] = {}

    def register(self, user_id: int, handle: Hashable) -> None:
        with self._lock:
            handles = self._sessions.setdefault(int(user_id), {})
            handles.pop(handle, None)
            handles[handle] = None

    def unregister(self, user_id: int, handle: Hashable | None = None) -> None:
        """Forget ``handle`` (or every handle) of ``user_id``; idempotent."""

        with self._lock:
            if handle is None:
                self._sessions.pop(int(user_id), None)
                return
            handles = self._sessions.get(int(user_id))
            if handles is None:
                return
            handles.pop(handle, None)
            if not handles:
                del self._sessions[int(user_id)]

    def lookup(self, user_id: int) -> Hashable | None:
        with self._lock:
            handles = self._sessions.get(int(user_id))
            if not handles:
                return None
            return next(reversed(handles))

    def handles(self, user_id: int) -> tuple[Hashable, ...]:
        with self._lock:
            return tuple(self._sessions.get(int(user_id), ()))

    def all(self) -> list[tuple[int, Hashable]]:
        with self._lock:
            return [
                (user_id, handle)
                for user_id, handles in self._sessions.items()
                for handle in handles
            ]

    def is_connected(self, user_id: int) -> bool:
        with self._lock:
            return bool(self._sessions.get(int(user_id)))

    def connected_user_ids(self) -> list[int]:
        with self._lock:
            return list(self._sessions)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


registry = SessionRegistry()
