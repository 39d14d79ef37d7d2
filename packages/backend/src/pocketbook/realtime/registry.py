"""Connection registry — which live connections belong to which user.

Learn: Two maps kept in lockstep:
- forward:  user_id → {connection_id, ...}   (fan-out lookup)
- reverse:  connection_id → user_id          (O(1) unregister)

Invariants:
- a connection id lives under at most one user
- a user key exists only while it has at least one connection
  (empty sets are pruned immediately)
- many connections per user are fine (tabs, devices)

The API layer may call notify() from a threadpool worker, so every
read and write takes a short lock. Nothing is awaited while holding it.
"""

import threading
from typing import Optional


class ConnectionRegistry:
    """In-process user → connection-id map with a reverse index."""

    def __init__(self):
        self._lock = threading.Lock()
        self._by_user: dict[str, set[str]] = {}
        self._by_connection: dict[str, str] = {}

    def register(self, user_id: str, connection_id: str) -> Optional[str]:
        """Add connection_id under user_id.

        A connection authenticates as exactly one user, so registering it
        under a new user moves it. Returns the user it was moved away from,
        or None when nothing was moved.
        """
        if not user_id or not connection_id:
            return None

        with self._lock:
            previous = self._by_connection.get(connection_id)
            if previous == user_id:
                return None
            if previous is not None:
                self._discard(previous, connection_id)

            self._by_user.setdefault(user_id, set()).add(connection_id)
            self._by_connection[connection_id] = user_id
            return previous

    def unregister(self, connection_id: str) -> Optional[str]:
        """Remove connection_id wherever it is. Returns its former user.

        Unknown ids are a no-op, so calling this twice is safe.
        """
        with self._lock:
            user_id = self._by_connection.pop(connection_id, None)
            if user_id is not None:
                self._discard(user_id, connection_id)
            return user_id

    def connections_for(self, user_id: str) -> frozenset[str]:
        """Snapshot of the user's connection ids (empty if offline)."""
        with self._lock:
            return frozenset(self._by_user.get(user_id, ()))

    def user_for(self, connection_id: str) -> Optional[str]:
        with self._lock:
            return self._by_connection.get(connection_id)

    def users(self) -> list[str]:
        with self._lock:
            return list(self._by_user)

    def snapshot(self) -> dict[str, int]:
        """Counts for health/stats endpoints."""
        with self._lock:
            return {
                "users": len(self._by_user),
                "connections": len(self._by_connection),
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_connection)

    def __contains__(self, connection_id: object) -> bool:
        with self._lock:
            return connection_id in self._by_connection

    def _discard(self, user_id: str, connection_id: str) -> None:
        # Caller holds the lock.
        members = self._by_user.get(user_id)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._by_user[user_id]
