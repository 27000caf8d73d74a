"""In-process per-trip locks serializing read -> resolve -> apply."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID


class TripLockRegistry:
    """Registry of per-trip asyncio locks.

    Only serializes work inside one process; across processes the unique
    fingerprint constraint and the target re-check at apply time still hold.
    An entry lives only while some task holds or waits for its lock.
    """

    def __init__(self) -> None:
        self._by_trip: dict[UUID, asyncio.Lock] = {}
        self._users: dict[UUID, int] = {}

    @asynccontextmanager
    async def hold(self, trip_id: UUID) -> AsyncIterator[None]:
        """Hold the trip's lock for the duration of the block."""
        lock = self._by_trip.get(trip_id)
        if lock is None:
            lock = self._by_trip[trip_id] = asyncio.Lock()
        self._users[trip_id] = self._users.get(trip_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._users[trip_id] - 1
            if remaining:
                self._users[trip_id] = remaining
            else:
                del self._users[trip_id]
                del self._by_trip[trip_id]

    def __len__(self) -> int:
        return len(self._by_trip)

    def clear(self) -> None:
        """Clear all locks (useful for testing)."""
        self._by_trip.clear()
        self._users.clear()


trip_locks = TripLockRegistry()
