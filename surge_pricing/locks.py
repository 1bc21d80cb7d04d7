from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class FlightLocks:
    """One lock per flight, created on first use and kept for its lifetime."""

    def __init__(self) -> None:
        self._locks: Dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def get(self, flight_id: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(flight_id)
            if lock is None:
                lock = self._locks[flight_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, flight_id: int) -> Iterator[None]:
        with self.get(flight_id):
            yield

    def __len__(self) -> int:
        return len(self._locks)


__all__ = ["FlightLocks"]
