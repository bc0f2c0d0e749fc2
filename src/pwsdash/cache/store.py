"""Process-wide observation cache guarded by a reader/writer lock."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Final

from pwsdash.weather.errors import EmptyObservationsError
from pwsdash.weather.models import ObservationSet

logger: Final = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one exclusive writer.

    Writers are preferred: once a writer is waiting, new readers queue
    behind it so a steady stream of page loads cannot starve a replace.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold the lock in shared mode."""
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold the lock in exclusive mode."""
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass(frozen=True)
class CacheSnapshot:
    """Consistent view of the cache at one instant.

    ``last_fetched`` and ``data_age`` always belong to ``observations``.
    ``last_attempt`` tracks any upstream attempt, accepted or not.
    """

    observations: ObservationSet | None
    last_fetched: datetime | None
    data_age: datetime | None
    last_attempt: datetime | None = None

    @property
    def exists(self) -> bool:
        """Whether an accepted observation set is cached."""
        return self.observations is not None

    @property
    def last_fetch_activity(self) -> datetime | None:
        """Most recent upstream attempt, falling back to the last accepted fetch."""
        return self.last_attempt or self.last_fetched


EMPTY_SNAPSHOT: Final = CacheSnapshot(None, None, None)


class ObservationCache:
    """Holds the last accepted observation set for the process lifetime.

    One instance is created at startup and handed to request handlers.
    Reads take the shared lock; replacements take the exclusive lock and
    swap all fields at once, so readers never see data from one fetch
    paired with timestamps from another. The lock is never held across
    network I/O.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._state: CacheSnapshot = EMPTY_SNAPSHOT

    def snapshot(self) -> CacheSnapshot:
        """Return the current state; blocks only behind an in-progress write."""
        with self._lock.read():
            return self._state

    def replace(self, observations: ObservationSet, fetched_at: datetime, as_of: datetime) -> None:
        """Atomically install a newly accepted observation set.

        Args:
            observations: Validated set with at least one observation
            fetched_at: Wall-clock instant the fetch completed
            as_of: The observation's own reported instant

        Raises:
            EmptyObservationsError: If ``observations`` is empty
        """
        if observations.is_empty:
            raise EmptyObservationsError("Refusing to cache an empty observation set")

        with self._lock.write():
            self._state = CacheSnapshot(
                observations=observations,
                last_fetched=fetched_at,
                data_age=as_of,
                last_attempt=max(fetched_at, self._state.last_attempt or fetched_at),
            )
        logger.debug("Cache replaced (fetched %s, as of %s)", fetched_at.isoformat(), as_of.isoformat())

    def mark_attempt(self, at: datetime) -> None:
        """Record an upstream attempt without touching the cached data."""
        with self._lock.write():
            state = self._state
            self._state = CacheSnapshot(
                observations=state.observations,
                last_fetched=state.last_fetched,
                data_age=state.data_age,
                last_attempt=at,
            )
