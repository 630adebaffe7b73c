# SPDX-License-Identifier: Apache-2.0
"""
Time-bounded cache for the discovered spreadsheet layout.

Fresh snapshots are served under a shared read lock. Once the snapshot is
older than the TTL (or was invalidated) the next caller takes the exclusive
side of the lock, re-checks freshness, and runs discovery. Callers that queued
behind it find the new snapshot on the re-check and return without another
round-trip. A failed refresh keeps serving the previous snapshot when there
is one.
"""
import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable

from weekly_dashboard.constants import LAYOUT_TTL_SECONDS
from weekly_dashboard.layout import LayoutDiscoveryError, LayoutSnapshot

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """
    Many readers or one writer. Waiting writers block new readers so a refresh is not starved.
    """

    def __init__(self):
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self):
        with self._condition:
            while self._writer or self._writers_waiting:
                self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @contextmanager
    def write(self):
        with self._condition:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._condition.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._condition:
                self._writer = False
                self._condition.notify_all()


class LayoutCache:
    """
    Holds the most recent LayoutSnapshot with a freshness window.

    Attributes:
        discover (Callable[[], LayoutSnapshot]): Performs one discovery round-trip.
        ttl_seconds (float): Freshness window.
        clock (Callable[[], float]): Monotonic clock, injectable for tests.
    """

    def __init__(self, discover: Callable[[], LayoutSnapshot], ttl_seconds: float = LAYOUT_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.discover = discover
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._lock = ReadWriteLock()
        self._snapshot = None
        self._refreshed_at = None

    def _is_fresh(self) -> bool:
        return (self._snapshot is not None and self._refreshed_at is not None
                and self.clock() - self._refreshed_at < self.ttl_seconds)

    def get_layout(self) -> LayoutSnapshot:
        """
        Returns the cached layout, refreshing it first when it is stale or absent.

        Raises:
            LayoutDiscoveryError: If discovery fails and no previous snapshot exists.
        """
        with self._lock.read():
            if self._is_fresh():
                return self._snapshot

        with self._lock.write():
            # Another caller may have refreshed while this one waited
            if self._is_fresh():
                return self._snapshot

            try:
                snapshot = self.discover()
            except LayoutDiscoveryError as e:
                if self._snapshot is not None:
                    logger.warning(f"Layout discovery failed, using cached layout: {e}")
                    return self._snapshot
                logger.error(f"Layout discovery failed and no cached layout is available: {e}")
                raise

            self._snapshot = snapshot
            self._refreshed_at = self.clock()
            return snapshot

    def invalidate_layout(self, discard: bool = False):
        """
        Forces the next get_layout() to run discovery regardless of age.

        Args:
            discard (bool): Also drop the current snapshot so it cannot be served as a
                stale fallback. Used when the spreadsheet target changes.
        """
        with self._lock.write():
            self._refreshed_at = None
            if discard:
                self._snapshot = None
        logger.info("Layout cache invalidated")
