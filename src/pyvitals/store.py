"""Shared snapshot store: the only state touched by more than one thread."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import replace

from pyvitals.models import (
    Category,
    Chart,
    CpuSection,
    DisplayScale,
    NetworkSection,
    ProcessRecord,
    ProcessSection,
    Snapshot,
    SystemSection,
)
from pyvitals.processes import ProcessQuery, apply_query


class SnapshotStore:
    """
    Latest published state of every category behind a single lock.

    Each category publishes a complete immutable section in one locked
    assignment, so a reader never sees a current value and a trend from
    different ticks. Every write bumps ``sequence``; the render loop compares
    it with the last rendered one to skip redundant frames. The lock is only
    held for assignments and small dict copies, never across I/O.
    """

    def __init__(
        self,
        intervals: dict[Category, float] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self._sequence = 0
        self._timestamp = clock()
        self._cpu = CpuSection()
        self._processes = ProcessSection()
        self._network = NetworkSection()
        self._system = SystemSection()
        self._paused: frozenset[Category] = frozenset()
        self._intervals: dict[Category, float] = dict(intervals or {})
        self._scales: dict[Chart, DisplayScale] = {c: DisplayScale() for c in Chart}
        self._query = ProcessQuery()

    def _bump(self) -> None:
        # Caller holds the lock
        self._sequence += 1
        self._timestamp = self._clock()

    @property
    def sequence(self) -> int:
        with self._lock:
            return self._sequence

    @property
    def query(self) -> ProcessQuery:
        with self._lock:
            return self._query

    def get_snapshot(self) -> Snapshot:
        """Return a consistent copy of the latest state."""
        with self._lock:
            return Snapshot(
                sequence=self._sequence,
                timestamp=self._timestamp,
                cpu=self._cpu,
                processes=self._processes,
                network=self._network,
                system=self._system,
                paused=self._paused,
                intervals=dict(self._intervals),
                scales=dict(self._scales),
                filter_text=self._query.text,
                sort_column=self._query.column.value,
                sort_ascending=self._query.ascending,
            )

    def publish_cpu(self, section: CpuSection) -> None:
        with self._lock:
            self._cpu = section
            self._bump()

    def publish_network(self, section: NetworkSection) -> None:
        with self._lock:
            self._network = section
            self._bump()

    def publish_system(self, section: SystemSection) -> None:
        with self._lock:
            self._system = section
            self._bump()

    def publish_processes(self, table: tuple[ProcessRecord, ...]) -> None:
        """Publish a new process table together with its filtered, sorted view."""
        while True:
            with self._lock:
                query = self._query
            view = apply_query(table, query)
            with self._lock:
                # Recompute if the query changed while the view was being built
                if self._query is query:
                    self._processes = ProcessSection(table=table, view=view)
                    self._bump()
                    return

    def update_query(self, **changes: object) -> ProcessQuery:
        """
        Change filter text or sort order and re-derive the view of the current table.

        The new query is committed together with the view it produced, so a
        reader never sees the new filter next to the old view.
        """
        while True:
            with self._lock:
                base = self._query
                table = self._processes.table
            query = replace(base, **changes)
            if query == base:
                return base
            view = apply_query(table, query)
            with self._lock:
                # Start over if a table or another query landed meanwhile
                if self._query is base and self._processes.table is table:
                    self._query = query
                    self._processes = ProcessSection(table=table, view=view)
                    self._bump()
                    return query

    def set_paused(self, category: Category, paused: bool) -> None:
        with self._lock:
            if paused:
                self._paused = self._paused | {category}
            else:
                self._paused = self._paused - {category}
            self._bump()

    def set_interval(self, category: Category, interval: float) -> None:
        with self._lock:
            self._intervals[category] = interval
            self._bump()

    def set_display_scale(self, chart: Chart, scale: DisplayScale) -> None:
        with self._lock:
            self._scales[chart] = scale
            self._bump()
