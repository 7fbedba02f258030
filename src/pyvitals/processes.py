"""Process table scanning, filtering and sorting."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from pyvitals.config import DEFAULT_CLOCK_TICKS
from pyvitals.deltas import process_cpu_percent
from pyvitals.errors import RaceLoss, TransientReadFailure
from pyvitals.models import ProcessRecord
from pyvitals.readers import PROC_ROOT, list_pids, read_command_line, read_process_stat

logger = logging.getLogger(__name__)


class SortColumn(Enum):
    """Sortable columns of the process table."""

    PID = "pid"
    NAME = "name"
    STATE = "state"
    CPU = "cpu"
    RSS = "rss"
    VSIZE = "vsize"
    THREADS = "threads"


_SORT_KEYS: dict[SortColumn, Callable[[ProcessRecord], object]] = {
    SortColumn.PID: lambda p: p.pid,
    SortColumn.NAME: lambda p: p.name.lower(),
    SortColumn.STATE: lambda p: p.state,
    SortColumn.CPU: lambda p: p.cpu_percent,
    SortColumn.RSS: lambda p: p.rss,
    SortColumn.VSIZE: lambda p: p.vsize,
    SortColumn.THREADS: lambda p: p.threads,
}


@dataclass(slots=True, frozen=True)
class ProcessQuery:
    """Filter text and sort order applied to a published table."""

    text: str = ""
    column: SortColumn = SortColumn.CPU
    ascending: bool = False


def apply_query(
    table: tuple[ProcessRecord, ...],
    query: ProcessQuery,
) -> tuple[ProcessRecord, ...]:
    """
    Return a filtered, sorted copy of ``table``.

    The filter is a case-insensitive substring match on the process name and
    is applied before the sort. Python's sort is stable, so records with equal
    keys keep their table order.
    """
    needle = query.text.strip().lower()
    if needle:
        rows = [p for p in table if needle in p.name.lower()]
    else:
        rows = list(table)
    rows.sort(key=_SORT_KEYS[query.column], reverse=not query.ascending)
    return tuple(rows)


class ProcessTableBuilder:
    """
    Builds a fresh process table on every scan.

    Only the previous scan's records are kept, keyed by pid, to compute CPU
    usage. Each scan returns a complete replacement table, so pids that
    exited simply do not appear in it.
    """

    def __init__(
        self,
        proc_root: str = PROC_ROOT,
        clock_ticks: int = DEFAULT_CLOCK_TICKS,
        page_size: int = 4096,
        clock: Callable[[], float] = time.monotonic,
        with_command_line: bool = True,
    ) -> None:
        self._proc_root = proc_root
        self._clock_ticks = clock_ticks
        self._page_size = page_size
        self._clock = clock
        self._with_command_line = with_command_line
        self._previous: dict[int, ProcessRecord] = {}
        self._previous_time: float | None = None

    def reset(self) -> None:
        """Forget the previous scan; the next scan reports no CPU usage."""
        self._previous = {}
        self._previous_time = None

    def scan(self) -> tuple[ProcessRecord, ...]:
        now = self._clock()
        elapsed = now - self._previous_time if self._previous_time is not None else 0.0
        records: dict[int, ProcessRecord] = {}
        skipped = 0

        for pid in list_pids(self._proc_root):
            try:
                stat = read_process_stat(pid, self._proc_root, self._page_size)
            except (RaceLoss, TransientReadFailure) as exc:
                # Exited between listing and reading, or unreadable this cycle
                logger.debug("Skipping pid %d: %s", pid, exc)
                skipped += 1
                continue

            cpu: float | None = None
            previous = self._previous.get(pid)
            if previous is not None:
                cpu = process_cpu_percent(
                    previous.cpu_ticks, stat.cpu_ticks, elapsed, self._clock_ticks
                )

            records[pid] = ProcessRecord(
                pid=pid,
                name=stat.name,
                state=stat.state,
                vsize=stat.vsize,
                rss=stat.rss,
                cpu_ticks=stat.cpu_ticks,
                cpu_percent=cpu if cpu is not None else 0.0,
                cpu_valid=cpu is not None,
                ppid=stat.ppid,
                nice=stat.nice,
                threads=stat.threads,
                command_line=(
                    read_command_line(pid, self._proc_root) if self._with_command_line else ""
                ),
            )

        if skipped:
            logger.debug("Process scan skipped %d pids", skipped)
        self._previous = records
        self._previous_time = now
        return tuple(records.values())
