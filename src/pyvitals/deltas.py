"""Rate and percentage calculations over consecutive raw samples."""

from __future__ import annotations

from pyvitals.errors import CounterDiscontinuity
from pyvitals.models import RawCpuSample, RxCounters, TxCounters


def counter_delta(previous: int, current: int) -> int:
    """Difference of a monotonic counter, raising CounterDiscontinuity if it went back."""
    if current < previous:
        raise CounterDiscontinuity(f"counter dropped from {previous} to {current}")
    return current - previous


def cpu_percent(previous: RawCpuSample | None, current: RawCpuSample) -> float | None:
    """
    CPU usage between two samples: ``100 * (1 - idle_delta / total_delta)``.

    Returns None when there is no previous sample or when the summed
    counters did not advance (no time elapsed, or the counters were reset).
    Individual fields such as iowait may step backwards on their own.
    """
    if previous is None:
        return None
    total = current.total - previous.total
    if total <= 0:
        return None
    idle = current.idle - previous.idle
    return min(100.0, max(0.0, 100.0 * (1.0 - idle / total)))


def process_cpu_percent(
    previous_ticks: int,
    current_ticks: int,
    elapsed: float,
    clock_ticks: int,
) -> float | None:
    """Per-process CPU usage: ``100 * tick_delta / (elapsed * clock_ticks)``."""
    if elapsed <= 0 or clock_ticks <= 0:
        return None
    try:
        delta = counter_delta(previous_ticks, current_ticks)
    except CounterDiscontinuity:
        # Same pid, different process
        return None
    return 100.0 * delta / (elapsed * clock_ticks)


def throughput(previous_bytes: int, current_bytes: int, elapsed: float) -> float | None:
    """Bytes per second between two counter readings."""
    if elapsed <= 0:
        return None
    try:
        return counter_delta(previous_bytes, current_bytes) / elapsed
    except CounterDiscontinuity:
        return None


class ThroughputTracker:
    """
    Keeps the previous byte counters of each interface, keyed by name.

    Each direction is rated on its own: a counter that goes backwards
    (interface reset) yields no rate for that direction in that interval,
    and the new reading becomes the baseline.
    """

    def __init__(self) -> None:
        self._baselines: dict[str, tuple[int, int, float]] = {}

    def update(
        self,
        name: str,
        rx: RxCounters,
        tx: TxCounters,
        now: float,
    ) -> tuple[float | None, float | None]:
        """Return the (rx, tx) bytes per second; None for a direction with no data."""
        previous = self._baselines.get(name)
        self._baselines[name] = (rx.bytes, tx.bytes, now)
        if previous is None:
            return None, None
        prev_rx, prev_tx, prev_time = previous
        elapsed = now - prev_time
        return throughput(prev_rx, rx.bytes, elapsed), throughput(prev_tx, tx.bytes, elapsed)

    def retain(self, names: set[str]) -> None:
        """Forget interfaces that are no longer present."""
        for name in list(self._baselines):
            if name not in names:
                del self._baselines[name]

    def reset(self) -> None:
        self._baselines.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._baselines
