"""Fixed-capacity trend buffers."""

from collections import deque

from pyvitals.config import DEFAULT_HISTORY_CAPACITY
from pyvitals.models import Trend


class HistoryBuffer:
    """
    Ring buffer holding the most recent values of one metric stream.

    Pushing into a full buffer overwrites the oldest value. Not thread-safe:
    each buffer is owned by a single scheduler pipeline and published to the
    store as an immutable Trend.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._values: deque[float] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._values.maxlen or 0

    def __len__(self) -> int:
        return len(self._values)

    def push(self, value: float) -> None:
        self._values.append(float(value))

    def snapshot(self) -> tuple[float, ...]:
        """Return the held values, oldest first."""
        return tuple(self._values)

    def clear(self) -> None:
        self._values.clear()

    def minimum(self) -> float | None:
        return min(self._values) if self._values else None

    def maximum(self) -> float | None:
        return max(self._values) if self._values else None

    def bounds(self) -> tuple[float, float] | None:
        """Min and max of the current contents, as an auto-scale hint."""
        if not self._values:
            return None
        return min(self._values), max(self._values)

    def trend(self) -> Trend:
        values = self.snapshot()
        if not values:
            return Trend(capacity=self.capacity)
        return Trend(values=values, capacity=self.capacity, low=min(values), high=max(values))
