"""Read failures raised by the low-level helpers.

None of these reach the render collaborator: readers, the process table
builder and the scheduler pipelines catch them and turn them into an
unavailable flag or a one-cycle gap in a history buffer.
"""


class MetricsError(Exception):
    """Base class for recoverable sampling failures."""


class SourceUnavailable(MetricsError):
    """A file or sensor is missing or permission was denied."""


class TransientReadFailure(MetricsError):
    """The source answered with truncated or malformed content."""


class CounterDiscontinuity(MetricsError):
    """A monotonic counter went backwards (reset or overflow)."""


class RaceLoss(MetricsError):
    """An entity vanished between enumeration and the detail read."""

    def __init__(self, pid: int) -> None:
        super().__init__(f"process {pid} exited during scan")
        self.pid = pid
