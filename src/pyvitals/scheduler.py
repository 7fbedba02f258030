"""Sampling scheduler for pyvitals."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable

from pyvitals.config import MIN_INTERVAL
from pyvitals.models import Category
from pyvitals.pipelines import Pipeline
from pyvitals.store import SnapshotStore

logger = logging.getLogger(__name__)


class _Worker:
    """Timer state of one category."""

    def __init__(self, pipeline: Pipeline, interval: float) -> None:
        self.pipeline = pipeline
        self.interval = interval
        self.paused = False
        # Set by resume; the owning thread resets the pipeline before its next run
        self.reset_pending = False
        self.next_due = 0.0
        self.wake = threading.Event()
        # Serializes the pipeline between the worker thread and manual ticks
        self.run_lock = threading.Lock()
        self.thread: threading.Thread | None = None


class SamplingScheduler:
    """
    Runs every category's pipeline on its own daemon thread.

    Each thread sleeps on an Event until its category is due, so a slow or
    hung read in one category only delays that category. Rates, pause and
    resume take effect immediately without restarting any thread.
    """

    def __init__(
        self,
        store: SnapshotStore,
        pipelines: Iterable[Pipeline],
        intervals: dict[Category, float] | None = None,
    ) -> None:
        """
        Initialize the SamplingScheduler.

        Args:
            store: Snapshot store the pipelines publish into.
            pipelines: One pipeline per category.
            intervals: Seconds between ticks per category. Default 1.0s.
        """
        self._store = store
        self._stop_event = threading.Event()
        self._workers: dict[Category, _Worker] = {}
        intervals = intervals or {}
        for pipeline in pipelines:
            interval = max(MIN_INTERVAL, intervals.get(pipeline.category, 1.0))
            self._workers[pipeline.category] = _Worker(pipeline, interval)
            store.set_interval(pipeline.category, interval)

    @property
    def categories(self) -> tuple[Category, ...]:
        return tuple(self._workers)

    @property
    def is_running(self) -> bool:
        """Check if any worker thread is alive."""
        return any(w.thread is not None and w.thread.is_alive() for w in self._workers.values())

    def _worker(self, category: Category) -> _Worker:
        try:
            return self._workers[category]
        except KeyError:
            raise ValueError(f"no pipeline registered for {category.value}") from None

    def interval(self, category: Category) -> float:
        return self._worker(category).interval

    def is_paused(self, category: Category) -> bool:
        return self._worker(category).paused

    def start(self) -> None:
        """Start one worker thread per category."""
        if self.is_running:
            return

        self._stop_event.clear()
        for category, worker in self._workers.items():
            worker.next_due = 0.0
            worker.thread = threading.Thread(
                target=self._poll_loop,
                args=(worker,),
                daemon=True,
                name=f"Sampler-{category.value}",
            )
            worker.thread.start()
        logger.info("Sampling started for %s", ", ".join(c.value for c in self._workers))

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop all worker threads.

        Args:
            timeout: How long to wait for each thread to stop (seconds).
        """
        self._stop_event.set()
        for worker in self._workers.values():
            worker.wake.set()
        for worker in self._workers.values():
            if worker.thread is not None:
                worker.thread.join(timeout=timeout)
                worker.thread = None
        logger.info("Sampling stopped")

    def configure(self, category: Category, interval: float) -> float:
        """Change a category's interval in seconds; returns the clamped value."""
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        worker = self._worker(category)
        interval = max(MIN_INTERVAL, interval)
        # Keep the phase of the last tick, only the gap changes
        worker.next_due += interval - worker.interval
        worker.interval = interval
        self._store.set_interval(category, interval)
        worker.wake.set()
        return interval

    set_rate = configure

    def set_fps(self, category: Category, fps: float) -> float:
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        return self.configure(category, 1.0 / fps)

    def pause(self, category: Category) -> None:
        worker = self._worker(category)
        worker.paused = True
        self._store.set_paused(category, True)
        worker.wake.set()

    def resume(self, category: Category) -> None:
        """Resume ticking from scratch: the first delta after resume is no data."""
        worker = self._worker(category)
        worker.reset_pending = True
        worker.next_due = 0.0
        worker.paused = False
        self._store.set_paused(category, False)
        worker.wake.set()

    def tick(self, category: Category) -> bool:
        """Run one iteration of a category now. Returns False if it is paused."""
        worker = self._worker(category)
        if worker.paused:
            return False
        self._run(worker)
        return True

    def tick_all(self) -> None:
        for category in self._workers:
            self.tick(category)

    def _run(self, worker: _Worker) -> None:
        with worker.run_lock:
            if worker.paused:
                return
            if worker.reset_pending:
                worker.reset_pending = False
                worker.pipeline.reset()
            try:
                worker.pipeline.run()
            except Exception:
                # Keep the category alive; the next tick retries
                logger.exception("Sampling %s failed", worker.pipeline.category.value)

    def _poll_loop(self, worker: _Worker) -> None:
        """Timer loop of one category, running in its own thread."""
        while not self._stop_event.is_set():
            worker.wake.clear()
            if worker.paused:
                worker.wake.wait()
                continue

            if time.monotonic() >= worker.next_due:
                self._run(worker)
                worker.next_due = time.monotonic() + worker.interval

            # Wait until due, or until a rate change, resume or stop wakes us
            worker.wake.wait(timeout=max(0.0, worker.next_due - time.monotonic()))
