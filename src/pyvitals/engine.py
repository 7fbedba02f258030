"""Engine facade: what the render collaborator talks to."""

from __future__ import annotations

import logging
from collections.abc import Callable

from pyvitals.config import EngineConfig
from pyvitals.models import Category, Chart, DisplayScale, Snapshot
from pyvitals.pipelines import (
    CpuPipeline,
    NetworkPipeline,
    Pipeline,
    ProcessPipeline,
    SystemPipeline,
)
from pyvitals.processes import ProcessTableBuilder, SortColumn
from pyvitals.scheduler import SamplingScheduler
from pyvitals.sensors import build_fan_sensor, build_thermal_sensor
from pyvitals.store import SnapshotStore

logger = logging.getLogger(__name__)


class MetricsEngine:
    """
    Owns the snapshot store and the scheduler for the lifetime of a session.

    Can be used as a context manager, which starts sampling on entry and
    stops it on exit.
    """

    def __init__(self, store: SnapshotStore, scheduler: SamplingScheduler) -> None:
        self.store = store
        self.scheduler = scheduler

    def __enter__(self) -> MetricsEngine:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    @property
    def is_running(self) -> bool:
        return self.scheduler.is_running

    def start(self) -> None:
        self.scheduler.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self.scheduler.stop(timeout=timeout)

    def get_snapshot(self) -> Snapshot:
        return self.store.get_snapshot()

    def set_category_rate(self, category: Category, interval: float) -> float:
        return self.scheduler.configure(category, interval)

    def set_category_fps(self, category: Category, fps: float) -> float:
        return self.scheduler.set_fps(category, fps)

    def pause(self, category: Category) -> None:
        self.scheduler.pause(category)

    def resume(self, category: Category) -> None:
        self.scheduler.resume(category)

    def toggle_pause(self, category: Category) -> bool:
        """Pause a running category or resume a paused one; returns the new paused state."""
        if self.scheduler.is_paused(category):
            self.resume(category)
            return False
        self.pause(category)
        return True

    def set_filter(self, text: str) -> None:
        self.store.update_query(text=text)

    def set_sort_column(self, column: SortColumn | str, ascending: bool = False) -> None:
        self.store.update_query(column=SortColumn(column), ascending=ascending)

    def set_display_scale(
        self,
        chart: Chart | Category | str,
        minimum: float | None = None,
        maximum: float | None = None,
    ) -> None:
        """
        Fix the Y-axis range of a trend chart, or pass no bounds for auto-scale.

        ``Category.CPU`` stands for the CPU usage chart. Categories without a
        trend chart raise ValueError.
        """
        chart = Chart(chart.value if isinstance(chart, Category) else chart)
        if minimum is None and maximum is None:
            self.store.set_display_scale(chart, DisplayScale())
            return
        if minimum is None or maximum is None:
            raise ValueError("minimum and maximum must be given together")
        if minimum >= maximum:
            raise ValueError(f"minimum {minimum} must be below maximum {maximum}")
        self.store.set_display_scale(
            chart, DisplayScale(minimum=minimum, maximum=maximum, auto=False)
        )


def build_pipelines(
    store: SnapshotStore,
    config: EngineConfig,
    clock: Callable[[], float] | None = None,
) -> list[Pipeline]:
    extra = {"clock": clock} if clock is not None else {}
    thermal = build_thermal_sensor(
        config.thermal_candidates,
        root=config.sys_root,
        retry_interval=config.sensor_retry_interval,
        **extra,
    )
    fan = build_fan_sensor(
        config.fan_candidates,
        config.pwm_candidates,
        root=config.sys_root,
        retry_interval=config.sensor_retry_interval,
        **extra,
    )
    builder = ProcessTableBuilder(
        proc_root=config.proc_root,
        clock_ticks=config.clock_ticks,
        page_size=config.page_size,
        **extra,
    )
    return [
        CpuPipeline(
            store,
            thermal,
            fan,
            proc_root=config.proc_root,
            capacity=config.history_capacity,
        ),
        ProcessPipeline(store, builder),
        NetworkPipeline(store, proc_root=config.proc_root, **extra),
        SystemPipeline(store, proc_root=config.proc_root, disk_path=config.disk_path),
    ]


def build_engine(config: EngineConfig | None = None) -> MetricsEngine:
    """Wire readers, sensors, pipelines and scheduler around a fresh store."""
    config = config or EngineConfig()
    intervals = config.intervals.as_dict()
    store = SnapshotStore(intervals)
    scheduler = SamplingScheduler(store, build_pipelines(store, config), intervals)
    logger.debug("Engine built with proc_root=%s sys_root=%s", config.proc_root, config.sys_root)
    return MetricsEngine(store, scheduler)
