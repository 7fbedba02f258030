"""Per-category read, compute, push and publish steps."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pyvitals.config import DEFAULT_HISTORY_CAPACITY
from pyvitals.deltas import ThroughputTracker, cpu_percent
from pyvitals.history import HistoryBuffer
from pyvitals.models import (
    Category,
    CpuSection,
    InterfaceStats,
    NetworkSection,
    RawCpuSample,
    SystemSection,
)
from pyvitals.processes import ProcessTableBuilder
from pyvitals.readers import (
    PROC_ROOT,
    read_cpu_sample,
    read_ipv4_addresses,
    read_memory_info,
    read_net_dev,
    read_system_info,
)
from pyvitals.sensors import FanSensor, ThermalSensor
from pyvitals.store import SnapshotStore

logger = logging.getLogger(__name__)


class Pipeline:
    """One category's sampling step. Subclasses own all of their raw state."""

    category: Category

    def __init__(self, store: SnapshotStore) -> None:
        self.store = store

    def run(self) -> None:
        raise NotImplementedError

    def reset(self) -> None:
        """Drop retained raw samples so the next delta reports no data."""


class CpuPipeline(Pipeline):
    """CPU usage, temperature and fan, sampled on one cadence."""

    category = Category.CPU

    def __init__(
        self,
        store: SnapshotStore,
        thermal: ThermalSensor,
        fan: FanSensor,
        proc_root: str = PROC_ROOT,
        capacity: int = DEFAULT_HISTORY_CAPACITY,
        reader: Callable[[str], RawCpuSample | None] = read_cpu_sample,
    ) -> None:
        super().__init__(store)
        self._thermal = thermal
        self._fan = fan
        self._proc_root = proc_root
        self._reader = reader
        self._previous: RawCpuSample | None = None
        self.cpu_history = HistoryBuffer(capacity)
        self.thermal_history = HistoryBuffer(capacity)
        self.fan_history = HistoryBuffer(capacity)

    def reset(self) -> None:
        self._previous = None

    def run(self) -> None:
        percent: float | None = None
        sample = self._reader(self._proc_root)
        if sample is not None:
            percent = cpu_percent(self._previous, sample)
            self._previous = sample
        if percent is not None:
            self.cpu_history.push(percent)

        thermal = self._thermal.read()
        if thermal.available:
            self.thermal_history.push(thermal.celsius)
        else:
            # Avoid drawing a stale trend for a sensor that went away
            self.thermal_history.clear()

        fan = self._fan.read()
        if fan.available:
            self.fan_history.push(fan.rpm)
        else:
            self.fan_history.clear()

        self.store.publish_cpu(
            CpuSection(
                cpu_percent=percent if percent is not None else 0.0,
                cpu_valid=percent is not None,
                cpu_trend=self.cpu_history.trend(),
                thermal=thermal,
                thermal_trend=self.thermal_history.trend(),
                fan=fan,
                fan_trend=self.fan_history.trend(),
            )
        )


class ProcessPipeline(Pipeline):
    category = Category.PROCESSES

    def __init__(self, store: SnapshotStore, builder: ProcessTableBuilder) -> None:
        super().__init__(store)
        self.builder = builder

    def reset(self) -> None:
        self.builder.reset()

    def run(self) -> None:
        self.store.publish_processes(self.builder.scan())


class NetworkPipeline(Pipeline):
    category = Category.NETWORK

    def __init__(
        self,
        store: SnapshotStore,
        proc_root: str = PROC_ROOT,
        addresses: Callable[[], dict[str, tuple[str, ...]]] = read_ipv4_addresses,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(store)
        self._proc_root = proc_root
        self._addresses = addresses
        self._clock = clock
        self.tracker = ThroughputTracker()

    def reset(self) -> None:
        self.tracker.reset()

    def run(self) -> None:
        counters = read_net_dev(self._proc_root)
        if counters is None:
            self.store.publish_network(NetworkSection(available=False))
            return

        now = self._clock()
        addresses = self._addresses()
        interfaces = []
        for name in sorted(counters):
            rx, tx = counters[name]
            rx_rate, tx_rate = self.tracker.update(name, rx, tx, now)
            interfaces.append(
                InterfaceStats(
                    name=name,
                    rx=rx,
                    tx=tx,
                    addresses=addresses.get(name, ()),
                    rx_rate=rx_rate or 0.0,
                    tx_rate=tx_rate or 0.0,
                    rx_valid=rx_rate is not None,
                    tx_valid=tx_rate is not None,
                )
            )
        self.tracker.retain(set(counters))
        self.store.publish_network(NetworkSection(interfaces=tuple(interfaces), available=True))


class SystemPipeline(Pipeline):
    """Memory, swap, disk and host information. Nothing here is delta-based."""

    category = Category.SYSTEM

    def __init__(self, store: SnapshotStore, proc_root: str = PROC_ROOT, disk_path: str = "/") -> None:
        super().__init__(store)
        self._proc_root = proc_root
        self._disk_path = disk_path

    def run(self) -> None:
        self.store.publish_system(
            SystemSection(
                memory=read_memory_info(self._disk_path),
                info=read_system_info(self._proc_root),
            )
        )
