"""Data models for pyvitals."""

from dataclasses import dataclass, field
from enum import Enum


class Category(Enum):
    """Metric categories, each sampled on its own cadence."""

    CPU = "cpu"  # CPU usage, thermal and fan share this cadence
    PROCESSES = "processes"
    NETWORK = "network"
    SYSTEM = "system"  # memory, swap, disk and host info


class Chart(Enum):
    """Trend charts with a configurable Y-axis scale."""

    CPU = "cpu"
    THERMAL = "thermal"
    FAN = "fan"


CPU_FIELDS = (
    "user",
    "nice",
    "system",
    "idle",
    "iowait",
    "irq",
    "softirq",
    "steal",
    "guest",
    "guest_nice",
)


@dataclass(slots=True, frozen=True)
class RawCpuSample:
    """Aggregate CPU time counters, in clock ticks since boot."""

    user: int = 0
    nice: int = 0
    system: int = 0
    idle: int = 0
    iowait: int = 0
    irq: int = 0
    softirq: int = 0
    steal: int = 0
    guest: int = 0
    guest_nice: int = 0

    @property
    def total(self) -> int:
        return sum(self.counters())

    def counters(self) -> tuple[int, ...]:
        return tuple(getattr(self, name) for name in CPU_FIELDS)


@dataclass(slots=True, frozen=True)
class ThermalReading:
    """Temperature in whole degrees Celsius."""

    celsius: float = 0.0
    available: bool = False
    source: str = ""


@dataclass(slots=True, frozen=True)
class FanReading:
    """Fan tachometer and PWM level."""

    rpm: int = 0
    pwm: int = 0
    pwm_max: int = 255
    active: bool = False
    available: bool = False


@dataclass(slots=True, frozen=True)
class MemoryInfo:
    """RAM, swap and root filesystem usage in bytes."""

    total: int = 0
    available: int = 0
    used: int = 0
    ram_available: bool = False
    swap_total: int = 0
    swap_used: int = 0
    has_swap: bool = False
    disk_total: int = 0
    disk_used: int = 0
    disk_available: bool = False

    @property
    def percent(self) -> float:
        return 100.0 * self.used / self.total if self.total else 0.0

    @property
    def swap_percent(self) -> float:
        return 100.0 * self.swap_used / self.swap_total if self.swap_total else 0.0

    @property
    def disk_percent(self) -> float:
        return 100.0 * self.disk_used / self.disk_total if self.disk_total else 0.0


@dataclass(slots=True, frozen=True)
class ProcessStat:
    """Raw fields of a single /proc/<pid>/stat record."""

    pid: int
    name: str
    state: str  # 'R', 'S', 'Z', 'D', etc.
    ppid: int
    utime: int
    stime: int
    nice: int
    threads: int
    vsize: int  # Bytes
    rss: int  # Bytes

    @property
    def cpu_ticks(self) -> int:
        return self.utime + self.stime


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable snapshot of a process state."""

    pid: int
    name: str
    state: str
    vsize: int
    rss: int
    cpu_ticks: int
    cpu_percent: float = 0.0
    cpu_valid: bool = False  # False until the pid has been seen twice
    ppid: int = 0
    nice: int = 0
    threads: int = 0
    command_line: str = ""


@dataclass(slots=True, frozen=True)
class RxCounters:
    bytes: int = 0
    packets: int = 0
    errors: int = 0
    drops: int = 0
    fifo: int = 0
    frame: int = 0
    compressed: int = 0
    multicast: int = 0


@dataclass(slots=True, frozen=True)
class TxCounters:
    bytes: int = 0
    packets: int = 0
    errors: int = 0
    drops: int = 0
    fifo: int = 0
    collisions: int = 0
    carrier: int = 0
    compressed: int = 0


@dataclass(slots=True, frozen=True)
class InterfaceStats:
    """Counters and throughput of one network interface, keyed by name."""

    name: str
    rx: RxCounters
    tx: TxCounters
    addresses: tuple[str, ...] = ()
    rx_rate: float = 0.0  # Bytes per second
    tx_rate: float = 0.0
    rx_valid: bool = False
    tx_valid: bool = False

    @property
    def rate_valid(self) -> bool:
        return self.rx_valid and self.tx_valid


@dataclass(slots=True, frozen=True)
class SystemInfo:
    """Host identification and load."""

    hostname: str = ""
    kernel: str = ""
    cpu_model: str = ""
    cpu_count: int = 0
    uptime_seconds: float = 0.0
    load_avg: tuple[float, float, float] = (0.0, 0.0, 0.0)
    available: bool = False


@dataclass(slots=True, frozen=True)
class Trend:
    """Immutable copy of a history buffer, oldest value first."""

    values: tuple[float, ...] = ()
    capacity: int = 0
    low: float = 0.0
    high: float = 0.0


@dataclass(slots=True, frozen=True)
class DisplayScale:
    """Y-axis range requested by the render collaborator."""

    minimum: float = 0.0
    maximum: float = 100.0
    auto: bool = True


@dataclass(slots=True, frozen=True)
class CpuSection:
    cpu_percent: float = 0.0
    cpu_valid: bool = False
    cpu_trend: Trend = field(default_factory=Trend)
    thermal: ThermalReading = field(default_factory=ThermalReading)
    thermal_trend: Trend = field(default_factory=Trend)
    fan: FanReading = field(default_factory=FanReading)
    fan_trend: Trend = field(default_factory=Trend)


@dataclass(slots=True, frozen=True)
class ProcessSection:
    table: tuple[ProcessRecord, ...] = ()
    view: tuple[ProcessRecord, ...] = ()  # Filtered and sorted table


@dataclass(slots=True, frozen=True)
class NetworkSection:
    interfaces: tuple[InterfaceStats, ...] = ()
    available: bool = False


@dataclass(slots=True, frozen=True)
class SystemSection:
    memory: MemoryInfo = field(default_factory=MemoryInfo)
    info: SystemInfo = field(default_factory=SystemInfo)


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Consistent copy of everything the engine publishes."""

    sequence: int
    timestamp: float
    cpu: CpuSection
    processes: ProcessSection
    network: NetworkSection
    system: SystemSection
    paused: frozenset[Category]
    intervals: dict[Category, float]
    scales: dict[Chart, DisplayScale]
    filter_text: str
    sort_column: str
    sort_ascending: bool
