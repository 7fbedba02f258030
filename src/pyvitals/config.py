"""Configuration values for the sampling engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from pyvitals.models import Category

MIN_INTERVAL = 0.1  # seconds
DEFAULT_CLOCK_TICKS = 100
DEFAULT_HISTORY_CAPACITY = 100

THERMAL_CANDIDATES = (
    "class/thermal/thermal_zone*/temp",
    "class/hwmon/hwmon*/temp*_input",
)
FAN_CANDIDATES = ("class/hwmon/hwmon*/fan*_input",)
PWM_CANDIDATES = ("class/hwmon/hwmon*/pwm*",)


def _sysconf(name: str, default: int) -> int:
    try:
        value = os.sysconf(name)
    except (AttributeError, ValueError, OSError):
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class Intervals:
    """Sampling intervals (in seconds) per category."""

    cpu: float = 1.0  # also thermal and fan
    processes: float = 2.0
    network: float = 1.0
    system: float = 5.0  # memory, swap, disk, host info

    def for_category(self, category: Category) -> float:
        return getattr(self, category.value)

    def as_dict(self) -> dict[Category, float]:
        return {category: self.for_category(category) for category in Category}


@dataclass(frozen=True)
class EngineConfig:
    """Everything needed to wire up a MetricsEngine."""

    intervals: Intervals = field(default_factory=Intervals)
    history_capacity: int = DEFAULT_HISTORY_CAPACITY
    clock_ticks: int = field(default_factory=lambda: _sysconf("SC_CLK_TCK", DEFAULT_CLOCK_TICKS))
    page_size: int = field(default_factory=lambda: _sysconf("SC_PAGE_SIZE", 4096))
    proc_root: str = "/proc"
    sys_root: str = "/sys"
    disk_path: str = "/"
    sensor_retry_interval: float = 60.0
    thermal_candidates: tuple[str, ...] = THERMAL_CANDIDATES
    fan_candidates: tuple[str, ...] = FAN_CANDIDATES
    pwm_candidates: tuple[str, ...] = PWM_CANDIDATES

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> EngineConfig:
        """Build a config, overriding roots and clock ticks from PYVITALS_* variables."""
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        if env.get("PYVITALS_PROC_ROOT"):
            overrides["proc_root"] = env["PYVITALS_PROC_ROOT"]
        if env.get("PYVITALS_SYS_ROOT"):
            overrides["sys_root"] = env["PYVITALS_SYS_ROOT"]
        ticks = env.get("PYVITALS_CLOCK_TICKS")
        if ticks:
            try:
                overrides["clock_ticks"] = max(1, int(ticks))
            except ValueError:
                pass  # Keep the sysconf value
        return cls(**overrides)
