"""Thermal and fan sensor discovery."""

from __future__ import annotations

import glob
import logging
import os
import re
import time
from collections.abc import Callable, Iterable

from pyvitals.errors import MetricsError
from pyvitals.models import FanReading, ThermalReading
from pyvitals.readers import read_sensor_value

logger = logging.getLogger(__name__)

SYS_ROOT = "/sys"
PWM_NAME = re.compile(r"pwm\d+$")


def _natural_key(path: str) -> list[object]:
    return [int(part) if part.isdigit() else part for part in re.split(r"(\d+)", path)]


def normalize_celsius(value: float) -> float:
    """Convert a raw temperature to whole degrees Celsius."""
    if value > 200:  # millidegrees
        value /= 1000.0
    return float(round(value))


class SensorResolver:
    """
    Picks the first responsive source out of an ordered list of glob patterns.

    Patterns are relative to ``root``. Matches of one pattern are tried in
    natural order (``zone2`` before ``zone10``) and the first file holding a
    parseable number wins. While unresolved, probing is retried at most once
    every ``retry_interval`` seconds so a machine without sensors does not
    pay for a directory scan on every tick. A resolved source that stops
    answering becomes unresolved and falls back to the same retry cadence.
    """

    def __init__(
        self,
        candidates: Iterable[str],
        root: str = SYS_ROOT,
        normalize: Callable[[float], float] | None = None,
        name_pattern: re.Pattern[str] | None = None,
        retry_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._candidates = tuple(candidates)
        self._root = root
        self._normalize = normalize or (lambda value: value)
        self._name_pattern = name_pattern
        self._retry_interval = retry_interval
        self._clock = clock
        self._path: str | None = None
        self._last_probe: float | None = None
        self.probe_count = 0

    @property
    def path(self) -> str | None:
        return self._path

    @property
    def available(self) -> bool:
        return self._path is not None

    def _matches(self) -> Iterable[str]:
        for pattern in self._candidates:
            for path in sorted(glob.glob(os.path.join(self._root, pattern)), key=_natural_key):
                if self._name_pattern and not self._name_pattern.match(os.path.basename(path)):
                    continue
                yield path

    def _probe_due(self) -> bool:
        if self._last_probe is None:
            return True
        return self._clock() - self._last_probe >= self._retry_interval

    def probe(self) -> float | None:
        """Scan the candidates now and return the first reading found."""
        self.probe_count += 1
        self._last_probe = self._clock()
        for path in self._matches():
            try:
                value = read_sensor_value(path)
            except MetricsError as exc:
                logger.debug("Skipping sensor candidate %s: %s", path, exc)
                continue
            self._path = path
            logger.info("Resolved sensor %s", path)
            return self._normalize(value)
        logger.debug("No responsive sensor among %s", self._candidates)
        return None

    def read(self) -> float | None:
        """Return the current normalized value, or None when no source answers."""
        if self._path is None:
            if not self._probe_due():
                return None
            return self.probe()
        try:
            return self._normalize(read_sensor_value(self._path))
        except MetricsError as exc:
            logger.info("Sensor %s became unavailable: %s", self._path, exc)
            self._path = None
            self._last_probe = self._clock()
            return None


class ThermalSensor:
    def __init__(self, resolver: SensorResolver) -> None:
        self.resolver = resolver

    def read(self) -> ThermalReading:
        value = self.resolver.read()
        if value is None:
            return ThermalReading()
        return ThermalReading(celsius=value, available=True, source=self.resolver.path or "")


class FanSensor:
    """Combines a tachometer resolver and a PWM resolver into one FanReading."""

    def __init__(
        self,
        rpm: SensorResolver,
        pwm: SensorResolver,
        pwm_max: int = 255,
    ) -> None:
        self.rpm = rpm
        self.pwm = pwm
        self.pwm_max = pwm_max

    def read(self) -> FanReading:
        rpm = self.rpm.read()
        pwm = self.pwm.read()
        if rpm is None and pwm is None:
            return FanReading(pwm_max=self.pwm_max)
        speed = int(rpm) if rpm is not None else 0
        level = min(int(pwm), self.pwm_max) if pwm is not None else 0
        active = speed > 0 if rpm is not None else level > 0
        return FanReading(
            rpm=speed,
            pwm=level,
            pwm_max=self.pwm_max,
            active=active,
            available=True,
        )


def build_thermal_sensor(
    candidates: Iterable[str],
    root: str = SYS_ROOT,
    retry_interval: float = 60.0,
    clock: Callable[[], float] = time.monotonic,
) -> ThermalSensor:
    return ThermalSensor(
        SensorResolver(
            candidates,
            root=root,
            normalize=normalize_celsius,
            retry_interval=retry_interval,
            clock=clock,
        )
    )


def build_fan_sensor(
    fan_candidates: Iterable[str],
    pwm_candidates: Iterable[str],
    root: str = SYS_ROOT,
    retry_interval: float = 60.0,
    clock: Callable[[], float] = time.monotonic,
) -> FanSensor:
    return FanSensor(
        SensorResolver(fan_candidates, root=root, retry_interval=retry_interval, clock=clock),
        SensorResolver(
            pwm_candidates,
            root=root,
            name_pattern=PWM_NAME,
            retry_interval=retry_interval,
            clock=clock,
        ),
    )
