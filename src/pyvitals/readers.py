"""
Counter source readers.

Each public reader reads one kernel-exposed source once. Missing files,
permission errors and malformed content never escape a reader: they come
back as ``None`` or as a record with its availability flag cleared. The
process readers are the exception, raising RaceLoss so the table builder
can skip a single pid without abandoning the whole scan.
"""

from __future__ import annotations

import logging
import os
import socket
import time
from pathlib import Path

import psutil

from pyvitals.errors import (
    MetricsError,
    RaceLoss,
    SourceUnavailable,
    TransientReadFailure,
)
from pyvitals.models import (
    CPU_FIELDS,
    MemoryInfo,
    ProcessStat,
    RawCpuSample,
    RxCounters,
    SystemInfo,
    TxCounters,
)

logger = logging.getLogger(__name__)

PROC_ROOT = "/proc"

# Positions in the whitespace-split remainder of /proc/<pid>/stat that
# follows the closing parenthesis of the comm field (field 3 is index 0).
_STAT_STATE = 0
_STAT_PPID = 1
_STAT_UTIME = 11
_STAT_STIME = 12
_STAT_NICE = 16
_STAT_THREADS = 17
_STAT_VSIZE = 20
_STAT_RSS = 21

_RX_FIELDS = 8


def read_text(path: str | os.PathLike[str]) -> str:
    """Read a whole pseudo-file, raising SourceUnavailable on any OS error."""
    try:
        with open(path, encoding="utf-8", errors="replace") as handle:
            return handle.read()
    except OSError as exc:
        raise SourceUnavailable(f"{path}: {exc.strerror or exc}") from exc


def parse_int(text: str, source: object = "") -> int:
    try:
        return int(text)
    except ValueError as exc:
        raise TransientReadFailure(f"{source}: non-numeric value {text!r}") from exc


def read_sensor_value(path: str | os.PathLike[str]) -> float:
    """Read a single numeric sysfs attribute."""
    text = read_text(path).strip()
    if not text:
        raise TransientReadFailure(f"{path}: empty")
    try:
        return float(text)
    except ValueError as exc:
        raise TransientReadFailure(f"{path}: non-numeric value {text!r}") from exc


def parse_cpu_line(line: str) -> RawCpuSample:
    """Parse the aggregate ``cpu`` line of /proc/stat."""
    parts = line.split()
    if not parts or parts[0] != "cpu" or len(parts) < 5:
        raise TransientReadFailure(f"malformed cpu line {line!r}")
    values = [parse_int(part, "/proc/stat") for part in parts[1 : 1 + len(CPU_FIELDS)]]
    return RawCpuSample(**dict(zip(CPU_FIELDS, values)))


def read_cpu_sample(proc_root: str = PROC_ROOT) -> RawCpuSample | None:
    """Read aggregate CPU time counters, or None when unavailable."""
    try:
        text = read_text(Path(proc_root, "stat"))
        for line in text.splitlines():
            if line.startswith("cpu "):
                return parse_cpu_line(line)
        raise TransientReadFailure("no aggregate cpu line in /proc/stat")
    except MetricsError as exc:
        logger.debug("CPU counters unavailable: %s", exc)
        return None


def list_pids(proc_root: str = PROC_ROOT) -> list[int]:
    """List numeric entries of /proc; an unreadable /proc yields an empty list."""
    try:
        names = os.listdir(proc_root)
    except OSError as exc:
        logger.debug("Cannot list %s: %s", proc_root, exc)
        return []
    return sorted(int(name) for name in names if name.isdigit())


def parse_process_stat(pid: int, text: str, page_size: int = 4096) -> ProcessStat:
    """
    Parse a /proc/<pid>/stat record.

    The comm field is wrapped in parentheses and may itself contain spaces or
    parentheses, so the record is split at the last closing parenthesis and
    the remaining fields are read by position.
    """
    start = text.find("(")
    end = text.rfind(")")
    if start < 0 or end < start:
        raise TransientReadFailure(f"pid {pid}: malformed stat record")
    name = text[start + 1 : end]
    rest = text[end + 1 :].split()
    if len(rest) <= _STAT_RSS:
        raise TransientReadFailure(f"pid {pid}: truncated stat record")
    source = f"/proc/{pid}/stat"
    return ProcessStat(
        pid=pid,
        name=name,
        state=rest[_STAT_STATE],
        ppid=parse_int(rest[_STAT_PPID], source),
        utime=parse_int(rest[_STAT_UTIME], source),
        stime=parse_int(rest[_STAT_STIME], source),
        nice=parse_int(rest[_STAT_NICE], source),
        threads=parse_int(rest[_STAT_THREADS], source),
        vsize=parse_int(rest[_STAT_VSIZE], source),
        rss=max(0, parse_int(rest[_STAT_RSS], source)) * page_size,
    )


def read_process_stat(pid: int, proc_root: str = PROC_ROOT, page_size: int = 4096) -> ProcessStat:
    """
    Read one process's stat record.

    Raises:
        RaceLoss: the process exited (or became unreadable) after enumeration.
        TransientReadFailure: the record was malformed.
    """
    try:
        text = read_text(Path(proc_root, str(pid), "stat"))
    except SourceUnavailable as exc:
        raise RaceLoss(pid) from exc
    return parse_process_stat(pid, text, page_size)


def read_command_line(pid: int, proc_root: str = PROC_ROOT) -> str:
    try:
        raw = read_text(Path(proc_root, str(pid), "cmdline"))
    except SourceUnavailable:
        return ""
    return " ".join(part for part in raw.split("\0") if part)


def read_memory_info(disk_path: str = "/") -> MemoryInfo:
    """Read RAM, swap and filesystem usage via psutil."""
    fields: dict[str, object] = {}
    try:
        mem = psutil.virtual_memory()
        swap = psutil.swap_memory()
    except OSError as exc:
        logger.debug("Memory figures unavailable: %s", exc)
    else:
        available = min(mem.available, mem.total)
        fields.update(
            total=mem.total,
            available=available,
            used=mem.total - available,
            ram_available=mem.total > 0,
            swap_total=swap.total,
            swap_used=swap.used if swap.total > 0 else 0,
            has_swap=swap.total > 0,
        )

    try:
        disk = psutil.disk_usage(disk_path)
    except OSError as exc:
        logger.debug("Disk usage for %s unavailable: %s", disk_path, exc)
    else:
        fields.update(disk_total=disk.total, disk_used=disk.used, disk_available=True)

    return MemoryInfo(**fields)


def parse_net_dev(text: str) -> dict[str, tuple[RxCounters, TxCounters]]:
    """Parse /proc/net/dev into per-interface receive and transmit counters."""
    interfaces: dict[str, tuple[RxCounters, TxCounters]] = {}
    for line in text.splitlines():
        name, sep, rest = line.partition(":")
        if not sep or "|" in line:
            continue  # Header lines
        parts = rest.split()
        if len(parts) < 2 * _RX_FIELDS:
            raise TransientReadFailure(f"truncated /proc/net/dev line for {name.strip()}")
        values = [parse_int(part, "/proc/net/dev") for part in parts[: 2 * _RX_FIELDS]]
        interfaces[name.strip()] = (
            RxCounters(*values[:_RX_FIELDS]),
            TxCounters(*values[_RX_FIELDS:]),
        )
    return interfaces


def read_net_dev(proc_root: str = PROC_ROOT) -> dict[str, tuple[RxCounters, TxCounters]] | None:
    try:
        return parse_net_dev(read_text(Path(proc_root, "net", "dev")))
    except MetricsError as exc:
        logger.debug("Network counters unavailable: %s", exc)
        return None


def read_ipv4_addresses() -> dict[str, tuple[str, ...]]:
    """Map interface names to their IPv4 addresses."""
    try:
        addrs = psutil.net_if_addrs()
    except OSError as exc:
        logger.debug("Interface addresses unavailable: %s", exc)
        return {}
    return {
        name: tuple(entry.address for entry in entries if entry.family == socket.AF_INET)
        for name, entries in addrs.items()
    }


def _read_first_line(path: Path) -> str:
    try:
        return read_text(path).strip().splitlines()[0]
    except (SourceUnavailable, IndexError):
        return ""


def _cpu_model(proc_root: str) -> str:
    try:
        text = read_text(Path(proc_root, "cpuinfo"))
    except SourceUnavailable:
        return ""
    for line in text.splitlines():
        key, _, value = line.partition(":")
        if key.strip() in ("model name", "Model", "Hardware", "cpu model"):
            return value.strip()
    return ""


def read_system_info(proc_root: str = PROC_ROOT) -> SystemInfo:
    """Read hostname, kernel, CPU identity, uptime and load average."""
    try:
        uptime = max(0.0, time.time() - psutil.boot_time())
        load_avg = tuple(psutil.getloadavg())
    except (OSError, RuntimeError) as exc:
        # boot_time raises RuntimeError when /proc/stat has no btime line
        logger.debug("Uptime or load average unavailable: %s", exc)
        return SystemInfo()

    return SystemInfo(
        hostname=_read_first_line(Path(proc_root, "sys", "kernel", "hostname")),
        kernel=_read_first_line(Path(proc_root, "sys", "kernel", "osrelease")),
        cpu_model=_cpu_model(proc_root),
        cpu_count=psutil.cpu_count() or 0,
        uptime_seconds=uptime,
        load_avg=load_avg,
        available=True,
    )
