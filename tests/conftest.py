"""Shared fixtures: fake /proc and /sys trees, fake psutil host figures and a manual clock."""

import time
from pathlib import Path
from types import SimpleNamespace

import psutil
import pytest

NET_DEV_HEADER = (
    "Inter-|   Receive                                                |  Transmit\n"
    " face |bytes    packets errs drop fifo frame compressed multicast"
    "|bytes    packets errs drop fifo colls carrier compressed\n"
)


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProc:
    """Writes kernel-format pseudo-files under a temporary directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        root.mkdir(parents=True, exist_ok=True)

    def set_cpu(self, **counters: int) -> None:
        fields = ["user", "nice", "system", "idle", "iowait", "irq", "softirq", "steal", "guest", "guest_nice"]
        values = " ".join(str(counters.get(name, 0)) for name in fields)
        (self.root / "stat").write_text(
            f"cpu  {values}\ncpu0 {values}\nintr 0\nctxt 0\nbtime 0\n"
        )

    def add_process(
        self,
        pid: int,
        name: str,
        state: str = "S",
        utime: int = 0,
        stime: int = 0,
        vsize: int = 4096 * 100,
        rss_pages: int = 10,
        threads: int = 1,
        nice: int = 0,
        ppid: int = 1,
        cmdline: str = "",
    ) -> None:
        rest = ["0"] * 40
        rest[0] = state
        rest[1] = str(ppid)
        rest[11] = str(utime)
        rest[12] = str(stime)
        rest[16] = str(nice)
        rest[17] = str(threads)
        rest[20] = str(vsize)
        rest[21] = str(rss_pages)
        pid_dir = self.root / str(pid)
        pid_dir.mkdir(exist_ok=True)
        (pid_dir / "stat").write_text(f"{pid} ({name}) {' '.join(rest)}\n")
        (pid_dir / "cmdline").write_text(cmdline.replace(" ", "\0"))

    def remove_process(self, pid: int) -> None:
        pid_dir = self.root / str(pid)
        for child in pid_dir.iterdir():
            child.unlink()
        pid_dir.rmdir()

    def set_net_dev(self, interfaces: dict[str, tuple[int, int]]) -> None:
        """Write /proc/net/dev with (rx_bytes, tx_bytes) per interface."""
        lines = [NET_DEV_HEADER]
        for name, (rx, tx) in interfaces.items():
            lines.append(f"{name:>6}: {rx} 10 1 2 3 4 5 6 {tx} 20 7 8 9 10 11 12\n")
        net = self.root / "net"
        net.mkdir(exist_ok=True)
        (net / "dev").write_text("".join(lines))

    def set_system(self, hostname: str = "testhost") -> None:
        kernel = self.root / "sys" / "kernel"
        kernel.mkdir(parents=True, exist_ok=True)
        (kernel / "hostname").write_text(f"{hostname}\n")
        (kernel / "osrelease").write_text("6.1.0-test\n")
        (self.root / "cpuinfo").write_text(
            "processor\t: 0\nmodel name\t: Test CPU @ 3.00GHz\n\n"
            "processor\t: 1\nmodel name\t: Test CPU @ 3.00GHz\n\n"
        )


class FakeHost:
    """Replaces the host-wide psutil calls with fixed figures."""

    def __init__(self, monkeypatch: pytest.MonkeyPatch) -> None:
        self._monkeypatch = monkeypatch
        self.set_memory(total=4096 * 1024, available=1024 * 1024)
        self.set_host()

    def _returns(self, name: str, value: object) -> None:
        self._monkeypatch.setattr(psutil, name, lambda *args, **kwargs: value)

    def set_memory(self, total: int, available: int, swap_total: int = 0, swap_used: int = 0) -> None:
        self._returns("virtual_memory", SimpleNamespace(total=total, available=available, used=total - available))
        self._returns("swap_memory", SimpleNamespace(total=swap_total, used=swap_used, free=swap_total - swap_used))

    def set_host(
        self,
        uptime: float = 3600.0,
        load: tuple[float, float, float] = (1.0, 0.5, 0.25),
        cpus: int = 2,
    ) -> None:
        self._returns("boot_time", time.time() - uptime)
        self._returns("getloadavg", load)
        self._returns("cpu_count", cpus)

    def fail(self, *names: str) -> None:
        """Make the named psutil calls raise OSError."""

        def unavailable(*args, **kwargs):
            raise OSError("unavailable")

        for name in names:
            self._monkeypatch.setattr(psutil, name, unavailable)


class FakeSys:
    """Writes sysfs sensor attributes under a temporary directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        root.mkdir(parents=True, exist_ok=True)

    def write(self, relative: str, value: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(value)
        return path


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProc:
    return FakeProc(tmp_path / "proc")


@pytest.fixture
def fake_sys(tmp_path: Path) -> FakeSys:
    return FakeSys(tmp_path / "sys")


@pytest.fixture
def fake_host(monkeypatch: pytest.MonkeyPatch) -> FakeHost:
    return FakeHost(monkeypatch)
