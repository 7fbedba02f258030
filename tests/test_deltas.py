"""Tests for the delta calculators."""

import random

import pytest

from pyvitals.deltas import (
    ThroughputTracker,
    cpu_percent,
    process_cpu_percent,
    throughput,
)
from pyvitals.models import CPU_FIELDS, RawCpuSample, RxCounters, TxCounters


class TestCpuPercent:
    def test_reference_sample(self):
        """Test idle=900,total=1000 then idle=950,total=1100 gives 50%."""
        first = RawCpuSample(user=100, idle=900)
        second = RawCpuSample(user=150, idle=950)

        assert cpu_percent(first, second) == pytest.approx(50.0)

    def test_first_sample_has_no_data(self):
        assert cpu_percent(None, RawCpuSample(user=1, idle=1)) is None

    def test_zero_total_delta_has_no_data(self):
        sample = RawCpuSample(user=10, idle=10)
        assert cpu_percent(sample, sample) is None

    def test_counter_reset_has_no_data(self):
        """Test a counter decrease is treated as no delta, not a wild value."""
        first = RawCpuSample(user=500, idle=900)
        second = RawCpuSample(user=10, idle=1000)
        assert cpu_percent(first, second) is None

    def test_single_field_stepping_back_still_counts(self):
        """Test iowait dropping by one tick does not discard a growing total."""
        first = RawCpuSample(user=100, idle=900, iowait=50)
        second = RawCpuSample(user=150, idle=950, iowait=49)

        # Total advanced by 99 ticks, 50 of them idle
        assert cpu_percent(first, second) == pytest.approx(100.0 * (1 - 50 / 99))

    def test_fully_idle_and_fully_busy(self):
        base = RawCpuSample(user=100, idle=100)
        assert cpu_percent(base, RawCpuSample(user=100, idle=200)) == 0.0
        assert cpu_percent(base, RawCpuSample(user=200, idle=100)) == 100.0

    def test_result_within_bounds(self):
        """Test any pair of monotonic samples with a positive delta lands in [0, 100]."""
        rng = random.Random(42)
        for _ in range(200):
            first = [rng.randint(0, 10**9) for _ in CPU_FIELDS]
            second = [value + rng.randint(0, 10**6) for value in first]
            previous = RawCpuSample(*first)
            current = RawCpuSample(*second)
            if current.total - previous.total <= 0:
                continue
            result = cpu_percent(previous, current)
            assert result is not None
            assert 0.0 <= result <= 100.0


class TestProcessCpuPercent:
    def test_one_core_saturated(self):
        # 100 ticks in 1 second at 100 Hz
        assert process_cpu_percent(0, 100, 1.0, 100) == pytest.approx(100.0)

    def test_half_second(self):
        assert process_cpu_percent(200, 225, 0.5, 100) == pytest.approx(50.0)

    def test_no_elapsed_time(self):
        assert process_cpu_percent(0, 100, 0.0, 100) is None

    def test_pid_reuse(self):
        """Test ticks going backwards (new process, same pid) gives no data."""
        assert process_cpu_percent(500, 20, 1.0, 100) is None


class TestThroughput:
    def test_rate(self):
        assert throughput(1000, 3000, 2.0) == 1000.0

    def test_counter_decrease(self):
        """Test an interface reset never yields a negative rate."""
        assert throughput(5000, 100, 1.0) is None

    def test_no_elapsed_time(self):
        assert throughput(0, 100, 0.0) is None


class TestThroughputTracker:
    def test_first_update_has_no_rate(self):
        tracker = ThroughputTracker()
        assert tracker.update("eth0", RxCounters(bytes=100), TxCounters(bytes=50), 10.0) == (None, None)

    def test_rate_after_baseline(self):
        tracker = ThroughputTracker()
        tracker.update("eth0", RxCounters(bytes=100), TxCounters(bytes=50), 10.0)
        rates = tracker.update("eth0", RxCounters(bytes=1100), TxCounters(bytes=250), 12.0)

        assert rates == (500.0, 100.0)

    def test_reset_rebaselines(self):
        """Test a counter drop suppresses one rate, then rates resume from the new baseline."""
        tracker = ThroughputTracker()
        tracker.update("eth0", RxCounters(bytes=10_000), TxCounters(bytes=10_000), 1.0)

        assert tracker.update("eth0", RxCounters(bytes=100), TxCounters(bytes=100), 2.0) == (None, None)
        assert tracker.update("eth0", RxCounters(bytes=300), TxCounters(bytes=200), 3.0) == (200.0, 100.0)

    def test_directions_are_independent(self):
        """Test a receive counter reset leaves the transmit rate intact."""
        tracker = ThroughputTracker()
        tracker.update("eth0", RxCounters(bytes=10_000), TxCounters(bytes=100), 1.0)

        assert tracker.update("eth0", RxCounters(bytes=50), TxCounters(bytes=600), 2.0) == (None, 500.0)

    def test_interfaces_are_keyed_by_name(self):
        tracker = ThroughputTracker()
        tracker.update("eth0", RxCounters(bytes=0), TxCounters(bytes=0), 1.0)
        tracker.update("wlan0", RxCounters(bytes=0), TxCounters(bytes=0), 1.0)
        tracker.retain({"wlan0"})

        assert "eth0" not in tracker
        assert "wlan0" in tracker

    def test_reset(self):
        tracker = ThroughputTracker()
        tracker.update("eth0", RxCounters(bytes=0), TxCounters(bytes=0), 1.0)
        tracker.reset()

        assert tracker.update("eth0", RxCounters(bytes=10), TxCounters(bytes=10), 2.0) == (None, None)
