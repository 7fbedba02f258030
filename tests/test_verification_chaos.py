"""Verification Test: Chaos Monkey - Random process termination resilience.

Processes are spawned and killed while the process category samples the
real /proc. Pids that exit between enumeration and their stat read must be
dropped from that scan, never crash the scan, and never linger in a later
table.
"""

import multiprocessing
import os
import random
import sys
import time

import pytest

from pyvitals.config import EngineConfig, Intervals
from pyvitals.engine import build_engine
from pyvitals.models import Category
from pyvitals.processes import ProcessTableBuilder

pytestmark = pytest.mark.skipif(
    not sys.platform.startswith("linux") or not os.path.isdir("/proc/self"),
    reason="requires a Linux /proc",
)


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_builder_survives_process_termination(self):
        """
        Test that scans keep working while processes die mid-scan, and
        that killed pids disappear from the next table.
        """
        processes = []
        for _ in range(30):
            p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
            p.start()
            processes.append(p)

        builder = ProcessTableBuilder(with_command_line=False)
        try:
            table = builder.scan()
            pids = {record.pid for record in table}
            assert all(p.pid in pids for p in processes)

            victims = random.sample(processes, 15)
            for p in victims:
                p.terminate()
                builder.scan()
            for p in victims:
                p.join(timeout=2.0)

            table = builder.scan()
            pids = {record.pid for record in table}
            for p in victims:
                assert p.pid not in pids
            for p in processes:
                if p not in victims:
                    assert p.pid in pids
        finally:
            for p in processes:
                if p.is_alive():
                    p.terminate()
            for p in processes:
                p.join(timeout=1.0)

    def test_engine_survives_process_churn(self):
        """
        Test engine stability during rapid process churn.

        Processes are rapidly created and destroyed while every category
        samples in its own thread.
        """
        engine = build_engine(
            EngineConfig(intervals=Intervals(cpu=0.1, processes=0.1, network=0.1, system=0.1))
        )
        processes = []

        try:
            engine.start()
            start_sequence = engine.get_snapshot().sequence

            deadline = time.time() + 3.0
            while time.time() < deadline:
                if len(processes) < 20:
                    p = multiprocessing.Process(target=dummy_worker, args=(10.0,))
                    p.start()
                    processes.append(p)
                if processes and random.random() < 0.5:
                    victim = processes.pop(random.randrange(len(processes)))
                    victim.terminate()
                    victim.join(timeout=1.0)
                time.sleep(0.02)

            snapshot = engine.get_snapshot()
            assert engine.is_running, "Engine should still be running after chaos"
            assert snapshot.sequence > start_sequence
            assert len(snapshot.processes.table) > 0
            assert Category.PROCESSES not in snapshot.paused

        finally:
            engine.stop()
            for p in processes:
                if p.is_alive():
                    p.terminate()
            for p in processes:
                p.join(timeout=1.0)
