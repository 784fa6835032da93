# backend/nestos/services/performance_service.py
"""
On-demand performance benchmark.

Runs a CPU loop in-process, then memory and disk throughput via `dd`, then
a 4k random-read IOPS benchmark via `fio`. Takes well over 10 seconds and
writes (then deletes) temporary files in the configured temp directory.
"""
import json
import logging
import math
import re
import time
from pathlib import Path
from typing import List, Optional

import psutil

from nestos.config import get_settings
from nestos.schemas.system import (
    CpuPerformance,
    DiskPerformance,
    MemoryPerformance,
    PerformanceResult,
)
from nestos.utils.shell import CommandError, CommandExecutor, CommandResult, get_command_executor

logger = logging.getLogger(__name__)

CPU_LOOP_ITERATIONS = 1_000_000
LATENCY_BUFFER_BYTES = 100 * 1024 * 1024

THROUGHPUT_PATTERN = re.compile(r"([0-9]+(?:[.,][0-9]+)?) ([GM])B/s")


class PerformanceTestError(RuntimeError):
    """A benchmark command failed or produced unusable output."""


def parse_throughput(output: str) -> float:
    """
    Extract a `dd` throughput figure in MB/s.

    "1.2 GB/s" -> 1228.8, "850 MB/s" -> 850.0, no match -> 0.0
    """
    match = THROUGHPUT_PATTERN.search(output or "")
    if not match:
        return 0.0
    value = float(match.group(1).replace(",", "."))
    return value * 1024 if match.group(2) == "G" else value


def parse_fio_iops(output: str) -> float:
    """Read IOPS of the first job from fio's JSON report."""
    try:
        report = json.loads(output)
        return float(report["jobs"][0]["read"]["iops"])
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise PerformanceTestError(f"Could not parse fio output: {e}") from e


def _combined_output(result: CommandResult) -> str:
    # dd prints its transfer summary on stderr
    return f"{result.stdout}\n{result.stderr}"


class PerformanceService:
    def __init__(
        self,
        executor: Optional[CommandExecutor] = None,
        tmp_dir: Optional[str] = None,
        block_count: Optional[int] = None,
        fio_runtime: Optional[int] = None,
    ):
        settings = get_settings()
        self.executor = executor or get_command_executor()
        self.tmp_dir = Path(tmp_dir or settings.perf_tmp_dir)
        self.block_count = block_count or settings.perf_block_count
        self.fio_runtime = fio_runtime or settings.fio_runtime_seconds

    @property
    def memory_test_file(self) -> Path:
        return self.tmp_dir / "test"

    @property
    def disk_test_file(self) -> Path:
        return self.tmp_dir / "testfile"

    def run(self) -> PerformanceResult:
        """Run every measurement and merge the results."""
        logger.info("Starting performance test")
        try:
            result = PerformanceResult(
                cpu=self.measure_cpu(),
                memory=self.measure_memory(),
                disk=self.measure_disk(),
            )
        except CommandError as e:
            raise PerformanceTestError(str(e)) from e
        finally:
            self._cleanup()
        logger.info("Performance test finished")
        return result

    def measure_cpu(self) -> CpuPerformance:
        start = time.perf_counter()
        operations = 0.0
        for i in range(CPU_LOOP_ITERATIONS):
            operations += math.sqrt(i)
        elapsed_ms = (time.perf_counter() - start) * 1000

        load_average: List[float] = list(psutil.getloadavg())
        return CpuPerformance(
            single_core=elapsed_ms,
            multi_core=psutil.cpu_percent(interval=0.5),
            load_average=load_average,
        )

    def measure_memory(self) -> MemoryPerformance:
        read = self._dd("/dev/zero", "/dev/null")
        write = self._dd("/dev/zero", str(self.memory_test_file))

        start = time.perf_counter()
        buffer = bytearray(LATENCY_BUFFER_BYTES)
        buffer[:] = bytes(LATENCY_BUFFER_BYTES)
        latency_ms = (time.perf_counter() - start) * 1000
        del buffer

        return MemoryPerformance(
            read_speed=parse_throughput(_combined_output(read)),
            write_speed=parse_throughput(_combined_output(write)),
            latency=latency_ms,
        )

    def measure_disk(self) -> DiskPerformance:
        # The read pass and fio both need the file the write pass creates
        write = self._dd("/dev/zero", str(self.disk_test_file))
        read = self._dd(str(self.disk_test_file), "/dev/null")
        fio = self.executor.execute("fio", [
            "--name=randread",
            "--ioengine=libaio",
            "--direct=1",
            "--bs=4k",
            "--iodepth=32",
            "--size=1G",
            "--rw=randread",
            f"--runtime={self.fio_runtime}",
            f"--filename={self.disk_test_file}",
            "--output-format=json",
        ])

        return DiskPerformance(
            read_speed=parse_throughput(_combined_output(read)),
            write_speed=parse_throughput(_combined_output(write)),
            iops=parse_fio_iops(fio.stdout),
        )

    def _dd(self, source: str, target: str) -> CommandResult:
        return self.executor.execute("dd", [
            f"if={source}",
            f"of={target}",
            "bs=1M",
            f"count={self.block_count}",
        ])

    def _cleanup(self) -> None:
        for path in (self.disk_test_file, self.memory_test_file):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove benchmark file {path}: {e}")


# Singleton instance
_performance_service: Optional[PerformanceService] = None


def get_performance_service() -> PerformanceService:
    """Get the performance service singleton."""
    global _performance_service
    if _performance_service is None:
        _performance_service = PerformanceService()
    return _performance_service
