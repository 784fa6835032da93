# backend/nestos/services/host_info_service.py
"""
Host facts for the dashboard's system overview.

Basic mode only touches cheap sources (psutil, platform, /proc). Detailed
mode fans four heavier queries out to a thread pool and joins them; if any
of them fails the whole call fails.
"""
import logging
import os
import platform
import socket
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, List, Optional

import psutil

from nestos.schemas.system import (
    CpuInfo,
    DockerSummary,
    HardwareInfo,
    LoadInfo,
    MemoryInfo,
    ServiceInfo,
    SystemInfo,
)
from nestos.utils.shell import CommandExecutor, get_command_executor

logger = logging.getLogger(__name__)

CPUINFO_PATH = Path("/proc/cpuinfo")
DMI_PATH = Path("/sys/class/dmi/id")
OS_RELEASE_PATH = Path("/etc/os-release")


def _read_text(path: Path) -> str:
    try:
        return path.read_text().strip()
    except OSError:
        return ""


def _parse_key_values(text: str, separator: str) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for line in text.splitlines():
        if separator not in line:
            continue
        key, _, value = line.partition(separator)
        # First occurrence wins (/proc/cpuinfo repeats per core)
        values.setdefault(key.strip(), value.strip().strip('"'))
    return values


def parse_systemctl_units(output: str) -> List[ServiceInfo]:
    """
    Parse `systemctl list-units --type=service --all --no-legend --plain`.

    Columns: UNIT LOAD ACTIVE SUB DESCRIPTION...
    """
    services = []
    for line in output.splitlines():
        parts = line.split(None, 4)
        if len(parts) < 4 or not parts[0].endswith(".service"):
            continue
        unit, load, active, sub = parts[:4]
        services.append(ServiceInfo(
            name=unit[: -len(".service")],
            running=sub == "running",
            startmode=load,
        ))
    return services


class HostInfoService:
    """Collects host facts. Nothing is cached; every call re-queries the host."""

    def __init__(
        self,
        executor: Optional[CommandExecutor] = None,
        docker_info: Optional[Callable[[], Dict]] = None,
    ):
        """
        Args:
            executor: Command executor used for service enumeration
            docker_info: Callable returning the Docker container/image summary.
                         Defaults to the Docker service singleton.
        """
        self.executor = executor or get_command_executor()
        self._docker_info = docker_info

    def get_info(self, detailed: bool = False) -> SystemInfo:
        info = self.get_basic_info()
        if not detailed:
            return info

        with ThreadPoolExecutor(max_workers=4) as pool:
            hardware = pool.submit(self.get_hardware)
            load = pool.submit(self.get_load)
            services = pool.submit(self.list_services)
            docker = pool.submit(self.get_docker_summary)

            info.system = hardware.result()
            info.load = load.result()
            info.services = services.result()
            info.docker = docker.result()
        return info

    def get_basic_info(self) -> SystemInfo:
        os_release = _parse_key_values(_read_text(OS_RELEASE_PATH), "=")
        memory = psutil.virtual_memory()

        return SystemInfo(
            hostname=socket.gethostname(),
            platform=platform.system().lower(),
            distro=os_release.get("PRETTY_NAME") or os_release.get("NAME") or platform.system(),
            release=os_release.get("VERSION_ID") or platform.release(),
            arch=platform.machine(),
            uptime=int(time.time() - psutil.boot_time()),
            cpu=self.get_cpu(),
            memory=MemoryInfo(
                total=memory.total,
                free=memory.free,
                used=memory.used,
                active=getattr(memory, "active", memory.used),
                available=memory.available,
            ),
        )

    def get_cpu(self) -> CpuInfo:
        cpuinfo = _parse_key_values(_read_text(CPUINFO_PATH), ":")
        return CpuInfo(
            manufacturer=cpuinfo.get("vendor_id") or cpuinfo.get("CPU implementer", ""),
            brand=cpuinfo.get("model name") or platform.processor(),
            cores=psutil.cpu_count(logical=True) or 0,
            physical_cores=psutil.cpu_count(logical=False) or 0,
        )

    def get_hardware(self) -> HardwareInfo:
        # product_serial is root-only on most systems; empty otherwise
        return HardwareInfo(
            manufacturer=_read_text(DMI_PATH / "sys_vendor"),
            model=_read_text(DMI_PATH / "product_name"),
            serial=_read_text(DMI_PATH / "product_serial"),
        )

    def get_load(self) -> LoadInfo:
        per_cpu = psutil.cpu_percent(interval=0.5, percpu=True)
        current = sum(per_cpu) / len(per_cpu) if per_cpu else 0.0
        try:
            avg_load = os.getloadavg()[0]
        except (OSError, AttributeError):
            avg_load = current
        return LoadInfo(avg_load=avg_load, current_load=current, cpu_load=per_cpu)

    def list_services(self) -> List[ServiceInfo]:
        result = self.executor.execute(
            "systemctl",
            ["list-units", "--type=service", "--all", "--no-legend", "--plain", "--no-pager"],
        )
        return parse_systemctl_units(result.stdout)

    def get_docker_summary(self) -> DockerSummary:
        if self._docker_info is None:
            from nestos.services.docker_service import get_docker_service
            self._docker_info = get_docker_service().get_system_info
        return DockerSummary(**self._docker_info())


# Singleton instance
_host_info_service: Optional[HostInfoService] = None


def get_host_info_service() -> HostInfoService:
    """Get the host info service singleton."""
    global _host_info_service
    if _host_info_service is None:
        _host_info_service = HostInfoService()
    return _host_info_service
