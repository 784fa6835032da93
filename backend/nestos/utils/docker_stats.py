# backend/nestos/utils/docker_stats.py
"""
Derivation of human-readable container stats from raw Docker counters.

A single non-streaming stats call returns both the current sample
(`cpu_stats`) and the previous one (`precpu_stats`), so rates are computed
from one response without keeping any history.
"""
from typing import Any, Dict, Iterable, Tuple

BYTE_UNITS = ["B", "KB", "MB", "GB", "TB"]


def format_bytes(num_bytes: float) -> str:
    """Scale a byte count to the largest unit below 1024 (TB is the ceiling)."""
    size = float(num_bytes)
    unit_index = 0
    while size >= 1024 and unit_index < len(BYTE_UNITS) - 1:
        size /= 1024
        unit_index += 1
    return f"{size:.2f}{BYTE_UNITS[unit_index]}"


def calculate_cpu_percentage(stats: Dict[str, Any]) -> float:
    """
    CPU usage as (cpu_delta / system_delta) * online_cpus * 100.

    Returns 0.0 when the system delta is not positive (first sample,
    stopped container).
    """
    cpu_stats = stats.get("cpu_stats") or {}
    precpu_stats = stats.get("precpu_stats") or {}

    cpu_delta = (cpu_stats.get("cpu_usage") or {}).get("total_usage", 0) - \
        (precpu_stats.get("cpu_usage") or {}).get("total_usage", 0)
    system_delta = cpu_stats.get("system_cpu_usage", 0) - precpu_stats.get("system_cpu_usage", 0)

    online_cpus = cpu_stats.get("online_cpus")
    if not online_cpus:
        # Older engines only report the per-core array
        online_cpus = len((cpu_stats.get("cpu_usage") or {}).get("percpu_usage") or []) or 1

    if system_delta <= 0:
        return 0.0
    return (cpu_delta / system_delta) * online_cpus * 100


def memory_usage(stats: Dict[str, Any]) -> Tuple[int, int, float]:
    """Return (used, limit, percent) from the memory section."""
    memory_stats = stats.get("memory_stats") or {}
    used = memory_stats.get("usage", 0)
    limit = memory_stats.get("limit", 0)
    percent = (used / limit) * 100 if limit else 0.0
    return used, limit, percent


def network_totals(stats: Dict[str, Any]) -> Tuple[int, int]:
    """Sum rx/tx bytes over every interface in the sample."""
    networks = (stats.get("networks") or {}).values()
    rx = sum(net.get("rx_bytes", 0) for net in networks)
    tx = sum(net.get("tx_bytes", 0) for net in networks)
    return rx, tx


def block_io_totals(stats: Dict[str, Any]) -> Tuple[int, int]:
    """Sum read/write bytes over every block device entry in the sample."""
    entries: Iterable[Dict[str, Any]] = \
        (stats.get("blkio_stats") or {}).get("io_service_bytes_recursive") or []
    read = 0
    write = 0
    for entry in entries:
        # cgroup v1 reports "Read"/"Write", v2 reports "read"/"write"
        op = str(entry.get("op", "")).lower()
        if op == "read":
            read += entry.get("value", 0)
        elif op == "write":
            write += entry.get("value", 0)
    return read, write


def format_cpu(stats: Dict[str, Any]) -> str:
    return f"{calculate_cpu_percentage(stats):.2f}%"


def format_memory_usage(stats: Dict[str, Any]) -> str:
    used, limit, percent = memory_usage(stats)
    return f"{format_bytes(used)} / {format_bytes(limit)} ({percent:.2f}%)"


def format_network_io(stats: Dict[str, Any]) -> str:
    rx, tx = network_totals(stats)
    return f"↓{format_bytes(rx)} / ↑{format_bytes(tx)}"


def format_block_io(stats: Dict[str, Any]) -> str:
    read, write = block_io_totals(stats)
    return f"↓{format_bytes(read)} / ↑{format_bytes(write)}"


def container_name(names: Iterable[str], fallback: str = "") -> str:
    """First Engine name without its leading slash."""
    for name in names or []:
        return name.lstrip("/")
    return fallback
