# backend/tests/unit/conftest.py
"""Conftest for unit tests - minimal fixtures without app imports."""
import pytest
from unittest.mock import MagicMock


# Unit tests should mock all dependencies


@pytest.fixture
def mock_docker_client():
    """Low-level Docker client mock that answers ping."""
    mock_client = MagicMock()
    mock_client.ping.return_value = True
    return mock_client


@pytest.fixture
def stats_sample():
    """One non-streaming stats response as the Engine returns it."""
    return {
        "cpu_stats": {
            "cpu_usage": {"total_usage": 1200, "percpu_usage": [600, 600]},
            "system_cpu_usage": 11000,
            "online_cpus": 4,
        },
        "precpu_stats": {
            "cpu_usage": {"total_usage": 1000},
            "system_cpu_usage": 10000,
        },
        "memory_stats": {"usage": 512 * 1024 * 1024, "limit": 1024 * 1024 * 1024},
        "networks": {
            "eth0": {"rx_bytes": 1024, "tx_bytes": 2048},
            "eth1": {"rx_bytes": 1024, "tx_bytes": 0},
        },
        "blkio_stats": {
            "io_service_bytes_recursive": [
                {"major": 8, "minor": 0, "op": "Read", "value": 1024 * 1024},
                {"major": 8, "minor": 0, "op": "Write", "value": 2048},
                {"major": 8, "minor": 16, "op": "read", "value": 1024 * 1024},
                {"major": 8, "minor": 0, "op": "Total", "value": 999999},
            ]
        },
    }
