# backend/nestos/schemas/system.py
"""Pydantic schemas for host information, performance tests and system control."""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


# Host Info Models
class CpuInfo(BaseModel):
    manufacturer: str = ""
    brand: str = ""
    cores: int = 0
    physical_cores: int = 0


class MemoryInfo(BaseModel):
    """Memory snapshot in bytes."""
    total: int
    free: int
    used: int
    active: int
    available: int


class HardwareInfo(BaseModel):
    manufacturer: str = ""
    model: str = ""
    serial: str = ""


class LoadInfo(BaseModel):
    avg_load: float
    current_load: float
    cpu_load: List[float] = Field(default_factory=list)


class ServiceInfo(BaseModel):
    name: str
    running: bool
    startmode: str = ""


class DockerContainerCounts(BaseModel):
    total: int = 0
    running: int = 0
    paused: int = 0
    stopped: int = 0


class DockerSummary(BaseModel):
    containers: DockerContainerCounts
    images: int = 0


class SystemInfo(BaseModel):
    """
    Host facts. The detailed-only fields are left unset in basic mode and
    dropped from the response (the route uses response_model_exclude_unset).
    """
    hostname: str
    platform: str
    distro: str
    release: str
    arch: str
    uptime: int
    cpu: CpuInfo
    memory: MemoryInfo

    # Detailed only
    system: Optional[HardwareInfo] = None
    load: Optional[LoadInfo] = None
    services: Optional[List[ServiceInfo]] = None
    docker: Optional[DockerSummary] = None


# Performance Test Models
class CpuPerformance(BaseModel):
    single_core: float = Field(..., description="Milliseconds spent in the in-process arithmetic loop")
    multi_core: float = Field(..., description="Current overall CPU load percent")
    load_average: List[float]


class MemoryPerformance(BaseModel):
    read_speed: float = Field(..., description="MB/s")
    write_speed: float = Field(..., description="MB/s")
    latency: float = Field(..., description="Milliseconds to allocate and zero 100MB")


class DiskPerformance(BaseModel):
    read_speed: float = Field(..., description="MB/s")
    write_speed: float = Field(..., description="MB/s")
    iops: float


class PerformanceResult(BaseModel):
    cpu: CpuPerformance
    memory: MemoryPerformance
    disk: DiskPerformance


# System Control Models
class StatusResponse(BaseModel):
    status: str


class LogsResponse(BaseModel):
    logs: str


class UpdateResponse(BaseModel):
    status: Literal["updated"] = "updated"
    output: str
    errors: str
