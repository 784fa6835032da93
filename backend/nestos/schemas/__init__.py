from nestos.schemas.system import SystemInfo, PerformanceResult, StatusResponse, LogsResponse, UpdateResponse
from nestos.schemas.docker import ContainerCreate, ImagePull, ContainerStats, StatsResponse

__all__ = [
    "SystemInfo", "PerformanceResult", "StatusResponse", "LogsResponse", "UpdateResponse",
    "ContainerCreate", "ImagePull", "ContainerStats", "StatsResponse",
]
