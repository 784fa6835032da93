# backend/nestos/api/deps.py
from typing import Annotated

from fastapi import Depends

from nestos.services.docker_service import DockerService, get_docker_service
from nestos.services.host_info_service import HostInfoService, get_host_info_service
from nestos.services.performance_service import PerformanceService, get_performance_service
from nestos.services.system_control_service import SystemControlService, get_system_control_service

# Type aliases for common dependencies
Docker = Annotated[DockerService, Depends(get_docker_service)]
HostInfo = Annotated[HostInfoService, Depends(get_host_info_service)]
Performance = Annotated[PerformanceService, Depends(get_performance_service)]
SystemControl = Annotated[SystemControlService, Depends(get_system_control_service)]
