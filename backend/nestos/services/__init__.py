# nestos/services/__init__.py
from .docker_service import DockerService
from .host_info_service import HostInfoService
from .performance_service import PerformanceService
from .system_control_service import SystemControlService

__all__ = ['DockerService', 'HostInfoService', 'PerformanceService', 'SystemControlService']
