# backend/nestos/api/system.py
"""
System API endpoints.

Host information, the on-demand performance benchmark, power control,
package updates and system logs. Every failure surfaces as a 500 carrying
the underlying command's message.
"""
import logging

from fastapi import APIRouter, HTTPException, Query, status

from nestos.api.deps import HostInfo, Performance, SystemControl
from nestos.schemas.system import (
    LogsResponse,
    PerformanceResult,
    StatusResponse,
    SystemInfo,
    UpdateResponse,
)
from nestos.services.performance_service import PerformanceTestError
from nestos.services.system_control_service import SystemCommandError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/info", response_model=SystemInfo, response_model_exclude_unset=True)
def system_info(
    host_info: HostInfo,
    detailed: bool = Query(False, description="Include hardware, load, services and Docker summary"),
):
    """
    Return host facts.

    Basic mode: hostname, OS, CPU and memory. Detailed mode adds `system`,
    `load`, `services` and `docker`, queried in parallel.
    """
    try:
        return host_info.get_info(detailed=detailed)
    except Exception as e:
        logger.error(f"Failed to get system info: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get system info: {str(e)}",
        )


@router.post("/performance", response_model=PerformanceResult)
def performance_test(performance: Performance):
    """
    Run the CPU, memory and disk benchmark.

    Blocks for the whole run (fio alone runs for 10 seconds).
    """
    try:
        return performance.run()
    except PerformanceTestError as e:
        logger.error(f"Performance test failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Performance test failed: {str(e)}",
        )


@router.post("/reboot", response_model=StatusResponse)
def reboot(control: SystemControl):
    try:
        return control.reboot()
    except SystemCommandError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to initiate reboot: {str(e)}",
        )


@router.post("/shutdown", response_model=StatusResponse)
def shutdown(control: SystemControl):
    try:
        return control.shutdown()
    except SystemCommandError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to initiate shutdown: {str(e)}",
        )


@router.get("/logs", response_model=LogsResponse)
def system_logs(control: SystemControl):
    """Journal output, else the fallback log file, else a "no logs" message."""
    return control.get_logs()


@router.post("/update", response_model=UpdateResponse)
def system_update(control: SystemControl):
    """Run `apt-get update && apt-get upgrade -y` and return its output."""
    try:
        return control.update()
    except SystemCommandError as e:
        logger.error(f"Update failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Update failed: {str(e)}",
        )
