# backend/nestos/api/docker.py
"""
Docker API endpoints.

Thin pass-through to the Docker Engine. Engine errors (missing container,
conflicting name, image in use) propagate and are answered with the
Engine's own status code by the app-level handler in nestos.main.
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, Query, status

from nestos.api.deps import Docker
from nestos.schemas.docker import (
    ContainerCreate,
    DockerSystemResponse,
    ImagePull,
    ImagePullResponse,
    StatsResponse,
)
from nestos.schemas.system import StatusResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/docker", tags=["docker"])


# ============================================================================
# Containers
# ============================================================================

@router.get("/containers", response_model=List[Dict[str, Any]])
def list_containers(
    docker: Docker,
    all: bool = Query(False, description="Include stopped containers"),
):
    return docker.list_containers(all=all)


@router.get("/containers/{container_id}", response_model=Dict[str, Any])
def get_container(container_id: str, docker: Docker):
    """Inspect output plus a single raw stats sample under `stats`."""
    return docker.get_container(container_id)


@router.post("/containers", response_model=Dict[str, Any])
def create_container(container_data: ContainerCreate, docker: Docker):
    """Create and start a container; returns its inspect output."""
    return docker.create_container(container_data)


@router.post("/containers/{container_id}/start", response_model=StatusResponse)
def start_container(container_id: str, docker: Docker):
    return docker.start_container(container_id)


@router.post("/containers/{container_id}/stop", response_model=StatusResponse)
def stop_container(container_id: str, docker: Docker):
    return docker.stop_container(container_id)


@router.delete("/containers/{container_id}", response_model=StatusResponse)
def remove_container(container_id: str, docker: Docker):
    return docker.remove_container(container_id)


# ============================================================================
# Images
# ============================================================================

@router.get("/images", response_model=List[Dict[str, Any]])
def list_images(docker: Docker):
    return docker.list_images()


@router.post("/images/pull", response_model=ImagePullResponse)
def pull_image(pull_data: ImagePull, docker: Docker):
    """Pull an image; responds once the pull has fully completed."""
    try:
        return docker.pull_image(pull_data.image)
    except RuntimeError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )


@router.delete("/images/{image_id:path}", response_model=StatusResponse)
def remove_image(image_id: str, docker: Docker):
    return docker.remove_image(image_id)


# ============================================================================
# System
# ============================================================================

@router.get("/system", response_model=DockerSystemResponse)
def docker_system(docker: Docker):
    """Engine info, version and disk usage."""
    return docker.get_system()


@router.get("/stats", response_model=StatsResponse)
def docker_stats(docker: Docker):
    """Formatted CPU, memory, network and block I/O for running containers."""
    try:
        return docker.get_all_stats()
    except Exception as e:
        logger.error(f"Error fetching Docker stats: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch Docker stats",
        )
