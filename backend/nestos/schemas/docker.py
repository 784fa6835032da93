# backend/nestos/schemas/docker.py
"""Pydantic schemas for the Docker endpoints."""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class PortMapping(BaseModel):
    container: int = Field(..., ge=1, le=65535)
    host: int = Field(..., ge=1, le=65535)
    protocol: Literal["tcp", "udp"] = "tcp"


class VolumeMapping(BaseModel):
    host: str = Field(..., min_length=1)
    container: str = Field(..., min_length=1)
    mode: Optional[Literal["rw", "ro"]] = None


class DeviceMapping(BaseModel):
    host: str = Field(..., min_length=1)
    container: str = Field(..., min_length=1)
    permissions: str = "rwm"


class ContainerCreate(BaseModel):
    """Container specification mapped 1:1 onto Docker Engine create parameters."""
    image: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    ports: Optional[List[PortMapping]] = None
    volumes: Optional[List[VolumeMapping]] = None
    env: Optional[Dict[str, str]] = None
    restart: Optional[Literal["no", "always", "on-failure", "unless-stopped"]] = None

    # Advanced settings from the dashboard's create dialog
    privileged: bool = False
    network_mode: Optional[str] = None
    hostname: Optional[str] = None
    devices: Optional[List[DeviceMapping]] = None
    command: Optional[List[str]] = None
    memory: Optional[int] = Field(None, ge=4, description="Memory limit in MB")
    cpu_shares: Optional[int] = Field(None, ge=2)
    labels: Optional[Dict[str, str]] = None


class ImagePull(BaseModel):
    image: str = Field(..., min_length=1)


class ImagePullResponse(BaseModel):
    status: Literal["pulled"] = "pulled"
    image: str


class ContainerStats(BaseModel):
    """Formatted stats for one running container."""
    name: str
    cpu: str
    memory: str
    network: str
    disk: str


class StatsResponse(BaseModel):
    stats: List[ContainerStats]


class DockerSystemResponse(BaseModel):
    info: Dict[str, Any]
    version: Dict[str, Any]
    disk_usage: Dict[str, Any]
