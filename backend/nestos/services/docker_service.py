# backend/nestos/services/docker_service.py
"""
Docker Engine service for the dashboard's container and image management.

Wraps the docker SDK's low-level API so responses keep the Engine's own
JSON shape (what `docker ps`/`docker inspect` would show). The only logic
here is reshaping: building create parameters from a ContainerCreate and
deriving formatted stats from raw counters.
"""
import docker
from docker.errors import ImageNotFound
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Dict, List, Any, Tuple
import logging

from nestos.config import get_settings
from nestos.schemas.docker import ContainerCreate, PortMapping
from nestos.utils import docker_stats

logger = logging.getLogger(__name__)

STATS_MAX_WORKERS = 8


class DockerUnavailableError(RuntimeError):
    """The Docker daemon could not be reached."""


def build_port_config(ports: Optional[List[PortMapping]]) -> Tuple[List[Tuple[int, str]], Dict[str, List[Dict[str, str]]]]:
    """
    Derive exposed ports and host port bindings.

    [{container: 80, host: 8080}] -> ([(80, "tcp")], {"80/tcp": [{"HostPort": "8080"}]})
    """
    exposed: List[Tuple[int, str]] = []
    bindings: Dict[str, List[Dict[str, str]]] = {}
    for port in ports or []:
        key = f"{port.container}/{port.protocol}"
        if (port.container, port.protocol) not in exposed:
            exposed.append((port.container, port.protocol))
        bindings.setdefault(key, []).append({"HostPort": str(port.host)})
    return exposed, bindings


def build_binds(spec: ContainerCreate) -> Optional[List[str]]:
    if not spec.volumes:
        return None
    return [
        f"{v.host}:{v.container}:{v.mode}" if v.mode else f"{v.host}:{v.container}"
        for v in spec.volumes
    ]


def build_environment(env: Optional[Dict[str, str]]) -> Optional[List[str]]:
    if env is None:
        return None
    return [f"{key}={value}" for key, value in env.items()]


class DockerService:
    """Service for managing Docker containers and images on the local engine."""

    def __init__(self, base_url: Optional[str] = None):
        """
        Initialize Docker service.

        Args:
            base_url: Engine URL (e.g. unix:///var/run/docker.sock). When None,
                      DOCKER_HOST or the default socket is used.
        """
        if base_url:
            self.client = docker.DockerClient(base_url=base_url)
        else:
            self.client = docker.from_env()
        self._verify_connection()

    def _verify_connection(self) -> None:
        """Verify connection to Docker daemon."""
        try:
            self.client.ping()
            logger.info("Connected to Docker daemon")
        except Exception as e:
            logger.error(f"Failed to connect to Docker daemon: {e}")
            raise DockerUnavailableError("Cannot connect to Docker daemon") from e

    # Container Operations

    def list_containers(self, all: bool = False) -> List[Dict[str, Any]]:
        """List containers in the Engine's own list format."""
        return self.client.api.containers(all=all)

    def get_container(self, container_id: str) -> Dict[str, Any]:
        """Inspect a container and attach one raw stats sample under "stats"."""
        info = self.client.api.inspect_container(container_id)
        stats = self.client.api.stats(container_id, stream=False)
        return {**info, "stats": stats}

    def create_container(self, spec: ContainerCreate) -> Dict[str, Any]:
        """
        Create and start a container from a ContainerCreate spec.

        Returns:
            Inspect output of the started container
        """
        self._ensure_image(spec.image)

        exposed_ports, port_bindings = build_port_config(spec.ports)

        host_config_args: Dict[str, Any] = {
            "port_bindings": port_bindings,
            "binds": build_binds(spec),
            "privileged": spec.privileged,
        }
        if spec.restart:
            host_config_args["restart_policy"] = {"Name": spec.restart}
        if spec.network_mode:
            host_config_args["network_mode"] = spec.network_mode
        if spec.devices:
            host_config_args["devices"] = [
                f"{d.host}:{d.container}:{d.permissions}" for d in spec.devices
            ]
        if spec.memory:
            host_config_args["mem_limit"] = f"{spec.memory}m"
        if spec.cpu_shares:
            host_config_args["cpu_shares"] = spec.cpu_shares

        container = self.client.api.create_container(
            image=spec.image,
            name=spec.name,
            hostname=spec.hostname,
            command=spec.command,
            ports=exposed_ports or None,
            environment=build_environment(spec.env),
            labels=spec.labels or {},
            detach=True,
            host_config=self.client.api.create_host_config(**host_config_args),
        )
        container_id = container["Id"]
        logger.info(f"Created container: {spec.name} ({container_id[:12]}) from {spec.image}")

        self.client.api.start(container_id)
        logger.info(f"Started container: {container_id[:12]}")
        return self.client.api.inspect_container(container_id)

    def start_container(self, container_id: str) -> Dict[str, str]:
        """Start a container."""
        self.client.api.start(container_id)
        logger.info(f"Started container: {container_id[:12]}")
        return {"status": "started"}

    def stop_container(self, container_id: str) -> Dict[str, str]:
        """Stop a container."""
        self.client.api.stop(container_id)
        logger.info(f"Stopped container: {container_id[:12]}")
        return {"status": "stopped"}

    def remove_container(self, container_id: str) -> Dict[str, str]:
        """Remove a stopped container."""
        self.client.api.remove_container(container_id, force=False)
        logger.info(f"Removed container: {container_id[:12]}")
        return {"status": "removed"}

    # Image Operations

    def list_images(self) -> List[Dict[str, Any]]:
        """List images in the Engine's own list format."""
        return self.client.api.images()

    def pull_image(self, image: str) -> Dict[str, str]:
        """
        Pull an image and wait for the pull to finish.

        Progress events are logged at debug level only; an error event in the
        stream aborts the pull.
        """
        repository, tag = _split_image_tag(image)
        logger.info(f"Pulling image: {image}")
        events = self.client.api.pull(repository, tag=tag, stream=True, decode=True)
        try:
            for event in events:
                if "error" in event:
                    logger.error(f"Failed to pull {image}: {event['error']}")
                    raise RuntimeError(f"Failed to pull {image}: {event['error']}")
                logger.debug(f"Pull {image}: {event.get('status', '')} {event.get('progress', '')}".rstrip())
        finally:
            # Releases the streaming HTTP response when the pull stops early
            close = getattr(events, "close", None)
            if close is not None:
                close()
        logger.info(f"Successfully pulled: {image}")
        return {"status": "pulled", "image": image}

    def remove_image(self, image_id: str) -> Dict[str, str]:
        """Remove an image (not forced)."""
        self.client.api.remove_image(image_id, force=False)
        logger.info(f"Removed image: {image_id}")
        return {"status": "removed"}

    # System Operations

    def get_system(self) -> Dict[str, Any]:
        """Engine info, version and disk usage in one response."""
        with ThreadPoolExecutor(max_workers=3) as executor:
            info = executor.submit(self.client.api.info)
            version = executor.submit(self.client.api.version)
            df = executor.submit(self.client.api.df)
            return {
                "info": info.result(),
                "version": version.result(),
                "disk_usage": df.result(),
            }

    def get_system_info(self) -> Dict[str, Any]:
        """Container and image counts for the host info summary."""
        info = self.client.info()
        return {
            "containers": {
                "total": info.get("Containers", 0),
                "running": info.get("ContainersRunning", 0),
                "paused": info.get("ContainersPaused", 0),
                "stopped": info.get("ContainersStopped", 0),
            },
            "images": info.get("Images", 0),
        }

    # Stats

    def get_container_stats(self, container: Dict[str, Any]) -> Dict[str, str]:
        """Sample one container and format its stats."""
        stats = self.client.api.stats(container["Id"], stream=False)
        return {
            "name": docker_stats.container_name(container.get("Names", []), container["Id"][:12]),
            "cpu": docker_stats.format_cpu(stats),
            "memory": docker_stats.format_memory_usage(stats),
            "network": docker_stats.format_network_io(stats),
            "disk": docker_stats.format_block_io(stats),
        }

    def get_all_stats(self) -> Dict[str, List[Dict[str, str]]]:
        """Formatted stats for every running container, sampled in parallel."""
        containers = self.client.api.containers()
        if not containers:
            return {"stats": []}

        with ThreadPoolExecutor(max_workers=min(STATS_MAX_WORKERS, len(containers))) as executor:
            stats = list(executor.map(self.get_container_stats, containers))
        return {"stats": stats}

    # Utility Methods

    def _ensure_image(self, image: str) -> None:
        """Pull image if not present locally."""
        try:
            self.client.images.get(image)
            logger.debug(f"Image already present: {image}")
        except ImageNotFound:
            self.pull_image(image)


def _split_image_tag(image: str) -> Tuple[str, Optional[str]]:
    """Split "repo:tag" without mistaking a registry port for a tag."""
    if "@" in image:
        return image, None
    last_segment = image.rsplit("/", 1)[-1]
    if ":" in last_segment:
        repository, tag = image.rsplit(":", 1)
        return repository, tag
    return image, "latest"


# Singleton instance
_docker_service: Optional[DockerService] = None


def get_docker_service() -> DockerService:
    """Get the Docker service singleton."""
    global _docker_service
    if _docker_service is None:
        _docker_service = DockerService(get_settings().docker_host)
    return _docker_service
