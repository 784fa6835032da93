# backend/tests/test_docker_api.py
"""API tests for /api/docker endpoints."""
from unittest.mock import MagicMock

from docker.errors import APIError, NotFound

from nestos.main import app
from nestos.services.docker_service import DockerUnavailableError, get_docker_service


def engine_error(status_code: int, explanation: str) -> APIError:
    response = MagicMock()
    response.status_code = status_code
    response.reason = "Conflict"
    response.url = "http+docker://localhost/v1.43/containers/abc123"
    return APIError("engine error", response=response, explanation=explanation)


class TestContainers:

    def test_list(self, client, mock_docker_service):
        response = client.get("/api/docker/containers", params={"all": "true"})

        assert response.status_code == 200
        assert response.json() == [{"Id": "abc123", "Names": ["/web"], "State": "running"}]
        mock_docker_service.list_containers.assert_called_once_with(all=True)

    def test_list_running_only_by_default(self, client, mock_docker_service):
        client.get("/api/docker/containers")

        mock_docker_service.list_containers.assert_called_once_with(all=False)

    def test_get_not_found(self, client, mock_docker_service):
        mock_docker_service.get_container.side_effect = NotFound("No such container: missing")

        response = client.get("/api/docker/containers/missing")

        assert response.status_code == 404
        assert response.json() == {"detail": "No such container: missing"}

    def test_create(self, client, mock_docker_service):
        mock_docker_service.create_container.return_value = {"Id": "new123", "Name": "/web"}

        response = client.post("/api/docker/containers", json={
            "image": "nginx:latest",
            "name": "web",
            "ports": [{"container": 80, "host": 8080}],
            "env": {"TZ": "UTC"},
            "restart": "always",
        })

        assert response.status_code == 200
        assert response.json()["Id"] == "new123"
        spec = mock_docker_service.create_container.call_args.args[0]
        assert spec.image == "nginx:latest"
        assert spec.ports[0].host == 8080
        assert spec.restart == "always"

    def test_create_rejects_bad_restart_policy(self, client, mock_docker_service):
        response = client.post("/api/docker/containers", json={
            "image": "nginx:latest",
            "name": "web",
            "restart": "sometimes",
        })

        assert response.status_code == 422
        mock_docker_service.create_container.assert_not_called()

    def test_create_name_conflict(self, client, mock_docker_service):
        mock_docker_service.create_container.side_effect = engine_error(
            409, 'Conflict. The container name "/web" is already in use'
        )

        response = client.post("/api/docker/containers", json={"image": "nginx", "name": "web"})

        assert response.status_code == 409
        assert "already in use" in response.json()["detail"]

    def test_lifecycle(self, client, mock_docker_service):
        assert client.post("/api/docker/containers/abc123/start").json() == {"status": "started"}
        assert client.post("/api/docker/containers/abc123/stop").json() == {"status": "stopped"}
        assert client.delete("/api/docker/containers/abc123").json() == {"status": "removed"}

        mock_docker_service.start_container.assert_called_once_with("abc123")
        mock_docker_service.stop_container.assert_called_once_with("abc123")
        mock_docker_service.remove_container.assert_called_once_with("abc123")


class TestImages:

    def test_list(self, client):
        response = client.get("/api/docker/images")

        assert response.status_code == 200
        assert response.json()[0]["RepoTags"] == ["nginx:latest"]

    def test_pull(self, client, mock_docker_service):
        mock_docker_service.pull_image.return_value = {"status": "pulled", "image": "nginx:1.25"}

        response = client.post("/api/docker/images/pull", json={"image": "nginx:1.25"})

        assert response.status_code == 200
        assert response.json() == {"status": "pulled", "image": "nginx:1.25"}

    def test_pull_failure(self, client, mock_docker_service):
        mock_docker_service.pull_image.side_effect = RuntimeError("Failed to pull nope: not found")

        response = client.post("/api/docker/images/pull", json={"image": "nope"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to pull nope: not found"

    def test_remove_image_reference_with_slash(self, client, mock_docker_service):
        response = client.delete("/api/docker/images/library/nginx:latest")

        assert response.status_code == 200
        mock_docker_service.remove_image.assert_called_once_with("library/nginx:latest")

    def test_remove_image_in_use(self, client, mock_docker_service):
        mock_docker_service.remove_image.side_effect = engine_error(
            409, "conflict: unable to remove repository reference"
        )

        response = client.delete("/api/docker/images/nginx:latest")

        assert response.status_code == 409


class TestSystemAndStats:

    def test_system(self, client, mock_docker_service):
        mock_docker_service.get_system.return_value = {
            "info": {"Containers": 3},
            "version": {"Version": "24.0.7"},
            "disk_usage": {"LayersSize": 1024},
        }

        response = client.get("/api/docker/system")

        assert response.status_code == 200
        assert response.json()["version"]["Version"] == "24.0.7"

    def test_stats(self, client, mock_docker_service):
        mock_docker_service.get_all_stats.return_value = {"stats": [{
            "name": "web",
            "cpu": "80.00%",
            "memory": "512.00MB / 1.00GB (50.00%)",
            "network": "↓2.00KB / ↑2.00KB",
            "disk": "↓2.00MB / ↑2.00KB",
        }]}

        response = client.get("/api/docker/stats")

        assert response.status_code == 200
        assert response.json()["stats"][0]["cpu"] == "80.00%"

    def test_stats_failure(self, client, mock_docker_service):
        mock_docker_service.get_all_stats.side_effect = RuntimeError("socket closed")

        response = client.get("/api/docker/stats")

        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to fetch Docker stats"}


class TestDaemonUnavailable:

    def test_unreachable_daemon_returns_json_500(self, client):
        def unavailable():
            raise DockerUnavailableError("Cannot connect to Docker daemon")

        app.dependency_overrides[get_docker_service] = unavailable

        response = client.get("/api/docker/containers")

        assert response.status_code == 500
        assert response.json() == {"detail": "Cannot connect to Docker daemon"}
