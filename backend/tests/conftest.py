# backend/tests/conftest.py
import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from nestos.main import app
from nestos.services.docker_service import get_docker_service
from nestos.services.host_info_service import get_host_info_service
from nestos.services.performance_service import get_performance_service
from nestos.services.system_control_service import get_system_control_service
from nestos.utils.shell import CommandError, CommandResult


class FakeExecutor:
    """
    Stand-in for CommandExecutor.

    Records every call and answers from scripted results keyed by command
    name. A list of results is consumed in order; the last one repeats.
    Hooks run before the result is returned, to fake side effects on disk.
    """

    def __init__(self):
        self.calls = []
        self._results = {}
        self._hooks = {}

    def respond(self, command, stdout="", stderr="", exit_code=0):
        self._results.setdefault(command, []).append(CommandResult(stdout, stderr, exit_code))
        return self

    def fail(self, command, stderr="failed", exit_code=1):
        return self.respond(command, stderr=stderr, exit_code=exit_code)

    def on(self, command, hook):
        self._hooks[command] = hook
        return self

    @property
    def commands(self):
        return [command for command, _ in self.calls]

    def execute(self, command, args=None, check=True, timeout=None):
        args = list(args or [])
        self.calls.append((command, args))
        if command in self._hooks:
            self._hooks[command](args)

        queue = self._results.get(command)
        if not queue:
            result = CommandResult("", "", 0)
        elif len(queue) > 1:
            result = queue.pop(0)
        else:
            result = queue[0]

        if check and not result.ok:
            raise CommandError(command, args, result)
        return result


@pytest.fixture
def fake_executor():
    return FakeExecutor()


@pytest.fixture
def mock_docker_service():
    """Mock Docker service for API tests."""
    mock_service = MagicMock()
    mock_service.list_containers.return_value = [{"Id": "abc123", "Names": ["/web"], "State": "running"}]
    mock_service.start_container.return_value = {"status": "started"}
    mock_service.stop_container.return_value = {"status": "stopped"}
    mock_service.remove_container.return_value = {"status": "removed"}
    mock_service.remove_image.return_value = {"status": "removed"}
    mock_service.list_images.return_value = [{"Id": "sha256:img1", "RepoTags": ["nginx:latest"]}]
    mock_service.get_system_info.return_value = {
        "containers": {"total": 3, "running": 2, "paused": 0, "stopped": 1},
        "images": 5,
    }
    return mock_service


@pytest.fixture
def mock_host_info_service():
    return MagicMock()


@pytest.fixture
def mock_performance_service():
    return MagicMock()


@pytest.fixture
def mock_system_control_service():
    return MagicMock()


@pytest.fixture
def client(mock_docker_service, mock_host_info_service, mock_performance_service, mock_system_control_service):
    app.dependency_overrides[get_docker_service] = lambda: mock_docker_service
    app.dependency_overrides[get_host_info_service] = lambda: mock_host_info_service
    app.dependency_overrides[get_performance_service] = lambda: mock_performance_service
    app.dependency_overrides[get_system_control_service] = lambda: mock_system_control_service

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
