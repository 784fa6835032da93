# backend/tests/unit/test_host_info_service.py
"""Unit tests for host information collection."""
import pytest
from unittest.mock import patch

from nestos.services.host_info_service import HostInfoService, parse_systemctl_units
from nestos.utils.shell import CommandError


SYSTEMCTL_OUTPUT = """\
docker.service        loaded    active   running Docker Application Container Engine
ssh.service           loaded    active   running OpenBSD Secure Shell server
smartd.service        loaded    inactive dead    Self Monitoring and Reporting Technology
nfs-server.service    not-found inactive dead    nfs-server.service
systemd-tmpfiles.timer loaded   active   waiting Daily Cleanup of Temporary Directories
"""

DOCKER_SUMMARY = {
    "containers": {"total": 4, "running": 3, "paused": 0, "stopped": 1},
    "images": 7,
}


@pytest.fixture
def service(fake_executor):
    fake_executor.respond("systemctl", stdout=SYSTEMCTL_OUTPUT)
    return HostInfoService(executor=fake_executor, docker_info=lambda: DOCKER_SUMMARY)


class TestParseSystemctl:

    def test_services_only(self):
        services = parse_systemctl_units(SYSTEMCTL_OUTPUT)

        assert [s.name for s in services] == ["docker", "ssh", "smartd", "nfs-server"]

    def test_running_and_startmode(self):
        services = {s.name: s for s in parse_systemctl_units(SYSTEMCTL_OUTPUT)}

        assert services["docker"].running is True
        assert services["smartd"].running is False
        assert services["ssh"].startmode == "loaded"
        assert services["nfs-server"].startmode == "not-found"

    def test_empty_output(self):
        assert parse_systemctl_units("") == []


class TestHostInfoService:

    def test_basic_info(self, service, fake_executor):
        info = service.get_info(detailed=False)

        assert info.hostname
        assert info.cpu.cores >= 0
        assert info.memory.total > 0
        assert info.uptime >= 0
        assert info.system is None
        assert info.load is None
        assert info.services is None
        assert info.docker is None
        assert not {"system", "load", "services", "docker"} & info.model_fields_set
        # Basic mode never shells out
        assert fake_executor.calls == []

    @patch("nestos.services.host_info_service.psutil.cpu_percent", return_value=[10.0, 30.0])
    def test_detailed_info(self, mock_cpu_percent, service):
        info = service.get_info(detailed=True)

        assert {"system", "load", "services", "docker"} <= info.model_fields_set
        assert info.load.cpu_load == [10.0, 30.0]
        assert info.load.current_load == pytest.approx(20.0)
        assert [s.name for s in info.services] == ["docker", "ssh", "smartd", "nfs-server"]
        assert info.docker.containers.running == 3
        assert info.docker.images == 7

    @patch("nestos.services.host_info_service.psutil.cpu_percent", return_value=[10.0])
    def test_detailed_failure_propagates(self, mock_cpu_percent, fake_executor):
        fake_executor.fail("systemctl", stderr="System has not been booted with systemd")
        service = HostInfoService(executor=fake_executor, docker_info=lambda: DOCKER_SUMMARY)

        with pytest.raises(CommandError, match="systemd"):
            service.get_info(detailed=True)

    @patch("nestos.services.host_info_service.psutil.cpu_percent", return_value=[10.0])
    def test_detailed_docker_failure_propagates(self, mock_cpu_percent, fake_executor):
        def docker_down():
            raise RuntimeError("Cannot connect to Docker daemon")

        fake_executor.respond("systemctl", stdout=SYSTEMCTL_OUTPUT)
        service = HostInfoService(executor=fake_executor, docker_info=docker_down)

        with pytest.raises(RuntimeError, match="Docker daemon"):
            service.get_info(detailed=True)
