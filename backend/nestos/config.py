# backend/nestos/config.py
import os
import subprocess
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional


def _get_version() -> str:
    """Get version from VERSION file, env var, git tag, or fallback to 'dev'."""
    # Skip the "dev" placeholder some images bake in
    if (version := os.environ.get("APP_VERSION")) and version != "dev":
        return version

    version_paths = [
        "/etc/nestos-version",  # Installed image
        os.path.join(os.path.dirname(os.path.dirname(__file__)), "VERSION"),  # backend/VERSION
    ]
    for version_file in version_paths:
        try:
            with open(version_file) as f:
                if version := f.read().strip():
                    return version
        except (FileNotFoundError, IOError):
            pass

    try:
        result = subprocess.run(
            ["git", "describe", "--tags", "--abbrev=0"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0 and result.stdout.strip():
            # v0.1.1 -> 0.1.1
            return result.stdout.strip().lstrip("v")
    except (subprocess.SubprocessError, FileNotFoundError):
        pass

    return "dev"


class Settings(BaseSettings):
    # Application version (from VERSION file, APP_VERSION env, git tag, or "dev")
    app_version: str = _get_version()
    git_commit: str = os.environ.get("GIT_COMMIT", "dev")
    build_date: str = os.environ.get("BUILD_DATE", "")

    # App
    app_name: str = "NestOS"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    cors_origins: List[str] = ["https://localhost:8443", "http://localhost:5173"]

    # Docker Engine URL (e.g. "unix:///var/run/docker.sock"). None = DOCKER_HOST / default socket
    docker_host: Optional[str] = None

    # === System logs ===
    journal_lines: int = 1000
    fallback_log_file: str = "/var/log/system.log"

    # === Performance test ===
    perf_tmp_dir: str = "/tmp"
    perf_block_count: int = 1000  # dd blocks of 1M
    fio_runtime_seconds: int = 10

    # === ISO builder ===
    iso_build_dir: str = os.path.join(os.getcwd(), "build")
    iso_templates_dir: str = os.path.join(os.path.dirname(__file__), "iso", "templates")
    iso_service_source_dir: str = os.getcwd()  # NestOS checkout installed into the image
    iso_control_panel_dist: Optional[str] = None
    iso_debian_suite: str = "bookworm"
    iso_debian_mirror: str = "http://deb.debian.org/debian"
    iso_hostname: str = "nestos"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
