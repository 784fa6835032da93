# backend/nestos/iso/builder.py
"""
NestOS live ISO builder.

Assembles a Debian live image in six strictly sequential steps:

1. Build environment setup (wipes and recreates the build tree)
2. Base system bootstrap (debootstrap)
3. System configuration (hostname, network, apt sources)
4. Package installation (apt-get inside the chroot)
5. NestOS component installation (service, control panel, systemd units)
6. ISO assembly (initramfs, squashfs, grub-mkrescue)

The first failing step aborts the build. Nothing written by earlier steps
is cleaned up; rerunning starts over from step 1.

Run from a NestOS checkout with: nestos-build-iso [--build-dir DIR] [--source-dir DIR]
(requires root)
"""
import argparse
import logging
import shutil
import sys
from pathlib import Path
from typing import Callable, List, Optional, Set, Tuple

from nestos.config import Settings, get_settings
from nestos.utils.shell import CommandExecutor, get_command_executor

logger = logging.getLogger(__name__)

ISO_NAME = "nestos.iso"

PACKAGES = [
    "linux-image-amd64",
    "live-boot",
    "systemd-sysv",
    "grub-pc",
    "network-manager",
    "openssh-server",
    "curl",
    "docker.io",
    "mdadm",
    "smartmontools",
    "samba",
    "nfs-kernel-server",
    "fio",
    "python3",
    "python3-venv",
    "python3-pip",
]

SERVICE_UNITS = ["nestos-system.service", "nestos-control-panel.service"]

GRUB_CONFIG = """
set timeout=5
set default=0

menuentry "NestOS" {
  linux /boot/vmlinuz boot=live quiet
  initrd /boot/initrd.img
}
"""

# Never copy these into the image when installing the service source tree
SOURCE_IGNORE = shutil.ignore_patterns(
    "build", ".git", "__pycache__", "*.pyc", ".venv", "venv", "node_modules", ".pytest_cache", "tests"
)


class IsoBuildError(RuntimeError):
    """A pipeline step failed; later steps were not run."""

    def __init__(self, step: str, cause: Exception):
        self.step = step
        super().__init__(f"{step} failed: {cause}")


class IsoBuilder:
    """Runs the ISO pipeline against a build directory."""

    def __init__(
        self,
        build_dir: Optional[Path] = None,
        executor: Optional[CommandExecutor] = None,
        settings: Optional[Settings] = None,
        source_dir: Optional[Path] = None,
    ):
        self.settings = settings or get_settings()
        self.executor = executor or get_command_executor()
        self.build_dir = Path(build_dir or self.settings.iso_build_dir).resolve()
        self.source_dir = Path(source_dir or self.settings.iso_service_source_dir).resolve()
        self.templates_dir = Path(self.settings.iso_templates_dir)

    @property
    def iso_dir(self) -> Path:
        return self.build_dir / "iso"

    @property
    def chroot_dir(self) -> Path:
        return self.build_dir / "chroot"

    @property
    def iso_path(self) -> Path:
        return self.build_dir / ISO_NAME

    @property
    def steps(self) -> List[Tuple[str, Callable[[], None]]]:
        return [
            ("Build environment setup", self.setup_build_environment),
            ("Base system bootstrap", self.bootstrap_base_system),
            ("System configuration", self.configure_system),
            ("Package installation", self.install_packages),
            ("NestOS component installation", self.install_components),
            ("ISO assembly", self.create_iso),
        ]

    def run(self) -> Path:
        """
        Execute every step in order.

        Returns:
            Path of the finished ISO

        Raises:
            IsoBuildError: naming the first step that failed
        """
        logger.info("Starting NestOS ISO build process...")
        steps = self.steps
        for index, (name, step) in enumerate(steps, start=1):
            logger.info(f"[{index}/{len(steps)}] {name}")
            try:
                step()
            except Exception as e:
                logger.error(f"[{index}/{len(steps)}] {name} failed: {e}")
                raise IsoBuildError(name, e) from e
            logger.info(f"[{index}/{len(steps)}] {name} complete")

        logger.info(f"Build completed successfully! ISO image available at: {self.iso_path}")
        return self.iso_path

    # Steps

    def setup_build_environment(self) -> None:
        if self.build_dir.exists():
            logger.info(f"Removing existing build directory {self.build_dir}")
            shutil.rmtree(self.build_dir)

        for directory in (
            self.build_dir,
            self.iso_dir,
            self.chroot_dir,
            self.iso_dir / "boot" / "grub",
            self.iso_dir / "live",
        ):
            directory.mkdir(parents=True, exist_ok=True)

        self.executor.execute("chmod", ["-R", "777", str(self.build_dir)])

        for directory in (self.build_dir, self.iso_dir, self.chroot_dir):
            if not directory.is_dir():
                raise RuntimeError(f"Failed to create directory: {directory}")

    def bootstrap_base_system(self) -> None:
        self.executor.execute("debootstrap", [
            "--arch=amd64",
            "--variant=minbase",
            self.settings.iso_debian_suite,
            str(self.chroot_dir),
            self.settings.iso_debian_mirror,
        ])

    def configure_system(self) -> None:
        etc = self.chroot_dir / "etc"
        shutil.copytree(self.templates_dir / "system", etc, dirs_exist_ok=True)

        suite = self.settings.iso_debian_suite
        (etc / "hostname").write_text(self.settings.iso_hostname)
        (etc / "network").mkdir(parents=True, exist_ok=True)
        (etc / "network" / "interfaces").write_text("auto lo\niface lo inet loopback\n")
        (etc / "apt").mkdir(parents=True, exist_ok=True)
        (etc / "apt" / "sources.list").write_text(
            f"deb {self.settings.iso_debian_mirror} {suite} main contrib non-free\n"
            f"deb http://security.debian.org/debian-security {suite}-security main contrib non-free\n"
        )

    def install_packages(self) -> None:
        self._chroot("apt-get", "update")
        self._chroot("apt-get", "install", "-y", *PACKAGES)

    def install_components(self) -> None:
        opt = self.chroot_dir / "opt" / "nestos"

        if not (self.source_dir / "pyproject.toml").is_file():
            raise RuntimeError(f"No pyproject.toml in service source directory {self.source_dir}")
        shutil.copytree(self.source_dir, opt / "system-service", ignore=self._ignore_source, dirs_exist_ok=True)

        if self.settings.iso_control_panel_dist:
            shutil.copytree(self.settings.iso_control_panel_dist, opt / "control-panel", dirs_exist_ok=True)
        else:
            logger.warning("No control panel build configured (ISO_CONTROL_PANEL_DIST); skipping")

        shutil.copytree(
            self.templates_dir / "services",
            self.chroot_dir / "etc" / "systemd" / "system",
            dirs_exist_ok=True,
        )

        self._chroot("python3", "-m", "venv", "/opt/nestos/venv")
        self._chroot("/opt/nestos/venv/bin/pip", "install", "/opt/nestos/system-service")
        self._chroot("systemctl", "enable", *SERVICE_UNITS)

    def create_iso(self) -> None:
        logger.info("Generating initramfs...")
        result = self._chroot("update-initramfs", "-u", "-v")
        logger.debug(f"Initramfs output: {result.stdout}")

        logger.info("Copying kernel and initrd...")
        boot = self.chroot_dir / "boot"
        kernel = next(iter(sorted(boot.glob("vmlinuz-*"))), None)
        initrd = next(iter(sorted(boot.glob("initrd.img-*"))), None)
        if kernel is None or initrd is None:
            raise RuntimeError("Kernel or initrd files not found")
        shutil.copy2(kernel, self.iso_dir / "boot" / "vmlinuz")
        shutil.copy2(initrd, self.iso_dir / "boot" / "initrd.img")

        logger.info("Creating GRUB configuration...")
        (self.iso_dir / "boot" / "grub" / "grub.cfg").write_text(GRUB_CONFIG)

        logger.info("Creating squashfs filesystem...")
        (self.iso_dir / "live").mkdir(parents=True, exist_ok=True)
        result = self.executor.execute("mksquashfs", [
            str(self.chroot_dir),
            str(self.iso_dir / "live" / "filesystem.squashfs"),
            "-comp", "xz",
            "-info",
        ])
        logger.debug(f"Squashfs creation output: {result.stdout}")

        logger.info("Creating final ISO image...")
        result = self.executor.execute("grub-mkrescue", [
            "-o", str(self.iso_path),
            str(self.iso_dir),
            "--verbose",
        ])
        logger.debug(f"GRUB mkrescue output: {result.stdout}")

        if not self.iso_path.exists():
            raise RuntimeError("ISO file was not created")
        size_mb = self.iso_path.stat().st_size / 1024 / 1024
        logger.info(f"ISO file created successfully. Size: {size_mb:.2f} MB")

    def _chroot(self, *command: str):
        return self.executor.execute("chroot", [str(self.chroot_dir), *command])

    def _ignore_source(self, directory: str, names: List[str]) -> Set[str]:
        # The build tree may live anywhere inside the source tree
        ignored = set(SOURCE_IGNORE(directory, names))
        ignored.update(name for name in names if (Path(directory) / name).resolve() == self.build_dir)
        return ignored


def main(argv: Optional[List[str]] = None) -> None:
    """Console entry point; exits non-zero when any step fails."""
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Build the NestOS live ISO image.")
    parser.add_argument("--build-dir", default=settings.iso_build_dir, help="Build directory (wiped first)")
    parser.add_argument(
        "--source-dir",
        default=settings.iso_service_source_dir,
        help="NestOS source checkout (must contain pyproject.toml) installed into the image",
    )
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        IsoBuilder(
            build_dir=Path(args.build_dir),
            settings=settings,
            source_dir=Path(args.source_dir),
        ).run()
    except IsoBuildError as e:
        logger.error(f"Build failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
