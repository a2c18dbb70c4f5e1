"""Host detection and package installation."""
import logging
import os
import platform
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

from ..config import HostContext
from ..exceptions import UnsupportedDistroError
from .shell import CommandRunner

logger = logging.getLogger("easy_openyurt.environment")

OS_RELEASE = Path("/etc/os-release")

SUPPORTED_DISTROS = ("ubuntu",)

PACKAGE_INSTALL_COMMANDS: Dict[str, str] = {
    "ubuntu": "sudo apt-get -qq update && sudo apt-get -qq install -y --allow-downgrades %s",
}

SYSTEM_DEPENDENCIES: Dict[str, str] = {
    "ubuntu": "git wget curl build-essential apt-transport-https ca-certificates",
}

YURT_DEPENDENCIES: Dict[str, str] = {
    "ubuntu": "curl apt-transport-https ca-certificates build-essential git",
}

ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
}


@dataclass(frozen=True)
class InstalledComponentFlags:
    """Optional components already present on the host."""
    go: bool = False
    containerd: bool = False
    runc: bool = False
    cni_plugins: bool = False
    helm: bool = False
    kustomize: bool = False


def detect_components(
    which: Callable[[str], Optional[str]] = shutil.which,
    exists: Callable[[str], bool] = os.path.exists,
    cni_dir: str = "/opt/cni/bin",
) -> InstalledComponentFlags:
    """Probe the host for each optional component."""
    flags = InstalledComponentFlags(
        go=which("go") is not None,
        containerd=which("containerd") is not None,
        runc=which("runc") is not None,
        cni_plugins=exists(cni_dir),
        helm=which("helm") is not None,
        kustomize=which("kustomize") is not None,
    )
    for name, present in vars(flags).items():
        if present:
            logger.info(f"✅ {name} found")
        else:
            logger.debug(f"{name} not found, it will be installed when needed")
    return flags


def detect_distro(os_release: Path = OS_RELEASE) -> str:
    """Return the lower-cased NAME from os-release, or an empty string."""
    try:
        content = os_release.read_text(encoding='utf-8')
    except OSError as e:
        logger.warning(f"Failed to read {os_release}: {e}")
        return ""
    for line in content.splitlines():
        if line.startswith("NAME="):
            return line.split("=", 1)[1].strip().strip('"').lower()
    return ""


def detect_arch(machine: Optional[str] = None) -> str:
    """Map the machine type to the architecture names used by release URLs."""
    machine = (machine or platform.machine()).lower()
    return ARCH_ALIASES.get(machine, machine)


def detect_host(current_dir: Optional[Path] = None) -> HostContext:
    host = HostContext(
        distro=detect_distro(),
        arch=detect_arch(),
        home_dir=Path.home(),
        current_dir=Path(current_dir or os.getcwd()).resolve(),
    )
    logger.info(f"🖥️  Detected OS: {host.distro or 'unknown'}, arch: {host.arch}")
    return host


def require_supported_distro(host: HostContext) -> None:
    """Raises:
        UnsupportedDistroError: If the installers do not cover this distro
    """
    if host.distro not in SUPPORTED_DISTROS:
        raise UnsupportedDistroError(f"Unsupported Linux distribution: {host.distro or 'unknown'}")


def install_packages(runner: CommandRunner, host: HostContext, packages: str) -> None:
    """Install packages with the distro's package manager."""
    command = PACKAGE_INSTALL_COMMANDS.get(host.distro)
    if command is None:
        raise UnsupportedDistroError(f"Unsupported Linux distribution: {host.distro or 'unknown'}")
    if not packages.strip():
        logger.debug("No packages to install")
        return
    runner.run(command, packages)
