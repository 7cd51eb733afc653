# ABOUTME: Host platform detection for external command names
# ABOUTME: Docker Desktop on WSL is reached through docker.exe
import os
from pathlib import Path

PROC_VERSION = Path("/proc/version")


def is_wsl(proc_version: Path | None = None) -> bool:
    """Detect Windows Subsystem for Linux.

    ABOUTME: WSL_DISTRO_NAME is checked first, then the kernel version text

    Args:
        proc_version: Kernel version file, overridable for tests

    Returns:
        True when running under WSL
    """
    if os.environ.get("WSL_DISTRO_NAME"):
        return True

    try:
        version = (proc_version or PROC_VERSION).read_text(encoding="utf-8").lower()
    except OSError:
        return False

    return "microsoft" in version or "wsl" in version


def get_docker_command() -> str:
    """Return the docker binary name for this host."""
    return "docker.exe" if is_wsl() else "docker"
