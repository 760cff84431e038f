"""Exception types raised while preparing and launching a VM"""

from __future__ import annotations


class Q2BootError(Exception):
    """Base class for every failure q2boot reports to the user"""

    exit_code: int = 1


class ConfigurationError(Q2BootError):
    """A setting is out of range or names an unsupported architecture"""


class DetectionError(Q2BootError):
    """The architecture of a disk image could not be determined"""

    def __init__(self, disk_path: str, reason: str | None = None) -> None:
        self.disk_path = disk_path
        self.reason = reason
        if reason:
            message = f"could not detect architecture from disk image '{disk_path}': {reason}"
        else:
            message = f"could not detect architecture from disk image '{disk_path}'"
        super().__init__(f"{message}. Please specify it explicitly with --arch")


class BinaryNotFoundError(Q2BootError):
    """The architecture-specific QEMU binary is not on PATH"""

    def __init__(self, binary: str, instructions: str) -> None:
        self.binary = binary
        self.instructions = instructions
        super().__init__(f"QEMU binary '{binary}' not found in PATH.\n{instructions}")


class PortConflictError(Q2BootError):
    """A host port QEMU needs is already bound"""

    def __init__(self, port: int, purpose: str, flag: str) -> None:
        self.port = port
        self.purpose = purpose
        self.flag = flag
        super().__init__(
            f"{purpose} port {port} is already in use. Please choose a different port using {flag}"
        )


class DiskPathError(Q2BootError):
    """The disk image path is empty or does not exist"""

    def __init__(self, disk_path: str) -> None:
        self.disk_path = disk_path
        if not disk_path:
            message = "disk image path is not set"
        else:
            message = f"disk image not found at '{disk_path}'"
        super().__init__(message)


class LaunchError(Q2BootError):
    """QEMU could not be started at all"""

    def __init__(self, binary: str, cause: OSError) -> None:
        self.binary = binary
        self.cause = cause
        super().__init__(f"failed to start QEMU ({binary}): {cause}")


class ExitError(Q2BootError):
    """QEMU ran and exited with a non-zero status

    A `quit` issued on the monitor also ends up here, so this is reported
    rather than treated as a crash.
    """

    def __init__(self, returncode: int) -> None:
        self.returncode = returncode
        self.exit_code = returncode if 0 < returncode < 256 else 1
        super().__init__(f"QEMU exited with status {returncode}")


class DownloadError(Q2BootError):
    """A remote disk image could not be fetched"""
