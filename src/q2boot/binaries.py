"""QEMU binary resolution and installation guidance"""

from __future__ import annotations

import shutil

from .errors import BinaryNotFoundError
from .models import Architecture, BinaryStatus

QEMU_BINARIES: dict[Architecture, str] = {
    Architecture.X86_64: "qemu-system-x86_64",
    Architecture.AARCH64: "qemu-system-aarch64",
    Architecture.PPC64LE: "qemu-system-ppc64",
    Architecture.S390X: "qemu-system-s390x",
}

# binary -> (Debian/Ubuntu package, SUSE suffix, Arch Linux suffix)
_PACKAGE_NAMES: dict[str, tuple[str, str, str]] = {
    "qemu-system-x86_64": ("qemu-system-x86", "x86", "x86"),
    "qemu-system-aarch64": ("qemu-system-arm", "arm", "aarch64"),
    "qemu-system-ppc64": ("qemu-system-ppc", "ppc", "ppc64"),
    "qemu-system-s390x": ("qemu-system-s390x", "s390x", "s390x"),
}


def qemu_binary_for(arch: Architecture | str) -> str:
    """Return the QEMU system binary name for an architecture"""
    return QEMU_BINARIES[Architecture(arch)]


def installation_instructions(binary: str) -> str:
    """Return distro-specific install hints for a QEMU binary"""
    ubuntu_pkg, suse_arch, arch_pkg = _PACKAGE_NAMES.get(
        binary, ("qemu-system", "unknown", "unknown")
    )
    return (
        "Please install the appropriate QEMU package for your system:\n"
        f"  - Ubuntu/Debian: sudo apt install {ubuntu_pkg}\n"
        "  - RHEL/CentOS/Fedora: sudo dnf install qemu-system or sudo yum install qemu-system\n"
        f"  - SUSE/openSUSE: sudo zypper install qemu-{suse_arch}\n"
        f"  - Arch Linux: sudo pacman -S qemu-system-{arch_pkg}\n"
        "  - macOS: brew install qemu"
    )


def find_qemu_binary(binary: str) -> str | None:
    """Locate a QEMU binary on PATH"""
    return shutil.which(binary)


def validate_qemu_binary(binary: str) -> None:
    """Raise BinaryNotFoundError unless the binary is on PATH"""
    if find_qemu_binary(binary) is None:
        raise BinaryNotFoundError(binary, installation_instructions(binary))


def check_available_binaries() -> list[BinaryStatus]:
    """Report which QEMU system binaries are installed"""
    return [
        BinaryStatus(arch=arch, binary=binary, path=find_qemu_binary(binary))
        for arch, binary in QEMU_BINARIES.items()
    ]


def missing_binaries() -> list[BinaryStatus]:
    return [status for status in check_available_binaries() if not status.available]
