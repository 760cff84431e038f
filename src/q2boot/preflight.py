"""Pre-flight checks for the host dependencies q2boot relies on"""

from __future__ import annotations

import os
import platform
import shutil
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

QEMU_PREFIX = "qemu-system-"
CPUINFO_PATH = Path("/proc/cpuinfo")
KVM_DEVICE = Path("/dev/kvm")
OS_RELEASE_PATH = Path("/etc/os-release")
AARCH64_EFI_DIR = Path("/usr/share/qemu-efi-aarch64")
QEMU_SHARE_DIR = Path("/usr/share/qemu")


class CheckResult(BaseModel):
    """Outcome of one pre-flight check"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Check name")
    ok: bool = Field(..., description="Whether the check passed")
    message: str = Field(..., description="Human readable outcome")
    hints: list[str] = Field(default_factory=list, description="Remediation hints")


class PreflightReport(BaseModel):
    """All pre-flight check results"""
    model_config = ConfigDict(frozen=True)

    kvm: CheckResult
    qemu: CheckResult
    firmware: CheckResult
    virt_cat: CheckResult
    qemu_arches: list[str] = Field(default_factory=list)
    install_hints: list[str] = Field(default_factory=list)

    @property
    def checks(self) -> list[CheckResult]:
        return [self.kvm, self.qemu, self.firmware, self.virt_cat]

    @property
    def ok(self) -> bool:
        # firmware and virt-cat are optional
        return self.kvm.ok and self.qemu.ok


def check_kvm(system: str | None = None) -> CheckResult:
    """Verify that KVM is usable on Linux"""
    system = system or platform.system()
    if system != "Linux":
        return CheckResult(name="KVM", ok=True, message="KVM check is not applicable on this OS.")

    try:
        cpuinfo = CPUINFO_PATH.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        return CheckResult(name="KVM", ok=False, message=f"Could not read {CPUINFO_PATH}: {e}")

    if "vmx" not in cpuinfo and "svm" not in cpuinfo:
        return CheckResult(
            name="KVM",
            ok=False,
            message="KVM acceleration is not supported by this CPU.",
            hints=["Ensure virtualization (VT-x or AMD-V) is enabled in your BIOS/UEFI settings."],
        )

    if not KVM_DEVICE.exists():
        return CheckResult(
            name="KVM",
            ok=False,
            message="KVM kernel module is not loaded.",
            hints=["Run 'sudo modprobe kvm_intel' or 'sudo modprobe kvm_amd'."],
        )

    if not os.access(KVM_DEVICE, os.R_OK | os.W_OK):
        return CheckResult(
            name="KVM",
            ok=False,
            message=f"{KVM_DEVICE} device is not accessible by the current user.",
            hints=[
                "Add your user to the 'kvm' group with 'sudo usermod -aG kvm $USER'.",
                "You may need to log out and back in for the group change to take effect.",
            ],
        )

    return CheckResult(name="KVM", ok=True, message="KVM is available and ready to use.")


def find_qemu_arches() -> list[str]:
    """List the architectures of every qemu-system-* executable on PATH"""
    found: set[str] = set()
    for directory in os.environ.get("PATH", "").split(os.pathsep):
        try:
            entries = list(Path(directory).iterdir())
        except OSError:
            continue
        for entry in entries:
            if entry.name.startswith(QEMU_PREFIX) and shutil.which(entry.name):
                found.add(entry.name[len(QEMU_PREFIX):])
    return sorted(found)


def check_qemu(arches: list[str]) -> CheckResult:
    if not arches:
        return CheckResult(name="QEMU", ok=False, message="No QEMU system binaries found in your PATH.")
    return CheckResult(name="QEMU", ok=True, message=f"Found QEMU binaries for architectures: {', '.join(arches)}")


def check_firmware(
    efi_dir: Path = AARCH64_EFI_DIR,
    qemu_dir: Path = QEMU_SHARE_DIR,
) -> CheckResult:
    """Look for optional aarch64 UEFI firmware in common locations"""
    for candidate in _list_files(efi_dir):
        return CheckResult(name="UEFI firmware", ok=True, message=f"Found aarch64 UEFI firmware: {candidate}")

    for candidate in _list_files(qemu_dir):
        if candidate.suffix == ".bin":
            return CheckResult(name="UEFI firmware", ok=True, message=f"Found firmware file: {candidate}")

    return CheckResult(
        name="UEFI firmware",
        ok=False,
        message="UEFI firmware not found in common locations (optional but recommended).",
        hints=["For aarch64, install 'qemu-efi-aarch64' or 'edk2-aarch64'."],
    )


def check_virt_cat() -> CheckResult:
    if shutil.which("virt-cat"):
        return CheckResult(name="virt-cat", ok=True, message="virt-cat is installed and available in your PATH.")
    return CheckResult(
        name="virt-cat",
        ok=False,
        message="virt-cat not found (optional, but needed for auto-detecting image architecture).",
    )


def linux_distro(os_release: Path = OS_RELEASE_PATH) -> str:
    """Return the ID from /etc/os-release, or 'unknown'"""
    try:
        lines = os_release.read_text(encoding="utf-8").splitlines()
    except OSError:
        return "unknown"
    for line in lines:
        if line.startswith("ID="):
            return line[len("ID="):].strip().strip('"')
    return "unknown"


def install_hints(system: str, distro: str, virt_cat_ok: bool) -> list[str]:
    """OS-specific guidance for installing missing dependencies"""
    if system == "Darwin":
        return ["To install QEMU: 'brew install qemu'"]
    if system == "Windows":
        return [
            "Download and run the QEMU installer from the official website: "
            "https://www.qemu.org/download/#windows"
        ]
    if system != "Linux":
        return [f"OS '{system}' is not fully supported for automatic hints."]

    hints: list[str] = []
    if distro in ("ubuntu", "debian"):
        hints.append("To install QEMU: 'sudo apt update && sudo apt install qemu-system qemu-utils'")
        hints.append("To install UEFI firmware: 'sudo apt install qemu-efi-aarch64'")
    elif distro in ("fedora", "centos", "rhel"):
        hints.append("To install QEMU: 'sudo dnf install qemu-system-x86 qemu-system-aarch64'")
        if not virt_cat_ok:
            hints.append("To install virt-cat: 'sudo dnf install libguestfs-tools'")
        hints.append("To install UEFI firmware: 'sudo dnf install edk2-aarch64'")
    elif distro == "arch":
        hints.append("To install QEMU and firmware: 'sudo pacman -S qemu-full'")
    elif distro.startswith("opensuse"):
        hints.append(
            "To install QEMU and firmware: "
            "'sudo zypper install qemu-system-x86 qemu-system-aarch64 qemu-uefi-aarch64'"
        )
    else:
        hints.append(
            "Please use your distribution's package manager to install 'qemu' "
            "and related firmware packages."
        )

    if not virt_cat_ok and (distro in ("ubuntu", "debian") or distro.startswith("opensuse")):
        hints.append("To install virt-cat: 'sudo <package_manager> install guestfs-tools'")
    return hints


def run_checks() -> PreflightReport:
    """Run every pre-flight check in sequence"""
    system = platform.system()
    kvm = check_kvm(system)
    arches = find_qemu_arches()
    qemu = check_qemu(arches)
    firmware = check_firmware()
    virt_cat = check_virt_cat()

    hints: list[str] = []
    if not (kvm.ok and qemu.ok and virt_cat.ok):
        distro = linux_distro() if system == "Linux" else ""
        hints = install_hints(system, distro, virt_cat.ok)

    return PreflightReport(
        kvm=kvm,
        qemu=qemu,
        firmware=firmware,
        virt_cat=virt_cat,
        qemu_arches=arches,
        install_hints=hints,
    )


def _list_files(directory: Path) -> list[Path]:
    try:
        return sorted(entry for entry in directory.iterdir() if entry.is_file())
    except OSError:
        return []
