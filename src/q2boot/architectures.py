"""Per-architecture QEMU machine, disk, network and display arguments"""

from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence

from .binaries import QEMU_BINARIES
from .errors import ConfigurationError
from .models import Architecture, VMConfig

logger = logging.getLogger(__name__)

NO_GRAPHIC_ARGUMENT = "-nographic"
DISPLAY_MODE_TEXT = "curses"

# aarch64 UEFI firmware code images, in order of preference
AAVMF_CODE_PATHS: tuple[str, ...] = (
    "/usr/share/qemu/aavmf-aarch64-code.bin",  # SUSE
    "/usr/share/AAVMF/AAVMF_CODE.fd",  # Debian/Ubuntu
    "/usr/share/edk2/aarch64/QEMU_EFI-pflash.raw",  # Fedora
)


class ArchitectureVariant(ABC):
    """QEMU argument fragments for one guest architecture"""

    arch: Architecture

    def __init__(self, config: VMConfig) -> None:
        if config.arch != self.arch:
            raise ConfigurationError(
                f"{type(self).__name__} cannot run a {config.arch.value} configuration"
            )
        self.config: VMConfig = config

    @property
    def qemu_binary(self) -> str:
        return QEMU_BINARIES[self.arch]

    @abstractmethod
    def machine_args(self) -> list[str]:
        """Machine type, CPU model and firmware"""

    @abstractmethod
    def disk_args(self) -> list[str]:
        """Boot disk drive and device"""

    @abstractmethod
    def network_args(self) -> list[str]:
        """User-mode NIC with the SSH port forward"""

    @abstractmethod
    def graphical_args(self) -> list[str]:
        """Display arguments used when a graphical console is requested"""

    def non_graphical_display_args(self) -> list[str]:
        return ["-display", DISPLAY_MODE_TEXT]

    @property
    def graphical_is_serial_console(self) -> bool:
        """True when "graphical" is really an interactive terminal session"""
        return NO_GRAPHIC_ARGUMENT in self.graphical_args()

    def cleanup(self) -> None:
        """Remove any temporary files created for this launch"""

    def _hostfwd_netdev(self, netdev_id: str) -> list[str]:
        return ["-netdev", f"user,id={netdev_id},hostfwd=tcp::{self.config.ssh_port}-:22"]

    def _virtio_pci_disk(self) -> list[str]:
        return [
            "-drive",
            f"file={self.config.disk_path},if=none,id=disk0,cache=none,aio=native,discard=unmap",
            "-device",
            f"virtio-blk-pci,drive=disk0,num-queues={self.config.cpu}",
        ]

    def _virtio_pci_network(self) -> list[str]:
        return self._hostfwd_netdev("net0") + ["-device", "virtio-net-pci,netdev=net0,mq=on"]


class X86_64Variant(ArchitectureVariant):
    arch = Architecture.X86_64

    def machine_args(self) -> list[str]:
        return ["-M", "q35", "-enable-kvm", "-cpu", "host"]

    def disk_args(self) -> list[str]:
        return self._virtio_pci_disk()

    def network_args(self) -> list[str]:
        return self._virtio_pci_network()

    def graphical_args(self) -> list[str]:
        return ["-device", "virtio-vga-gl", "-display", "sdl,gl=on"]


class AArch64Variant(ArchitectureVariant):
    """
    Generic `virt` machine booted through UEFI

    The firmware code image is attached read-only, so a writable variable
    store of the same size is created next to it in the temp directory. The
    store is created once per variant so repeated builds stay identical.
    """

    arch = Architecture.AARCH64

    def __init__(self, config: VMConfig, firmware_paths: Sequence[str] = AAVMF_CODE_PATHS) -> None:
        super().__init__(config)
        self.firmware_path: str | None = find_uefi_firmware(firmware_paths)
        self._vars_path: str | None = None

    def machine_args(self) -> list[str]:
        args = ["-M", "virt", "-cpu", "max"]
        if self.firmware_path is None:
            logger.warning("No aarch64 UEFI firmware found; the guest may fail to boot")
            return args

        vars_path = self._variable_store()
        if vars_path is None:
            return args

        # QEMU needs two pflash devices for UEFI: code (readonly) and vars
        args += [
            "-drive", f"if=pflash,format=raw,readonly=on,file={self.firmware_path}",
            "-drive", f"if=pflash,format=raw,file={vars_path}",
        ]
        return args

    def disk_args(self) -> list[str]:
        return self._virtio_pci_disk()

    def network_args(self) -> list[str]:
        return self._virtio_pci_network()

    def graphical_args(self) -> list[str]:
        return ["-device", "virtio-vga-gl", "-display", "gtk,gl=on"]

    def non_graphical_display_args(self) -> list[str]:
        if self.config.log_file:
            return [NO_GRAPHIC_ARGUMENT]
        return [NO_GRAPHIC_ARGUMENT, "-serial", "mon:stdio"]

    def cleanup(self) -> None:
        if self._vars_path is not None:
            Path(self._vars_path).unlink(missing_ok=True)
            self._vars_path = None

    def _variable_store(self) -> str | None:
        if self._vars_path is not None:
            return self._vars_path

        if self.firmware_path is None:
            return None

        try:
            firmware_size = os.stat(self.firmware_path).st_size
            fd, path = tempfile.mkstemp(prefix="q2boot-aavmf-vars-", suffix=".fd")
        except OSError as e:
            logger.error(f"Failed to create UEFI variable store: {e}")
            return None

        try:
            os.ftruncate(fd, firmware_size)
        except OSError as e:
            logger.error(f"Failed to size UEFI variable store {path}: {e}")
            Path(path).unlink(missing_ok=True)
            return None
        finally:
            os.close(fd)

        logger.debug(f"Created UEFI variable store {path} ({firmware_size} bytes)")
        self._vars_path = path
        return path


class PPC64LEVariant(ArchitectureVariant):
    """pseries guest; curses rendering is unreliable here, so the console is serial"""

    arch = Architecture.PPC64LE

    def machine_args(self) -> list[str]:
        return ["-M", "pseries", "-cpu", "POWER9"]

    def disk_args(self) -> list[str]:
        return self._virtio_pci_disk()

    def network_args(self) -> list[str]:
        return self._virtio_pci_network()

    def graphical_args(self) -> list[str]:
        # no usable virtio GPU path; fall back to an interactive terminal
        return [NO_GRAPHIC_ARGUMENT, "-serial", "stdio"]

    def non_graphical_display_args(self) -> list[str]:
        return [NO_GRAPHIC_ARGUMENT, "-serial", "stdio"]


class S390XVariant(ArchitectureVariant):
    """
    Mainframe guest on the CCW bus

    There is no conventional framebuffer, so graphical mode provides an
    interactive session in the terminal with the serial console and the
    QEMU monitor multiplexed on stdio.
    """

    arch = Architecture.S390X

    def machine_args(self) -> list[str]:
        return ["-machine", "s390-ccw-virtio", "-cpu", "max"]

    def disk_args(self) -> list[str]:
        return [
            "-drive",
            f"file={self.config.disk_path},id=disk1,if=none,cache=unsafe,discard=unmap",
            "-device",
            "virtio-blk-ccw,drive=disk1,id=dr1,bootindex=1",
        ]

    def network_args(self) -> list[str]:
        return self._hostfwd_netdev("net1") + ["-device", "virtio-net-ccw,netdev=net1"]

    def graphical_args(self) -> list[str]:
        return [NO_GRAPHIC_ARGUMENT, "-serial", "mon:stdio"]

    def non_graphical_display_args(self) -> list[str]:
        return [NO_GRAPHIC_ARGUMENT, "-serial", "stdio"]


VARIANTS: dict[Architecture, type[ArchitectureVariant]] = {
    Architecture.X86_64: X86_64Variant,
    Architecture.AARCH64: AArch64Variant,
    Architecture.PPC64LE: PPC64LEVariant,
    Architecture.S390X: S390XVariant,
}


def supported_architectures() -> list[str]:
    return [arch.value for arch in Architecture]


def find_uefi_firmware(paths: Sequence[str] = AAVMF_CODE_PATHS) -> str | None:
    """Return the first existing UEFI code image from a list of known paths"""
    for path in paths:
        if os.path.isfile(path):
            return path
    return None


def create_variant(config: VMConfig) -> ArchitectureVariant:
    """Create the variant matching the configured architecture"""
    try:
        variant_cls = VARIANTS[config.arch]
    except KeyError:
        raise ConfigurationError(
            f"unsupported architecture: {config.arch}. "
            f"Supported architectures: {', '.join(supported_architectures())}"
        ) from None
    return variant_cls(config)
