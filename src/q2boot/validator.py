"""Pre-launch checks for a configured VM"""

from __future__ import annotations

import logging
from pathlib import Path

from .architectures import ArchitectureVariant
from .binaries import validate_qemu_binary
from .errors import DiskPathError
from .models import VMConfig
from .ports import check_ports_available

logger = logging.getLogger(__name__)


def validate(config: VMConfig, variant: ArchitectureVariant) -> None:
    """
    Check that a VM can be launched, failing on the first problem found

    An empty disk path is rejected before anything touches the host. After
    that the checks run in order: QEMU binary, SSH and monitor ports, disk
    image existence.

    Raises:
        DiskPathError: if the disk path is empty or missing
        BinaryNotFoundError: if the QEMU binary is not on PATH
        PortConflictError: if a required port is already bound
    """
    if not config.disk_path:
        raise DiskPathError(config.disk_path)

    validate_qemu_binary(variant.qemu_binary)
    check_ports_available(config.ssh_port, config.monitor_port)

    if not Path(config.disk_path).exists():
        raise DiskPathError(config.disk_path)

    logger.debug(f"Validated {config.arch.value} VM for {config.disk_path}")
