"""Assemble the ordered QEMU argument list"""

from __future__ import annotations

from .architectures import ArchitectureVariant
from .models import VMConfig
from .ports import LOCALHOST_ADDRESS

AUDIO_DEVICE_ID = "snd0"
AUDIO_DEVICE_TYPE = "none"
MONITOR_PROTOCOL = "telnet"
SNAPSHOT_ARGUMENT = "-snapshot"
MONITOR_ARGUMENT = "-monitor"
MONITOR_DISABLED = "none"


def monitor_spec(port: int) -> str:
    return f"{MONITOR_PROTOCOL}:{LOCALHOST_ADDRESS}:{port},server,nowait"


def build_args(config: VMConfig, variant: ArchitectureVariant) -> list[str]:
    """
    Build the QEMU command line arguments for a configured VM

    The order is fixed: machine, -smp/-m, disk, network, audio, display,
    monitor. Architecture-specific fragments come from the variant.

    Args:
        config: Validated VM settings
        variant: Architecture variant built against the same config

    Returns:
        Arguments to pass after the QEMU binary name
    """
    args: list[str] = []

    args += variant.machine_args()

    args += ["-smp", str(config.cpu)]
    args += ["-m", f"{config.ram_gb}G"]

    args += variant.disk_args()
    args += variant.network_args()

    args += ["-audiodev", f"{AUDIO_DEVICE_TYPE},id={AUDIO_DEVICE_ID}"]

    if config.graphical:
        args += variant.graphical_args()
        # A serial-console "graphical" mode owns stdio; the default monitor
        # would compete with it for the same stream.
        if variant.graphical_is_serial_console:
            args += [MONITOR_ARGUMENT, MONITOR_DISABLED]
    else:
        args += variant.non_graphical_display_args()
        if not config.write_mode:
            args.append(SNAPSHOT_ARGUMENT)

    if config.monitor_port > 0:
        args += [MONITOR_ARGUMENT, monitor_spec(config.monitor_port)]
    elif not config.graphical and MONITOR_ARGUMENT not in args:
        # Console modes: keep the interactive monitor off stdio
        args += [MONITOR_ARGUMENT, MONITOR_DISABLED]

    return args
