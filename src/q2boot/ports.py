"""Host port availability checks"""

from __future__ import annotations

import socket

from .errors import PortConflictError

LOCALHOST_ADDRESS = "127.0.0.1"


def is_port_available(port: int) -> bool:
    """Check whether a TCP port on localhost can be bound right now

    The socket is released immediately, so QEMU may still lose a race for the
    port between this check and its own bind.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        # Ports held only by TIME_WAIT connections count as free, as they do for QEMU
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((LOCALHOST_ADDRESS, port))
        except OSError:
            return False
    return True


def check_ports_available(ssh_port: int, monitor_port: int) -> None:
    """Raise PortConflictError if the SSH or monitor port is taken"""
    if not is_port_available(ssh_port):
        raise PortConflictError(ssh_port, "SSH", "--ssh-port")

    if monitor_port > 0 and not is_port_available(monitor_port):
        raise PortConflictError(monitor_port, "monitor", "--monitor-port")
