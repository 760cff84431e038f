from __future__ import annotations

import socket
from collections.abc import Iterator

import pytest

import q2boot.binaries as binaries
import q2boot.ports as ports
from q2boot.errors import BinaryNotFoundError, PortConflictError
from q2boot.models import Architecture


@pytest.fixture
def busy_port() -> Iterator[int]:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((ports.LOCALHOST_ADDRESS, 0))
        sock.listen(1)
        yield sock.getsockname()[1]


@pytest.fixture
def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((ports.LOCALHOST_ADDRESS, 0))
        return sock.getsockname()[1]


def test_is_port_available_detects_bound_port(busy_port: int) -> None:
    assert not ports.is_port_available(busy_port)


def test_is_port_available_for_free_port(free_port: int) -> None:
    assert ports.is_port_available(free_port)


def test_is_port_available_after_connection_in_time_wait() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        listener.bind((ports.LOCALHOST_ADDRESS, 0))
        listener.listen(1)
        port = listener.getsockname()[1]

        client = socket.create_connection((ports.LOCALHOST_ADDRESS, port))
        server_side, _ = listener.accept()
        # The side that closes first is left in TIME_WAIT
        server_side.close()
        client.close()

    assert ports.is_port_available(port)


def test_ssh_port_conflict_names_flag(busy_port: int) -> None:
    with pytest.raises(PortConflictError, match="--ssh-port") as excinfo:
        ports.check_ports_available(busy_port, 0)
    assert excinfo.value.port == busy_port


def test_monitor_port_conflict_names_flag(monkeypatch) -> None:
    monkeypatch.setattr(ports, "is_port_available", lambda port: port != 4444)

    with pytest.raises(PortConflictError, match="--monitor-port"):
        ports.check_ports_available(2222, 4444)


def test_disabled_monitor_port_is_not_probed(monkeypatch) -> None:
    probed: list[int] = []

    def fake_available(port: int) -> bool:
        probed.append(port)
        return True

    monkeypatch.setattr(ports, "is_port_available", fake_available)
    ports.check_ports_available(2222, 0)

    assert probed == [2222]


@pytest.mark.parametrize(
    "arch, binary",
    [
        ("x86_64", "qemu-system-x86_64"),
        ("aarch64", "qemu-system-aarch64"),
        ("ppc64le", "qemu-system-ppc64"),
        ("s390x", "qemu-system-s390x"),
    ],
)
def test_qemu_binary_for(arch: str, binary: str) -> None:
    assert binaries.qemu_binary_for(arch) == binary


def test_installation_instructions_are_per_binary() -> None:
    text = binaries.installation_instructions("qemu-system-aarch64")

    assert "sudo apt install qemu-system-arm" in text
    assert "sudo zypper install qemu-arm" in text
    assert "sudo pacman -S qemu-system-aarch64" in text
    assert "dnf install" in text
    assert "brew install qemu" in text


def test_installation_instructions_for_unknown_binary() -> None:
    assert "sudo apt install qemu-system\n" in binaries.installation_instructions("qemu-system-mips")


def test_validate_qemu_binary_missing(monkeypatch) -> None:
    monkeypatch.setattr(binaries.shutil, "which", lambda name: None)

    with pytest.raises(BinaryNotFoundError) as excinfo:
        binaries.validate_qemu_binary("qemu-system-s390x")

    assert excinfo.value.binary == "qemu-system-s390x"
    assert "qemu-system-s390x" in excinfo.value.instructions


def test_validate_qemu_binary_present(monkeypatch) -> None:
    monkeypatch.setattr(binaries.shutil, "which", lambda name: f"/usr/bin/{name}")
    binaries.validate_qemu_binary("qemu-system-x86_64")


def test_missing_binaries(monkeypatch) -> None:
    installed = {"qemu-system-x86_64", "qemu-system-aarch64"}
    monkeypatch.setattr(
        binaries.shutil, "which", lambda name: f"/usr/bin/{name}" if name in installed else None
    )

    statuses = binaries.check_available_binaries()
    missing = binaries.missing_binaries()

    assert [status.arch for status in statuses] == list(Architecture)
    assert [status.arch for status in missing] == [Architecture.PPC64LE, Architecture.S390X]
    assert statuses[0].path == "/usr/bin/qemu-system-x86_64"
