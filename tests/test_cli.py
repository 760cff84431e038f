from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

import q2boot.cli as cli_module
from q2boot.cli import cli
from q2boot.errors import ExitError, PortConflictError
from q2boot.models import VMConfig
from q2boot.preflight import CheckResult, PreflightReport


@pytest.fixture
def launched(monkeypatch) -> list[VMConfig]:
    configs: list[VMConfig] = []
    monkeypatch.setattr(cli_module, "launch", configs.append)
    return configs


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"cpu": 4, "ram_gb": 8, "monitor_port": 5555}), encoding="utf-8")
    return path


def test_run_applies_file_values_and_overrides(launched, config_file: Path, disk_image: Path) -> None:
    result = CliRunner().invoke(
        cli,
        ["run", str(disk_image), "--arch", "aarch64", "--config", str(config_file),
         "--ram", "16", "--write-mode"],
    )

    assert result.exit_code == 0, result.output
    (config,) = launched
    assert config.arch.value == "aarch64"
    assert config.cpu == 4
    assert config.ram_gb == 16
    assert config.monitor_port == 5555
    assert config.write_mode is True
    assert config.graphical is False
    assert config.disk_path == str(disk_image)


def test_run_detects_architecture_from_filename(launched, tmp_path: Path) -> None:
    disk = tmp_path / "tumbleweed-s390x.qcow2"
    disk.touch()

    result = CliRunner().invoke(
        cli, ["run", str(disk), "--no-inspect", "--config", str(tmp_path / "none.json")]
    )

    assert result.exit_code == 0, result.output
    assert launched[0].arch.value == "s390x"


def test_run_reports_detection_failure(launched, tmp_path: Path) -> None:
    disk = tmp_path / "mystery.qcow2"
    disk.touch()

    result = CliRunner().invoke(
        cli, ["run", str(disk), "--no-inspect", "--config", str(tmp_path / "none.json")]
    )

    assert result.exit_code == 1
    assert "--arch" in result.output
    assert launched == []


def test_run_rejects_out_of_range_cpu(launched, disk_image: Path, tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli,
        ["run", str(disk_image), "-a", "x86_64", "--cpu", "33", "--config", str(tmp_path / "none.json")],
    )

    assert result.exit_code == 1
    assert "cpu" in result.output
    assert launched == []


def test_run_rejects_privileged_ssh_port(launched, disk_image: Path, tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli,
        ["run", str(disk_image), "-a", "x86_64", "-p", "80", "--config", str(tmp_path / "none.json")],
    )

    assert result.exit_code == 1
    assert "ssh_port" in result.output


def test_run_propagates_qemu_exit_code(monkeypatch, disk_image: Path, tmp_path: Path) -> None:
    def exits(config: VMConfig) -> None:
        raise ExitError(4)

    monkeypatch.setattr(cli_module, "launch", exits)

    result = CliRunner().invoke(
        cli, ["run", str(disk_image), "-a", "x86_64", "--config", str(tmp_path / "none.json")]
    )

    assert result.exit_code == 4
    assert "QEMU exited with status 4" in result.output


def test_run_reports_port_conflict(monkeypatch, disk_image: Path, tmp_path: Path) -> None:
    def conflict(config: VMConfig) -> None:
        raise PortConflictError(config.ssh_port, "SSH", "--ssh-port")

    monkeypatch.setattr(cli_module, "launch", conflict)

    result = CliRunner().invoke(
        cli, ["run", str(disk_image), "-a", "x86_64", "--config", str(tmp_path / "none.json")]
    )

    assert result.exit_code == 1
    assert "--ssh-port" in result.output


def test_run_downloads_remote_image_and_cleans_up(launched, monkeypatch, tmp_path: Path) -> None:
    local = tmp_path / "q2boot-download-1-leap-aarch64.qcow2"
    local.touch()
    cleaned: list[bool] = []
    monkeypatch.setattr(
        cli_module, "download", lambda url: (str(local), lambda: cleaned.append(True))
    )

    result = CliRunner().invoke(
        cli,
        ["run", "https://example.org/images/leap-aarch64.qcow2", "--no-inspect",
         "--config", str(tmp_path / "none.json")],
    )

    assert result.exit_code == 0, result.output
    assert launched[0].disk_path == str(local)
    assert launched[0].arch.value == "aarch64"
    assert cleaned == [True]


def test_version_lists_binary_availability(monkeypatch) -> None:
    import q2boot.binaries as binaries

    monkeypatch.setattr(
        binaries.shutil, "which", lambda name: "/usr/bin/x" if name == "qemu-system-x86_64" else None
    )

    result = CliRunner().invoke(cli, ["version"])

    assert result.exit_code == 0, result.output
    assert "qemu-system-x86_64" in result.output
    assert "Not Available" in result.output
    assert "sudo apt install qemu-system-s390x" in result.output


def _check(name: str, ok: bool) -> CheckResult:
    return CheckResult(name=name, ok=ok, message=f"{name} message", hints=[] if ok else [f"fix {name}"])


def test_check_renders_report(monkeypatch) -> None:
    report = PreflightReport(
        kvm=_check("KVM", True),
        qemu=_check("QEMU", False),
        firmware=_check("UEFI firmware", False),
        virt_cat=_check("virt-cat", True),
        install_hints=["To install QEMU: 'brew install qemu'"],
    )
    monkeypatch.setattr(cli_module.preflight, "run_checks", lambda: report)

    result = CliRunner().invoke(cli, ["check"])

    assert result.exit_code == 1
    assert "fix QEMU" in result.output
    assert "brew install qemu" in result.output


def test_run_json_log_format(launched, restore_root_logger, disk_image: Path, tmp_path: Path) -> None:
    import logging

    import structlog

    result = CliRunner().invoke(
        cli,
        ["run", str(disk_image), "-a", "x86_64", "--log-format", "json",
         "--config", str(tmp_path / "none.json")],
    )

    assert result.exit_code == 0, result.output
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)


def test_run_rejects_unknown_log_format(launched, disk_image: Path) -> None:
    result = CliRunner().invoke(cli, ["run", str(disk_image), "--log-format", "xml"])

    assert result.exit_code == 2
    assert launched == []
