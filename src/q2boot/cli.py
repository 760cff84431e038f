"""Command Line Interface for the q2boot QEMU launcher"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import binaries, preflight
from .architectures import supported_architectures
from .config import (
    default_config_path,
    ensure_config_exists,
    finalize_config,
    load_config_file,
    merge_settings,
)
from .downloader import download, is_remote
from .errors import ExitError, Q2BootError
from .launcher import launch, resolve_architecture
from .log import LOG_FORMATS, setup_logging
from .models import BinaryStatus, VMConfig

console: Console = Console()
logger = logging.getLogger(__name__)


@click.group()
@click.version_option(package_name="q2boot")
def cli() -> None:
    """q2boot - A handy QEMU VM launcher

    Wraps QEMU to launch a disk image with KVM acceleration, virtio devices
    and SSH port forwarding, auto-detecting the guest architecture.
    """
    pass


@cli.command()
@click.argument("disk_image")
@click.option("--arch", "-a", type=click.Choice(supported_architectures()),
              help="CPU architecture. Auto-detected from the disk image if not specified")
@click.option("--cpu", "-c", type=int, help="Number of CPU cores (default: 2)")
@click.option("--ram", "-r", type=int, help="Amount of RAM in GB (default: 2)")
@click.option("--ssh-port", "-p", type=int, help="Host port for SSH forwarding (default: 2222)")
@click.option("--monitor-port", "-m", type=int, help="Port for the QEMU monitor (telnet), 0 disables it")
@click.option("--log-file", "-l", help="Path to the log file (default: q2boot.log)")
@click.option("--graphical/--no-graphical", "-g", default=None, help="Enable graphical console")
@click.option("--write-mode/--no-write-mode", "-w", default=None,
              help="Enable write mode (changes are saved to disk)")
@click.option("--confirm/--no-confirm", default=None,
              help="Show command and wait for Enter before starting")
@click.option("--no-inspect", is_flag=True, help="Skip virt-cat guest inspection during auto-detection")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Config file (default: ~/.config/q2boot/config.json)")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--log-format", type=click.Choice(LOG_FORMATS), default="text", show_default=True,
              help="Log output format on stderr")
def run(disk_image: str, arch: Optional[str], cpu: Optional[int], ram: Optional[int],
        ssh_port: Optional[int], monitor_port: Optional[int], log_file: Optional[str],
        graphical: Optional[bool], write_mode: Optional[bool], confirm: Optional[bool],
        no_inspect: bool, config_path: Optional[Path], verbose: bool, log_format: str) -> None:
    """Launch DISK_IMAGE (a path or an http/https/ftp/smb URL) in QEMU"""

    setup_logging("debug" if verbose else "info", log_format)

    if config_path is None:
        config_path = default_config_path()
        ensure_config_exists(config_path)

    cleanup: Callable[[], None] | None = None
    try:
        if is_remote(disk_image):
            disk_image, cleanup = download(disk_image)

        detection = resolve_architecture(disk_image, arch, guest_inspection=not no_inspect)

        settings = merge_settings(
            load_config_file(config_path),
            {
                "cpu": cpu,
                "ram_gb": ram,
                "ssh_port": ssh_port,
                "monitor_port": monitor_port,
                "log_file": log_file,
                "graphical": graphical,
                "write_mode": write_mode,
                "confirm": confirm,
            },
        )
        config: VMConfig = finalize_config(arch=detection.arch, disk_path=disk_image, **settings)

        _print_summary(config, detection.method.value)
        launch(config)

    except ExitError as e:
        console.print(f"[yellow]⚠️  {e}[/yellow]")
        sys.exit(e.exit_code)
    except Q2BootError as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(e.exit_code)
    finally:
        if cleanup is not None:
            cleanup()


@cli.command()
def check() -> None:
    """Perform a pre-flight check of needed dependencies"""

    console.print("\n[bold blue]🚀 Running pre-flight checks for q2boot dependencies...[/bold blue]")

    with console.status("[bold green]Checking host..."):
        report = preflight.run_checks()

    for index, result in enumerate(report.checks, start=1):
        mark = "[green]✅[/green]" if result.ok else "[red]❌[/red]"
        console.print(f"\n{index}. [bold]{result.name}[/bold]")
        console.print(f"   {mark} {result.message}")
        for hint in result.hints:
            console.print(f"      [dim]-> Hint: {hint}[/dim]")

    if report.install_hints:
        console.print(Panel(
            "\n".join(f"-> {hint}" for hint in report.install_hints),
            title="Installation Hints",
            border_style="yellow"
        ))

    if report.ok:
        console.print("\n[green]✅ Pre-flight check complete.[/green]")
    else:
        console.print("\n[red]❌ Pre-flight check found missing dependencies.[/red]")
        sys.exit(1)


@cli.command()
def version() -> None:
    """Print version information and QEMU binary availability"""

    from importlib.metadata import PackageNotFoundError, version as package_version

    try:
        installed = package_version("q2boot")
    except PackageNotFoundError:
        installed = "dev"

    console.print(f"\n[bold blue]q2boot {installed}[/bold blue]")
    console.print(f"Supported architectures: {', '.join(supported_architectures())}")

    statuses: list[BinaryStatus] = binaries.check_available_binaries()

    table: Table = Table(title="QEMU Binary Availability")
    table.add_column("Architecture", style="cyan")
    table.add_column("Binary", style="dim")
    table.add_column("Status")

    for status in statuses:
        table.add_row(
            status.arch.value,
            status.binary,
            "[green]✅ Available[/green]" if status.available else "[red]❌ Not Available[/red]"
        )

    console.print(table)

    for status in statuses:
        if not status.available:
            console.print(Panel(
                binaries.installation_instructions(status.binary),
                title=f"Missing {status.binary} ({status.arch.value})",
                border_style="yellow"
            ))


def _print_summary(config: VMConfig, detection_method: str) -> None:
    table: Table = Table(title="VM Configuration")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Disk", config.disk_path)
    table.add_row("Architecture", f"{config.arch.value} ({detection_method})")
    table.add_row("CPU Cores", str(config.cpu))
    table.add_row("Memory", f"{config.ram_gb} GB")
    table.add_row("SSH Port", str(config.ssh_port))
    table.add_row("Monitor Port", str(config.monitor_port) if config.monitor_port else "disabled")
    table.add_row("Display", "graphical" if config.graphical else "console")
    table.add_row("Disk Writes", "persisted" if config.write_mode else "discarded (snapshot)")

    console.print(table)


if __name__ == "__main__":
    cli()
