"""Run QEMU in the foreground"""

from __future__ import annotations

import logging
import shlex
import subprocess
from typing import Sequence

from rich.console import Console

from .errors import ExitError, LaunchError

logger = logging.getLogger(__name__)

console: Console = Console(stderr=True)


def format_command(binary: str, args: Sequence[str]) -> str:
    return shlex.join([binary, *args])


def run_qemu(binary: str, args: Sequence[str], confirm: bool = False) -> None:
    """
    Execute QEMU with inherited standard streams and wait for it to exit

    Args:
        binary: QEMU system binary name
        args: Arguments produced by build_args
        confirm: Wait for Enter before starting

    Raises:
        ExitError: if QEMU exits with a non-zero status
        LaunchError: if QEMU cannot be started at all
    """
    logger.info("🚀 Starting QEMU with the following command:")
    logger.info(format_command(binary, args))

    if confirm:
        try:
            console.input("Press Enter to continue...")
        except EOFError:
            # Closed stdin counts as Enter
            logger.debug("No input available, continuing")

    try:
        result = subprocess.run([binary, *args])
    except OSError as e:
        logger.error(f"Failed to start QEMU: {e}")
        raise LaunchError(binary, e) from e

    if result.returncode != 0:
        logger.error(f"QEMU exited with error status {result.returncode}")
        raise ExitError(result.returncode)
