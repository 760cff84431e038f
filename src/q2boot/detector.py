"""Automatic architecture detection from disk images"""

from __future__ import annotations

import logging
import os
import shutil
import struct
import subprocess

from .errors import DetectionError
from .models import Architecture, DetectionMethod, DetectionResult

logger = logging.getLogger(__name__)

# Guest file extracted for inspection; every Linux distro ships it.
GUEST_PROBE_FILE = "/bin/sh"

FILENAME_SEPARATORS = ("-", "_", "@")

# ELF e_machine values
EM_PPC64 = 21
EM_S390 = 22
EM_X86_64 = 62
EM_AARCH64 = 183

ELF_MAGIC = b"\x7fELF"
ELFCLASS64 = 2
ELFDATA2LSB = 1


def classify_file_report(report: str) -> Architecture | None:
    """Map the textual report of `file -` to an architecture"""
    output = report.lower()
    if "elf" not in output:
        return None

    # aarch64 first: some `file` builds also print "ARM" for it
    if "aarch64" in output:
        return Architecture.AARCH64
    if "powerpc" in output or "ppc64" in output:
        return Architecture.PPC64LE
    if "s390" in output or "s/390" in output:
        return Architecture.S390X
    if "x86-64" in output:
        return Architecture.X86_64
    return None


def classify_elf_header(data: bytes) -> Architecture | None:
    """Read e_machine straight from an ELF header"""
    if len(data) < 20 or not data.startswith(ELF_MAGIC):
        return None

    elf_class = data[4]
    byte_order = "<" if data[5] == ELFDATA2LSB else ">"
    (machine,) = struct.unpack(f"{byte_order}H", data[18:20])

    if machine == EM_X86_64:
        return Architecture.X86_64
    if machine == EM_AARCH64:
        return Architecture.AARCH64
    if machine == EM_PPC64:
        return Architecture.PPC64LE
    if machine == EM_S390 and elf_class == ELFCLASS64:
        return Architecture.S390X
    return None


def detect_by_guest_inspection(disk_path: str) -> Architecture | None:
    """
    Extract /bin/sh from the image with virt-cat and classify it

    `file` reports the ELF architecture of the guest binary, which makes this
    the most reliable method when libguestfs is installed. If `file` is
    missing or its report is ambiguous, the ELF header is decoded directly.

    Returns:
        The detected architecture, or None when this method cannot decide
    """
    if shutil.which("virt-cat") is None:
        logger.debug(
            "virt-cat not found; install guestfs-tools (package name may be "
            "'guestfs-tools' or 'libguestfs-tools') to enable guest inspection"
        )
        return None

    logger.info("Detecting architecture using virt-cat (this may take a while)...")

    try:
        extracted = subprocess.run(
            ["virt-cat", disk_path, GUEST_PROBE_FILE],
            check=True,
            capture_output=True,
        )
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.decode(errors="replace").strip() if e.stderr else ""
        logger.debug(f"virt-cat failed with status {e.returncode}: {stderr}")
        return None
    except OSError as e:
        logger.debug(f"virt-cat failed to start: {e}")
        return None

    guest_binary: bytes = extracted.stdout

    try:
        classified = subprocess.run(
            ["file", "-"],
            input=guest_binary,
            check=True,
            capture_output=True,
        )
    except (subprocess.CalledProcessError, OSError) as e:
        logger.debug(f"file command failed: {e}")
    else:
        report = classified.stdout.decode(errors="replace").strip()
        arch = classify_file_report(report)
        if arch is not None:
            return arch
        logger.debug(f"file did not reveal a clear ELF architecture for '{disk_path}': {report}")

    return classify_elf_header(guest_binary[:64])


def detect_by_filename(disk_path: str) -> Architecture | None:
    """Look for an architecture token right after a separator in the file name

    Requiring a separator avoids matches inside version numbers.
    """
    lower_case_name = os.path.basename(disk_path).lower()
    for arch in Architecture:
        if any(f"{sep}{arch.value}" in lower_case_name for sep in FILENAME_SEPARATORS):
            return arch
    return None


def detect_architecture(disk_path: str, guest_inspection: bool = True) -> DetectionResult:
    """
    Determine the architecture of a disk image

    Methods are tried in order of reliability and the first success wins:
    guest inspection, then the filename heuristic.

    Args:
        disk_path: Path to the disk image
        guest_inspection: Whether to try virt-cat based inspection

    Returns:
        DetectionResult with the architecture and the method that found it

    Raises:
        DetectionError: if no method could determine the architecture
    """
    if not disk_path:
        raise DetectionError(disk_path, "disk path is empty")

    if guest_inspection:
        arch = detect_by_guest_inspection(disk_path)
        if arch is not None:
            return DetectionResult(arch=arch, method=DetectionMethod.GUEST_INSPECTION)

    arch = detect_by_filename(disk_path)
    if arch is not None:
        return DetectionResult(arch=arch, method=DetectionMethod.FILENAME)

    raise DetectionError(disk_path)
