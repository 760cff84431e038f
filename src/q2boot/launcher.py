"""Launch pipeline: detect, validate, build, run"""

from __future__ import annotations

import logging
from typing import Optional

from .architectures import create_variant
from .builder import build_args
from .detector import detect_architecture
from .errors import ConfigurationError
from .models import Architecture, DetectionMethod, DetectionResult, VMConfig
from .runner import run_qemu
from .validator import validate

logger = logging.getLogger(__name__)


def resolve_architecture(
    disk_path: str,
    explicit_arch: Optional[str] = None,
    guest_inspection: bool = True,
) -> DetectionResult:
    """Use the explicit architecture if given, otherwise detect it from the image"""
    if explicit_arch:
        try:
            arch = Architecture(explicit_arch)
        except ValueError:
            raise ConfigurationError(
                f"invalid architecture '{explicit_arch}'. "
                f"Valid options: {', '.join(a.value for a in Architecture)}"
            ) from None
        return DetectionResult(arch=arch, method=DetectionMethod.EXPLICIT)

    logger.info(f"Attempting to detect architecture from disk image {disk_path}")
    result = detect_architecture(disk_path, guest_inspection=guest_inspection)
    logger.info(f"Detected architecture {result.arch.value} ({result.method.value})")
    return result


def launch(config: VMConfig) -> None:
    """
    Validate and run one VM in the foreground

    Any temporary files the architecture variant creates are removed when
    QEMU exits, whether or not it succeeded.
    """
    variant = create_variant(config)
    try:
        validate(config, variant)
        args = build_args(config, variant)
        logger.info(f"Starting {config.arch.value} VM")
        run_qemu(variant.qemu_binary, args, confirm=config.confirm)
    finally:
        variant.cleanup()
