from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Callable

import pytest

from q2boot.config import finalize_config
from q2boot.models import VMConfig


@pytest.fixture
def disk_image(tmp_path: Path) -> Path:
    path = tmp_path / "guest.qcow2"
    path.write_bytes(b"\0" * 512)
    return path


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def make_config(disk_image: Path) -> Callable[..., VMConfig]:
    def _make(**overrides: Any) -> VMConfig:
        values: dict[str, Any] = {
            "arch": "x86_64",
            "cpu": 2,
            "ram_gb": 2,
            "ssh_port": 2222,
            "disk_path": str(disk_image),
        }
        values.update(overrides)
        return finalize_config(**values)

    return _make
