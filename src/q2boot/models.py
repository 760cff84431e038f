"""Pydantic models for VM launch settings and detection results"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Architecture(str, Enum):
    """Guest CPU architectures q2boot can launch"""
    X86_64 = "x86_64"
    AARCH64 = "aarch64"
    PPC64LE = "ppc64le"
    S390X = "s390x"


class DetectionMethod(str, Enum):
    """How the architecture of a disk image was determined"""
    EXPLICIT = "explicit"
    GUEST_INSPECTION = "guest-inspection"
    FILENAME = "filename"


class VMConfig(BaseModel):
    """Validated settings for a single VM launch"""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="ignore")

    arch: Architecture = Field(..., description="Guest CPU architecture")
    cpu: int = Field(2, ge=1, le=32, description="Number of CPU cores")
    ram_gb: int = Field(2, ge=1, le=128, description="Memory size in GB")
    ssh_port: int = Field(2222, ge=1024, le=65535, description="Host port forwarded to guest port 22")
    monitor_port: int = Field(0, ge=0, le=65535, description="QEMU monitor telnet port, 0 disables it")
    disk_path: str = Field("", description="Path to disk image file")
    log_file: str = Field("q2boot.log", description="Serial console log file, empty for none")
    graphical: bool = Field(False, description="Request a graphical console")
    write_mode: bool = Field(False, description="Persist disk writes instead of using a snapshot")
    confirm: bool = Field(False, description="Wait for Enter before starting QEMU")

    @field_validator("monitor_port")
    @classmethod
    def monitor_port_must_be_unprivileged(cls, v: int) -> int:
        if v != 0 and v < 1024:
            raise ValueError("monitor_port must be 0 (disabled) or between 1024 and 65535")
        return v


class DetectionResult(BaseModel):
    """Architecture of a disk image and the method that found it"""
    model_config = ConfigDict(frozen=True)

    arch: Architecture = Field(..., description="Detected architecture")
    method: DetectionMethod = Field(..., description="Detection method that succeeded")


class BinaryStatus(BaseModel):
    """Availability of the QEMU system binary for one architecture"""

    arch: Architecture = Field(..., description="Guest architecture")
    binary: str = Field(..., description="QEMU binary name")
    path: Optional[str] = Field(None, description="Resolved path on PATH, if any")

    @property
    def available(self) -> bool:
        return self.path is not None
