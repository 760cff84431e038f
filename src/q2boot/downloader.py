"""Fetch remote disk images to a temporary file"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path, PurePosixPath
from typing import Callable

from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TransferSpeedColumn,
)

from .errors import DownloadError

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = frozenset({"http", "https", "ftp", "smb"})
DEFAULT_IMAGE_NAME = "image.qcow2"
CHUNK_SIZE = 1024 * 1024
USER_AGENT = "q2boot"


def is_remote(path: str) -> bool:
    """True if the path is a URL with a scheme we can download"""
    try:
        scheme = urllib.parse.urlparse(path).scheme
    except ValueError:
        return False
    return scheme in REMOTE_SCHEMES


def _remote_basename(url: str) -> str:
    name = PurePosixPath(urllib.parse.unquote(urllib.parse.urlparse(url).path)).name
    return name or DEFAULT_IMAGE_NAME


def _download_http(url: str, dest: Path) -> None:
    request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    with urllib.request.urlopen(request) as response, open(dest, "wb") as out:
        total = response.length
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
        ) as progress:
            task = progress.add_task("Downloading...", total=total)
            while True:
                chunk = response.read(CHUNK_SIZE)
                if not chunk:
                    break
                out.write(chunk)
                progress.update(task, advance=len(chunk))


def _download_curl(url: str, dest: Path) -> None:
    if shutil.which("curl") is None:
        raise DownloadError(f"curl is required for {url} downloads but was not found in PATH")

    # -L follow redirects, -f fail on server errors; curl draws its own progress
    try:
        subprocess.run(["curl", "-L", "-f", "-o", str(dest), url], check=True)
    except subprocess.CalledProcessError as e:
        raise DownloadError(f"curl failed with status {e.returncode} for {url}") from e


def download(url: str) -> tuple[str, Callable[[], None]]:
    """
    Download a remote disk image into a temporary file

    The temporary file keeps the remote basename as its suffix so filename
    based architecture detection still works on the local copy.

    Returns:
        Local path and a cleanup function that removes it

    Raises:
        DownloadError: if the URL is unsupported or the transfer fails
    """
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme not in REMOTE_SCHEMES:
        raise DownloadError(f"unsupported protocol: {parsed.scheme or '(none)'}")

    fd, tmp_name = tempfile.mkstemp(prefix="q2boot-download-", suffix=f"-{_remote_basename(url)}")
    os.close(fd)
    tmp_path = Path(tmp_name)

    def cleanup() -> None:
        tmp_path.unlink(missing_ok=True)

    logger.info(f"Downloading {url} to {tmp_path}")
    try:
        if parsed.scheme in ("http", "https"):
            _download_http(url, tmp_path)
        else:
            _download_curl(url, tmp_path)
    except DownloadError:
        cleanup()
        raise
    except (urllib.error.URLError, OSError) as e:
        cleanup()
        raise DownloadError(f"failed to download {url}: {e}") from e

    logger.info("Download complete")
    return str(tmp_path), cleanup
