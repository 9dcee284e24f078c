"""
Installer downloads — fetch a script as the invoking user and verify it.

Installers are downloaded to a file and checked before they run,
never piped straight from curl into an interpreter.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from phpstack.adapters.shell.command import CommandGateway
from phpstack.core.errors import DownloadError

logger = logging.getLogger(__name__)


def download(gateway: CommandGateway, url: str, dest: Path) -> Path:
    """Download *url* to *dest* with curl, as the invoking identity.

    Raises:
        DownloadError: curl exited non-zero.
    """
    logger.info("Downloading %s", url)
    result = gateway.run(["curl", "-fsSL", "-o", dest, url])
    if not result.ok:
        raise DownloadError(
            f"Download failed (exit {result.returncode}) for {url}: "
            f"{result.stderr.strip()[:200]}"
        )
    return dest


def fetch_text(gateway: CommandGateway, url: str) -> str:
    """Download *url* and return its body, stripped."""
    result = gateway.run(["curl", "-fsSL", url])
    if not result.ok:
        raise DownloadError(
            f"Download failed (exit {result.returncode}) for {url}: "
            f"{result.stderr.strip()[:200]}"
        )
    return result.stdout.strip()


def file_digest(path: Path, algorithm: str = "sha384") -> str:
    h = hashlib.new(algorithm)
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def verify_checksum(path: Path, expected: str, algorithm: str = "sha384") -> str:
    """Check *path* against a hex digest.

    Returns:
        The actual digest.

    Raises:
        DownloadError: digest mismatch.
    """
    expected = expected.strip().lower().removeprefix(f"{algorithm}:")
    actual = file_digest(path, algorithm)
    if actual != expected:
        raise DownloadError(
            f"{algorithm.upper()} mismatch for {path.name}\n"
            f"Expected: {expected}\n"
            f"Got:      {actual}\n"
            f"The installer may have been tampered with."
        )
    logger.debug("%s verified (%s=%s)", path.name, algorithm, actual)
    return actual
