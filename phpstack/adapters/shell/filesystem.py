"""
Filesystem adapter — backups, atomic writes and ownership.

All file mutations a provisioning run performs go through here so the
ownership rule holds in one place: anything written under the invoking
identity's home is handed back to that identity.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from phpstack.adapters.base import Adapter
from phpstack.core.context import ProvisionContext

logger = logging.getLogger(__name__)

# Text files we edit may hold bytes that are not UTF-8; this round-trips them.
TEXT_ERRORS = "surrogateescape"


def real_path(path: Path) -> Path:
    """The file a symlinked *path* points at, or *path* itself."""
    return path.resolve() if path.is_symlink() else path


class FilesystemAdapter(Adapter):
    """File operations scoped to a provisioning context."""

    def __init__(self, context: ProvisionContext):
        self._context = context

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True  # filesystem is always available

    # ── Backups ─────────────────────────────────────────────────

    def timestamped_backup(self, path: Path) -> Path | None:
        """Copy *path* to ``PATH.bak.YYYYMMDD_HHMMSS``.

        Returns the backup path, or None when *path* does not exist.
        """
        if not path.exists():
            logger.debug("Backup skipped, path does not exist: %s", path)
            return None
        ts = time.strftime("%Y%m%d_%H%M%S")
        backup = path.with_name(f"{path.name}.bak.{ts}")
        logger.info("Backing up %s to %s", path, backup)
        shutil.copy2(path, backup)
        return backup

    def sibling_backup(self, path: Path, suffix: str = ".bak") -> Path | None:
        """Copy *path* to a fixed sibling (``.zshrc`` → ``.zshrc.bak``).

        The copy belongs to the invoking identity, since it may be moved
        back over the original.
        """
        if not path.exists():
            return None
        backup = path.with_name(path.name + suffix)
        shutil.copy2(path, backup)
        self.give_to_user(backup)
        return backup

    def restore_backup(self, backup: Path, path: Path) -> None:
        """Move *backup* back over *path* (or the file it links to)."""
        target = real_path(path)
        os.replace(backup, target)
        self.give_to_user(target)
        logger.info("Restored %s from backup", path)

    # ── Writes ──────────────────────────────────────────────────

    def read_text(self, path: Path) -> str:
        """Read *path*, keeping any non-UTF-8 bytes intact for a rewrite."""
        return path.read_text(encoding="utf-8", errors=TEXT_ERRORS)

    def atomic_write(self, path: Path, content: str) -> None:
        """Replace *path* with *content* via write-to-temp-then-rename.

        Readers see either the old or the new file, never a partial one.
        The original file mode is preserved.  A symlinked *path* stays a
        symlink: the file it points at is the one replaced.
        """
        path = real_path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        mode = path.stat().st_mode & 0o7777 if path.exists() else 0o644

        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        tmp = Path(tmp_path)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", errors=TEXT_ERRORS) as fh:
                fh.write(content)
            os.chmod(tmp, mode)
            os.replace(tmp, path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise

    # ── Ownership ───────────────────────────────────────────────

    def give_to_user(self, path: Path, *, recursive: bool = False) -> None:
        """Chown *path* (optionally its whole tree) to the invoking identity.

        A no-op when the process is not elevated: without root the
        files are already created by, and owned by, the invoking user.
        """
        if not self._context.elevation_held or not path.exists():
            return

        identity = self._context.identity
        path = real_path(path)
        targets = [path]
        if recursive and path.is_dir():
            targets.extend(path.rglob("*"))

        for target in targets:
            os.chown(target, identity.uid, identity.gid, follow_symlinks=False)
        logger.debug("Owned by %s: %s (%d entries)", identity.username, path, len(targets))

    def make_user_dirs(self, path: Path) -> None:
        """mkdir -p *path*, handing every newly created level to the user."""
        missing: list[Path] = []
        current = path
        while not current.exists():
            missing.append(current)
            current = current.parent
        path.mkdir(parents=True, exist_ok=True)
        for created in reversed(missing):
            self.give_to_user(created)

    @contextmanager
    def user_tempdir(self, prefix: str = "phpstack-") -> Iterator[Path]:
        """Private temp directory owned by the invoking identity.

        Removed on exit, success or failure.
        """
        path = Path(tempfile.mkdtemp(prefix=prefix))
        try:
            self.give_to_user(path)
            yield path
        finally:
            shutil.rmtree(path, ignore_errors=True)
