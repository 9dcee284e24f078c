"""
Profile mutation — idempotent edits to the invoking user's shell rc file.

Two kinds of edit:

    - ``install_helpers``: append the PHP helper-function block once,
      guarded by a marker, with backup / verify / restore.
    - ``ensure_path_entry``: append an ``export PATH=...`` line unless a
      distinguishing fragment is already present.

Appends are committed through an atomic replace of the whole file.
The profile is handed back to the invoking identity after every write.
Concurrent runs against the same profile are not supported.
"""

from __future__ import annotations

import logging
import os
import tempfile
from enum import Enum
from pathlib import Path

from phpstack.adapters.shell.command import ELEVATED_PROGRAMS
from phpstack.adapters.shell.filesystem import FilesystemAdapter
from phpstack.core.context import ProvisionContext
from phpstack.core.data.profile_maps import PROFILE_MAP
from phpstack.core.data.shell_helpers import (
    HELPER_MARKER,
    HELPER_PROBE,
    HELPER_TEMPLATE,
    ZSH_AUTOLOAD,
)
from phpstack.core.errors import ProfileMutationError

logger = logging.getLogger(__name__)


class ProfileChange(str, Enum):
    APPENDED = "appended"
    ALREADY_PRESENT = "already-present"


def render_template(template: str, values: dict[str, str]) -> str:
    """Substitute ``{var}`` placeholders with values.

    Simple string replacement — no Jinja, no escaping.  Braces that do
    not name a known value are left as-is, so shell syntax survives.
    """
    result = template
    for key, value in values.items():
        result = result.replace(f"{{{key}}}", str(value))
    return result


def shell_config_line(path_entry: str) -> str:
    """POSIX (bash, zsh) line prepending *path_entry* to PATH."""
    return f'export PATH="{path_entry}:$PATH"'


class ProfileMutator:
    """Edits one user's shell profile on behalf of a provisioning context."""

    def __init__(
        self,
        context: ProvisionContext,
        filesystem: FilesystemAdapter,
        shell: str = "zsh",
    ):
        if shell not in PROFILE_MAP:
            raise ValueError(f"Unsupported shell '{shell}'")
        self._context = context
        self._filesystem = filesystem
        self._shell = shell
        self.path: Path = context.identity.home / PROFILE_MAP[shell]

    # ── Rendering ───────────────────────────────────────────────

    def render_helpers(self) -> str:
        return render_template(HELPER_TEMPLATE, {
            "elevated_programs": "|".join(sorted(ELEVATED_PROGRAMS)),
            "autoload": ZSH_AUTOLOAD if self._shell == "zsh" else "",
        })

    # ── Reads ───────────────────────────────────────────────────

    def read(self) -> str:
        if not self.path.is_file():
            return ""
        return self._filesystem.read_text(self.path)

    def has_helpers(self) -> bool:
        return HELPER_MARKER in self.read()

    # ── Writes ──────────────────────────────────────────────────

    def _commit(self, content: str) -> None:
        """Replace the profile with *content*."""
        self._filesystem.atomic_write(self.path, content)

    def _restore(self, backup: Path | None, existed: bool) -> None:
        if backup is not None and backup.exists():
            self._filesystem.restore_backup(backup, self.path)
        elif not existed:
            self.path.unlink(missing_ok=True)

    def install_helpers(self) -> ProfileChange:
        """Append the helper block unless its marker is already present.

        Steps: stage the rendered block, back up the profile, append if
        the marker is absent, verify a known definition is present.  On
        a failed verification the profile is restored and
        ``ProfileMutationError`` is raised.  On success the profile is
        handed to the user and the backup removed.  The staging file is
        removed on every path.

        Raises:
            ProfileMutationError: verification failed; the profile is
                byte-for-byte what it was before the call.
        """
        logger.info("Adding shell functions to %s...", self.path)

        fd, staging_name = tempfile.mkstemp(prefix="phpstack-helpers-", suffix=".sh")
        staging = Path(staging_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(self.render_helpers())

            existed = self.path.exists()
            original = self.read()
            backup = self._filesystem.sibling_backup(self.path)

            if HELPER_MARKER in original:
                change = ProfileChange.ALREADY_PRESENT
                logger.info("PHP helper functions already exist in %s", self.path.name)
            else:
                try:
                    self._commit(original + staging.read_text(encoding="utf-8"))
                except OSError as e:
                    self._restore(backup, existed)
                    raise ProfileMutationError(f"Cannot write {self.path}: {e}") from e
                change = ProfileChange.APPENDED
                logger.info("Added PHP helper functions to %s", self.path.name)

            if HELPER_PROBE not in self.read():
                logger.error("Failed to add PHP helper functions to %s", self.path.name)
                self._restore(backup, existed)
                raise ProfileMutationError(
                    f"PHP helper functions missing from {self.path} after update; "
                    "profile restored"
                )

            self._filesystem.give_to_user(self.path)
            if backup is not None:
                backup.unlink(missing_ok=True)
            logger.info("PHP helper functions verified in %s", self.path.name)
            return change
        finally:
            staging.unlink(missing_ok=True)

    def ensure_path_entry(self, path_entry: str, fragment: str) -> bool:
        """Append ``export PATH="<path_entry>:$PATH"`` unless *fragment* is present.

        Returns:
            True if the profile was changed.
        """
        current = self.read()
        if fragment in current:
            logger.debug("PATH entry for '%s' already in %s", fragment, self.path.name)
            return False

        if current and not current.endswith("\n"):
            current += "\n"
        self._commit(current + shell_config_line(path_entry) + "\n")
        self._filesystem.give_to_user(self.path)
        logger.info("Added %s to PATH in %s", path_entry, self.path.name)
        return True
