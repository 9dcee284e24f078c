"""
Invoking identity — the human operator a provisioning run works for.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class InvokingIdentity(BaseModel):
    """The user whose home receives every user-owned artifact.

    Resolved once at startup and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    username: str
    home: Path
    uid: int
    gid: int

    @property
    def is_root(self) -> bool:
        return self.uid == 0

    @property
    def local_bin(self) -> Path:
        """User-local binary directory (Composer, Symfony CLI)."""
        return self.home / ".local" / "bin"

    @property
    def composer_home(self) -> Path:
        return self.home / ".config" / "composer"

    @property
    def composer_bin(self) -> Path:
        """Where ``composer global require`` drops executables."""
        return self.composer_home / "vendor" / "bin"

    def user_path_dirs(self) -> list[Path]:
        """Directories prepended to PATH for this user's tools."""
        return [
            self.local_bin,
            self.composer_bin,
            self.home / ".composer" / "vendor" / "bin",
        ]
