"""
Shell profile/rc file mappings.
"""

from __future__ import annotations

PROFILE_MAP: dict[str, str] = {
    "bash": ".bashrc",
    "zsh": ".zshrc",
}
