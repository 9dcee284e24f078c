"""
update-alternatives adapter — which ``php`` is the default.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from phpstack.adapters.base import AlternativesManager
from phpstack.adapters.shell.command import CommandGateway

logger = logging.getLogger(__name__)


class UpdateAlternativesAdapter(AlternativesManager):
    """update-alternatives bound to a command gateway."""

    def __init__(
        self,
        gateway: CommandGateway,
        alternatives_dir: Path = Path("/etc/alternatives"),
    ):
        self._gateway = gateway
        self._alternatives_dir = alternatives_dir

    @property
    def name(self) -> str:
        return "update-alternatives"

    def is_available(self) -> bool:
        return self._gateway.which("update-alternatives") is not None

    def reset(self, group: str) -> None:
        result = self._gateway.run(["update-alternatives", "--remove-all", group])
        if not result.ok:
            # An empty group is the normal case on a fresh host
            logger.debug("No existing '%s' alternatives to remove", group)

    def register(self, link: Path, group: str, target: Path, priority: int) -> None:
        logger.info("Registering %s (priority %d)", target, priority)
        self._gateway.run(
            ["update-alternatives", "--install", link, group, target, str(priority)],
            check=True,
        )

    def set_default(self, group: str, target: Path) -> None:
        logger.info("Setting default %s → %s", group, target)
        self._gateway.run(["update-alternatives", "--set", group, target], check=True)

    def registered(self, group: str) -> dict[str, int]:
        result = self._gateway.run(["update-alternatives", "--query", group])
        if not result.ok:
            return {}
        candidates: dict[str, int] = {}
        target: str | None = None
        for line in result.stdout.splitlines():
            key, _, value = line.partition(":")
            if key == "Alternative":
                target = value.strip()
            elif key == "Priority" and target:
                try:
                    candidates[target] = int(value.strip())
                except ValueError:
                    pass
                target = None
        return candidates

    def current(self, group: str) -> str | None:
        # Read the managed symlink directly: querying through
        # update-alternatives would need elevation.
        link = self._alternatives_dir / group
        try:
            return os.readlink(link)
        except OSError:
            return None
