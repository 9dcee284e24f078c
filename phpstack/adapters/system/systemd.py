"""
systemd adapter — service state and restarts.
"""

from __future__ import annotations

import logging
from pathlib import Path

from phpstack.adapters.base import ServiceManager
from phpstack.adapters.shell.command import CommandGateway

logger = logging.getLogger(__name__)


class SystemdAdapter(ServiceManager):
    """systemctl bound to a command gateway."""

    def __init__(self, gateway: CommandGateway, run_dir: Path = Path("/run/systemd/system")):
        self._gateway = gateway
        self._run_dir = run_dir

    @property
    def name(self) -> str:
        return "systemd"

    def is_available(self) -> bool:
        # systemd is PID 1 only when this directory exists
        return self._run_dir.exists()

    def is_active(self, service: str) -> bool:
        return self._gateway.run(["systemctl", "is-active", "--quiet", service]).ok

    def restart_service(self, service: str) -> None:
        logger.info("Restarting %s", service)
        self._gateway.run(["systemctl", "restart", service], check=True)
