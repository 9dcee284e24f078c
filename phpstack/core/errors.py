"""
Provisioning exception hierarchy.

Every phpstack-specific exception inherits from ProvisionError so the
CLI can catch the whole family in one clause. Whether an error is fatal
is decided by the step that catches it, not by the exception type.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from phpstack.adapters.shell.command import CommandResult


class ProvisionError(Exception):
    """Base exception for all phpstack errors."""


class ConfigError(ProvisionError):
    """Raised when phpstack.yml is invalid or unreadable."""


class IdentityResolutionError(ProvisionError):
    """The invoking user or their home directory could not be determined."""


class PrivilegeError(ProvisionError):
    """An elevation-requiring program was invoked without elevation."""

    def __init__(self, program: str) -> None:
        super().__init__(
            f"Command '{program}' requires root privileges — re-run with sudo"
        )
        self.program = program


class CommandError(ProvisionError):
    """A checked command exited non-zero."""

    def __init__(self, result: CommandResult) -> None:
        detail = result.stderr.strip().splitlines()[-1:] or [""]
        message = f"Command failed (exit {result.returncode}): {result.command_line}"
        if detail[0]:
            message = f"{message} — {detail[0]}"
        super().__init__(message)
        self.result = result


class PackageManagerError(ProvisionError):
    """The system package manager could not complete an operation."""


class ProfileMutationError(ProvisionError):
    """The shell profile could not be updated and was restored."""


class DownloadError(ProvisionError):
    """An installer could not be fetched or failed its integrity check."""
