"""
Provisioning context — the single source of truth for "who, and with what rights."

Built ONCE at startup by the entry point and handed explicitly to every
component:

    - CLI:    main.py   → build_context(os.environ, os.geteuid())
    - Tests:  conftest  → ProvisionContext(identity=..., elevation_held=...)

Design notes:
    - Immutable value, not a module-level singleton.  Nothing below the
      entry point looks at os.environ or os.geteuid() directly.
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict

from phpstack.core.models.identity import InvokingIdentity
from phpstack.core.services.identity import ROOT_UID, resolve_identity


class ProvisionContext(BaseModel):
    """The invoking identity plus whether this process holds root."""

    model_config = ConfigDict(frozen=True)

    identity: InvokingIdentity
    elevation_held: bool

    @property
    def drops_privileges(self) -> bool:
        """Whether user-scoped commands must switch away from root."""
        return self.elevation_held and not self.identity.is_root


def build_context(environ: Mapping[str, str], euid: int) -> ProvisionContext:
    """Resolve the identity and record the elevation state.

    Raises:
        IdentityResolutionError: see ``resolve_identity``.
    """
    identity = resolve_identity(environ, euid)
    return ProvisionContext(identity=identity, elevation_held=euid == ROOT_UID)
