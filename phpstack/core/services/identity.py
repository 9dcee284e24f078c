"""
Identity resolution — who is this provisioning run for?

Package installation needs root, but every artifact placed in a home
directory must belong to the human who asked for it.  This module
works out that human even when the process runs under sudo.

Inputs are passed in explicitly (environment mapping, effective uid)
so the resolver never reads ambient process state on its own.
"""

from __future__ import annotations

import logging
import os
import pwd
from collections.abc import Callable, Mapping
from pathlib import Path

from phpstack.core.errors import IdentityResolutionError
from phpstack.core.models.identity import InvokingIdentity

logger = logging.getLogger(__name__)

ROOT_UID = 0


def logged_in_user() -> str | None:
    """Name of the user logged in on the controlling terminal (``logname``)."""
    try:
        return os.getlogin()
    except OSError:
        return None


def resolve_username(
    environ: Mapping[str, str],
    euid: int,
    *,
    login_name: Callable[[], str | None] = logged_in_user,
    uid_lookup: Callable[[int], pwd.struct_passwd] = pwd.getpwuid,
) -> str:
    """Pick the username of the human operator.

    Elevated: ``SUDO_USER``, then the logged-in user, then ``USER``.
    Not elevated: the user owning the current process.
    """
    if euid != ROOT_UID:
        try:
            return uid_lookup(euid).pw_name
        except KeyError:
            return environ.get("USER", "")

    sudo_user = environ.get("SUDO_USER", "").strip()
    if sudo_user:
        return sudo_user

    name = (login_name() or "").strip()
    if name:
        return name

    return environ.get("USER", "").strip()


def resolve_identity(
    environ: Mapping[str, str],
    euid: int,
    *,
    login_name: Callable[[], str | None] = logged_in_user,
    user_lookup: Callable[[str], pwd.struct_passwd] = pwd.getpwnam,
    uid_lookup: Callable[[int], pwd.struct_passwd] = pwd.getpwuid,
) -> InvokingIdentity:
    """Resolve the invoking identity and its home from the user database.

    The home directory always comes from the passwd entry, never from
    ``HOME``, which under sudo may point at root's home.

    Raises:
        IdentityResolutionError: no username, unknown user, or the home
            directory is not an existing directory.
    """
    username = resolve_username(
        environ, euid, login_name=login_name, uid_lookup=uid_lookup,
    )
    if not username:
        raise IdentityResolutionError("Could not determine the invoking user")

    try:
        entry = user_lookup(username)
    except KeyError as e:
        raise IdentityResolutionError(f"Unknown user '{username}'") from e

    home = Path(entry.pw_dir)
    if not home.is_dir():
        raise IdentityResolutionError(
            f"Home directory for '{username}' does not exist: {home}"
        )

    logger.debug("Resolved invoking identity %s (uid=%d, home=%s)",
                 username, entry.pw_uid, home)
    return InvokingIdentity(
        username=username,
        home=home,
        uid=entry.pw_uid,
        gid=entry.pw_gid,
    )
