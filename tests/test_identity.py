"""
Tests for identity resolution and the provisioning context.
"""

import pwd
from pathlib import Path

import pytest

from phpstack.core.context import ProvisionContext
from phpstack.core.errors import IdentityResolutionError
from phpstack.core.models.identity import InvokingIdentity
from phpstack.core.services.identity import resolve_identity, resolve_username


def _passwd(name: str, uid: int, home: Path) -> pwd.struct_passwd:
    return pwd.struct_passwd((name, "x", uid, uid, "", str(home), "/bin/zsh"))


def _users(**homes: Path):
    """A user_lookup over a fixed set of accounts."""
    entries = {name: _passwd(name, 1000 + i, home) for i, (name, home) in enumerate(homes.items())}

    def lookup(name: str) -> pwd.struct_passwd:
        return entries[name]

    return lookup


def _no_login() -> None:
    return None


class TestResolveUsername:
    def test_sudo_user_wins_when_elevated(self):
        name = resolve_username(
            {"SUDO_USER": "alice", "USER": "root"}, 0, login_name=lambda: "bob",
        )
        assert name == "alice"

    def test_login_name_when_sudo_user_empty(self):
        name = resolve_username({"SUDO_USER": "", "USER": "root"}, 0, login_name=lambda: "bob")
        assert name == "bob"

    def test_user_var_last(self):
        name = resolve_username({"USER": "carol"}, 0, login_name=_no_login)
        assert name == "carol"

    def test_unelevated_uses_process_owner(self):
        name = resolve_username(
            {"SUDO_USER": "mallory", "USER": "mallory"},
            1000,
            uid_lookup=lambda uid: _passwd("alice", uid, Path("/home/alice")),
        )
        assert name == "alice"


class TestResolveIdentity:
    def test_fresh_host(self, tmp_path: Path):
        home = tmp_path / "alice"
        home.mkdir()
        identity = resolve_identity(
            {"SUDO_USER": "alice", "HOME": "/root"},
            0,
            login_name=_no_login,
            user_lookup=_users(alice=home),
        )
        assert identity.username == "alice"
        assert identity.home == home  # from passwd, not HOME
        assert identity.uid == 1000
        assert not identity.is_root

    def test_empty_name(self):
        with pytest.raises(IdentityResolutionError, match="Could not determine"):
            resolve_identity({}, 0, login_name=_no_login, user_lookup=_users())

    def test_unknown_user(self):
        with pytest.raises(IdentityResolutionError, match="Unknown user 'ghost'"):
            resolve_identity(
                {"SUDO_USER": "ghost"}, 0, login_name=_no_login, user_lookup=_users(),
            )

    def test_missing_home(self, tmp_path: Path):
        with pytest.raises(IdentityResolutionError, match="does not exist"):
            resolve_identity(
                {"SUDO_USER": "alice"},
                0,
                login_name=_no_login,
                user_lookup=_users(alice=tmp_path / "nowhere"),
            )


class TestProvisionContext:
    def test_drops_privileges_for_user(self, identity: InvokingIdentity):
        assert ProvisionContext(identity=identity, elevation_held=True).drops_privileges
        assert not ProvisionContext(identity=identity, elevation_held=False).drops_privileges

    def test_root_identity_keeps_root(self, tmp_path: Path):
        root = InvokingIdentity(username="root", home=tmp_path, uid=0, gid=0)
        assert root.is_root
        assert not ProvisionContext(identity=root, elevation_held=True).drops_privileges

    def test_frozen(self, identity: InvokingIdentity):
        ctx = ProvisionContext(identity=identity, elevation_held=True)
        with pytest.raises(Exception):
            ctx.elevation_held = False  # type: ignore[misc]

    def test_user_dirs(self, identity: InvokingIdentity, home: Path):
        assert identity.local_bin == home / ".local" / "bin"
        assert identity.composer_bin == home / ".config" / "composer" / "vendor" / "bin"
