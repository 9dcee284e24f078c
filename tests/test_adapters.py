"""
Tests for system adapters, filesystem helpers, mocks and the registry.
"""

import os
import textwrap
from pathlib import Path

import pytest

from phpstack.adapters.mock import MockAlternatives, MockPackageManager, MockServiceManager
from phpstack.adapters.registry import SystemAdapters
from phpstack.adapters.shell.filesystem import FilesystemAdapter
from phpstack.adapters.system import AptAdapter, SystemdAdapter, UpdateAlternativesAdapter
from phpstack.core.errors import CommandError, PackageManagerError
from phpstack.core.models.unit import UnitKind, package_units, runtime_units

from tests.conftest import ALICE_GID, ALICE_UID, completed

# ── APT ──────────────────────────────────────────────────────────────


class TestAptAdapter:
    def test_is_installed(self, gateway, runner):
        def dpkg_query(argv, kw):
            if argv[-1] == "git":
                return completed(argv, stdout="install ok installed")
            return completed(argv, 1, stderr="no packages found matching")

        runner.handlers["dpkg-query"] = dpkg_query
        apt = AptAdapter(gateway)
        missing = apt.missing(package_units(["git", "unzip"]))
        assert [u.name for u in missing] == ["unzip"]

    def test_query_runs_as_user(self, gateway, runner):
        AptAdapter(gateway).is_installed(package_units(["git"])[0])
        _, kwargs = runner.calls_for("dpkg-query")[0]
        assert kwargs["user"] == ALICE_UID

    def test_install_noninteractive(self, gateway, runner):
        AptAdapter(gateway).install(runtime_units("8.2", ["intl"]))
        argv, kwargs = runner.calls_for("apt-get")[0]
        assert argv == ["apt-get", "install", "-y", "php8.2", "php8.2-intl"]
        assert kwargs["env"]["DEBIAN_FRONTEND"] == "noninteractive"

    def test_install_failure(self, gateway, runner):
        runner.handlers["apt-get"] = lambda argv, kw: completed(
            argv, 100, stderr="E: Unable to locate package php9.9\n",
        )
        with pytest.raises(PackageManagerError, match="Unable to locate package"):
            AptAdapter(gateway).install(runtime_units("9.9", []))

    def test_install_nothing(self, gateway, runner):
        AptAdapter(gateway).install([])
        assert runner.calls == []

    def test_has_repository(self, gateway, tmp_path: Path):
        apt_root = tmp_path / "apt"
        (apt_root / "sources.list.d").mkdir(parents=True)
        (apt_root / "sources.list").write_text("deb http://archive.ubuntu.com/ubuntu jammy main\n")
        apt = AptAdapter(gateway, apt_root=apt_root)
        assert not apt.has_repository("ondrej/php")

        (apt_root / "sources.list.d" / "ondrej-ubuntu-php-jammy.list").write_text(
            "deb https://ppa.launchpadcontent.net/ondrej/php/ubuntu/ jammy main\n"
        )
        assert apt.has_repository("ondrej/php")

    def test_add_repository(self, gateway, runner):
        AptAdapter(gateway).add_repository("ppa:ondrej/php")
        assert runner.calls_for("add-apt-repository")[0][0] == [
            "add-apt-repository", "-y", "ppa:ondrej/php",
        ]


# ── systemd ──────────────────────────────────────────────────────────


class TestSystemdAdapter:
    def test_is_active(self, gateway, runner):
        runner.handlers["systemctl"] = lambda argv, kw: completed(
            argv, 0 if argv[-1] == "php8.2-fpm" else 3,
        )
        systemd = SystemdAdapter(gateway)
        assert systemd.is_active("php8.2-fpm")
        assert not systemd.is_active("php7.4-fpm")

    def test_restart_failure_raises(self, gateway, runner):
        runner.handlers["systemctl"] = lambda argv, kw: completed(argv, 1, stderr="failed\n")
        with pytest.raises(CommandError):
            SystemdAdapter(gateway).restart_service("php8.2-fpm")

    def test_availability(self, gateway, tmp_path: Path):
        assert not SystemdAdapter(gateway, run_dir=tmp_path / "nope").is_available()
        assert SystemdAdapter(gateway, run_dir=tmp_path).is_available()


# ── update-alternatives ──────────────────────────────────────────────


QUERY_OUTPUT = textwrap.dedent("""\
    Name: php
    Link: /usr/bin/php
    Status: auto
    Best: /usr/bin/php8.3
    Value: /usr/bin/php8.3

    Alternative: /usr/bin/php8.2
    Priority: 82

    Alternative: /usr/bin/php8.3
    Priority: 83
""")


class TestUpdateAlternativesAdapter:
    def test_registered(self, gateway, runner):
        runner.handlers["update-alternatives"] = lambda argv, kw: completed(
            argv, stdout=QUERY_OUTPUT,
        )
        alts = UpdateAlternativesAdapter(gateway)
        assert alts.registered("php") == {"/usr/bin/php8.2": 82, "/usr/bin/php8.3": 83}

    def test_registered_empty_group(self, gateway, runner):
        runner.handlers["update-alternatives"] = lambda argv, kw: completed(argv, 2)
        assert UpdateAlternativesAdapter(gateway).registered("php") == {}

    def test_register_argv(self, gateway, runner):
        UpdateAlternativesAdapter(gateway).register(
            Path("/usr/bin/php"), "php", Path("/usr/bin/php8.2"), 82,
        )
        argv, _ = runner.calls_for("update-alternatives")[0]
        assert argv == [
            "update-alternatives", "--install", "/usr/bin/php", "php", "/usr/bin/php8.2", "82",
        ]

    def test_reset_ignores_failure(self, gateway, runner):
        runner.handlers["update-alternatives"] = lambda argv, kw: completed(argv, 2)
        UpdateAlternativesAdapter(gateway).reset("php")

    def test_current_reads_symlink(self, gateway, tmp_path: Path):
        alt_dir = tmp_path / "alternatives"
        alt_dir.mkdir()
        os.symlink("/usr/bin/php8.2", alt_dir / "php")
        alts = UpdateAlternativesAdapter(gateway, alternatives_dir=alt_dir)
        assert alts.current("php") == "/usr/bin/php8.2"
        assert alts.current("phar") is None


# ── Filesystem ───────────────────────────────────────────────────────


class TestFilesystemAdapter:
    def test_timestamped_backup(self, filesystem, tmp_path: Path):
        target = tmp_path / "php.ini"
        target.write_text("x")
        backup = filesystem.timestamped_backup(target)
        assert backup is not None
        assert backup.name.startswith("php.ini.bak.")
        assert backup.read_text() == "x"
        assert filesystem.timestamped_backup(tmp_path / "missing") is None

    def test_atomic_write_leaves_no_temp(self, filesystem, tmp_path: Path):
        (tmp_path / "rc").mkdir()
        target = tmp_path / "rc" / ".zshrc"
        filesystem.atomic_write(target, "one\n")
        filesystem.atomic_write(target, "two\n")
        assert target.read_text() == "two\n"
        assert [p.name for p in (tmp_path / "rc").iterdir()] == [".zshrc"]

    def test_atomic_write_through_symlink(self, filesystem, tmp_path: Path):
        real = tmp_path / "dotfiles" / "zshrc"
        real.parent.mkdir()
        real.write_text("one\n")
        real.chmod(0o600)
        link = tmp_path / ".zshrc"
        link.symlink_to(real)

        filesystem.atomic_write(link, "two\n")

        assert link.is_symlink()
        assert real.read_text() == "two\n"
        assert real.stat().st_mode & 0o777 == 0o600

    def test_text_round_trips_foreign_bytes(self, filesystem, tmp_path: Path):
        target = tmp_path / "latin1.txt"
        target.write_bytes(b"caf\xe9\n")
        filesystem.atomic_write(target, filesystem.read_text(target) + "ok\n")
        assert target.read_bytes() == b"caf\xe9\nok\n"

    def test_sibling_backup_owned_by_user(self, filesystem, home, chowns):
        profile = home / ".zshrc"
        profile.write_text("x")
        backup = filesystem.sibling_backup(profile)
        assert backup == home / ".zshrc.bak"
        assert chowns == [(str(backup), ALICE_UID, ALICE_GID)]

    def test_restore_backup_owned_by_user(self, filesystem, home, chowns):
        profile = home / ".zshrc"
        profile.write_text("new")
        backup = home / ".zshrc.bak"
        backup.write_text("old")

        filesystem.restore_backup(backup, profile)

        assert profile.read_text() == "old"
        assert not backup.exists()
        assert chowns == [(str(profile), ALICE_UID, ALICE_GID)]

    def test_give_to_user_recursive(self, filesystem, tmp_path: Path, chowns):
        tree = tmp_path / "pool.d"
        tree.mkdir()
        (tree / "www.conf").write_text("")
        filesystem.give_to_user(tree, recursive=True)
        assert {p for p, _, _ in chowns} == {str(tree), str(tree / "www.conf")}

    def test_give_to_user_noop_without_elevation(self, unprivileged_context, tmp_path, monkeypatch):
        calls = []
        monkeypatch.setattr(os, "chown", lambda *a, **k: calls.append(a))
        target = tmp_path / "f"
        target.write_text("")
        FilesystemAdapter(unprivileged_context).give_to_user(target)
        assert calls == []

    def test_make_user_dirs(self, filesystem, home, chowns):
        filesystem.make_user_dirs(home / ".local" / "bin")
        assert (home / ".local" / "bin").is_dir()
        assert [p for p, _, _ in chowns] == [str(home / ".local"), str(home / ".local" / "bin")]

    def test_user_tempdir_removed(self, filesystem):
        with filesystem.user_tempdir() as tmp:
            (tmp / "installer").write_text("x")
            assert tmp.is_dir()
        assert not tmp.exists()

    def test_user_tempdir_removed_on_error(self, filesystem):
        with pytest.raises(RuntimeError):
            with filesystem.user_tempdir() as tmp:
                raise RuntimeError("boom")
        assert not tmp.exists()


# ── Mocks & registry ─────────────────────────────────────────────────


class TestMocks:
    def test_package_manager_remembers_installs(self):
        pm = MockPackageManager()
        units = runtime_units("8.3", ["cli"])
        assert pm.missing(units) == units
        pm.install(units)
        assert pm.missing(units) == []
        assert pm.install_calls == [("php8.3", "php8.3-cli")]

    def test_package_manager_failure(self):
        pm = MockPackageManager()
        pm.set_failure("php8.0")
        with pytest.raises(PackageManagerError):
            pm.install(runtime_units("8.0", []))
        assert "php8.0" not in pm.installed

    def test_alternatives_current(self):
        alts = MockAlternatives()
        alts.register(Path("/usr/bin/php"), "php", Path("/usr/bin/php7.4"), 74)
        alts.register(Path("/usr/bin/php"), "php", Path("/usr/bin/php8.3"), 83)
        assert alts.current("php") == "/usr/bin/php8.3"
        alts.set_default("php", Path("/usr/bin/php7.4"))
        assert alts.current("php") == "/usr/bin/php7.4"

    def test_unit_kinds(self):
        units = runtime_units("8.1", ["fpm"])
        assert [u.kind for u in units] == [UnitKind.RUNTIME, UnitKind.EXTENSION]
        assert [u.package_name for u in units] == ["php8.1", "php8.1-fpm"]


class TestRegistry:
    def test_adapter_status(self, gateway, filesystem):
        adapters = SystemAdapters(
            gateway=gateway,
            packages=MockPackageManager(available=False),
            services=MockServiceManager(),
            alternatives=MockAlternatives(),
            filesystem=filesystem,
        )
        status = adapters.adapter_status()
        assert status["mock-apt"]["available"] is False
        assert status["filesystem"]["available"] is True
        assert status["mock-systemd"]["type"] == "MockServiceManager"
