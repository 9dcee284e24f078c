"""
Shared test fixtures and configuration.

The fixtures model a host with one non-root user, ``alice``, whose home
lives under ``tmp_path``.  External programs never run: the gateway is
handed a ``FakeRunner`` that records every call and simulates the few
side effects the steps rely on (downloads, installers writing binaries).
"""

from __future__ import annotations

import hashlib
import os
import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

from phpstack.adapters.mock import MockAlternatives, MockPackageManager, MockServiceManager
from phpstack.adapters.registry import SystemAdapters
from phpstack.adapters.shell.command import CommandGateway
from phpstack.adapters.shell.filesystem import FilesystemAdapter
from phpstack.core.context import ProvisionContext
from phpstack.core.models.identity import InvokingIdentity
from phpstack.core.models.unit import InstallableUnit, UnitKind

ALICE_UID = 1000
ALICE_GID = 1000

INSTALLER_BODY = b"<?php // composer installer\n"

Handler = Callable[[list[str], dict], "subprocess.CompletedProcess[str]"]


def completed(argv: list[str], returncode: int = 0, stdout: str = "", stderr: str = ""):
    return subprocess.CompletedProcess(argv, returncode, stdout, stderr)


def _executable(path: Path, body: str = "#!/bin/sh\n") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body)
    path.chmod(0o755)


def _option(argv: list[str], name: str) -> str | None:
    prefix = f"--{name}="
    for arg in argv:
        if arg.startswith(prefix):
            return arg[len(prefix):]
    return None


class FakeRunner:
    """Stand-in for ``subprocess.run`` that dispatches on program basename."""

    def __init__(self, home: Path):
        self.home = home
        self.calls: list[tuple[list[str], dict]] = []
        self.handlers: dict[str, Handler] = {
            "curl": self._curl,
            "php": self._php,
            "composer": self._composer,
            "bash": self._bash,
        }

    def __call__(self, argv, **kwargs):
        argv = list(argv)
        self.calls.append((argv, kwargs))
        handler = self.handlers.get(Path(argv[0]).name)
        if handler is None:
            return completed(argv)
        return handler(argv, kwargs)

    def programs(self) -> list[str]:
        return [Path(argv[0]).name for argv, _ in self.calls]

    def calls_for(self, program: str) -> list[tuple[list[str], dict]]:
        return [(argv, kw) for argv, kw in self.calls if Path(argv[0]).name == program]

    # ── Simulated programs ──────────────────────────────────────

    def _curl(self, argv, kwargs):
        if "-o" in argv:
            dest = Path(argv[argv.index("-o") + 1])
            dest.write_bytes(INSTALLER_BODY)
            return completed(argv)
        # Signature fetch
        return completed(argv, stdout=hashlib.sha384(INSTALLER_BODY).hexdigest() + "\n")

    def _php(self, argv, kwargs):
        install_dir = _option(argv, "install-dir")
        filename = _option(argv, "filename")
        if install_dir and filename:
            _executable(Path(install_dir) / filename)
        return completed(argv)

    def _composer(self, argv, kwargs):
        if argv[1:3] == ["global", "require"]:
            _executable(self.home / ".config" / "composer" / "vendor" / "bin" / "laravel")
        return completed(argv)

    def _bash(self, argv, kwargs):
        install_dir = _option(argv, "install-dir")
        if install_dir:
            _executable(Path(install_dir) / "symfony")
        return completed(argv)


class InstallingPackageManager(MockPackageManager):
    """Mock package manager whose installs leave PHP binaries and php.ini behind."""

    def __init__(self, bin_dir: Path, php_root: Path, **kwargs):
        super().__init__(**kwargs)
        self.bin_dir = bin_dir
        self.php_root = php_root

    def install(self, units: list[InstallableUnit]) -> None:
        super().install(units)
        for unit in units:
            if unit.kind != UnitKind.RUNTIME:
                continue
            _executable(self.bin_dir / f"php{unit.version}")
            if not (self.bin_dir / "php").exists():
                _executable(self.bin_dir / "php")
            ini = self.php_root / unit.version / "cli" / "php.ini"
            ini.parent.mkdir(parents=True, exist_ok=True)
            ini.write_text("[PHP]\nmemory_limit = 128M\nupload_max_filesize = 2M\n")


@pytest.fixture
def chowns(monkeypatch) -> list[tuple[str, int, int]]:
    """Record ``os.chown`` calls instead of performing them."""
    calls: list[tuple[str, int, int]] = []

    def fake_chown(path, uid, gid, *, follow_symlinks=True):
        calls.append((str(path), uid, gid))

    monkeypatch.setattr(os, "chown", fake_chown)
    return calls


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home" / "alice"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def identity(home: Path) -> InvokingIdentity:
    return InvokingIdentity(username="alice", home=home, uid=ALICE_UID, gid=ALICE_GID)


@pytest.fixture
def context(identity: InvokingIdentity, chowns) -> ProvisionContext:
    """Elevated context acting for alice (the ``sudo phpstack install`` case)."""
    return ProvisionContext(identity=identity, elevation_held=True)


@pytest.fixture
def unprivileged_context(identity: InvokingIdentity) -> ProvisionContext:
    return ProvisionContext(identity=identity, elevation_held=False)


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    path = tmp_path / "usr" / "bin"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def php_root(tmp_path: Path) -> Path:
    path = tmp_path / "etc" / "php"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def runner(home: Path) -> FakeRunner:
    return FakeRunner(home)


@pytest.fixture
def gateway(context: ProvisionContext, runner: FakeRunner, bin_dir: Path) -> CommandGateway:
    return CommandGateway(context, runner=runner, system_path=str(bin_dir))


@pytest.fixture
def filesystem(context: ProvisionContext) -> FilesystemAdapter:
    return FilesystemAdapter(context)


@pytest.fixture
def adapters(gateway: CommandGateway, filesystem: FilesystemAdapter,
             bin_dir: Path, php_root: Path) -> SystemAdapters:
    """Mock system layer on top of a recording gateway."""
    return SystemAdapters(
        gateway=gateway,
        packages=InstallingPackageManager(bin_dir, php_root),
        services=MockServiceManager(),
        alternatives=MockAlternatives(),
        filesystem=filesystem,
    )
