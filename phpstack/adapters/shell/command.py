"""
Command gateway — the SINGLE PLACE external programs are executed.

Every step and adapter routes through ``CommandGateway.run`` so the
privilege boundary is enforced uniformly and early:

- programs on the ``ELEVATED_PROGRAMS`` allow-list run as root and
  fail closed with ``PrivilegeError`` when the process is not root;
- every other program runs as the invoking identity, dropping root
  when the process holds it.

Children get a freshly built environment rather than the caller's.
Calls block until the child exits; no timeout is applied.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from phpstack.core.context import ProvisionContext
from phpstack.core.errors import CommandError, PrivilegeError

logger = logging.getLogger(__name__)

# Programs that mutate system state and therefore need root.
ELEVATED_PROGRAMS: frozenset[str] = frozenset({
    "apt",
    "apt-get",
    "dpkg",
    "systemctl",
    "update-alternatives",
    "add-apt-repository",
})

SYSTEM_PATH = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class CommandResult(BaseModel):
    """Outcome of one external program invocation."""

    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    as_user: str = "root"
    duration_ms: int = 0
    env: dict[str, str] = Field(default_factory=dict, repr=False)

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        return shlex.join(self.argv)


def requires_elevation(program: str) -> bool:
    """Whether *program* is on the elevated allow-list (basename match)."""
    return Path(program).name in ELEVATED_PROGRAMS


class CommandGateway:
    """Run external programs on behalf of a provisioning context.

    Args:
        context: Identity and elevation state for this run.
        runner: Callable with the ``subprocess.run`` signature.  Tests
            pass a recorder here.
        system_path: PATH for system binaries, appended after the
            user-local directories.
    """

    def __init__(
        self,
        context: ProvisionContext,
        runner: Runner = subprocess.run,
        system_path: str = SYSTEM_PATH,
    ):
        self._context = context
        self._runner = runner
        self._system_path = system_path

    @property
    def context(self) -> ProvisionContext:
        return self._context

    # ── Environment ─────────────────────────────────────────────

    def user_path(self) -> str:
        """PATH as seen by the invoking identity's login shell."""
        dirs = [str(d) for d in self._context.identity.user_path_dirs()]
        return os.pathsep.join([*dirs, self._system_path])

    def _build_env(self, as_user: bool, extra: Mapping[str, str] | None) -> dict[str, str]:
        env = {"LANG": "C.UTF-8", "PATH": self._system_path}
        if as_user:
            identity = self._context.identity
            env.update({
                "HOME": str(identity.home),
                "USER": identity.username,
                "LOGNAME": identity.username,
                "PATH": self.user_path(),
            })
        else:
            env["HOME"] = "/root"
        if extra:
            env.update(extra)
        return env

    def _privilege_drop_kwargs(self) -> dict[str, Any]:
        identity = self._context.identity
        try:
            groups = os.getgrouplist(identity.username, identity.gid)
        except OSError:
            groups = [identity.gid]
        return {
            "user": identity.uid,
            "group": identity.gid,
            "extra_groups": groups,
        }

    # ── Queries ─────────────────────────────────────────────────

    def which(self, program: str) -> str | None:
        """Locate *program* on the invoking identity's PATH."""
        return shutil.which(program, path=self.user_path())

    # ── Execution ───────────────────────────────────────────────

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = False,
    ) -> CommandResult:
        """Execute *argv*, enforcing the privilege boundary first.

        Raises:
            PrivilegeError: allow-listed program without elevation.  The
                program is never started.
            CommandError: ``check=True`` and the program exited non-zero.
        """
        argv = [str(a) for a in argv]
        if not argv:
            raise ValueError("Empty command")

        program = argv[0]
        elevated = requires_elevation(program)
        if elevated and not self._context.elevation_held:
            logger.warning("Command '%s' requires sudo privileges", program)
            raise PrivilegeError(program)

        as_user = not elevated
        run_as = self._context.identity.username if as_user else "root"
        kwargs: dict[str, Any] = {
            "capture_output": True,
            "text": True,
            "env": self._build_env(as_user, env),
            "cwd": str(cwd) if cwd else None,
        }
        if as_user and self._context.drops_privileges:
            kwargs.update(self._privilege_drop_kwargs())

        logger.debug("Executing as %s: %s", run_as, shlex.join(argv))
        start = time.monotonic()
        try:
            proc = self._runner(argv, **kwargs)
            returncode, stdout, stderr = proc.returncode, proc.stdout or "", proc.stderr or ""
        except FileNotFoundError:
            returncode, stdout, stderr = 127, "", f"{program}: command not found"
        except OSError as e:
            returncode, stdout, stderr = 126, "", f"{program}: {e}"
        elapsed_ms = int((time.monotonic() - start) * 1000)

        result = CommandResult(
            argv=argv,
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            as_user=run_as,
            duration_ms=elapsed_ms,
            env=kwargs["env"],
        )
        if result.ok:
            logger.debug("✓ %s (%dms)", program, elapsed_ms)
        else:
            logger.debug("✗ %s exited %d: %s", program, returncode, stderr.strip()[-500:])

        if check and not result.ok:
            raise CommandError(result)
        return result
