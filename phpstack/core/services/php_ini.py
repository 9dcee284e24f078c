"""
php.ini editing — structured read-modify-write of ``key = value`` settings.

Only active (uncommented) assignments are considered.  When a file
already holds every desired value nothing is written and no backup is
taken, so repeated runs do not pile up ``.bak`` copies.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from phpstack.adapters.shell.filesystem import FilesystemAdapter

logger = logging.getLogger(__name__)

_ASSIGN_RE = re.compile(r"^(?P<indent>\s*)(?P<key>[A-Za-z0-9_.\-]+)\s*=\s*(?P<value>.*?)\s*$")


@dataclass
class IniEditResult:
    path: Path
    changed: list[str] = field(default_factory=list)
    backup: Path | None = None
    exists: bool = True

    @property
    def modified(self) -> bool:
        return bool(self.changed)


def _normalise(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def read_settings(text: str) -> dict[str, str]:
    """Active settings in *text*; a later assignment overrides an earlier one."""
    settings: dict[str, str] = {}
    for line in text.splitlines():
        if line.lstrip().startswith((";", "#", "[")):
            continue
        m = _ASSIGN_RE.match(line)
        if m:
            settings[m.group("key")] = _normalise(m.group("value"))
    return settings


def apply_settings(text: str, desired: dict[str, str]) -> tuple[str, list[str]]:
    """Rewrite *text* so every key in *desired* has its desired value.

    Existing active assignments are edited in place.  Keys with no
    active assignment are appended at the end of the file.

    Returns:
        (new_text, changed_keys).  ``changed_keys`` is empty when *text*
        already satisfies *desired*, and then ``new_text == text``.
    """
    lines = text.splitlines(keepends=True)
    seen: set[str] = set()
    changed: list[str] = []

    for i, line in enumerate(lines):
        if line.lstrip().startswith((";", "#", "[")):
            continue
        m = _ASSIGN_RE.match(line.rstrip("\r\n"))
        if not m or m.group("key") not in desired:
            continue
        key = m.group("key")
        seen.add(key)
        if _normalise(m.group("value")) == desired[key]:
            continue
        ending = line[len(line.rstrip("\r\n")):]
        lines[i] = f"{m.group('indent')}{key} = {desired[key]}{ending}"
        if key not in changed:
            changed.append(key)

    missing = [k for k in desired if k not in seen]
    if missing:
        if lines and not lines[-1].endswith("\n"):
            lines[-1] += "\n"
        for key in missing:
            lines.append(f"{key} = {desired[key]}\n")
            changed.append(key)

    return "".join(lines), changed


def ensure_ini_settings(
    path: Path,
    desired: dict[str, str],
    filesystem: FilesystemAdapter,
) -> IniEditResult:
    """Bring *path* in line with *desired*, backing it up first if it changes.

    An absent file is left absent: there is nothing to back up and no
    SAPI to configure.
    """
    if not path.is_file():
        logger.debug("php.ini not present, skipping: %s", path)
        return IniEditResult(path=path, exists=False)

    text = filesystem.read_text(path)
    new_text, changed = apply_settings(text, desired)
    if not changed:
        logger.debug("php.ini already configured: %s", path)
        return IniEditResult(path=path)

    backup = filesystem.timestamped_backup(path)
    filesystem.atomic_write(path, new_text)
    logger.info("Updated %s (%s)", path, ", ".join(changed))
    return IniEditResult(path=path, changed=changed, backup=backup)
