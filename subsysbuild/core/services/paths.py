"""
Path translation — host-native paths to the subsystem's path dialect.

    C:\\Program Files (x86)\\WinFsp  →  /c/Program\\ Files\\ \\(x86\\)/WinFsp

Rules, applied in this order:

1. every backslash becomes a forward slash;
2. a leading ``<drive>:`` becomes ``<drive_prefix>/<drive in lowercase>``;
3. every space, ``(`` and ``)`` gets a preceding backslash.

Separators are rewritten before escaping so the inserted escapes are
never mistaken for separators. The result is meant to be spliced into
a shell command line, so it is not a valid input for a second pass.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from subsysbuild.core.errors import InvalidPath
from subsysbuild.core.models.config import SubsystemConfig

_DRIVE_RE = re.compile(r"^([A-Za-z]):(.*)$")
_ESCAPE_RE = re.compile(r"([ ()])")


def translate(
    host_path: str,
    *,
    drive_prefix: str = "",
    require_drive: bool = True,
) -> str:
    """Map a host path into the subsystem, shell-escaped.

    Args:
        host_path: Absolute host path, e.g. ``C:\\src\\my project``.
        drive_prefix: Mount prefix placed before the drive letter
            (``""`` for MSYS2, ``"/cygdrive"`` for Cygwin).
        require_drive: Reject paths without a drive letter. When off,
            such paths keep their form and are only escaped.

    Raises:
        InvalidPath: On an empty path, a drive-relative path
            (``C:foo``), or a missing drive letter when one is required.
    """
    if not host_path:
        raise InvalidPath(host_path, "empty path")

    path = host_path.replace("\\", "/")

    match = _DRIVE_RE.match(path)
    if match:
        drive, rest = match.groups()
        if rest and not rest.startswith("/"):
            raise InvalidPath(host_path, "drive-relative path")
        path = f"{drive_prefix.rstrip('/')}/{drive.lower()}{rest}"
    elif require_drive:
        raise InvalidPath(host_path)

    return _ESCAPE_RE.sub(r"\\\1", path)


@dataclass(frozen=True)
class PathMapping:
    """``translate`` bound to one subsystem's settings."""

    drive_prefix: str = ""
    require_drive: bool = True

    @classmethod
    def for_subsystem(cls, subsystem: SubsystemConfig) -> PathMapping:
        return cls(
            drive_prefix=subsystem.drive_prefix,
            require_drive=subsystem.require_drive,
        )

    def __call__(self, host_path: str) -> str:
        return translate(
            host_path,
            drive_prefix=self.drive_prefix,
            require_drive=self.require_drive,
        )
