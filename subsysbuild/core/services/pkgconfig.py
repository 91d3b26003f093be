"""
Package-metadata synthesis — write a ``.pc`` file for a library the
subsystem does not ship.

The external build probes for e.g. ``fuse`` only through pkg-config
and knows nothing about the host's equivalent (WinFsp). Writing a
``fuse.pc`` that points at the host library is the integration seam.
The file is rewritten on every run.
"""

from __future__ import annotations

import logging
from pathlib import Path

from subsysbuild.core.models.config import PkgConfigSpec

logger = logging.getLogger(__name__)


def render_pc(
    library_name: str,
    link_flag: str,
    *,
    prefix: str,
    include_subdir: str = "include",
    lib_subdir: str = "lib",
    description: str = "",
    version: str = "0",
    cflags_subdir: str = "",
) -> str:
    """Render the text of a pkg-config descriptor."""
    include_flag = "-I${includedir}"
    if cflags_subdir:
        include_flag += f"/{cflags_subdir}"

    lines = [
        f"prefix={prefix}",
        f"libdir=${{prefix}}/{lib_subdir}",
        f"includedir=${{prefix}}/{include_subdir}",
        "",
        f"Name: {library_name}",
        f"Description: {description or library_name}",
        f"Version: {version}",
        f"Libs: -L${{libdir}} {link_flag}",
        f"Cflags: {include_flag}",
    ]
    return "\n".join(lines) + "\n"


def synthesize(
    target_dir: str | Path,
    library_name: str,
    link_flag: str,
    *,
    prefix: str,
    include_subdir: str = "include",
    lib_subdir: str = "lib",
    description: str = "",
    version: str = "0",
    cflags_subdir: str = "",
) -> Path:
    """Write ``<target_dir>/<library_name>.pc``, replacing any existing file.

    Args:
        target_dir: Host directory on the pkg-config search path.
            Created if absent.
        library_name: Name the external build asks pkg-config for.
        link_flag: Link directive for the platform-native equivalent,
            e.g. ``-lwinfsp-x64``.
        prefix: Subsystem-side root of the equivalent library.

    Returns:
        Path of the written file.
    """
    directory = Path(target_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{library_name}.pc"

    path.write_text(
        render_pc(
            library_name,
            link_flag,
            prefix=prefix,
            include_subdir=include_subdir,
            lib_subdir=lib_subdir,
            description=description,
            version=version,
            cflags_subdir=cflags_subdir,
        ),
        encoding="utf-8",
    )
    logger.info("Wrote %s", path)
    return path


def synthesize_spec(
    target_dir: str | Path,
    spec: PkgConfigSpec,
    *,
    prefix: str,
    include_subdir: str,
    lib_subdir: str,
) -> Path:
    """``synthesize`` driven by a feature's ``pkgconfig`` block."""
    return synthesize(
        target_dir,
        spec.name,
        spec.link_flag,
        prefix=prefix,
        include_subdir=include_subdir,
        lib_subdir=lib_subdir,
        description=spec.description,
        version=spec.version,
        cflags_subdir=spec.cflags_subdir,
    )
