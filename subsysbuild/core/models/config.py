"""
Build configuration model — loaded from subsysbuild.yml.

Every host/subsystem specific value lives here as a default: the
subsystem layout (MSYS2-style), the package-manager command pair,
the declared package list, and the optional feature libraries
(a WinFsp-style FUSE driver out of the box). Relative host paths
are resolved against ``subsystem.root``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class SubsystemConfig(BaseModel):
    """Where the execution subsystem lives and how to enter it."""

    root: str = "C:/msys64"
    shell: str = "usr/bin/bash.exe"
    profile: str = "/etc/profile"
    bin_dirs: list[str] = Field(default_factory=lambda: ["usr/bin", "mingw64/bin"])
    pkgconfig_dir: str = "usr/local/lib/pkgconfig"
    drive_prefix: str = ""
    require_drive: bool = True


class PackageManagerConfig(BaseModel):
    """Command templates run inside the subsystem; ``{name}`` is the package."""

    query: str = "pacman -Q {name}"
    install: str = "pacman -S --noconfirm --needed {name}"


class PkgConfigSpec(BaseModel):
    """A package-metadata descriptor to synthesize for a present feature."""

    name: str
    link_flag: str
    description: str = ""
    version: str = "0"
    cflags_subdir: str = ""


class InstallerConfig(BaseModel):
    """Host-side installer for an absent feature library.

    ``command`` items may contain ``{file}``, replaced by the
    downloaded installer's path.
    """

    url: str
    checksum: str = ""
    command: list[str] = Field(default_factory=lambda: ["msiexec", "/i", "{file}", "/qn"])


class FeatureConfig(BaseModel):
    """An optional capability whose presence turns on a configure flag."""

    registry_hive: str = "HKEY_LOCAL_MACHINE"
    registry_key: str = ""
    registry_value: str = "InstallDir"
    roots: list[str] = Field(default_factory=list)
    include_subdir: str = "inc"
    lib_subdirs: list[str] = Field(default_factory=lambda: ["lib"])
    enable_flag: str = ""
    packages: list[str] = Field(default_factory=list)
    pkgconfig: PkgConfigSpec | None = None
    installer: InstallerConfig | None = None


def _default_features() -> dict[str, FeatureConfig]:
    return {
        "fuse": FeatureConfig(
            registry_key="SOFTWARE\\WOW6432Node\\WinFsp",
            roots=[
                "C:/Program Files (x86)/WinFsp",
                "C:/Program Files/WinFsp",
            ],
            include_subdir="inc",
            lib_subdirs=["lib", "x64"],
            enable_flag="--enable-fuse",
            pkgconfig=PkgConfigSpec(
                name="fuse",
                link_flag="-lwinfsp-x64",
                description="WinFsp FUSE compatibility layer",
                version="2.8",
                cflags_subdir="fuse",
            ),
        ),
    }


class BuildConfig(BaseModel):
    """Root configuration of a subsysbuild run."""

    name: str = "project"

    subsystem: SubsystemConfig = Field(default_factory=SubsystemConfig)
    package_manager: PackageManagerConfig = Field(default_factory=PackageManagerConfig)

    packages: list[str] = Field(default_factory=lambda: [
        "make", "gcc", "pkgconf", "autoconf", "automake", "libtool", "gettext-devel",
    ])
    compiler: str = "gcc"
    required_tools: list[str] = Field(default_factory=lambda: ["make"])
    features: dict[str, FeatureConfig] = Field(default_factory=_default_features)

    source_dir: str = "."
    build_dir: str | None = None
    configure_script: str = "configure"
    prefix: str | None = None
    configure_args: list[str] = Field(default_factory=list)
    make: str = "make"
    env: dict[str, str] = Field(default_factory=dict)

    nls: bool = True
    languages: list[str] = Field(default_factory=list)
    max_jobs: int | None = None
    timeout: int | None = None

    on_feature_failure: Literal["degrade", "fail"] = "degrade"
