"""
Shared test fixtures and configuration.

``fake_subsystem`` lays out a minimal MSYS2-style tree on disk (a shell
entry point plus executable gcc/make stubs) so the prober can run
against real files without a real subsystem.
"""

import logging
from pathlib import Path

import pytest

from subsysbuild.adapters.mock import MockAdapter
from subsysbuild.core.models.config import BuildConfig, FeatureConfig, PkgConfigSpec, SubsystemConfig
from subsysbuild.core.models.profile import EnvironmentProfile, FeatureLocation
from subsysbuild.core.observability.logging_config import OUTPUT_LOGGER


def _touch_executable(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)


@pytest.fixture
def fake_subsystem(tmp_path: Path, monkeypatch) -> Path:
    """Subsystem root with usr/bin/{bash.exe,gcc,make}; host PATH emptied."""
    root = tmp_path / "msys64"
    for name in ("bash.exe", "gcc", "make"):
        _touch_executable(root / "usr" / "bin" / name)
    empty = tmp_path / "empty-path"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))
    return root


@pytest.fixture
def make_feature_root(tmp_path: Path):
    """Factory: create a feature root with the given subdirectories."""

    def _make(name: str, *subdirs: str) -> Path:
        root = tmp_path / "features" / name
        root.mkdir(parents=True, exist_ok=True)
        for sub in subdirs:
            (root / sub).mkdir(parents=True, exist_ok=True)
        return root

    return _make


@pytest.fixture
def no_registry():
    """Registry reader that never finds anything."""
    return lambda hive, key, value: None


@pytest.fixture
def mock_adapter() -> MockAdapter:
    return MockAdapter(adapter_name="subsystem")


@pytest.fixture
def local_config(fake_subsystem: Path, tmp_path: Path) -> BuildConfig:
    """Config bound to the fake subsystem; paths without drive letters allowed."""
    return BuildConfig(
        name="sshfs",
        subsystem=SubsystemConfig(root=str(fake_subsystem), require_drive=False),
        packages=["gcc", "make"],
        features={
            "fuse": FeatureConfig(
                roots=[str(tmp_path / "features" / "winfsp")],
                include_subdir="inc",
                lib_subdirs=["lib", "x64"],
                enable_flag="--enable-fuse",
                packages=["fuse-extra"],
                pkgconfig=PkgConfigSpec(
                    name="fuse",
                    link_flag="-lwinfsp-x64",
                    description="WinFsp FUSE",
                    version="2.8",
                    cflags_subdir="fuse",
                ),
            ),
        },
    )


@pytest.fixture
def winfsp_location() -> FeatureLocation:
    return FeatureLocation(
        root="C:\\Program Files (x86)\\WinFsp",
        include_dir="C:\\Program Files (x86)\\WinFsp\\inc",
        lib_dir="C:\\Program Files (x86)\\WinFsp\\lib",
    )


@pytest.fixture
def windows_profile(winfsp_location: FeatureLocation) -> EnvironmentProfile:
    """Profile of a Windows host with the FUSE feature present."""
    return EnvironmentProfile(
        subsystem_root="C:\\msys64",
        shell="C:\\msys64\\usr\\bin\\bash.exe",
        compiler="C:\\msys64\\usr\\bin\\gcc.exe",
        cpu_count=8,
        features={"fuse": winfsp_location},
    )


@pytest.fixture(autouse=True)
def _restore_logging():
    """The CLI reconfigures logging on every invocation; undo it after each test."""
    root = logging.getLogger()
    output = logging.getLogger(OUTPUT_LOGGER)
    saved = (root.level, root.handlers[:], output.level, output.handlers[:], output.propagate)
    yield
    root.setLevel(saved[0])
    root.handlers[:] = saved[1]
    output.setLevel(saved[2])
    output.handlers[:] = saved[3]
    output.propagate = saved[4]
