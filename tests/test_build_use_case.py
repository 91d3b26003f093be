"""
Tests for the build use case — the whole run against a fake subsystem.
"""

from pathlib import Path

import pytest

from subsysbuild.adapters.mock import MockAdapter
from subsysbuild.core.errors import (
    ConfigureFailed,
    DependencyInstallFailed,
    FeatureProvisionFailed,
    InvalidPath,
    MissingPrerequisite,
)
from subsysbuild.core.models.config import InstallerConfig
from subsysbuild.core.use_cases.build import BuildOptions, host_abspath, run_build


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    src = tmp_path / "src" / "sshfs-win"
    src.mkdir(parents=True)
    (src / "configure").write_text("#!/bin/sh\n")
    return src


def _options(source_tree: Path, **kwargs) -> BuildOptions:
    return BuildOptions(source_dir=str(source_tree), **kwargs)


def _pc_file(local_config) -> Path:
    return Path(local_config.subsystem.root) / "usr" / "local" / "lib" / "pkgconfig" / "fuse.pc"


class TestRunBuild:
    def test_full_run_with_feature(
        self, local_config, source_tree, make_feature_root, mock_adapter: MockAdapter, no_registry,
    ):
        root = make_feature_root("winfsp", "inc", "lib")

        run = run_build(
            local_config, _options(source_tree, install=True),
            adapter=mock_adapter, registry_reader=no_registry,
        )

        assert run.result.ok
        assert run.profile.present_features == ["fuse"]
        phases = [i for i in mock_adapter.called_ids if ":" not in i]
        assert phases == ["configure", "build", "install"]

        configure = mock_adapter.commands()["configure"]
        assert "--enable-fuse" in configure
        assert f'export CFLAGS="$CFLAGS "-I{root}/inc' in configure

        pc = _pc_file(local_config)
        assert run.pc_files == [str(pc)]
        text = pc.read_text()
        assert f"prefix={root}" in text
        assert "Libs: -L${libdir} -lwinfsp-x64" in text

    def test_feature_packages_reconciled(
        self, local_config, source_tree, make_feature_root, mock_adapter: MockAdapter, no_registry,
    ):
        make_feature_root("winfsp", "inc", "lib")
        run = run_build(local_config, _options(source_tree), adapter=mock_adapter, registry_reader=no_registry)
        assert run.packages.already_installed == ["fuse-extra", "gcc", "make"]

    def test_pc_file_overwritten(
        self, local_config, source_tree, make_feature_root, mock_adapter: MockAdapter, no_registry,
    ):
        make_feature_root("winfsp", "inc", "lib")
        pc = _pc_file(local_config)
        pc.parent.mkdir(parents=True)
        pc.write_text("prefix=/stale\n")

        run_build(local_config, _options(source_tree), adapter=mock_adapter, registry_reader=no_registry)

        assert "/stale" not in pc.read_text()

    def test_without_feature(self, local_config, source_tree, mock_adapter: MockAdapter, no_registry):
        run = run_build(local_config, _options(source_tree), adapter=mock_adapter, registry_reader=no_registry)

        assert run.profile.present_features == []
        assert run.pc_files == []
        assert not _pc_file(local_config).exists()
        configure = mock_adapter.commands()["configure"]
        assert "--enable-fuse" not in configure
        assert "CFLAGS" not in configure

    def test_default_prefix(self, local_config, source_tree, mock_adapter: MockAdapter, no_registry):
        run_build(local_config, _options(source_tree), adapter=mock_adapter, registry_reader=no_registry)
        prefix = Path(local_config.subsystem.root) / "usr" / "local"
        assert f"--prefix={prefix}" in mock_adapter.commands()["configure"]

    def test_dependency_failure_stops_before_configure(
        self, local_config, source_tree, mock_adapter: MockAdapter, no_registry,
    ):
        mock_adapter.set_failure("query:make")
        mock_adapter.set_failure("install:make", error="target not found: make")

        with pytest.raises(DependencyInstallFailed) as exc:
            run_build(local_config, _options(source_tree), adapter=mock_adapter, registry_reader=no_registry)

        assert exc.value.packages == ["make"]
        assert "configure" not in mock_adapter.called_ids

    def test_configure_failure(self, local_config, source_tree, mock_adapter: MockAdapter, no_registry):
        mock_adapter.set_failure("configure", error="configure: error: C compiler cannot create executables")

        with pytest.raises(ConfigureFailed):
            run_build(
                local_config, _options(source_tree, install=True),
                adapter=mock_adapter, registry_reader=no_registry,
            )

        assert "build" not in mock_adapter.called_ids
        assert "install" not in mock_adapter.called_ids

    def test_missing_compiler_before_anything_runs(
        self, local_config, source_tree, fake_subsystem: Path, mock_adapter: MockAdapter, no_registry,
    ):
        (fake_subsystem / "usr" / "bin" / "gcc").unlink()
        with pytest.raises(MissingPrerequisite):
            run_build(local_config, _options(source_tree), adapter=mock_adapter, registry_reader=no_registry)
        assert mock_adapter.call_count == 0

    def test_dry_run_writes_and_installs_nothing(
        self, local_config, source_tree, make_feature_root, mock_adapter: MockAdapter, no_registry,
    ):
        make_feature_root("winfsp", "inc", "lib")
        mock_adapter.set_failure("query:make")

        run = run_build(
            local_config, _options(source_tree, dry_run=True, install=True),
            adapter=mock_adapter, registry_reader=no_registry,
        )

        assert not any(i.startswith("install:") for i in mock_adapter.called_ids)
        assert run.packages.failed == ["make"]
        assert not _pc_file(local_config).exists()
        assert all(r.status == "skipped" for r in run.result.receipts)

    def test_strict_features_flag(
        self, local_config, source_tree, mock_adapter: MockAdapter, no_registry,
    ):
        local_config.features["fuse"].installer = InstallerConfig(url="https://example.invalid/winfsp.msi")

        def offline(url, dest):
            raise OSError("network unreachable")

        with pytest.raises(FeatureProvisionFailed) as exc:
            run_build(
                local_config, _options(source_tree, strict_features=True),
                adapter=mock_adapter, registry_reader=no_registry,
                downloader=offline, installer_runner=lambda command: 0,
            )
        assert "could not be provisioned" in str(exc.value)
        assert mock_adapter.call_count == 0

    def test_unprovisionable_feature_degrades(
        self, local_config, source_tree, mock_adapter: MockAdapter, no_registry,
    ):
        local_config.features["fuse"].installer = InstallerConfig(url="https://example.invalid/winfsp.msi")

        def offline(url, dest):
            raise OSError("network unreachable")

        run = run_build(
            local_config, _options(source_tree),
            adapter=mock_adapter, registry_reader=no_registry,
            downloader=offline, installer_runner=lambda command: 0,
        )
        assert run.result.ok
        assert "--enable-fuse" not in mock_adapter.commands()["configure"]

    def test_untranslatable_source_stops_before_installs(
        self, local_config, mock_adapter: MockAdapter, no_registry,
    ):
        local_config.features["fuse"].installer = InstallerConfig(url="https://example.invalid/winfsp.msi")
        downloads: list = []

        with pytest.raises(InvalidPath):
            run_build(
                local_config, BuildOptions(source_dir="C:sshfs-win"),
                adapter=mock_adapter, registry_reader=no_registry,
                downloader=lambda url, dest: downloads.append(url),
                installer_runner=lambda command: 0,
            )
        assert downloads == []
        assert mock_adapter.call_count == 0

    def test_to_dict(self, local_config, source_tree, mock_adapter: MockAdapter, no_registry):
        run = run_build(local_config, _options(source_tree), adapter=mock_adapter, registry_reader=no_registry)
        data = run.to_dict()
        assert data["build"]["state"] == "done"
        assert data["packages"]["ok"] is True
        assert data["profile"]["cpu_count"] >= 1


class TestHostAbspath:
    def test_drive_letter_kept(self):
        assert host_abspath("C:\\src\\x") == "C:\\src\\x"
        assert host_abspath("d:/work") == "d:/work"

    def test_relative_resolved(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert host_abspath("src") == str(tmp_path.resolve() / "src")
