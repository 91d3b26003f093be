"""
Build use case — the full run, from probing to install.

    probe → provision features → reconcile packages → compose plan
          → synthesize .pc files → configure → build → install?

Every fatal condition surfaces as a ``SubsysBuildError``; nothing is
retried. Prerequisites are checked before anything is written or
installed.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from subsysbuild.adapters.base import Adapter
from subsysbuild.adapters.shell.command import SubsystemShellAdapter
from subsysbuild.adapters.shell.package_manager import PackageManager
from subsysbuild.core.models.config import BuildConfig
from subsysbuild.core.models.profile import EnvironmentProfile
from subsysbuild.core.services.orchestrator import BuildPlan, BuildResult, compose_plan, run_plan
from subsysbuild.core.services.paths import PathMapping
from subsysbuild.core.services.pkgconfig import synthesize_spec
from subsysbuild.core.services.prober import (
    RegistryReader,
    detect_feature,
    feature_sources,
    probe,
)
from subsysbuild.core.services.provision import (
    Downloader,
    InstallerRunner,
    download_file,
    provision_features,
    run_installer,
)
from subsysbuild.core.services.resolver import ReconcileReport, declared_packages, reconcile

logger = logging.getLogger(__name__)

_DRIVE_RE = re.compile(r"^[A-Za-z]:[\\/]")


@dataclass
class BuildOptions:
    """Per-invocation options from the command line."""

    install: bool = False
    prefix: str | None = None
    shell: str | None = None
    feature_roots: dict[str, str] = field(default_factory=dict)
    source_dir: str | None = None
    build_dir: str | None = None
    strict_features: bool = False
    dry_run: bool = False


@dataclass
class BuildRun:
    """Everything a run produced."""

    profile: EnvironmentProfile | None = None
    packages: ReconcileReport | None = None
    pc_files: list[str] = field(default_factory=list)
    plan: BuildPlan | None = None
    result: BuildResult | None = None

    def to_dict(self) -> dict:
        data: dict = {}
        if self.profile is not None:
            data["profile"] = self.profile.model_dump(mode="json")
        if self.packages is not None:
            data["packages"] = self.packages.to_dict()
        data["pc_files"] = self.pc_files
        if self.result is not None:
            data["build"] = self.result.to_dict()
        elif self.plan is not None:
            data["plan"] = self.plan.to_dict()
        return data


def host_abspath(path: str) -> str:
    """Absolute form of a host path; drive-letter paths are kept as given."""
    if _DRIVE_RE.match(path) or os.path.isabs(path):
        return path
    return str(Path(path).resolve())


def default_prefix(config: BuildConfig) -> str:
    return str(Path(config.subsystem.root) / "usr" / "local")


def pkgconfig_dir(config: BuildConfig) -> Path:
    """Host directory that receives synthesized descriptors."""
    return Path(config.subsystem.root) / config.subsystem.pkgconfig_dir


def synthesize_descriptors(
    profile: EnvironmentProfile,
    config: BuildConfig,
    target_dir: Path,
    mapping: PathMapping,
) -> list[str]:
    """Write a ``.pc`` file for each present feature that declares one."""
    written: list[str] = []
    for name in profile.present_features:
        feature = config.features.get(name)
        if feature is None or feature.pkgconfig is None:
            continue
        location = profile.features[name]
        root = Path(location.root)
        path = synthesize_spec(
            target_dir,
            feature.pkgconfig,
            prefix=mapping(location.root),
            include_subdir=Path(location.include_dir).relative_to(root).as_posix(),
            lib_subdir=Path(location.lib_dir).relative_to(root).as_posix(),
        )
        written.append(str(path))
    return written


def run_build(
    config: BuildConfig,
    options: BuildOptions | None = None,
    *,
    adapter: Adapter | None = None,
    registry_reader: RegistryReader | None = None,
    downloader: Downloader = download_file,
    installer_runner: InstallerRunner = run_installer,
) -> BuildRun:
    """Run the whole pipeline.

    Args:
        config: Build configuration.
        options: Command-line options.
        adapter: Subsystem adapter; defaults to the probed shell.
        registry_reader: Registry access for feature detection.
        downloader: Fetches feature installers.
        installer_runner: Runs feature installers on the host.

    Raises:
        MissingPrerequisite, FeatureProvisionFailed, DependencyInstallFailed,
        InvalidPath, ConfigureFailed, BuildFailed, InstallFailed.
    """
    options = options or BuildOptions()
    if options.strict_features:
        config = config.model_copy(update={"on_feature_failure": "fail"})

    run = BuildRun()

    # ── Probe ────────────────────────────────────────────────────
    profile = probe(
        config,
        shell=options.shell,
        feature_roots=options.feature_roots,
        registry_reader=registry_reader,
    )

    # ── Resolve paths ────────────────────────────────────────────
    # Translated here so an unmappable path fails before any install
    mapping = PathMapping.for_subsystem(config.subsystem)
    source_dir = host_abspath(options.source_dir or config.source_dir)
    build_dir = options.build_dir or config.build_dir
    build_dir = host_abspath(build_dir) if build_dir else None
    prefix = host_abspath(options.prefix or config.prefix or default_prefix(config))
    pc_dir = pkgconfig_dir(config)
    for path in (source_dir, build_dir, prefix, str(pc_dir)):
        if path is not None:
            mapping(path)

    # ── Provision absent features ────────────────────────────────
    if not options.dry_run:
        sources = feature_sources(options.feature_roots, registry_reader)
        profile = provision_features(
            profile,
            config,
            Path(tempfile.gettempdir()) / "subsysbuild",
            lambda name, feature: detect_feature(name, feature, sources),
            downloader=downloader,
            runner=installer_runner,
        )
    run.profile = profile

    adapter = adapter or SubsystemShellAdapter(profile.shell, timeout=config.timeout)

    # ── Reconcile packages ───────────────────────────────────────
    package_manager = PackageManager(adapter, config.package_manager, config.subsystem.profile)
    run.packages = reconcile(
        declared_packages(config, profile),
        package_manager,
        check_only=options.dry_run,
    )
    if not options.dry_run:
        run.packages.raise_for_failures()

    # ── Plan ─────────────────────────────────────────────────────
    run.plan = compose_plan(
        profile,
        config,
        source_dir=source_dir,
        prefix=prefix,
        pkgconfig_dir=str(pc_dir),
        install=options.install,
        build_dir=build_dir,
        mapping=mapping,
    )

    configure = Path(source_dir) / config.configure_script
    if not configure.is_file():
        logger.warning("No %s found in %s", config.configure_script, source_dir)

    # ── Synthesize package metadata ──────────────────────────────
    if not options.dry_run:
        run.pc_files = synthesize_descriptors(profile, config, pc_dir, mapping)

    # ── Execute ──────────────────────────────────────────────────
    run.result = run_plan(run.plan, adapter, dry_run=options.dry_run)
    logger.info("Build finished: %s", run.result.state)
    return run
