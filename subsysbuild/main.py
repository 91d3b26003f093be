"""
subsysbuild — CLI entrypoint.

Usage:
    subsysbuild build [--install] [--prefix PATH]
    subsysbuild probe --json
    subsysbuild translate "C:\\Program Files (x86)\\WinFsp"
    python -m subsysbuild.main --help
"""

from __future__ import annotations

import json
import os
import re
import sys
from pathlib import Path
from typing import NoReturn

import click

from subsysbuild import __version__
from subsysbuild.core.errors import SubsysBuildError
from subsysbuild.core.models.config import BuildConfig
from subsysbuild.core.observability.logging_config import setup_logging

# NAME in --feature-root NAME=PATH; a drive-letter path never matches
_FEATURE_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_.-]*$")


@click.group()
@click.version_option(version=__version__, prog_name="subsysbuild")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to subsysbuild.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """subsysbuild — provision a POSIX subsystem and build a source tree inside it."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("SUBSYSBUILD_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("SUBSYSBUILD_LOG_FILE"),
        log_file_level=os.environ.get("SUBSYSBUILD_LOG_FILE_LEVEL"),
        show_output=not quiet,
    )


def _fail(error: SubsysBuildError) -> NoReturn:
    click.secho(f"❌ {error}", fg="red", err=True)
    sys.exit(error.exit_code)


def _load_config(ctx: click.Context) -> BuildConfig:
    from subsysbuild.core.config.loader import load_config

    try:
        return load_config(ctx.obj.get("config_path"))
    except SubsysBuildError as e:
        _fail(e)


def _parse_feature_roots(values: tuple[str, ...], config: BuildConfig) -> dict[str, str]:
    """``NAME=PATH`` targets one feature; a bare ``PATH`` applies to all."""
    roots: dict[str, str] = {}
    for value in values:
        name, sep, path = value.partition("=")
        if sep and name in config.features:
            roots[name] = path
        elif sep and _FEATURE_NAME_RE.match(name):
            known = ", ".join(config.features) or "none"
            raise click.BadParameter(
                f"unknown feature '{name}' (configured: {known})",
                param_hint="--feature-root",
            )
        else:
            for feature in config.features:
                roots[feature] = value
    return roots


# ── Build ───────────────────────────────────────────────────────


@cli.command()
@click.option("--install", is_flag=True, help="Run 'make install' after a successful build.")
@click.option("--prefix", default=None, help="Install prefix (host path).")
@click.option("--shell", "shell", default=None, help="Path to the subsystem shell.")
@click.option(
    "--feature-root",
    "feature_roots",
    multiple=True,
    help="Feature library root, NAME=PATH or PATH (repeatable).",
)
@click.option("--source-dir", default=None, help="External source tree (host path).")
@click.option("--build-dir", default=None, help="Out-of-tree build directory (host path).")
@click.option(
    "--strict-features",
    is_flag=True,
    help="Fail instead of degrading when a feature cannot be provisioned.",
)
@click.option("--dry-run", is_flag=True, help="Probe and plan, but do not install or build.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def build(
    ctx: click.Context,
    install: bool,
    prefix: str | None,
    shell: str | None,
    feature_roots: tuple[str, ...],
    source_dir: str | None,
    build_dir: str | None,
    strict_features: bool,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Provision dependencies, then configure, build and optionally install."""
    from subsysbuild.core.use_cases.build import BuildOptions, run_build

    config = _load_config(ctx)
    options = BuildOptions(
        install=install,
        prefix=prefix,
        shell=shell,
        feature_roots=_parse_feature_roots(feature_roots, config),
        source_dir=source_dir,
        build_dir=build_dir,
        strict_features=strict_features,
        dry_run=dry_run,
    )

    try:
        run = run_build(config, options)
    except SubsysBuildError as e:
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps(run.to_dict(), indent=2))
        return

    if ctx.obj.get("quiet"):
        return

    assert run.profile is not None and run.plan is not None
    features = run.profile.present_features
    click.secho(f"🔧 {config.name}", fg="cyan", bold=True)
    click.echo(f"   Features: {', '.join(features) if features else 'none'}")
    if run.packages and run.packages.installed:
        click.echo(f"   Installed: {', '.join(run.packages.installed)}")
    for pc in run.pc_files:
        click.echo(f"   Wrote {pc}")

    if dry_run:
        for phase in run.plan.phases:
            click.echo(f"   [{phase.name}] {run.plan.command(phase)}")
        return

    click.secho(f"✅ {' → '.join(run.plan.phase_names)} done", fg="green")


# ── Diagnostics ─────────────────────────────────────────────────


@cli.command()
@click.option("--shell", "shell", default=None, help="Path to the subsystem shell.")
@click.option("--feature-root", "feature_roots", multiple=True, help="Feature library root override.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def probe(ctx: click.Context, shell: str | None, feature_roots: tuple[str, ...], as_json: bool) -> None:
    """Detect the subsystem, the compiler and optional features."""
    from subsysbuild.core.services.prober import probe as run_probe

    config = _load_config(ctx)
    try:
        profile = run_probe(
            config,
            shell=shell,
            feature_roots=_parse_feature_roots(feature_roots, config),
        )
    except SubsysBuildError as e:
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps(profile.model_dump(mode="json"), indent=2))
        return

    click.secho("🔍 Environment:", fg="cyan", bold=True)
    click.echo(f"   Subsystem: {profile.subsystem_root}")
    click.echo(f"   Shell:     {profile.shell}")
    click.echo(f"   Compiler:  {profile.compiler}")
    click.echo(f"   CPUs:      {profile.cpu_count}")
    for name, location in profile.features.items():
        if location is None:
            click.echo(f"   ❌ {name}: not found")
        else:
            click.echo(f"   ✅ {name}: {location.root} ({location.source})")


@cli.command()
@click.argument("paths", nargs=-1, required=True)
@click.pass_context
def translate(ctx: click.Context, paths: tuple[str, ...]) -> None:
    """Print host paths in the subsystem's path syntax."""
    from subsysbuild.core.services.paths import PathMapping

    config = _load_config(ctx)
    mapping = PathMapping.for_subsystem(config.subsystem)
    try:
        for path in paths:
            click.echo(mapping(path))
    except SubsysBuildError as e:
        _fail(e)


@cli.command()
@click.option("--check", "check_only", is_flag=True, help="Only report missing packages.")
@click.option("--shell", "shell", default=None, help="Path to the subsystem shell.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def deps(ctx: click.Context, check_only: bool, shell: str | None, as_json: bool) -> None:
    """Install declared packages that are missing from the subsystem."""
    from subsysbuild.adapters.shell.command import SubsystemShellAdapter
    from subsysbuild.adapters.shell.package_manager import PackageManager
    from subsysbuild.core.services.prober import find_shell
    from subsysbuild.core.services.resolver import reconcile

    config = _load_config(ctx)
    try:
        shell_path = find_shell(config, shell)
    except SubsysBuildError as e:
        _fail(e)
        return

    package_manager = PackageManager(
        SubsystemShellAdapter(shell_path, timeout=config.timeout),
        config.package_manager,
        config.subsystem.profile,
    )
    report = reconcile(config.packages, package_manager, check_only=check_only)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.ok else 1)

    click.echo(f"   Present:   {len(report.already_installed)}")
    if report.installed:
        click.echo(f"   Installed: {', '.join(report.installed)}")
    if report.failed:
        label = "Missing" if check_only else "Failed"
        click.secho(f"   {label}:    {', '.join(report.failed)}", fg="red")
        try:
            report.raise_for_failures()
        except SubsysBuildError as e:
            _fail(e)


@cli.command()
@click.argument("feature")
@click.option("--feature-root", "root", default=None, help="Feature library root override.")
@click.option("--output-dir", default=None, help="Directory for the .pc file.")
@click.pass_context
def pkgconfig(ctx: click.Context, feature: str, root: str | None, output_dir: str | None) -> None:
    """Write the package-metadata descriptor for one feature."""
    from subsysbuild.core.models.profile import EnvironmentProfile
    from subsysbuild.core.services.paths import PathMapping
    from subsysbuild.core.services.prober import detect_feature, feature_sources
    from subsysbuild.core.use_cases.build import pkgconfig_dir, synthesize_descriptors

    config = _load_config(ctx)
    feature_config = config.features.get(feature)
    if feature_config is None or feature_config.pkgconfig is None:
        click.secho(f"❌ No pkgconfig descriptor configured for '{feature}'", fg="red", err=True)
        sys.exit(1)

    location = detect_feature(feature, feature_config, feature_sources({feature: root} if root else {}))
    if location is None:
        click.secho(f"⚠️  {feature} not found, nothing written", fg="yellow")
        sys.exit(1)

    profile = EnvironmentProfile(
        subsystem_root=config.subsystem.root,
        shell=config.subsystem.shell,
        features={feature: location},
    )
    target = Path(output_dir) if output_dir else pkgconfig_dir(config)
    try:
        written = synthesize_descriptors(
            profile, config, target, PathMapping.for_subsystem(config.subsystem),
        )
    except SubsysBuildError as e:
        _fail(e)
        return

    for path in written:
        click.echo(path)


if __name__ == "__main__":
    cli()
