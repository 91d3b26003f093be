"""
Build orchestrator — compose and run the configure/build/install pipeline.

States:
    CONFIGURING → BUILDING → INSTALLING (only if requested) → DONE
    any of the first three → FAILED on a non-zero exit

All phases share one preamble, composed once: source the subsystem
profile, export the feature flags and the pkg-config search path,
cd into the working directory. Each phase command is that preamble
followed by its own step, so every phase sees identical state.
A failed install leaves the built tree in place.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from subsysbuild.adapters.base import Adapter
from subsysbuild.core.errors import BuildFailed, ConfigureFailed, InstallFailed, PhaseFailed
from subsysbuild.core.models.action import Receipt
from subsysbuild.core.models.config import BuildConfig
from subsysbuild.core.models.profile import EnvironmentProfile
from subsysbuild.core.services.paths import PathMapping

logger = logging.getLogger(__name__)


class BuildState(StrEnum):
    """Orchestrator states."""

    CONFIGURING = "configuring"
    BUILDING = "building"
    INSTALLING = "installing"
    DONE = "done"
    FAILED = "failed"


_PHASE_STATES: dict[str, BuildState] = {
    "configure": BuildState.CONFIGURING,
    "build": BuildState.BUILDING,
    "install": BuildState.INSTALLING,
}

_PHASE_ERRORS: dict[str, type[PhaseFailed]] = {
    "configure": ConfigureFailed,
    "build": BuildFailed,
    "install": InstallFailed,
}


@dataclass
class BuildPhase:
    """One externally invoked step."""

    name: str
    step: str


@dataclass
class BuildPlan:
    """Ordered phases sharing one preamble."""

    preamble: list[str] = field(default_factory=list)
    phases: list[BuildPhase] = field(default_factory=list)
    work_dir: str = ""
    create_work_dir: str | None = None

    def command(self, phase: BuildPhase) -> str:
        """Full command string of a phase."""
        return " && ".join([*self.preamble, phase.step])

    def phase(self, name: str) -> BuildPhase | None:
        for phase in self.phases:
            if phase.name == name:
                return phase
        return None

    @property
    def phase_names(self) -> list[str]:
        return [p.name for p in self.phases]

    def to_dict(self) -> dict:
        return {
            "work_dir": self.work_dir,
            "preamble": self.preamble,
            "phases": [
                {"name": p.name, "step": p.step, "command": self.command(p)}
                for p in self.phases
            ],
        }


@dataclass
class BuildResult:
    """What happened when a plan ran."""

    state: BuildState = BuildState.CONFIGURING
    receipts: list[Receipt] = field(default_factory=list)
    plan: BuildPlan | None = None

    @property
    def phases_run(self) -> list[str]:
        return [r.action_id for r in self.receipts]

    @property
    def ok(self) -> bool:
        return self.state == BuildState.DONE

    def to_dict(self) -> dict:
        result: dict = {
            "state": str(self.state),
            "phases_run": self.phases_run,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }
        if self.plan is not None:
            result["plan"] = self.plan.to_dict()
        return result


def _join(host_dir: str, relative: str) -> str:
    return host_dir.rstrip("/\\") + "/" + relative


def job_count(profile: EnvironmentProfile, config: BuildConfig) -> int:
    """Parallelism for the build step: CPU count, capped by max_jobs, at least 1."""
    jobs = profile.cpu_count
    if config.max_jobs is not None:
        jobs = min(jobs, config.max_jobs)
    return max(1, jobs)


def compose_preamble(
    profile: EnvironmentProfile,
    config: BuildConfig,
    *,
    work_dir: str,
    pkgconfig_dir: str,
    mapping: PathMapping,
) -> list[str]:
    """Shell statements shared by every phase."""
    preamble: list[str] = []

    if config.subsystem.profile:
        preamble.append(f"source {shlex.quote(config.subsystem.profile)}")

    for name in profile.present_features:
        location = profile.features[name]
        for host_dir in (location.include_dir, location.lib_dir):
            if " " in host_dir:
                logger.warning(
                    "Feature %s path contains spaces (%s); configure scripts that "
                    "expand $CFLAGS/$LDFLAGS unquoted will split it",
                    name, host_dir,
                )
        preamble.append(f'export CFLAGS="$CFLAGS "-I{mapping(location.include_dir)}')
        preamble.append(f'export LDFLAGS="$LDFLAGS "-L{mapping(location.lib_dir)}')

    preamble.append(f'export PKG_CONFIG_PATH={mapping(pkgconfig_dir)}:"$PKG_CONFIG_PATH"')

    if config.languages:
        preamble.append(f"export LINGUAS={shlex.quote(' '.join(config.languages))}")

    for key, value in config.env.items():
        preamble.append(f"export {key}={shlex.quote(value)}")

    preamble.append(f"cd {mapping(work_dir)}")
    return preamble


def configure_step(
    profile: EnvironmentProfile,
    config: BuildConfig,
    *,
    source_dir: str,
    prefix: str,
    out_of_tree: bool,
    mapping: PathMapping,
) -> str:
    """The configure invocation with prefix and feature flags."""
    if out_of_tree:
        script = mapping(_join(source_dir, config.configure_script))
    else:
        script = f"./{config.configure_script}"

    args = [script, f"--prefix={mapping(prefix)}"]

    for name in profile.present_features:
        flag = config.features[name].enable_flag if name in config.features else ""
        if flag:
            args.append(flag)

    if not config.nls:
        args.append("--disable-nls")

    args.extend(shlex.quote(a) for a in config.configure_args)
    return " ".join(args)


def compose_plan(
    profile: EnvironmentProfile,
    config: BuildConfig,
    *,
    source_dir: str,
    prefix: str,
    pkgconfig_dir: str,
    install: bool = False,
    build_dir: str | None = None,
    mapping: PathMapping | None = None,
) -> BuildPlan:
    """Build the plan for one run.

    Args:
        profile: Probed environment.
        config: Build configuration.
        source_dir: Host path of the external source tree.
        prefix: Host path of the install prefix.
        pkgconfig_dir: Host directory holding synthesized descriptors.
        install: Append the install phase.
        build_dir: Host path for an out-of-tree build; created on run.
        mapping: Host → subsystem path mapping.

    Raises:
        InvalidPath: If any of the paths cannot be translated.
    """
    mapping = mapping or PathMapping.for_subsystem(config.subsystem)
    work_dir = build_dir or source_dir

    preamble = compose_preamble(
        profile, config,
        work_dir=work_dir,
        pkgconfig_dir=pkgconfig_dir,
        mapping=mapping,
    )

    phases = [
        BuildPhase(
            "configure",
            configure_step(
                profile, config,
                source_dir=source_dir,
                prefix=prefix,
                out_of_tree=build_dir is not None,
                mapping=mapping,
            ),
        ),
        BuildPhase("build", f"{config.make} -j{job_count(profile, config)}"),
    ]
    if install:
        phases.append(BuildPhase("install", f"{config.make} install"))

    return BuildPlan(
        preamble=preamble,
        phases=phases,
        work_dir=mapping(work_dir),
        create_work_dir=build_dir,
    )


def run_plan(plan: BuildPlan, adapter: Adapter, *, dry_run: bool = False) -> BuildResult:
    """Run the phases in order, stopping at the first failure.

    Raises:
        ConfigureFailed, BuildFailed, InstallFailed: On a non-zero exit.
    """
    result = BuildResult(plan=plan)

    if plan.create_work_dir and not dry_run:
        Path(plan.create_work_dir).mkdir(parents=True, exist_ok=True)

    for phase in plan.phases:
        result.state = _PHASE_STATES[phase.name]
        logger.info("Phase %s: %s", phase.name, phase.step)

        receipt = adapter.run(phase.name, plan.command(phase), dry_run=dry_run)
        result.receipts.append(receipt)

        if receipt.failed:
            result.state = BuildState.FAILED
            logger.error("Phase %s failed: %s", phase.name, receipt.error)
            raise _PHASE_ERRORS[phase.name](receipt.return_code, receipt.error or "")

    result.state = BuildState.DONE
    return result
