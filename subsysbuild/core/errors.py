"""
Error taxonomy — every fatal condition of a run.

Each error names the component that raised it so the CLI can print
a distinguishing message. All of them map to exit code 1; there is
no retry anywhere, the operator sees the failure as it happened.

Optional-feature detection never raises: an undetected feature is
recorded as absent on the EnvironmentProfile instead.
"""

from __future__ import annotations


class SubsysBuildError(Exception):
    """Base class for fatal run errors."""

    component: str = "subsysbuild"
    exit_code: int = 1

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"[{self.component}] {self.message}"


class ConfigError(SubsysBuildError):
    """Raised when subsysbuild.yml is unreadable or invalid."""

    component = "config"


class MissingPrerequisite(SubsysBuildError):
    """A mandatory tool (subsystem shell, compiler, make) is absent."""

    component = "prober"

    def __init__(self, tool: str, detail: str = "") -> None:
        self.tool = tool
        message = f"Required tool not found: {tool}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class InvalidPath(SubsysBuildError):
    """A host path cannot be mapped into the subsystem."""

    component = "paths"

    def __init__(self, path: str, reason: str = "missing drive-letter prefix") -> None:
        self.path = path
        super().__init__(f"Cannot translate {path!r}: {reason}")


class DependencyInstallFailed(SubsysBuildError):
    """One or more declared packages could not be installed."""

    component = "resolver"

    def __init__(self, packages: list[str]) -> None:
        self.packages = list(packages)
        super().__init__(f"Package install failed: {', '.join(self.packages)}")


class FeatureProvisionFailed(SubsysBuildError):
    """An optional feature library could not be provisioned (strict policy only)."""

    component = "provision"

    def __init__(self, feature: str, reason: str) -> None:
        self.feature = feature
        super().__init__(f"Feature '{feature}' could not be provisioned: {reason}")


class PhaseFailed(SubsysBuildError):
    """A build phase exited non-zero."""

    component = "orchestrator"
    phase: str = ""

    def __init__(self, return_code: int | None, output: str = "") -> None:
        self.return_code = return_code
        self.output = output
        code = "?" if return_code is None else str(return_code)
        message = f"{self.phase} phase failed (exit {code})"
        if output.strip():
            message += f": {output.strip().splitlines()[-1]}"
        super().__init__(message)


class ConfigureFailed(PhaseFailed):
    phase = "configure"


class BuildFailed(PhaseFailed):
    phase = "build"


class InstallFailed(PhaseFailed):
    phase = "install"
