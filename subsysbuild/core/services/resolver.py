"""
Dependency resolver — install only what the package manager reports missing.

Each declared package is queried on its own; a missing one is
installed on its own, and the install is awaited before the next
package is considered. An install failure does not stop the pass:
faults are collected and the caller decides what to do with them
after the full batch (the build use case treats any as fatal).
Installed packages are never upgraded or reinstalled.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from subsysbuild.adapters.shell.package_manager import PackageManager
from subsysbuild.core.errors import DependencyInstallFailed
from subsysbuild.core.models.config import BuildConfig
from subsysbuild.core.models.profile import EnvironmentProfile

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    """Outcome of one reconciliation pass."""

    already_installed: list[str] = field(default_factory=list)
    installed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def raise_for_failures(self) -> None:
        """Raise DependencyInstallFailed if any install failed."""
        if self.failed:
            raise DependencyInstallFailed(self.failed)

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "already_installed": self.already_installed,
            "installed": self.installed,
            "failed": self.failed,
            "errors": self.errors,
        }


def declared_packages(config: BuildConfig, profile: EnvironmentProfile | None = None) -> set[str]:
    """Base package list plus the extra packages of each present feature."""
    packages = set(config.packages)
    if profile is not None:
        for name in profile.present_features:
            feature = config.features.get(name)
            if feature is not None:
                packages.update(feature.packages)
    return packages


def reconcile(
    declared: Iterable[str],
    package_manager: PackageManager,
    *,
    check_only: bool = False,
) -> ReconcileReport:
    """Install every declared package the package manager reports missing.

    Args:
        declared: Package names. Processed in sorted order.
        package_manager: Query/install primitives.
        check_only: Report missing packages as failed without installing.

    Returns:
        ReconcileReport. Never raises for install failures.
    """
    report = ReconcileReport()

    for name in sorted(set(declared)):
        if package_manager.is_installed(name):
            report.already_installed.append(name)
            continue

        if check_only:
            report.failed.append(name)
            report.errors[name] = "not installed"
            continue

        receipt = package_manager.install(name)
        if receipt.ok:
            report.installed.append(name)
        else:
            logger.error("Failed to install %s: %s", name, receipt.error)
            report.failed.append(name)
            report.errors[name] = receipt.error or "install failed"

    logger.info(
        "Reconciled %d packages: %d present, %d installed, %d failed",
        len(report.already_installed) + len(report.installed) + len(report.failed),
        len(report.already_installed), len(report.installed), len(report.failed),
    )
    return report
