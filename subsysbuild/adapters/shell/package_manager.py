"""
Package-manager adapter — the query/install primitive pair.

Both primitives are command templates from the configuration, run
inside the subsystem after its profile is sourced so the package
manager is on PATH:

    query    pacman -Q {name}          exit 0 → installed
    install  pacman -S ... {name}      exit 0 → installed now
"""

from __future__ import annotations

import logging
import shlex

from subsysbuild.adapters.base import Adapter
from subsysbuild.core.models.action import Receipt
from subsysbuild.core.models.config import PackageManagerConfig

logger = logging.getLogger(__name__)


class PackageManager:
    """Query and install single packages through a subsystem adapter."""

    def __init__(
        self,
        adapter: Adapter,
        config: PackageManagerConfig | None = None,
        profile: str = "/etc/profile",
    ):
        self._adapter = adapter
        self._config = config or PackageManagerConfig()
        self._profile = profile

    def _command(self, template: str, name: str) -> str:
        command = template.format(name=shlex.quote(name))
        if self._profile:
            return f"source {shlex.quote(self._profile)} && {command}"
        return command

    def is_installed(self, name: str) -> bool:
        """Whether the package manager reports ``name`` as installed.

        A failed query (including one that could not start) counts
        as not installed.
        """
        receipt = self._adapter.run(
            f"query:{name}",
            self._command(self._config.query, name),
            name=f"query {name}",
        )
        logger.debug("query %s → %s", name, receipt.status)
        return receipt.ok

    def install(self, name: str) -> Receipt:
        """Install a single package; the receipt reports the outcome."""
        logger.info("Installing package %s", name)
        return self._adapter.run(
            f"install:{name}",
            self._command(self._config.install, name),
            name=f"install {name}",
        )
