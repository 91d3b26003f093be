"""
Environment prober — what the host and the subsystem provide.

Read-only probes. Mandatory tools (the subsystem shell, the compiler,
make) raise ``MissingPrerequisite`` when absent; optional feature
libraries are located through an ordered chain of candidate-root
strategies and simply recorded as absent when nothing matches.

Feature detection order, first match wins:

    override      --feature-root NAME=PATH from the command line
    registry      install directory recorded in the system registry
    conventional  the feature's list of usual installation roots

A candidate root is accepted only when the include subdirectory and
one of the accepted library subdirectories both exist under it. The
library names are tried in order for a root before the next root is
considered.
"""

from __future__ import annotations

import logging
import os
import shutil
import sys
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

from subsysbuild.core.errors import MissingPrerequisite
from subsysbuild.core.models.config import BuildConfig, FeatureConfig
from subsysbuild.core.models.profile import EnvironmentProfile, FeatureLocation

logger = logging.getLogger(__name__)

# (hive, key, value name) → recorded string, or None
RegistryReader = Callable[[str, str, str], str | None]

# (feature name, feature config) → candidate roots tagged with their source
CandidateSource = Callable[[str, FeatureConfig], Iterable[tuple[str, str]]]


# ── Registry ────────────────────────────────────────────────────


def read_windows_registry(hive: str, key: str, value: str) -> str | None:
    """Read a string value from the Windows registry.

    Returns None off Windows, when the key or value does not exist,
    or when the stored value is not a string.
    """
    if sys.platform != "win32":
        return None

    import winreg

    try:
        root = getattr(winreg, hive)
    except AttributeError:
        logger.warning("Unknown registry hive: %s", hive)
        return None

    try:
        with winreg.OpenKey(root, key) as handle:
            data, kind = winreg.QueryValueEx(handle, value)
    except OSError:
        logger.debug("Registry value %s\\%s[%s] not present", hive, key, value)
        return None

    if kind not in (winreg.REG_SZ, winreg.REG_EXPAND_SZ):
        return None
    return os.path.expandvars(data) if kind == winreg.REG_EXPAND_SZ else data


# ── Feature detection ───────────────────────────────────────────


def locate_feature(root: str, feature: FeatureConfig, source: str = "conventional") -> FeatureLocation | None:
    """Accept ``root`` if it holds both include and library subdirectories."""
    base = Path(root)
    include_dir = base / feature.include_subdir
    if not include_dir.is_dir():
        return None

    for lib_name in feature.lib_subdirs:
        lib_dir = base / lib_name
        if lib_dir.is_dir():
            return FeatureLocation(
                root=str(base),
                include_dir=str(include_dir),
                lib_dir=str(lib_dir),
                source=source,
            )
    return None


def override_candidates(overrides: dict[str, str]) -> CandidateSource:
    def _candidates(name: str, feature: FeatureConfig) -> Iterator[tuple[str, str]]:
        if name in overrides:
            yield overrides[name], "override"
    return _candidates


def registry_candidates(reader: RegistryReader) -> CandidateSource:
    def _candidates(name: str, feature: FeatureConfig) -> Iterator[tuple[str, str]]:
        if not feature.registry_key:
            return
        try:
            recorded = reader(feature.registry_hive, feature.registry_key, feature.registry_value)
        except OSError as e:
            logger.warning("Registry lookup for %s failed: %s", name, e)
            return
        if not recorded:
            return
        if not Path(recorded).is_dir():
            logger.info("Registry points %s at %s, which does not exist", name, recorded)
            return
        yield recorded, "registry"
    return _candidates


def conventional_candidates(name: str, feature: FeatureConfig) -> Iterator[tuple[str, str]]:
    for root in feature.roots:
        yield root, "conventional"


def feature_sources(
    feature_roots: dict[str, str] | None = None,
    registry_reader: RegistryReader | None = None,
) -> list[CandidateSource]:
    """The candidate chain, in detection order."""
    return [
        override_candidates(feature_roots or {}),
        registry_candidates(registry_reader or read_windows_registry),
        conventional_candidates,
    ]


def detect_feature(
    name: str,
    feature: FeatureConfig,
    sources: list[CandidateSource],
) -> FeatureLocation | None:
    """Walk the candidate chain and return the first accepted root."""
    for source in sources:
        for root, origin in source(name, feature):
            location = locate_feature(root, feature, origin)
            if location is not None:
                logger.info("Feature %s found at %s (%s)", name, location.root, origin)
                return location
            logger.debug("Feature %s: %s rejected (%s)", name, root, origin)

    logger.info("Feature %s not found, building without it", name)
    return None


# ── Mandatory tools ─────────────────────────────────────────────


def subsystem_search_path(config: BuildConfig) -> str:
    """The subsystem's binary directories followed by the process PATH."""
    root = Path(config.subsystem.root)
    dirs = [str(root / d) for d in config.subsystem.bin_dirs]
    current = os.environ.get("PATH", "")
    if current:
        dirs.append(current)
    return os.pathsep.join(dirs)


def find_shell(config: BuildConfig, shell: str | None = None) -> str:
    """Locate the subsystem shell entry point.

    Raises:
        MissingPrerequisite: If no usable shell is found.
    """
    if shell:
        if Path(shell).is_file():
            return shell
        raise MissingPrerequisite("shell", f"{shell} does not exist")

    candidate = Path(config.subsystem.root) / config.subsystem.shell
    if candidate.is_file():
        return str(candidate)

    found = shutil.which(Path(config.subsystem.shell).name, path=subsystem_search_path(config))
    if found:
        return found
    raise MissingPrerequisite("shell", f"looked for {candidate}")


def find_required_tools(config: BuildConfig) -> dict[str, str]:
    """Locate the compiler and every other required tool.

    Raises:
        MissingPrerequisite: Naming the first tool that is missing.
    """
    search_path = subsystem_search_path(config)
    found: dict[str, str] = {}
    for tool in dict.fromkeys([config.compiler, *config.required_tools]):
        location = shutil.which(tool, path=search_path)
        if location is None:
            raise MissingPrerequisite(tool)
        found[tool] = location
    return found


# ── Profile ─────────────────────────────────────────────────────


def probe(
    config: BuildConfig,
    *,
    shell: str | None = None,
    feature_roots: dict[str, str] | None = None,
    registry_reader: RegistryReader | None = None,
) -> EnvironmentProfile:
    """Build the EnvironmentProfile for this run.

    Args:
        config: Build configuration.
        shell: Explicit subsystem shell path (overrides the config).
        feature_roots: Per-feature root overrides, tried first.
        registry_reader: Registry access; defaults to the Windows registry.

    Raises:
        MissingPrerequisite: When the shell or a required tool is absent.
    """
    shell_path = find_shell(config, shell)
    tools = find_required_tools(config)
    compiler = tools.get(config.compiler)

    sources = feature_sources(feature_roots, registry_reader)
    features = {
        name: detect_feature(name, feature, sources)
        for name, feature in config.features.items()
    }

    profile = EnvironmentProfile(
        subsystem_root=config.subsystem.root,
        shell=shell_path,
        compiler=compiler,
        cpu_count=max(1, os.cpu_count() or 1),
        features=features,
    )
    logger.info(
        "Probed: shell=%s compiler=%s cpus=%d features=%s",
        profile.shell, profile.compiler, profile.cpu_count,
        ", ".join(profile.present_features) or "none",
    )
    return profile
