"""
Feature provisioning — install an absent feature library on the host.

Only features that carry an ``installer`` block are provisioned. The
installer is downloaded, checked against its ``algo:hex`` checksum
when one is configured, and run on the host (``msiexec /i ... /qn``
by default). The feature is then detected again.

What a failure means is a policy choice:

    degrade  (default) warn and build with the feature disabled
    fail     raise FeatureProvisionFailed and stop the run

There is no retry; a flaky download surfaces as a failure.
"""

from __future__ import annotations

import hashlib
import logging
import subprocess
import urllib.request
from collections.abc import Callable
from pathlib import Path
from urllib.parse import urlparse

from subsysbuild.core.errors import FeatureProvisionFailed
from subsysbuild.core.models.config import BuildConfig, FeatureConfig, InstallerConfig
from subsysbuild.core.models.profile import EnvironmentProfile, FeatureLocation

logger = logging.getLogger(__name__)

# (url, destination) → None; raises OSError on failure
Downloader = Callable[[str, Path], None]
# argv → exit status
InstallerRunner = Callable[[list[str]], int]
# (name, feature) → location after install
Redetector = Callable[[str, FeatureConfig], FeatureLocation | None]


def download_file(url: str, dest: Path, timeout: int = 60) -> None:
    """Fetch ``url`` into ``dest``."""
    req = urllib.request.Request(url, headers={"User-Agent": "subsysbuild/0.1"})
    with urllib.request.urlopen(req, timeout=timeout) as resp, open(dest, "wb") as out:
        for chunk in iter(lambda: resp.read(65536), b""):
            out.write(chunk)


def verify_checksum(path: Path, expected: str) -> bool:
    """Verify file checksum.  Format: ``algo:hex`` (sha256, sha1, md5).

    Raises:
        ValueError: If ``expected`` has no ``:`` or names an unknown algorithm.
    """
    algo, expected_hash = expected.split(":", 1)
    h = hashlib.new(algo)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest() == expected_hash.lower()


def run_installer(command: list[str]) -> int:
    """Run an installer on the host and return its exit status."""
    logger.info("Running installer: %s", " ".join(command))
    try:
        return subprocess.run(command).returncode
    except OSError as e:
        logger.error("Cannot start installer %s: %s", command[0], e)
        return 127


def install_feature(
    name: str,
    installer: InstallerConfig,
    download_dir: Path,
    *,
    downloader: Downloader = download_file,
    runner: InstallerRunner = run_installer,
) -> None:
    """Download and run one installer.

    Raises:
        FeatureProvisionFailed: On download, checksum, or installer failure.
    """
    download_dir.mkdir(parents=True, exist_ok=True)
    filename = Path(urlparse(installer.url).path).name or f"{name}-installer"
    dest = download_dir / filename

    logger.info("Downloading %s installer from %s", name, installer.url)
    try:
        downloader(installer.url, dest)
    except OSError as e:
        raise FeatureProvisionFailed(name, f"download failed: {e}") from e

    if installer.checksum:
        try:
            matches = verify_checksum(dest, installer.checksum)
        except ValueError as e:
            raise FeatureProvisionFailed(name, f"bad checksum spec {installer.checksum!r}: {e}") from e
        if not matches:
            raise FeatureProvisionFailed(name, f"checksum mismatch for {dest.name}")

    command = [part.replace("{file}", str(dest)) for part in installer.command]
    code = runner(command)
    if code != 0:
        raise FeatureProvisionFailed(name, f"installer exited with status {code}")


def provision_features(
    profile: EnvironmentProfile,
    config: BuildConfig,
    download_dir: Path,
    redetect: Redetector,
    *,
    downloader: Downloader = download_file,
    runner: InstallerRunner = run_installer,
) -> EnvironmentProfile:
    """Provision every absent feature that has an installer.

    Returns:
        The profile, updated with newly detected features.

    Raises:
        FeatureProvisionFailed: Only under the ``fail`` policy.
    """
    strict = config.on_feature_failure == "fail"

    for name, feature in config.features.items():
        if profile.feature(name) is not None or feature.installer is None:
            continue

        try:
            install_feature(
                name, feature.installer, download_dir,
                downloader=downloader, runner=runner,
            )
            location = redetect(name, feature)
            if location is None:
                raise FeatureProvisionFailed(name, "installed, but still not detected")
        except FeatureProvisionFailed as e:
            if strict:
                raise
            logger.warning("%s — building without %s", e, name)
            continue

        profile = profile.with_feature(name, location)

    return profile
