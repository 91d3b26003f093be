"""
Domain models — Pydantic types for subsysbuild.

All models are re-exported here for convenient access:

    from subsysbuild.core.models import BuildConfig, EnvironmentProfile, Action, Receipt
"""

from subsysbuild.core.models.action import Action, Receipt
from subsysbuild.core.models.config import (
    BuildConfig,
    FeatureConfig,
    InstallerConfig,
    PackageManagerConfig,
    PkgConfigSpec,
    SubsystemConfig,
)
from subsysbuild.core.models.profile import EnvironmentProfile, FeatureLocation

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # config.py
    "BuildConfig",
    "FeatureConfig",
    "InstallerConfig",
    "PackageManagerConfig",
    "PkgConfigSpec",
    "SubsystemConfig",
    # profile.py
    "EnvironmentProfile",
    "FeatureLocation",
]
