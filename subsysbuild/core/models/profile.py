"""
EnvironmentProfile — the immutable snapshot produced once per run.

The prober fills it in; every later stage only reads it.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class FeatureLocation(BaseModel):
    """Where an optional feature library was found on the host."""

    model_config = ConfigDict(frozen=True)

    root: str
    include_dir: str
    lib_dir: str
    source: Literal["override", "registry", "conventional"] = "conventional"


class EnvironmentProfile(BaseModel):
    """Detected host/subsystem state.

    ``features`` holds one entry per configured optional feature;
    ``None`` means the feature was not detected.
    """

    model_config = ConfigDict(frozen=True)

    subsystem_root: str
    shell: str
    compiler: str | None = None
    cpu_count: int = Field(default=1, ge=1)
    features: dict[str, FeatureLocation | None] = Field(default_factory=dict)

    def feature(self, name: str) -> FeatureLocation | None:
        """Location of a feature, or None when absent or unknown."""
        return self.features.get(name)

    @property
    def present_features(self) -> list[str]:
        """Names of detected features, in configuration order."""
        return [name for name, loc in self.features.items() if loc is not None]

    def with_feature(self, name: str, location: FeatureLocation | None) -> EnvironmentProfile:
        """Copy of this profile with one feature entry replaced."""
        features = dict(self.features)
        features[name] = location
        return self.model_copy(update={"features": features})
