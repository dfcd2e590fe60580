"""The in-memory model of a feature pack build descriptor."""

from __future__ import annotations

from dataclasses import dataclass, field
from xml.etree.ElementTree import Element

from featurepack.artifacts import ArtifactVersions

__all__ = (
    "FeaturePackDescription",
    "FragmentModel",
    "ConfigModel",
    "CopyArtifactsModel",
    "FilePermissionsModel",
)


@dataclass
class FragmentModel:
    """Content of a region that is handled by a sub-parser.

    The descriptor parser only hands these over to the sub-parser,
    it never looks into them.
    """

    elements: list[Element] = field(default_factory=list)

    def __bool__(self):
        return bool(self.elements)


class ConfigModel(FragmentModel):
    """The ``<config>`` regions."""


class CopyArtifactsModel(FragmentModel):
    """The ``<copy-artifacts>`` regions."""


class FilePermissionsModel(FragmentModel):
    """The ``<file-permissions>`` regions."""


@dataclass
class FeaturePackDescription:
    """The result of parsing a descriptor.

    The caller creates an empty instance, which the parser fills in place.
    After a parse error, the contents are undefined and should be discarded.
    """

    dependencies: set[str] = field(default_factory=set)
    artifact_versions: ArtifactVersions = field(default_factory=ArtifactVersions)
    config: ConfigModel = field(default_factory=ConfigModel)
    copy_artifacts: CopyArtifactsModel = field(default_factory=CopyArtifactsModel)
    file_permissions: FilePermissionsModel = field(default_factory=FilePermissionsModel)
