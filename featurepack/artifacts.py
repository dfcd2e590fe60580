"""Maven style artifact coordinates.

An artifact is identified by its *GACE*: the groupId, artifactId,
classifier and extension. The version is deliberately not part of that
identity, so a reference like ``org.example:library`` can be matched
against the concrete artifact a build resolved, whatever its version is.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from typing import NamedTuple, Protocol

logger = logging.getLogger(__name__)

__all__ = (
    "Artifact",
    "ArtifactIdentity",
    "ArtifactVersions",
    "ArtifactResolver",
    "MappingArtifactResolver",
    "coordinate_identity",
)


class ArtifactIdentity(NamedTuple):
    """The version-less identity of an artifact (GACE)."""

    group_id: str
    artifact_id: str
    extension: str | None
    classifier: str | None


@dataclass(frozen=True)
class Artifact:
    """A Maven coordinate, e.g. ``<artifact groupId="org.x" artifactId="y" version="1.0"/>``.

    Note that ``None`` and an empty string are different values for the
    optional fields; an artifact without classifier doesn't match one with
    ``classifier=""``.
    """

    group_id: str
    artifact_id: str
    extension: str | None = None
    classifier: str | None = None
    version: str | None = None

    def __post_init__(self):
        if not self.group_id:
            raise ValueError("Artifact requires a groupId")
        if not self.artifact_id:
            raise ValueError("Artifact requires an artifactId")

    @property
    def identity(self) -> ArtifactIdentity:
        return ArtifactIdentity(self.group_id, self.artifact_id, self.extension, self.classifier)

    def without_version(self) -> Artifact:
        return replace(self, version=None)

    def with_version(self, version: str | None) -> Artifact:
        return replace(self, version=version)

    def __str__(self):
        return ":".join(
            value or ""
            for value in (
                self.group_id,
                self.artifact_id,
                self.extension,
                self.classifier,
                self.version,
            )
        )


def coordinate_identity(artifact: Artifact) -> ArtifactIdentity:
    """Tell the identity of the artifact, excluding its version."""
    return artifact.identity


class ArtifactVersions:
    """The set of artifact version overrides, unique by their identity (GACE).

    This behaves like a set of :class:`Artifact` objects, except that two
    artifacts with a different version are considered the same entry.
    """

    def __init__(self, artifacts: Iterable[Artifact] = ()):
        self._artifacts: dict[ArtifactIdentity, Artifact] = {}
        for artifact in artifacts:
            self.replace(artifact)

    def add(self, artifact: Artifact) -> bool:
        """Add the artifact, unless its identity is already known.
        Returns whether the artifact was added.
        """
        if artifact.identity in self._artifacts:
            return False
        self._artifacts[artifact.identity] = artifact
        return True

    def replace(self, artifact: Artifact) -> Artifact | None:
        """Add the artifact, replacing the existing version. Returns the previous entry."""
        previous = self._artifacts.get(artifact.identity)
        self._artifacts[artifact.identity] = artifact
        return previous

    def get(self, artifact: Artifact | ArtifactIdentity) -> Artifact | None:
        """Find the entry that has the same identity."""
        if isinstance(artifact, Artifact):
            artifact = artifact.identity
        return self._artifacts.get(artifact)

    def version_of(self, artifact: Artifact | ArtifactIdentity) -> str | None:
        """Tell which version is pinned for the artifact."""
        found = self.get(artifact)
        return found.version if found is not None else None

    def __contains__(self, artifact) -> bool:
        if isinstance(artifact, Artifact):
            artifact = artifact.identity
        return artifact in self._artifacts

    def __iter__(self) -> Iterator[Artifact]:
        return iter(self._artifacts.values())

    def __len__(self):
        return len(self._artifacts)

    def __eq__(self, other):
        if isinstance(other, ArtifactVersions):
            return self._artifacts == other._artifacts
        if isinstance(other, (set, frozenset)):
            return set(self._artifacts.values()) == other
        return NotImplemented

    def __repr__(self):
        return f"{self.__class__.__name__}({list(self._artifacts.values())!r})"


class ArtifactResolver(Protocol):
    """Find the concrete artifact for a (version-less) reference."""

    def get_artifact(self, gace: Artifact | ArtifactIdentity) -> Artifact | None: ...


class MappingArtifactResolver:
    """Resolve artifacts from a known collection, e.g. the ones a build has downloaded."""

    def __init__(self, artifacts: Iterable[Artifact]):
        self.artifacts: dict[ArtifactIdentity, Artifact] = {}
        for artifact in artifacts:
            if artifact.identity in self.artifacts:
                logger.debug("Artifact %s is provided twice, using the last one", artifact)
            self.artifacts[artifact.identity] = artifact

    def get_artifact(self, gace: Artifact | ArtifactIdentity) -> Artifact | None:
        if isinstance(gace, Artifact):
            gace = gace.identity
        return self.artifacts.get(gace)
