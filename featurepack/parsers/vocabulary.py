"""The element and attribute names known by each descriptor schema version.

Every name resolves to an enum member. Names that are not part of the
grammar resolve to the ``UNKNOWN`` member instead of raising an exception,
so the parser can decide at the point of use whether that's an error.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from types import MappingProxyType
from xml.etree.ElementTree import QName

from featurepack.exceptions import UnsupportedSchemaVersion
from featurepack.parsers.xml import split_ns, xmlns

__all__ = (
    "Element",
    "Attribute",
    "Vocabulary",
    "get_vocabulary",
    "SUPPORTED_NAMESPACES",
)

SUPPORTED_NAMESPACES = (xmlns.feature_pack10.value, xmlns.feature_pack11.value)


class Element(Enum):
    """The elements of the descriptor. Each value is the XML local name."""

    UNKNOWN = None

    FEATURE_PACK = "feature-pack"
    DEPENDENCIES = "dependencies"
    ARTIFACT = "artifact"
    ARTIFACT_VERSIONS = "artifact-versions"
    CONFIG = "config"
    COPY_ARTIFACTS = "copy-artifacts"
    FILTER = "filter"
    FILE_PERMISSIONS = "file-permissions"

    def __repr__(self):
        return f"{self.__class__.__name__}.{self.name}"


class Attribute(Enum):
    """The attributes of the descriptor. Attributes are never namespaced."""

    UNKNOWN = None

    GROUP_ID = "groupId"
    ARTIFACT_ID = "artifactId"
    CLASSIFIER = "classifier"
    EXTENSION = "extension"
    VERSION = "version"
    NAME = "name"

    def __repr__(self):
        return f"{self.__class__.__name__}.{self.name}"


class Vocabulary:
    """The name lookup tables for a single schema version."""

    def __init__(self, namespace: str):
        if namespace not in SUPPORTED_NAMESPACES:
            raise UnsupportedSchemaVersion(namespace)

        self.namespace = namespace
        self.elements = MappingProxyType(
            {
                QName(namespace, member.value).text: member
                for member in Element
                if member is not Element.UNKNOWN
            }
        )
        self.attributes = MappingProxyType(
            {member.value: member for member in Attribute if member is not Attribute.UNKNOWN}
        )

    def resolve_element(self, namespace: str | None, local_name: str) -> Element:
        """Tell which element the name refers to.
        Elements without a namespace are assumed to be part of this schema.
        """
        tag = QName(namespace or self.namespace, local_name).text
        return self.elements.get(tag, Element.UNKNOWN)

    def resolve_tag(self, tag: str) -> Element:
        """Resolve an ElementTree style ``{namespace}localname`` tag."""
        namespace, local_name = split_ns(tag)
        return self.resolve_element(namespace, local_name)

    def resolve_attribute(self, local_name: str) -> Attribute:
        """Tell which attribute the name refers to.
        Namespaced names (e.g. ``{ns}name``) never match.
        """
        return self.attributes.get(local_name, Attribute.UNKNOWN)

    def qname(self, element: Element) -> str:
        return QName(self.namespace, element.value).text

    def __repr__(self):
        return f"{self.__class__.__name__}({self.namespace!r})"


@lru_cache
def get_vocabulary(namespace: str) -> Vocabulary:
    """Provide the shared lookup tables of a schema version."""
    return Vocabulary(namespace)
