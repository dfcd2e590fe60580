"""Parsing of the feature pack build descriptor.

This is the configuration that is used to *create* a feature pack, e.g.:

.. code-block:: xml

    <feature-pack xmlns="urn:wildfly:feature-pack:1.1">
        <dependencies>
            <artifact name="org.wildfly:wildfly-core-feature-pack"/>
        </dependencies>
        <artifact-versions>
            <artifact groupId="org.x" artifactId="y" version="${version.org.x}"/>
        </artifact-versions>
        <config>...</config>
        <copy-artifacts>...</copy-artifacts>
        <file-permissions>...</file-permissions>
    </feature-pack>

The document is processed as a stream of events. Each region of the document
is handled by a method that consumes the events up to its own end tag,
and returns control to the region that contains it. The ``<config>``,
``<copy-artifacts>`` and ``<file-permissions>`` regions are handed over
to their sub-parsers as a whole.
"""

from __future__ import annotations

import logging

from django.core.exceptions import ImproperlyConfigured

from featurepack import conf
from featurepack.artifacts import Artifact
from featurepack.description import FeaturePackDescription
from featurepack.exceptions import (
    DuplicateArtifactVersion,
    MissingRequiredAttributes,
    UnexpectedContent,
    UnsupportedSchemaVersion,
    wrap_property_errors,
)
from featurepack.parsers.fragments import FragmentParser, SubtreeParser
from featurepack.parsers.vocabulary import SUPPORTED_NAMESPACES, Attribute, Element, get_vocabulary
from featurepack.parsers.xml import XmlEvent, XmlEventReader, xmlns
from featurepack.properties import PropertyReplacer, PropertyResolver

logger = logging.getLogger(__name__)

__all__ = (
    "DescriptorParser",
    "parse_feature_pack_description",
)

DUPLICATES_REJECT = "reject"
DUPLICATES_FIRST = "first"
DUPLICATES_LAST = "last"

# The attributes of an <artifact> element, per region.
DEPENDENCY_ATTRIBUTES = {Attribute.NAME: True}
ARTIFACT_VERSION_ATTRIBUTES = {
    Attribute.GROUP_ID: True,
    Attribute.ARTIFACT_ID: True,
    Attribute.VERSION: True,
    Attribute.CLASSIFIER: False,
    Attribute.EXTENSION: False,
}


class DescriptorParser:
    """Parser for the ``<feature-pack>`` element of one schema version.

    Each parse should use its own instance, as the property replacer and
    sub-parsers are owned by it.
    """

    def __init__(
        self,
        resolver: PropertyResolver,
        namespace: str = xmlns.feature_pack.value,
        config_parser: SubtreeParser | None = None,
        copy_artifacts_parser: SubtreeParser | None = None,
        file_permissions_parser: SubtreeParser | None = None,
        duplicates: str | None = None,
    ):
        if duplicates not in (None, DUPLICATES_REJECT, DUPLICATES_FIRST, DUPLICATES_LAST):
            raise ValueError(f"Invalid policy for duplicate artifact versions: {duplicates!r}")

        self.vocabulary = get_vocabulary(namespace)
        self.replacer = PropertyReplacer(resolver)
        self.config_parser = config_parser or FragmentParser(self.replacer)
        self.copy_artifacts_parser = copy_artifacts_parser or FragmentParser(self.replacer)
        self.file_permissions_parser = file_permissions_parser or FragmentParser(self.replacer)
        self._duplicates = duplicates

    @property
    def namespace(self) -> str:
        return self.vocabulary.namespace

    @property
    def duplicates(self) -> str:
        """The policy for duplicate artifact versions, defaults to the project setting."""
        if self._duplicates:
            return self._duplicates

        policy = conf.FEATUREPACK_DUPLICATE_ARTIFACT_VERSIONS
        if policy not in (DUPLICATES_REJECT, DUPLICATES_FIRST, DUPLICATES_LAST):
            raise ImproperlyConfigured(
                f"Invalid FEATUREPACK_DUPLICATE_ARTIFACT_VERSIONS setting: {policy!r}"
            )
        return policy

    def read_element(self, reader: XmlEventReader, result: FeaturePackDescription):
        """Parse the ``<feature-pack>`` element.
        Its start tag should be the last event that the reader consumed.
        """
        # The root element has no attributes in this schema.
        self._read_attributes(reader.current, {})

        while True:
            event = reader.next_tag()
            if event.is_end:
                return

            element = self.vocabulary.resolve_tag(event.tag)
            if element is Element.DEPENDENCIES:
                self._parse_dependencies(reader, result)
            elif element is Element.ARTIFACT_VERSIONS:
                self._parse_artifact_versions(reader, result)
            elif element is Element.CONFIG:
                self._delegate(self.config_parser, reader, result.config)
            elif element is Element.COPY_ARTIFACTS:
                self._delegate(self.copy_artifacts_parser, reader, result.copy_artifacts)
            elif element is Element.FILE_PERMISSIONS:
                self._delegate(self.file_permissions_parser, reader, result.file_permissions)
            else:
                raise self._unexpected_element(event, element, parent=Element.FEATURE_PACK)

    def _parse_dependencies(self, reader: XmlEventReader, result: FeaturePackDescription):
        self._read_attributes(reader.current, {})
        while True:
            event = reader.next_tag()
            if event.is_end:
                return

            element = self.vocabulary.resolve_tag(event.tag)
            if element is Element.ARTIFACT:
                result.dependencies.add(self._parse_name(reader))
            else:
                raise self._unexpected_element(event, element, parent=Element.DEPENDENCIES)

    def _parse_name(self, reader: XmlEventReader) -> str:
        values = self._read_attributes(reader.current, DEPENDENCY_ATTRIBUTES)
        reader.expect_no_content()
        return values[Attribute.NAME]

    def _parse_artifact_versions(self, reader: XmlEventReader, result: FeaturePackDescription):
        self._read_attributes(reader.current, {})
        while True:
            event = reader.next_tag()
            if event.is_end:
                return

            element = self.vocabulary.resolve_tag(event.tag)
            if element is Element.ARTIFACT:
                artifact = self._parse_artifact(reader)
                self._add_artifact_version(result, artifact, event)
            else:
                raise self._unexpected_element(event, element, parent=Element.ARTIFACT_VERSIONS)

    def _parse_artifact(self, reader: XmlEventReader) -> Artifact:
        event = reader.current
        values = self._read_attributes(event, ARTIFACT_VERSION_ATTRIBUTES)
        reader.expect_no_content()
        try:
            return Artifact(
                group_id=values[Attribute.GROUP_ID],
                artifact_id=values[Attribute.ARTIFACT_ID],
                extension=values.get(Attribute.EXTENSION),
                classifier=values.get(Attribute.CLASSIFIER),
                version=values[Attribute.VERSION],
            )
        except ValueError as e:
            # e.g. groupId="${empty.property}"
            raise UnexpectedContent(f"Invalid {event}: {e}", location=event.location) from e

    def _add_artifact_version(
        self, result: FeaturePackDescription, artifact: Artifact, event: XmlEvent
    ):
        existing = result.artifact_versions.get(artifact)
        if existing is None:
            result.artifact_versions.add(artifact)
        elif self.duplicates == DUPLICATES_REJECT:
            raise DuplicateArtifactVersion(artifact, existing, location=event.location)
        elif self.duplicates == DUPLICATES_FIRST:
            logger.debug("Ignoring duplicate version %s, keeping %s", artifact, existing)
        elif self.duplicates == DUPLICATES_LAST:
            logger.debug("Replacing version %s with duplicate %s", existing, artifact)
            result.artifact_versions.replace(artifact)

    def _delegate(self, sub_parser: SubtreeParser, reader: XmlEventReader, target):
        logger.debug("Delegating %s to %s", reader.current, sub_parser.__class__.__name__)
        sub_parser.parse(reader, target)

    def _read_attributes(
        self, event: XmlEvent, allowed: dict[Attribute, bool]
    ) -> dict[Attribute, str]:
        """Validate the attributes of an element, and return their substituted values.
        The ``allowed`` mapping tells for each supported attribute whether it's required.
        """
        raw_values = {}
        for name, value in event.attrib.items():
            attribute = self.vocabulary.resolve_attribute(name)
            if attribute not in allowed:
                raise UnexpectedContent(
                    f"Unexpected attribute '{name}' on {event}", location=event.location, name=name
                )
            raw_values[attribute] = value

        missing = [
            attribute.value
            for attribute, required in allowed.items()
            if required and attribute not in raw_values
        ]
        if missing:
            raise MissingRequiredAttributes(
                sorted(missing), element=event.local_name, location=event.location
            )

        with wrap_property_errors(event.location):
            return {
                attribute: self.replacer.replace(value) for attribute, value in raw_values.items()
            }

    def _unexpected_element(
        self, event: XmlEvent, element: Element, parent: Element
    ) -> UnexpectedContent:
        if element is Element.UNKNOWN:
            text = f"Unknown element {event}"
        else:
            text = f"Element {event} is not allowed inside <{parent.value}>"
        return UnexpectedContent(text, location=event.location, name=event.tag)


def parse_feature_pack_description(
    source,
    resolver: PropertyResolver,
    result: FeaturePackDescription | None = None,
    **parser_options,
) -> FeaturePackDescription:
    """Parse a complete descriptor document.

    The source can be an XML string, bytes, a path, a binary file object,
    or an :class:`XmlEventReader`. The namespace of the root element
    selects the schema version. Any ``parser_options`` are passed
    to the :class:`DescriptorParser`.
    """
    if isinstance(source, XmlEventReader):
        return _parse_document(source, resolver, result, parser_options)

    # Opened files are closed here, also when parsing fails halfway.
    reader = XmlEventReader.from_source(source)
    try:
        return _parse_document(reader, resolver, result, parser_options)
    finally:
        reader.close()


def _parse_document(
    reader: XmlEventReader,
    resolver: PropertyResolver,
    result: FeaturePackDescription | None,
    parser_options: dict,
) -> FeaturePackDescription:
    root = reader.next_tag()

    namespace = root.namespace or conf.FEATUREPACK_DEFAULT_NAMESPACE
    if namespace not in SUPPORTED_NAMESPACES:
        raise UnsupportedSchemaVersion(namespace, location=root.location)

    parser = DescriptorParser(resolver, namespace=namespace, **parser_options)
    element = parser.vocabulary.resolve_element(namespace, root.local_name)
    if not root.is_start or element is not Element.FEATURE_PACK:
        raise UnexpectedContent(
            f"Expected a <{Element.FEATURE_PACK.value}> root element, got {root}",
            location=root.location,
            name=root.tag,
        )

    logger.debug("Parsing feature pack descriptor using schema %s", namespace)
    if result is None:
        result = FeaturePackDescription()

    parser.read_element(reader, result)
    reader.skip_whitespace()
    return result
