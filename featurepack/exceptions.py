"""Exceptions raised while parsing a feature pack descriptor.

All errors are fatal to the current parse. Each error knows the position
in the source document where it occurred, so a message like
``Unknown element <foo>: line 3, column 5`` can be given to the author.
"""

from __future__ import annotations

import typing
from collections.abc import Iterable
from contextlib import contextmanager

if typing.TYPE_CHECKING:
    from featurepack.artifacts import Artifact
    from featurepack.parsers.xml import Location


@contextmanager
def wrap_property_errors(location: Location | None):
    """Attach the source position to property substitution errors.
    The replacer itself has no notion of the document it's working on.
    """
    try:
        yield
    except UnresolvedPropertyError as e:
        if e.location is not None:
            raise
        raise UnresolvedPropertyError(e.name, location=location) from None


class DescriptorParsingError(ValueError):
    """Base class for all parsing problems of a descriptor document."""

    text_template = "The descriptor could not be parsed"

    def __init__(self, text=None, location: Location | None = None):
        self.text = text or self.text_template
        self.location = location
        super().__init__(self.text)

    def __str__(self):
        if self.location is None:
            return self.text
        return f"{self.text}: line {self.location.line}, column {self.location.column}"


class MalformedXml(DescriptorParsingError):
    """The document is not well-formed XML, or uses forbidden constructs (DTD, entities)."""

    text_template = "The document is not well-formed XML"


class UnexpectedContent(DescriptorParsingError):
    """An element, attribute or text node is not known, or not allowed at this position."""

    text_template = "Unexpected content"

    def __init__(self, text=None, location: Location | None = None, name: str | None = None):
        super().__init__(text, location=location)
        self.name = name


class MissingRequiredAttributes(DescriptorParsingError):
    """One or more required attributes are absent on an element."""

    def __init__(self, missing: Iterable[str], element: str, location: Location | None = None):
        self.missing = tuple(missing)
        self.element = element
        names = ", ".join(self.missing)
        super().__init__(f"Element <{element}> misses required attributes: {names}", location)


class UnexpectedEndOfDocument(DescriptorParsingError):
    """The event stream ended while more content was expected."""

    text_template = "Unexpected end of document"


class UnresolvedPropertyError(DescriptorParsingError):
    """A ``${name}`` placeholder references a property that has no value."""

    def __init__(self, name: str, location: Location | None = None):
        self.name = name
        super().__init__(f"Unresolved property '${{{name}}}'", location)


class DuplicateArtifactVersion(DescriptorParsingError):
    """The same artifact (ignoring the version) is declared twice in <artifact-versions>."""

    def __init__(self, artifact: Artifact, existing: Artifact, location: Location | None = None):
        self.artifact = artifact
        self.existing = existing
        name = ":".join(value for value in artifact.identity if value)
        super().__init__(
            f"Artifact {name} is declared twice in <artifact-versions>:"
            f" version '{artifact.version}' conflicts with '{existing.version}'",
            location,
        )


class UnsupportedSchemaVersion(DescriptorParsingError):
    """The root element uses a namespace that this parser doesn't implement."""

    def __init__(self, namespace: str | None, location: Location | None = None):
        self.namespace = namespace
        super().__init__(f"Unsupported feature pack schema namespace '{namespace}'", location)
