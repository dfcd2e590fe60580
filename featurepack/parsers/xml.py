"""Forward-only XML event stream for all incoming descriptors.

The document is tokenized incrementally by the expat parser of the standard library.
Using defusedxml, DTDs and entity expansion attacks are refused.
Instead of building an element tree, each start tag, end tag and text node is
turned into an :class:`XmlEvent` with its position in the source,
so parsers can walk the document in a single pass and report precise locations.
"""

from __future__ import annotations

import logging
import os
from collections import deque
from collections.abc import Iterable, Iterator
from contextlib import closing
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, NamedTuple
from xml.parsers.expat import errors as expat_errors

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import DefusedXMLParser, ParseError

from featurepack import conf
from featurepack.exceptions import MalformedXml, UnexpectedContent, UnexpectedEndOfDocument

logger = logging.getLogger(__name__)

__all__ = (
    "xmlns",
    "Location",
    "EventType",
    "XmlEvent",
    "XmlEventReader",
    "iter_xml_events",
    "split_ns",
)

# Expat errors that only mean the input stopped early.
TRUNCATION_ERRORS = frozenset(
    expat_errors.codes[message]
    for message in (
        expat_errors.XML_ERROR_NO_ELEMENTS,
        expat_errors.XML_ERROR_UNCLOSED_TOKEN,
        expat_errors.XML_ERROR_PARTIAL_CHAR,
    )
)


class xmlns(Enum):
    """The namespaces of the feature pack descriptor schema versions.
    The namespace of the root element selects which grammar is used.
    """

    feature_pack10 = "urn:wildfly:feature-pack:1.0"
    feature_pack11 = "urn:wildfly:feature-pack:1.1"

    # Internal aliases
    feature_pack = feature_pack11  # alias to latest version

    def __str__(self):
        # Python 3.11+ has StrEnum for this.
        return self.value

    def qname(self, local_name) -> str:
        """Convert the tag name into a fully qualified name."""
        return f"{{{self.value}}}{local_name}"  # same as QName(..).text

    def __contains__(self, tag: XmlEvent | str) -> bool:
        """Tell whether a given tag exists in this namespace"""
        if isinstance(tag, XmlEvent):
            tag = tag.tag
        elif not isinstance(tag, str):
            return False
        return tag.startswith(f"{{{self.value}}}")


class Location(NamedTuple):
    """Position in the source document (both 1-based)."""

    line: int
    column: int

    def __str__(self):
        return f"line {self.line}, column {self.column}"


class EventType(Enum):
    START = "start"
    END = "end"
    TEXT = "text"


@dataclass(frozen=True)
class XmlEvent:
    """A single step in the document.

    Element names use the ``{namespace}localname`` notation of ElementTree.
    Attribute names are normally bare local names,
    unless the document put them explicitly in a namespace.
    """

    type: EventType
    tag: str | None = None
    attrib: dict[str, str] = field(default_factory=dict)
    text: str | None = None
    location: Location | None = None

    @property
    def namespace(self) -> str | None:
        return split_ns(self.tag)[0] if self.tag else None

    @property
    def local_name(self) -> str | None:
        return split_ns(self.tag)[1] if self.tag else None

    @property
    def is_start(self) -> bool:
        return self.type is EventType.START

    @property
    def is_end(self) -> bool:
        return self.type is EventType.END

    @property
    def is_whitespace(self) -> bool:
        # Only the XML whitespace characters, not all of Unicode.
        return self.type is EventType.TEXT and not self.text.strip(" \t\r\n")

    def __str__(self):
        if self.type is EventType.START:
            return f"<{self.local_name}>"
        elif self.type is EventType.END:
            return f"</{self.local_name}>"
        else:
            return f"text {self.text.strip()[:40]!r}"


class _EventCollector:
    """Parser target that queues the events, together with their position."""

    def __init__(self):
        self.events = deque()
        self.expat = None  # assigned once the parser exists
        self._text = []
        self._text_location = None

    def _location(self) -> Location | None:
        if self.expat is None:
            return None
        # expat columns are 0-based.
        return Location(self.expat.CurrentLineNumber, self.expat.CurrentColumnNumber + 1)

    def start(self, tag, attrs):
        self._flush_text()
        self.events.append(XmlEvent(EventType.START, tag, dict(attrs), location=self._location()))

    def end(self, tag):
        self._flush_text()
        self.events.append(XmlEvent(EventType.END, tag, location=self._location()))

    def data(self, text):
        # expat may split text nodes, these are joined into a single event.
        if not self._text:
            self._text_location = self._location()
        self._text.append(text)

    def close(self):
        self._flush_text()

    def _flush_text(self):
        if self._text:
            text = "".join(self._text)
            self.events.append(XmlEvent(EventType.TEXT, text=text, location=self._text_location))
            self._text = []

    def drain(self) -> Iterator[XmlEvent]:
        while self.events:
            yield self.events.popleft()


def _read_chunks(source, chunk_size: int) -> Iterator[str | bytes]:
    """Split the source into pieces, reading files lazily."""
    if isinstance(source, (str, bytes)):
        for start in range(0, len(source), chunk_size):
            yield source[start : start + chunk_size]
    elif isinstance(source, os.PathLike):
        with open(source, "rb") as f:
            yield from _read_chunks(f, chunk_size)
    elif hasattr(source, "read"):
        while chunk := source.read(chunk_size):
            yield chunk
    else:
        raise TypeError(f"Unsupported XML source: {source!r}")


def iter_xml_events(
    source: str | bytes | os.PathLike | BinaryIO, chunk_size: int | None = None
) -> Iterator[XmlEvent]:
    """Provide a safe and forward-only stream of events for the XML document.

    The source is only read as far as the caller consumes the events.
    When the document ends prematurely, the stream just stops,
    so the consumer can tell what was still missing.
    """
    chunk_size = chunk_size or conf.FEATUREPACK_READ_CHUNK_SIZE
    collector = _EventCollector()

    # Passing a custom target, so note the parser is configured the same as defusedxml does:
    parser = DefusedXMLParser(
        target=collector,
        forbid_dtd=True,
        forbid_entities=True,
        forbid_external=True,
    )
    collector.expat = parser.parser

    # Closing this generator also closes the file that was opened for a path.
    with closing(_read_chunks(source, chunk_size)) as chunks:
        for chunk in chunks:
            try:
                parser.feed(chunk)
            except (ParseError, DefusedXmlException) as e:
                # Offer what was read so far, the consumer may find an earlier problem.
                yield from collector.drain()
                raise _malformed(e) from e

            yield from collector.drain()

    try:
        parser.close()
    except (ParseError, DefusedXmlException) as e:
        if getattr(e, "code", None) not in TRUNCATION_ERRORS:
            yield from collector.drain()
            raise _malformed(e) from e
        logger.debug("XML document ended prematurely: %s", e)

    yield from collector.drain()


def _malformed(e: Exception) -> MalformedXml:
    logger.debug("Parsing XML error: %s", e)
    position = getattr(e, "position", None)
    if position is not None:
        # ParseError messages already include the position, avoid repeating it.
        text = str(e).rsplit(": line ", 1)[0]
        return MalformedXml(text, location=Location(position[0], position[1] + 1))
    return MalformedXml(str(e))


class XmlEventReader:
    """Pull-based access to an event stream.

    This offers the primitives that the parsers need,
    like skipping whitespace between tags, and tracking the current position.
    """

    def __init__(self, events: Iterable[XmlEvent]):
        self._events = iter(events)
        self._peeked: XmlEvent | None = None
        self.current: XmlEvent | None = None

    @classmethod
    def from_source(cls, source, chunk_size: int | None = None) -> XmlEventReader:
        """Read events from an XML string, bytes, path or binary file."""
        return cls(iter_xml_events(source, chunk_size=chunk_size))

    @property
    def location(self) -> Location | None:
        """Position of the last consumed event."""
        return self.current.location if self.current is not None else None

    def close(self):
        """Stop reading, which releases the source file."""
        close = getattr(self._events, "close", None)
        if close is not None:
            close()
        self._peeked = None

    def has_next(self) -> bool:
        if self._peeked is None:
            self._peeked = next(self._events, None)
        return self._peeked is not None

    def next_event(self) -> XmlEvent:
        """Consume the next event, whatever it is."""
        if not self.has_next():
            raise UnexpectedEndOfDocument(location=self.location)

        self.current, self._peeked = self._peeked, None
        return self.current

    def next_tag(self) -> XmlEvent:
        """Consume the next start or end tag, skipping whitespace.
        Any other text is not allowed.
        """
        while True:
            event = self.next_event()
            if event.type is not EventType.TEXT:
                return event
            if not event.is_whitespace:
                raise UnexpectedContent(
                    f"Unexpected {event}", location=event.location, name=event.text
                )

    def expect_no_content(self):
        """Consume the end tag of the current element, which should not have any content."""
        element = self.current
        event = self.next_tag()
        if not event.is_end:
            raise UnexpectedContent(
                f"Element {element} does not support child elements, found {event}",
                location=event.location,
                name=event.tag,
            )

    def skip_whitespace(self):
        """Skip trailing whitespace, e.g. after the root element."""
        while self.has_next():
            event = self.next_event()
            if not event.is_whitespace:
                raise UnexpectedContent(
                    f"Unexpected {event} after the root element",
                    location=event.location,
                    name=event.tag or event.text,
                )


def split_ns(xml_name: str) -> tuple[str | None, str]:
    """Split the element tag or attribute/text value into the namespace and
    local name. The stdlib etree doesn't have the properties for this (lxml does).
    """
    # Tags may start with a `{ns}`
    if xml_name.startswith("{"):
        end = xml_name.index("}")
        return xml_name[1:end], xml_name[end + 1 :]
    else:
        return None, xml_name
