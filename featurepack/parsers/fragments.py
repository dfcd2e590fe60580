"""Sub-parsers for the regions that the descriptor parser delegates.

The grammar of the ``<config>``, ``<copy-artifacts>`` and ``<file-permissions>``
regions is owned by these parsers. Each one consumes exactly one element subtree:
the start tag is already consumed by the caller, and the sub-parser
reads up to and including the matching end tag.
"""

from __future__ import annotations

import logging
from typing import Protocol
from xml.etree.ElementTree import Element

from featurepack.description import FragmentModel
from featurepack.exceptions import wrap_property_errors
from featurepack.parsers.xml import EventType, XmlEvent, XmlEventReader
from featurepack.properties import PropertyReplacer

logger = logging.getLogger(__name__)

__all__ = (
    "SubtreeParser",
    "FragmentParser",
)


class SubtreeParser(Protocol):
    """The contract for all region parsers."""

    def parse(self, reader: XmlEventReader, target) -> None:
        """Consume the current element up to its end tag, and update the target."""


class FragmentParser:
    """Keep a region as an XML element tree, with all properties substituted.

    This is used for regions which are not interpreted during the build configuration
    parsing, so they can be processed later by the host.
    """

    def __init__(self, replacer: PropertyReplacer):
        self.replacer = replacer

    def parse(self, reader: XmlEventReader, target: FragmentModel) -> None:
        root = self._create_element(reader.current)
        stack = [root]
        while stack:
            event = reader.next_event()
            if event.type is EventType.START:
                child = self._create_element(event)
                stack[-1].append(child)
                stack.append(child)
            elif event.type is EventType.END:
                stack.pop()
            else:
                self._add_text(stack[-1], event)

        logger.debug("Collected <%s> region with %d child elements", root.tag, len(root))
        target.elements.append(root)

    def _create_element(self, event: XmlEvent) -> Element:
        with wrap_property_errors(event.location):
            attrib = {name: self.replacer.replace(value) for name, value in event.attrib.items()}
        return Element(event.tag, attrib)

    def _add_text(self, parent: Element, event: XmlEvent):
        with wrap_property_errors(event.location):
            text = self.replacer.replace(event.text)

        if len(parent):
            last = parent[-1]
            last.tail = (last.tail or "") + text
        else:
            parent.text = (parent.text or "") + text
