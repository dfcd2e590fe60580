"""All parser logic to process feature pack descriptors.

The XML document is read as a stream of events (see :mod:`featurepack.parsers.xml`),
which the :class:`~featurepack.parsers.descriptor.DescriptorParser` walks in a single pass.
The ``<config>``, ``<copy-artifacts>`` and ``<file-permissions>`` regions
are delegated to the sub-parsers in :mod:`featurepack.parsers.fragments`.
"""

from .descriptor import DescriptorParser, parse_feature_pack_description
from .fragments import FragmentParser, SubtreeParser
from .xml import XmlEvent, XmlEventReader, iter_xml_events, xmlns

__all__ = (
    "DescriptorParser",
    "parse_feature_pack_description",
    "FragmentParser",
    "SubtreeParser",
    "XmlEvent",
    "XmlEventReader",
    "iter_xml_events",
    "xmlns",
)
