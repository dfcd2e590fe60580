from __future__ import annotations

from featurepack.description import FeaturePackDescription
from featurepack.parsers import parse_feature_pack_description
from featurepack.parsers.xml import xmlns
from featurepack.properties import MappingPropertyResolver

NS10 = xmlns.feature_pack10.value
NS11 = xmlns.feature_pack11.value

XML_NS = f'xmlns="{NS11}"'

PROPERTIES = {
    "version.org.x": "1.0",
    "group": "org.x",
    "core": "core",
}


def parse(
    xml_text: str | bytes, properties: dict | None = None, **options
) -> FeaturePackDescription:
    """Parse a descriptor using a simple dictionary of properties."""
    resolver = MappingPropertyResolver(PROPERTIES if properties is None else properties)
    return parse_feature_pack_description(xml_text, resolver, **options)
