import io

import pytest
from django.core.exceptions import ImproperlyConfigured

from featurepack.artifacts import Artifact, coordinate_identity
from featurepack.description import FeaturePackDescription
from featurepack.exceptions import UnexpectedContent
from featurepack.parsers import DescriptorParser, parse_feature_pack_description
from featurepack.parsers import xml as xml_module
from featurepack.parsers.xml import EventType, XmlEvent, XmlEventReader
from featurepack.properties import MappingPropertyResolver
from tests.utils import NS10, NS11, XML_NS, parse

FULL_DESCRIPTOR = f"""<?xml version="1.0" encoding="UTF-8"?>
<feature-pack {XML_NS}>
    <dependencies>
        <artifact name="org.wildfly:wildfly-core-feature-pack"/>
        <artifact name="${{core}}"/>
    </dependencies>
    <artifact-versions>
        <artifact groupId="${{group}}" artifactId="y" version="${{version.org.x}}"/>
        <artifact groupId="org.x" artifactId="y" classifier="sources" version="2.0"/>
        <artifact groupId="org.x" artifactId="z" extension="pom" version="3.0"/>
    </artifact-versions>
    <config>
        <standalone template="configuration/standalone/template.xml"
                    subsystems="configuration/standalone/subsystems.xml"
                    output-file="standalone/configuration/standalone.xml"/>
    </config>
    <copy-artifacts>
        <copy-artifact artifact="org.x:y" to-location="modules/${{version.org.x}}/y.jar"/>
    </copy-artifacts>
    <file-permissions>
        <permission value="755">
            <filter pattern="*.sh" include="true"/>
        </permission>
    </file-permissions>
</feature-pack>
"""


class TestDescriptorParser:
    """Prove that valid descriptors are parsed into the description."""

    def test_minimal(self):
        """The example in the documentation."""
        result = parse(
            "<feature-pack>"
            '<dependencies><artifact name="core"/></dependencies>'
            "<artifact-versions>"
            '<artifact groupId="org.x" artifactId="y" version="1.0"/>'
            "</artifact-versions>"
            "</feature-pack>"
        )
        assert result.dependencies == {"core"}
        assert result.artifact_versions == {Artifact("org.x", "y", None, None, "1.0")}
        assert not result.config
        assert not result.copy_artifacts
        assert not result.file_permissions

    def test_empty(self):
        result = parse(f"<feature-pack {XML_NS}/>")
        assert result == FeaturePackDescription()

    def test_full(self):
        result = parse(FULL_DESCRIPTOR)
        assert result.dependencies == {"org.wildfly:wildfly-core-feature-pack", "core"}
        assert result.artifact_versions == {
            Artifact("org.x", "y", version="1.0"),
            Artifact("org.x", "y", classifier="sources", version="2.0"),
            Artifact("org.x", "z", extension="pom", version="3.0"),
        }

        config = result.config.elements
        assert [e.tag for e in config] == [f"{{{NS11}}}config"]
        assert config[0][0].tag == f"{{{NS11}}}standalone"
        assert config[0][0].get("template") == "configuration/standalone/template.xml"

        copy_artifacts = result.copy_artifacts.elements[0]
        assert copy_artifacts[0].get("to-location") == "modules/1.0/y.jar"

        permission = result.file_permissions.elements[0][0]
        assert permission.get("value") == "755"
        assert permission[0].tag == f"{{{NS11}}}filter"

    def test_schema_10(self):
        result = parse(
            f'<feature-pack xmlns="{NS10}">'
            '<dependencies><artifact name="a"/></dependencies>'
            "</feature-pack>"
        )
        assert result.dependencies == {"a"}

    def test_prefixed_namespace(self):
        result = parse(
            f'<fp:feature-pack xmlns:fp="{NS11}">'
            '<fp:dependencies><fp:artifact name="a"/></fp:dependencies>'
            "</fp:feature-pack>"
        )
        assert result.dependencies == {"a"}

    def test_regions_repeated(self):
        """Regions can occur in any order, and more than once."""
        result = parse(
            f"<feature-pack {XML_NS}>"
            "<config/>"
            '<dependencies><artifact name="a"/></dependencies>'
            "<artifact-versions/>"
            '<dependencies><artifact name="b"/><artifact name="a"/></dependencies>'
            "<config/>"
            "</feature-pack>"
        )
        assert result.dependencies == {"a", "b"}
        assert len(result.artifact_versions) == 0
        assert len(result.config.elements) == 2

    def test_properties(self):
        result = parse(
            "<feature-pack>"
            '<dependencies><artifact name="${a}-${b}"/></dependencies>'
            "<artifact-versions>"
            '<artifact groupId="${g}" artifactId="${a}" extension="${e}" classifier="${c}"'
            ' version="${v}"/>'
            "</artifact-versions>"
            "</feature-pack>",
            properties={"a": "x", "b": "y", "g": "org.g", "e": "jar", "c": "cls", "v": "9"},
        )
        assert result.dependencies == {"x-y"}
        assert result.artifact_versions == {Artifact("org.g", "x", "jar", "cls", "9")}

    def test_placeholder_values_not_expanded(self):
        result = parse(
            '<feature-pack><dependencies><artifact name="${a}"/></dependencies></feature-pack>',
            properties={"a": "${b}", "b": "nope"},
        )
        assert result.dependencies == {"${b}"}

    def test_sources(self, tmp_path):
        """Prove that strings, bytes, paths and files can be parsed."""
        expected = parse(FULL_DESCRIPTOR)
        path = tmp_path / "feature-pack-build.xml"
        path.write_text(FULL_DESCRIPTOR, encoding="utf-8")

        assert parse(FULL_DESCRIPTOR.encode()).artifact_versions == expected.artifact_versions
        assert parse(path).dependencies == expected.dependencies
        with open(path, "rb") as f:
            assert parse(f).dependencies == expected.dependencies
        assert parse(io.BytesIO(FULL_DESCRIPTOR.encode())).dependencies == expected.dependencies

    def test_file_closed_on_error(self, tmp_path, monkeypatch):
        path = tmp_path / "feature-pack-build.xml"
        path.write_text("<feature-pack><foo/>" + " " * 1000 + "</feature-pack>")
        opened = []

        def tracking_open(*args, **kwargs):
            f = open(*args, **kwargs)
            opened.append(f)
            return f

        monkeypatch.setattr(xml_module, "open", tracking_open, raising=False)
        with pytest.raises(UnexpectedContent):
            parse(path)

        assert len(opened) == 1
        assert opened[0].closed

    def test_result_in_place(self, resolver):
        result = FeaturePackDescription(dependencies={"existing"})
        returned = parse_feature_pack_description(
            '<feature-pack><dependencies><artifact name="core"/></dependencies></feature-pack>',
            resolver,
            result=result,
        )
        assert returned is result
        assert result.dependencies == {"existing", "core"}

    def test_event_stream(self, resolver):
        """The parser also works on a stream of events without namespaces or positions."""
        events = [
            XmlEvent(EventType.START, "feature-pack"),
            XmlEvent(EventType.START, "artifact-versions"),
            XmlEvent(
                EventType.START, "artifact", {"groupId": "g", "artifactId": "a", "version": "1"}
            ),
            XmlEvent(EventType.END, "artifact"),
            XmlEvent(EventType.END, "artifact-versions"),
            XmlEvent(EventType.END, "feature-pack"),
        ]
        reader = XmlEventReader(events)
        reader.next_tag()
        result = FeaturePackDescription()
        DescriptorParser(resolver, namespace=NS11).read_element(reader, result)

        assert result.artifact_versions == {Artifact("g", "a", version="1")}
        assert not reader.has_next()


class TestDuplicates:
    """Prove that duplicate artifact versions follow the configured policy."""

    XML = (
        "<feature-pack><artifact-versions>"
        '<artifact groupId="org.x" artifactId="y" version="1.0"/>'
        '<artifact groupId="org.x" artifactId="y" version="2.0"/>'
        "</artifact-versions></feature-pack>"
    )

    def test_first(self):
        result = parse(self.XML, duplicates="first")
        assert result.artifact_versions.version_of(Artifact("org.x", "y")) == "1.0"

    def test_last(self):
        result = parse(self.XML, duplicates="last")
        assert result.artifact_versions.version_of(Artifact("org.x", "y")) == "2.0"
        assert len(result.artifact_versions) == 1

    def test_setting(self, settings):
        settings.FEATUREPACK_DUPLICATE_ARTIFACT_VERSIONS = "last"
        result = parse(self.XML)
        assert result.artifact_versions.version_of(Artifact("org.x", "y")) == "2.0"

    def test_different_identity(self):
        """Only the version is ignored, classifiers make a different artifact."""
        result = parse(
            "<feature-pack><artifact-versions>"
            '<artifact groupId="org.x" artifactId="y" version="1.0"/>'
            '<artifact groupId="org.x" artifactId="y" classifier="" version="1.0"/>'
            "</artifact-versions></feature-pack>"
        )
        identities = {coordinate_identity(a) for a in result.artifact_versions}
        assert len(identities) == 2

    def test_invalid_policy(self, resolver):
        with pytest.raises(ValueError, match="Invalid policy"):
            DescriptorParser(resolver, duplicates="merge")

    def test_invalid_setting(self, settings):
        """A mistyped setting doesn't fall back to another policy."""
        settings.FEATUREPACK_DUPLICATE_ARTIFACT_VERSIONS = "Reject"
        with pytest.raises(ImproperlyConfigured, match="'Reject'"):
            parse(self.XML)


class RecordingParser:
    """Sub-parser that records what it was given, and skips the region."""

    def __init__(self):
        self.calls = []

    def parse(self, reader, target):
        self.calls.append((reader.current.local_name, target))
        depth = 1
        while depth:
            event = reader.next_event()
            if event.is_start:
                depth += 1
            elif event.is_end:
                depth -= 1


def test_sub_parsers():
    """Prove that regions are delegated to the sub-parsers, with the proper target model."""
    config_parser = RecordingParser()
    copy_parser = RecordingParser()
    permissions_parser = RecordingParser()
    result = parse_feature_pack_description(
        FULL_DESCRIPTOR,
        MappingPropertyResolver({"core": "core", "group": "org.x", "version.org.x": "1.0"}),
        config_parser=config_parser,
        copy_artifacts_parser=copy_parser,
        file_permissions_parser=permissions_parser,
    )

    assert config_parser.calls == [("config", result.config)]
    assert copy_parser.calls == [("copy-artifacts", result.copy_artifacts)]
    assert permissions_parser.calls == [("file-permissions", result.file_permissions)]
    assert len(result.artifact_versions) == 3
