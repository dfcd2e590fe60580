import pytest

from featurepack.properties import MappingPropertyResolver, PropertyReplacer
from tests.utils import PROPERTIES


@pytest.fixture()
def resolver() -> MappingPropertyResolver:
    return MappingPropertyResolver(PROPERTIES)


@pytest.fixture()
def replacer(resolver) -> PropertyReplacer:
    return PropertyReplacer(resolver)
