"""Property resolution for ``${name}`` placeholders in descriptor values.

A :class:`PropertyResolver` is supplied by the host (e.g. backed by a
build system's property table), and the :class:`PropertyReplacer`
uses it to substitute the placeholders found in attribute values.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from typing import Protocol

from django.core.exceptions import ImproperlyConfigured

from featurepack import conf
from featurepack.exceptions import UnresolvedPropertyError

logger = logging.getLogger(__name__)

__all__ = (
    "PropertyResolver",
    "MappingPropertyResolver",
    "EnvironmentPropertyResolver",
    "ChainedPropertyResolver",
    "PropertyReplacer",
)

# ${name} or ${name:default value}
RE_PLACEHOLDER = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<default>[^}]*))?\}")

UNRESOLVED_FAIL = "fail"
UNRESOLVED_KEEP = "keep"


class PropertyResolver(Protocol):
    """Lookup of a single property value. Returns ``None`` when it's not known."""

    def resolve(self, name: str) -> str | None: ...


class MappingPropertyResolver:
    """Resolve properties from a plain dictionary."""

    def __init__(self, properties: Mapping[str, str] | None = None):
        self.properties = dict(properties or {})

    def resolve(self, name: str) -> str | None:
        return self.properties.get(name)

    def __repr__(self):
        return f"{self.__class__.__name__}({self.properties!r})"


class EnvironmentPropertyResolver:
    """Resolve ``${env.NAME}`` style properties from the process environment."""

    def __init__(self, prefix: str = "env.", environ: Mapping[str, str] | None = None):
        self.prefix = prefix
        self.environ = os.environ if environ is None else environ

    def resolve(self, name: str) -> str | None:
        if not name.startswith(self.prefix):
            return None
        return self.environ.get(name[len(self.prefix) :])


class ChainedPropertyResolver:
    """Ask multiple resolvers in order, the first answer wins."""

    def __init__(self, *resolvers: PropertyResolver):
        self.resolvers = resolvers

    def resolve(self, name: str) -> str | None:
        for resolver in self.resolvers:
            value = resolver.resolve(name)
            if value is not None:
                return value
        return None


class PropertyReplacer:
    """Substitute ``${name}`` placeholders using a :class:`PropertyResolver`.

    Substitution happens in a single pass: when a property value contains
    a placeholder itself, it's inserted literally and not expanded again.
    A placeholder may provide a fallback using ``${name:default}``.
    """

    def __init__(self, resolver: PropertyResolver, unresolved: str | None = None):
        if unresolved not in (None, UNRESOLVED_FAIL, UNRESOLVED_KEEP):
            raise ValueError(f"Invalid policy for unresolved properties: {unresolved!r}")
        self.resolver = resolver
        self._unresolved = unresolved

    @property
    def unresolved(self) -> str:
        """The policy for unresolved properties, defaults to the project setting."""
        if self._unresolved:
            return self._unresolved

        policy = conf.FEATUREPACK_UNRESOLVED_PROPERTIES
        if policy not in (UNRESOLVED_FAIL, UNRESOLVED_KEEP):
            raise ImproperlyConfigured(
                f"Invalid FEATUREPACK_UNRESOLVED_PROPERTIES setting: {policy!r}"
            )
        return policy

    def replace(self, value: str | None) -> str | None:
        """Replace all placeholders in the value."""
        if not value or "${" not in value:
            return value
        return RE_PLACEHOLDER.sub(self._substitute, value)

    def _substitute(self, match: re.Match) -> str:
        name = match.group("name")
        value = self.resolver.resolve(name)
        if value is not None:
            return value

        default = match.group("default")
        if default is not None:
            return default

        if self.unresolved == UNRESOLVED_KEEP:
            logger.debug("Property '%s' is not defined, keeping placeholder.", name)
            return match.group(0)

        raise UnresolvedPropertyError(name)
