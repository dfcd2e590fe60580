from django.conf import settings
from django.core.signals import setting_changed
from django.dispatch import receiver

_originals = {}

# -- parsing policies

# What to do when <artifact-versions> declares the same artifact twice (ignoring the version).
# "reject" raises DuplicateArtifactVersion, "first" keeps the first entry, "last" the last one.
FEATUREPACK_DUPLICATE_ARTIFACT_VERSIONS = getattr(
    settings, "FEATUREPACK_DUPLICATE_ARTIFACT_VERSIONS", "reject"
)

# What to do with a ${name} placeholder that can't be resolved.
# "fail" raises UnresolvedPropertyError, "keep" leaves the placeholder text as-is.
FEATUREPACK_UNRESOLVED_PROPERTIES = getattr(settings, "FEATUREPACK_UNRESOLVED_PROPERTIES", "fail")

# -- input handling

# Schema to use for documents that don't declare a namespace on the root element.
FEATUREPACK_DEFAULT_NAMESPACE = getattr(
    settings, "FEATUREPACK_DEFAULT_NAMESPACE", "urn:wildfly:feature-pack:1.1"
)

# Number of bytes to feed the XML tokenizer each time more events are needed.
FEATUREPACK_READ_CHUNK_SIZE = getattr(settings, "FEATUREPACK_READ_CHUNK_SIZE", 64 * 1024)


@receiver(setting_changed)
def _on_settings_change(setting, value, enter, **kwargs):
    if not setting.startswith("FEATUREPACK_"):
        return

    conf_module = globals()
    if value is None and not enter:
        # override_settings().disable() returns what the django settings module had.
        # Revert to our defaults here instead.
        value = _originals.get(setting)
    else:
        # Track defaults of this file for reverting to them
        _originals.setdefault(setting, conf_module[setting])

    conf_module[setting] = value
