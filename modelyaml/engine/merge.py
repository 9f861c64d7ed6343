"""Fold metadata, config, custom fields and suggestions along an ancestry path.

Every function here is pure: the same path always produces the same result
and no definition is modified.
"""

import logging
from typing import Any

from modelyaml.definitions import CustomField, MetadataOverrides, Suggestion
from modelyaml.engine.chain import AncestryPath

logger = logging.getLogger(__name__)


def merge_metadata(path: AncestryPath) -> MetadataOverrides:
    """Merge metadata overrides root to leaf.

    A field set on a later definition replaces the earlier value wholesale;
    list fields are never concatenated or unioned. Fields no definition sets
    stay unset on the result.
    """
    values: dict[str, Any] = {}
    for definition in path:
        overrides = definition.metadata_overrides
        if overrides is None:
            continue
        for name in overrides.model_fields_set:
            values[name] = getattr(overrides, name)
    return MetadataOverrides(**values)


def merge_config(path: AncestryPath) -> dict[str, Any]:
    """Merge config fields root to leaf by exact dotted key."""
    values: dict[str, Any] = {}
    for definition in path:
        for key, value in definition.config.items():
            if key in values:
                logger.debug("Config %s overridden by %s", key, definition.model)
            values[key] = value
    return values


def merge(path: AncestryPath) -> tuple[MetadataOverrides, dict[str, Any]]:
    return merge_metadata(path), merge_config(path)


def merge_custom_fields(path: AncestryPath) -> list[CustomField]:
    """Merge custom fields by key.

    A redefined key takes the later definition in the position where the key
    first appeared; new keys are appended in declaration order.
    """
    fields: dict[str, CustomField] = {}
    for definition in path:
        for custom_field in definition.custom_fields:
            fields[custom_field.key] = custom_field
    return list(fields.values())


def merge_suggestions(path: AncestryPath) -> list[Suggestion]:
    """Concatenate suggestions root to leaf."""
    return [s for definition in path for s in definition.suggestions]
