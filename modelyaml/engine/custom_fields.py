"""Apply custom field values and their effects."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from modelyaml.definitions import (
    CustomField,
    Diagnostic,
    DiagnosticKind,
    ResolvedCustomField,
    SetJinjaVariableEffect,
    UnknownEffect,
    value_matches_type,
)

logger = logging.getLogger(__name__)


@dataclass
class CustomFieldResult:
    fields: list[ResolvedCustomField]
    bindings: dict[str, Any]
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def values(self) -> dict[str, Any]:
        return {f.key: f.value for f in self.fields}


def _effective_value(
    custom_field: CustomField,
    overrides: Mapping[str, Any],
    diagnostics: list[Diagnostic],
) -> tuple[Any, bool]:
    if custom_field.key not in overrides:
        return custom_field.default_value, False

    value = overrides[custom_field.key]
    if value_matches_type(custom_field.type, value):
        return value, True

    logger.warning(
        "Rejected override %r for %s field '%s'; using default %r",
        value,
        custom_field.type,
        custom_field.key,
        custom_field.default_value,
    )
    diagnostics.append(
        Diagnostic(
            kind=DiagnosticKind.INVALID_FIELD_VALUE,
            message=(
                f"Value {value!r} is not a {custom_field.type}; "
                f"using default {custom_field.default_value!r}"
            ),
            key=custom_field.key,
        )
    )
    return custom_field.default_value, False


def apply_custom_fields(
    custom_fields: Sequence[CustomField],
    overrides: Mapping[str, Any] | None = None,
) -> CustomFieldResult:
    """Fix each field's value, then run effects in declaration order.

    Bindings start empty on every call, so applying the same inputs twice
    gives the same bindings.
    """
    overrides = overrides or {}
    diagnostics: list[Diagnostic] = []

    declared = {f.key for f in custom_fields}
    for key in overrides:
        if key not in declared:
            logger.warning("Override for undeclared custom field '%s' ignored", key)
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.UNKNOWN_FIELD_OVERRIDE,
                    message=f"No custom field named '{key}'",
                    key=key,
                )
            )

    resolved: list[ResolvedCustomField] = []
    for custom_field in custom_fields:
        value, overridden = _effective_value(custom_field, overrides, diagnostics)
        resolved.append(
            ResolvedCustomField(
                key=custom_field.key,
                type=custom_field.type,
                value=value,
                default_value=custom_field.default_value,
                overridden=overridden,
            )
        )

    bindings: dict[str, Any] = {}
    for custom_field, resolved_field in zip(custom_fields, resolved):
        for effect in custom_field.effects:
            if isinstance(effect, SetJinjaVariableEffect):
                bindings[effect.variable] = resolved_field.value
            elif isinstance(effect, UnknownEffect):
                logger.warning(
                    "Ignoring effect of unknown type '%s' on field '%s'",
                    effect.type,
                    custom_field.key,
                )
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.UNKNOWN_EFFECT_TYPE,
                        message=f"Effect type '{effect.type}' is not supported; ignored",
                        key=custom_field.key,
                    )
                )

    return CustomFieldResult(fields=resolved, bindings=bindings, diagnostics=diagnostics)
