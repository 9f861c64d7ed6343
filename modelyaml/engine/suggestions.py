"""Evaluate suggestion conditions against resolved state."""

import logging
from collections.abc import Mapping, Sequence
from numbers import Number
from typing import Any

from modelyaml.definitions import (
    CheckedValue,
    Diagnostic,
    DiagnosticKind,
    EqualsCondition,
    Suggestion,
    UnknownCondition,
)
from modelyaml.engine.paths import MalformedPath, lookup_path

logger = logging.getLogger(__name__)


def values_equal(actual: Any, expected: Any) -> bool:
    """Type-aware equality.

    Booleans only equal booleans, numbers compare numerically, and a
    CheckedValue equals a plain literal only while it is checked.
    """
    if isinstance(actual, CheckedValue) and not isinstance(expected, (CheckedValue, Mapping)):
        return actual.checked and values_equal(actual.value, expected)
    if isinstance(actual, CheckedValue) and isinstance(expected, Mapping):
        return actual.model_dump() == dict(expected)
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual is expected
    if isinstance(actual, Number) and isinstance(expected, Number):
        return actual == expected
    if isinstance(actual, Number) or isinstance(expected, Number):
        return False
    return actual == expected


def _condition_holds(
    condition: Any,
    state: Mapping[str, Any],
    diagnostics: list[Diagnostic],
) -> bool:
    if isinstance(condition, UnknownCondition):
        logger.warning("Condition type '%s' is not supported; treated as false", condition.type)
        diagnostics.append(
            Diagnostic(
                kind=DiagnosticKind.UNKNOWN_CONDITION_TYPE,
                message=f"Condition type '{condition.type}' is not supported; treated as false",
            )
        )
        return False

    if isinstance(condition, EqualsCondition):
        try:
            found, actual = lookup_path(condition.key, state)
        except MalformedPath:
            logger.warning("Malformed condition path %r; treated as false", condition.key)
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.MALFORMED_CONDITION_PATH,
                    message=f"Path {condition.key!r} must start with '$.'",
                    key=condition.key,
                )
            )
            return False
        return found and values_equal(actual, condition.value)

    return False


def evaluate_suggestions(
    suggestions: Sequence[Suggestion],
    state: Mapping[str, Any],
) -> tuple[list[Suggestion], list[Diagnostic]]:
    """Return the suggestions whose conditions all hold, in declaration order.

    Every condition is evaluated (no short-circuit) so that diagnostics for
    bad conditions are reported even when an earlier one already failed.
    *state* is only read.
    """
    diagnostics: list[Diagnostic] = []
    emitted: list[Suggestion] = []
    for suggestion in suggestions:
        results = [_condition_holds(c, state, diagnostics) for c in suggestion.conditions]
        if all(results):
            emitted.append(suggestion)
    logger.debug("%d of %d suggestions apply", len(emitted), len(suggestions))
    return emitted, diagnostics
