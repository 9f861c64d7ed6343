"""Structural validation of definitions without resolving them."""

import logging
import re
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from modelyaml.definitions import (
    EqualsCondition,
    ModelDefinition,
    SetJinjaVariableEffect,
    UnknownCondition,
    UnknownEffect,
    UnknownSource,
)
from modelyaml.engine.chain import resolve_chain
from modelyaml.engine.paths import MalformedPath, parse_path
from modelyaml.errors import CycleDetected, UnknownReference

logger = logging.getLogger(__name__)

MODEL_ID_PATTERN = re.compile(r"^[^/\s]+/[^/\s]+$")

ERROR = "error"
WARNING = "warning"


@dataclass(frozen=True)
class DefinitionIssue:
    """One problem found in a definition."""

    location: str  # dotted path into the document, e.g. "customFields.0.key"
    message: str
    severity: str = ERROR

    def to_dict(self) -> dict:
        return {
            "location": self.location,
            "message": self.message,
            "severity": self.severity,
        }


def is_valid(issues: list[DefinitionIssue]) -> bool:
    return not any(issue.severity == ERROR for issue in issues)


def _schema_issues(error: ValidationError) -> list[DefinitionIssue]:
    return [
        DefinitionIssue(
            location=".".join(str(part) for part in err["loc"]) or "<root>",
            message=err["msg"],
        )
        for err in error.errors()
    ]


def _duplicates(values: list[str]) -> list[str]:
    return sorted(value for value, count in Counter(values).items() if count > 1)


def _base_issues(definition: ModelDefinition) -> list[DefinitionIssue]:
    issues = []
    if isinstance(definition.base, str):
        if definition.base == definition.model:
            issues.append(DefinitionIssue("base", "model references itself as its base"))
        return issues

    if not definition.base:
        issues.append(DefinitionIssue("base", "concrete base list is empty"))
    for key in _duplicates(definition.concrete_keys):
        issues.append(DefinitionIssue("base", f"concrete base key '{key}' is declared twice"))
    for i, base in enumerate(definition.base):
        if not base.sources:
            issues.append(DefinitionIssue(f"base.{i}.sources", f"'{base.key}' has no sources"))
        for j, source in enumerate(base.sources):
            if isinstance(source, UnknownSource):
                issues.append(
                    DefinitionIssue(
                        f"base.{i}.sources.{j}.type",
                        f"unknown source type '{source.type}' will be skipped",
                        WARNING,
                    )
                )
    return issues


def _custom_field_issues(definition: ModelDefinition) -> list[DefinitionIssue]:
    issues = []
    keys = [f.key for f in definition.custom_fields]
    for key in _duplicates(keys):
        issues.append(DefinitionIssue("customFields", f"custom field key '{key}' is declared twice"))
    for i, custom_field in enumerate(definition.custom_fields):
        for j, effect in enumerate(custom_field.effects):
            location = f"customFields.{i}.effects.{j}"
            if isinstance(effect, SetJinjaVariableEffect) and not effect.variable.strip():
                issues.append(DefinitionIssue(f"{location}.variable", "variable name is empty"))
            elif isinstance(effect, UnknownEffect):
                issues.append(
                    DefinitionIssue(
                        f"{location}.type",
                        f"unknown effect type '{effect.type}' will be ignored",
                        WARNING,
                    )
                )
    return issues


def _suggestion_issues(definition: ModelDefinition) -> list[DefinitionIssue]:
    issues = []
    for i, suggestion in enumerate(definition.suggestions):
        for j, condition in enumerate(suggestion.conditions):
            location = f"suggestions.{i}.conditions.{j}"
            if isinstance(condition, EqualsCondition):
                try:
                    parse_path(condition.key)
                except MalformedPath as e:
                    issues.append(DefinitionIssue(f"{location}.key", str(e)))
            elif isinstance(condition, UnknownCondition):
                issues.append(
                    DefinitionIssue(
                        f"{location}.type",
                        f"unknown condition type '{condition.type}' never matches",
                        WARNING,
                    )
                )
    return issues


def _store_issues(
    definition: ModelDefinition,
    snapshot: Mapping[str, ModelDefinition],
) -> list[DefinitionIssue]:
    issues = []
    owners = getattr(snapshot, "concrete_keys", {})
    for key in definition.concrete_keys:
        owner = owners.get(key)
        if owner is not None and owner != definition.model:
            issues.append(DefinitionIssue("base", f"concrete base key '{key}' is already used by {owner}"))

    if isinstance(definition.base, str) and definition.base != definition.model:
        overlay = dict(snapshot.items())
        overlay[definition.model] = definition
        try:
            resolve_chain(overlay, definition.model)
        except CycleDetected as e:
            issues.append(DefinitionIssue("base", str(e)))
        except UnknownReference as e:
            issues.append(DefinitionIssue("base", str(e)))
    return issues


def validate_definition(
    raw: Mapping[str, Any] | ModelDefinition,
    snapshot: Mapping[str, ModelDefinition] | None = None,
) -> list[DefinitionIssue]:
    """Return every problem found in *raw*; an empty list means it is valid.

    Schema errors are reported alone, since the remaining checks need a
    parsed definition. With a store *snapshot*, references and concrete key
    ownership are checked against it as well.
    """
    if isinstance(raw, ModelDefinition):
        definition = raw
    else:
        if not isinstance(raw, Mapping):
            return [DefinitionIssue("<root>", "definition must be a mapping")]
        try:
            definition = ModelDefinition.model_validate(dict(raw))
        except ValidationError as e:
            return _schema_issues(e)

    issues: list[DefinitionIssue] = []
    if not MODEL_ID_PATTERN.match(definition.model):
        issues.append(DefinitionIssue("model", f"'{definition.model}' is not of the form org/name"))
    issues.extend(_base_issues(definition))
    issues.extend(_custom_field_issues(definition))
    issues.extend(_suggestion_issues(definition))
    if snapshot is not None:
        issues.extend(_store_issues(definition, snapshot))

    logger.debug("Validated %s: %d issue(s)", definition.model, len(issues))
    return issues
