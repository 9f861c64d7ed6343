"""Run one resolution request through every stage.

Requested -> ChainResolving -> Merging -> SourceSelecting ->
ApplyingCustomFields -> EvaluatingSuggestions -> Resolved

Structural errors abort the request and carry the stage they happened in.
Everything else is recorded as a diagnostic on the result.
"""

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from modelyaml.definitions import (
    Diagnostic,
    ModelDefinition,
    ResolvedModel,
    RuntimeCapabilities,
)
from modelyaml.engine.chain import ancestry_ids, resolve_chain
from modelyaml.engine.custom_fields import apply_custom_fields
from modelyaml.engine.merge import merge, merge_custom_fields, merge_suggestions
from modelyaml.engine.paths import build_state_view
from modelyaml.engine.selector import select_source
from modelyaml.engine.suggestions import evaluate_suggestions
from modelyaml.errors import ResolutionError

logger = logging.getLogger(__name__)


class ResolutionStage(str, Enum):
    REQUESTED = "Requested"
    CHAIN_RESOLVING = "ChainResolving"
    MERGING = "Merging"
    SOURCE_SELECTING = "SourceSelecting"
    APPLYING_CUSTOM_FIELDS = "ApplyingCustomFields"
    EVALUATING_SUGGESTIONS = "EvaluatingSuggestions"
    RESOLVED = "Resolved"


def resolve_model(
    definitions: Mapping[str, ModelDefinition],
    model_id: str,
    capabilities: RuntimeCapabilities,
    overrides: Mapping[str, Any] | None = None,
) -> ResolvedModel:
    """Resolve *model_id* against a store snapshot for the given runtime.

    Args:
        definitions: A store snapshot (any mapping of model id to definition).
        model_id: The model to resolve.
        capabilities: Formats, memory budget and preferred size of the host.
        overrides: User-supplied custom field values, keyed by field key.

    Raises:
        ResolutionError: CycleDetected, UnknownReference or EmptyChain, with
            ``stage`` set to the failing stage.
    """
    stage = ResolutionStage.REQUESTED
    logger.debug("%s: %s", stage.value, model_id)
    diagnostics: list[Diagnostic] = []

    try:
        stage = ResolutionStage.CHAIN_RESOLVING
        path = resolve_chain(definitions, model_id)

        stage = ResolutionStage.MERGING
        metadata, config = merge(path)
        custom_fields = merge_custom_fields(path)
        suggestions = merge_suggestions(path)

        stage = ResolutionStage.SOURCE_SELECTING
        root = path[0]
        selection = select_source(
            root.base,
            capabilities,
            fallback_formats=metadata.compatibility_types or (),
            fallback_min_memory=metadata.min_memory_usage_bytes,
        )
        diagnostics.extend(selection.diagnostics)

        stage = ResolutionStage.APPLYING_CUSTOM_FIELDS
        applied = apply_custom_fields(custom_fields, overrides)
        diagnostics.extend(applied.diagnostics)

        stage = ResolutionStage.EVALUATING_SUGGESTIONS
        state = build_state_view(applied.values, config, metadata)
        emitted, suggestion_diagnostics = evaluate_suggestions(suggestions, state)
        diagnostics.extend(suggestion_diagnostics)
    except ResolutionError as e:
        e.stage = stage.value
        logger.error("Resolution of %s failed in %s: %s", model_id, stage.value, e)
        raise

    resolved = ResolvedModel(
        model=model_id,
        ancestry=ancestry_ids(path),
        metadata=metadata,
        config=config,
        source=selection.selected,
        custom_fields=tuple(applied.fields),
        bindings=applied.bindings,
        suggestions=tuple(emitted),
        diagnostics=tuple(diagnostics),
    )
    logger.info(
        "%s: %s (%d ancestors, %d suggestions, %d diagnostics)",
        ResolutionStage.RESOLVED.value,
        model_id,
        len(path),
        len(emitted),
        len(diagnostics),
    )
    return resolved
