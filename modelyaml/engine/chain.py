"""Base-reference chain resolution.

Follows string ``base`` references from a requested model to the concrete
definition at the root of its chain.
"""

import logging
from collections.abc import Mapping

from modelyaml.definitions import ModelDefinition
from modelyaml.errors import CycleDetected, EmptyChain, UnknownReference

logger = logging.getLogger(__name__)

AncestryPath = tuple[ModelDefinition, ...]


def resolve_chain(
    definitions: Mapping[str, ModelDefinition],
    model_id: str,
) -> AncestryPath:
    """Return the ancestry of *model_id*, ordered from concrete root to leaf.

    The order is also the merge precedence: the last entry (the requested
    model) wins on conflict.

    Raises:
        EmptyChain: *model_id* itself is not stored.
        UnknownReference: a ``base`` reference names a missing model.
        CycleDetected: a model id is revisited before reaching a concrete base.
    """
    current = definitions.get(model_id)
    if current is None:
        raise EmptyChain(model_id)

    visited: list[str] = [model_id]
    seen = {model_id}
    chain = [current]

    while isinstance(current.base, str):
        ref = current.base
        if ref in seen:
            raise CycleDetected(visited + [ref])
        parent = definitions.get(ref)
        if parent is None:
            raise UnknownReference(ref, current.model)
        visited.append(ref)
        seen.add(ref)
        chain.append(parent)
        current = parent

    chain.reverse()
    logger.debug("Resolved chain for %s: %s", model_id, " <- ".join(visited))
    return tuple(chain)


def ancestry_ids(path: AncestryPath) -> tuple[str, ...]:
    return tuple(d.model for d in path)
