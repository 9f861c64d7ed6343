"""Definition store: immutable snapshots with serialized copy-on-write updates.

Readers take ``store.snapshot()`` and work against it for the whole
resolution; writers publish a new snapshot under a lock, so a reader never
observes a half-applied update.
"""

import logging
import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from modelyaml.definitions import ModelDefinition
from modelyaml.errors import DuplicateConcreteKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreSnapshot(Mapping[str, ModelDefinition]):
    """A consistent, read-only view of the stored definitions.

    *revisions* maps each model id to the store generation that last wrote
    it; a redefinition always gets a new, higher revision.
    """

    definitions: Mapping[str, ModelDefinition] = field(
        default_factory=lambda: MappingProxyType({})
    )
    revisions: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    concrete_keys: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    generation: int = 0

    def __getitem__(self, model_id: str) -> ModelDefinition:
        return self.definitions[model_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self.definitions)

    def __len__(self) -> int:
        return len(self.definitions)

    def revision(self, model_id: str) -> int | None:
        return self.revisions.get(model_id)


def _check_concrete_keys(
    definition: ModelDefinition,
    owners: Mapping[str, str],
) -> None:
    seen: set[str] = set()
    for key in definition.concrete_keys:
        owner = owners.get(key)
        if key in seen or (owner is not None and owner != definition.model):
            raise DuplicateConcreteKey(key, owner or definition.model, definition.model)
        seen.add(key)


class DefinitionStore:
    """Holds the known definitions keyed by model id.

    Writes are serialized; each one replaces the published snapshot.
    """

    def __init__(self, definitions: Iterable[ModelDefinition] = ()) -> None:
        self._lock = threading.Lock()
        self._snapshot = StoreSnapshot()
        self.put_many(definitions)

    def snapshot(self) -> StoreSnapshot:
        return self._snapshot

    def get(self, model_id: str) -> ModelDefinition | None:
        return self._snapshot.definitions.get(model_id)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._snapshot.definitions

    def __len__(self) -> int:
        return len(self._snapshot)

    def put(self, definition: ModelDefinition) -> StoreSnapshot:
        """Store or replace one definition and return the new snapshot."""
        return self.put_many([definition])

    def put_many(self, definitions: Iterable[ModelDefinition]) -> StoreSnapshot:
        """Store several definitions as one atomic update.

        Raises DuplicateConcreteKey (and stores nothing) if a concrete base
        key would be shared by two different models.
        """
        definitions = list(definitions)
        if not definitions:
            return self._snapshot

        with self._lock:
            current = self._snapshot
            generation = current.generation + 1
            defs = dict(current.definitions)
            revisions = dict(current.revisions)
            owners = dict(current.concrete_keys)

            for definition in definitions:
                replaced = defs.get(definition.model)
                if replaced is not None:
                    for key in replaced.concrete_keys:
                        owners.pop(key, None)
                _check_concrete_keys(definition, owners)
                for key in definition.concrete_keys:
                    owners[key] = definition.model
                defs[definition.model] = definition
                revisions[definition.model] = generation
                logger.debug(
                    "%s definition %s (revision %d)",
                    "Replaced" if replaced is not None else "Added",
                    definition.model,
                    generation,
                )

            self._snapshot = StoreSnapshot(
                definitions=MappingProxyType(defs),
                revisions=MappingProxyType(revisions),
                concrete_keys=MappingProxyType(owners),
                generation=generation,
            )
            return self._snapshot

    def remove(self, model_id: str) -> bool:
        """Drop a definition. Returns False if it was not stored."""
        with self._lock:
            current = self._snapshot
            if model_id not in current.definitions:
                return False
            defs = dict(current.definitions)
            revisions = dict(current.revisions)
            removed = defs.pop(model_id)
            revisions.pop(model_id, None)
            owners = {k: v for k, v in current.concrete_keys.items() if v != removed.model}
            self._snapshot = StoreSnapshot(
                definitions=MappingProxyType(defs),
                revisions=MappingProxyType(revisions),
                concrete_keys=MappingProxyType(owners),
                generation=current.generation + 1,
            )
            logger.debug("Removed definition %s", model_id)
            return True
