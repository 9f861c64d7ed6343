"""Memoized, thread-safe resolution on top of a DefinitionStore.

Results are cached per (model id, runtime capabilities, overrides). Only one
thread computes a given key at a time; concurrent callers for the same key
wait for that computation instead of repeating it. A cached result is
dropped as soon as any definition on its ancestry path has been redefined
or removed. The cache keeps at most *max_entries* results, evicting the least
recently used. Every caller gets its own copy of the result, so changing a
returned model never affects the cache.
"""

import json
import logging
import threading
from collections import OrderedDict
from collections.abc import Mapping
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, NamedTuple

from modelyaml.config import RESOLVE_CACHE_SIZE
from modelyaml.definitions import ResolvedModel, RuntimeCapabilities
from modelyaml.engine.resolver import resolve_model
from modelyaml.store import DefinitionStore, StoreSnapshot

logger = logging.getLogger(__name__)

CacheKey = tuple[str, RuntimeCapabilities, str]


class CacheInfo(NamedTuple):
    hits: int
    misses: int
    size: int


@dataclass(frozen=True)
class _Entry:
    result: ResolvedModel
    revisions: tuple[tuple[str, int | None], ...]

    def is_current(self, snapshot: StoreSnapshot) -> bool:
        return all(snapshot.revision(model_id) == rev for model_id, rev in self.revisions)


def _overrides_key(overrides: Mapping[str, Any] | None) -> str:
    return json.dumps(dict(overrides or {}), sort_keys=True, default=repr)


class ModelResolver:
    """Resolve models from a store, memoizing results."""

    def __init__(self, store: DefinitionStore, max_entries: int = RESOLVE_CACHE_SIZE) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.store = store
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: OrderedDict[CacheKey, _Entry] = OrderedDict()
        self._inflight: dict[CacheKey, Future] = {}
        self._hits = 0
        self._misses = 0

    def resolve(
        self,
        model_id: str,
        capabilities: RuntimeCapabilities,
        overrides: Mapping[str, Any] | None = None,
    ) -> ResolvedModel:
        """Return the resolved model, computing it at most once per key.

        Structural errors are raised to every caller waiting on the key and
        are not cached.
        """
        key: CacheKey = (model_id, capabilities, _overrides_key(overrides))
        snapshot = self.store.snapshot()

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                if entry.is_current(snapshot):
                    self._hits += 1
                    self._entries.move_to_end(key)
                    return entry.result.model_copy(deep=True)
                logger.debug("Cached resolution of %s is stale; recomputing", model_id)
                del self._entries[key]

            future = self._inflight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._inflight[key] = future
                self._misses += 1

        if not owner:
            logger.debug("Waiting for in-flight resolution of %s", model_id)
            return future.result().model_copy(deep=True)

        try:
            result = resolve_model(snapshot, model_id, capabilities, overrides)
        except BaseException as e:
            with self._lock:
                self._inflight.pop(key, None)
            future.set_exception(e)
            raise

        with self._lock:
            self._entries[key] = _Entry(
                result=result,
                revisions=tuple((m, snapshot.revision(m)) for m in result.ancestry),
            )
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cached resolution of %s", evicted[0])
            self._inflight.pop(key, None)
        future.set_result(result)
        return result.model_copy(deep=True)

    def invalidate(self) -> None:
        """Drop every cached result."""
        with self._lock:
            self._entries.clear()

    def cache_info(self) -> CacheInfo:
        with self._lock:
            return CacheInfo(hits=self._hits, misses=self._misses, size=len(self._entries))
