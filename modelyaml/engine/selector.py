"""Pick the best download source/variant for a runtime.

Candidates are (source, variant) pairs taken from every concrete base in
declaration order. A source without variants is a single candidate.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from modelyaml.definitions import (
    ConcreteBase,
    Diagnostic,
    DiagnosticKind,
    HuggingFaceSource,
    RuntimeCapabilities,
    SelectedSource,
    SourceVariant,
    UnknownSource,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Candidate:
    base_key: str
    source: HuggingFaceSource
    variant: SourceVariant | None
    formats: tuple[str, ...]
    min_memory: int
    order: int

    @property
    def labels(self) -> set[str]:
        names = set()
        if self.variant is not None:
            names.add(self.variant.name.lower())
            if self.variant.params_string:
                names.add(self.variant.params_string.lower())
        return names


@dataclass
class SelectionResult:
    selected: SelectedSource | None
    diagnostics: list[Diagnostic] = field(default_factory=list)


def _candidates(
    bases: Sequence[ConcreteBase],
    fallback_formats: Sequence[str],
    fallback_min_memory: int | None,
    diagnostics: list[Diagnostic],
) -> list[_Candidate]:
    found: list[_Candidate] = []
    for base in bases:
        for source in base.sources:
            if isinstance(source, UnknownSource):
                logger.warning("Skipping source of unknown type '%s' in %s", source.type, base.key)
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.UNKNOWN_SOURCE_TYPE,
                        message=f"Source type '{source.type}' is not supported; skipped",
                        key=base.key,
                    )
                )
                continue

            variants: list[SourceVariant | None] = list(source.variants) or [None]
            for variant in variants:
                if variant is not None and variant.format:
                    formats: tuple[str, ...] = (variant.format,)
                elif source.format:
                    formats = (source.format,)
                else:
                    formats = tuple(fallback_formats)

                if variant is not None and variant.min_memory_usage_bytes is not None:
                    min_memory = variant.min_memory_usage_bytes
                elif source.min_memory_usage_bytes is not None:
                    min_memory = source.min_memory_usage_bytes
                else:
                    min_memory = fallback_min_memory or 0

                found.append(
                    _Candidate(
                        base_key=base.key,
                        source=source,
                        variant=variant,
                        formats=formats,
                        min_memory=min_memory,
                        order=len(found),
                    )
                )
    return found


def _format_rank(candidate: _Candidate, supported: Sequence[str]) -> tuple[int, str] | None:
    """Return (preference index, format) of the best supported format, or None."""
    ranked = [(supported.index(f), f) for f in candidate.formats if f in supported]
    return min(ranked) if ranked else None


def select_source(
    bases: Sequence[ConcreteBase],
    capabilities: RuntimeCapabilities,
    fallback_formats: Sequence[str] = (),
    fallback_min_memory: int | None = None,
) -> SelectionResult:
    """Choose a source/variant compatible with *capabilities*.

    Ranking: runtime format preference, then memory fit (largest candidate
    that fits the budget; the smallest one if nothing fits, with a
    preferred-size match ahead within either group), then declaration order.

    *fallback_formats* applies to candidates that declare no format of their
    own, typically the merged ``compatibilityTypes``. Likewise
    *fallback_min_memory* (the merged ``minMemoryUsageBytes``) applies when
    neither the variant nor the source declares a memory figure.
    """
    diagnostics: list[Diagnostic] = []
    supported = list(capabilities.supported_formats)
    budget = capabilities.available_memory_bytes
    preferred = (capabilities.preferred_param_size or "").lower()

    ranked = []
    for candidate in _candidates(bases, fallback_formats, fallback_min_memory, diagnostics):
        format_rank = _format_rank(candidate, supported)
        if format_rank is None:
            logger.debug(
                "Candidate %s/%s has no supported format (%s)",
                candidate.base_key,
                candidate.variant.name if candidate.variant else "-",
                ", ".join(candidate.formats) or "none declared",
            )
            continue
        fits = candidate.min_memory <= budget
        memory_key = -candidate.min_memory if fits else candidate.min_memory
        preference_miss = 0 if preferred and preferred in candidate.labels else 1
        key = (format_rank[0], 0 if fits else 1, preference_miss, memory_key, candidate.order)
        ranked.append((key, candidate, format_rank[1], fits))

    if not ranked:
        logger.warning(
            "No compatible source among %d base(s) for formats %s",
            len(bases),
            ", ".join(supported) or "none",
        )
        diagnostics.append(
            Diagnostic(
                kind=DiagnosticKind.NO_COMPATIBLE_SOURCE,
                message=(
                    "No source matches the supported formats "
                    f"[{', '.join(supported)}]"
                ),
            )
        )
        return SelectionResult(selected=None, diagnostics=diagnostics)

    ranked.sort(key=lambda entry: entry[0])
    _, best, chosen_format, fits = ranked[0]
    if not fits:
        logger.warning(
            "No variant fits %d bytes; falling back to smallest (%d bytes)",
            budget,
            best.min_memory,
        )

    selected = SelectedSource(
        base_key=best.base_key,
        source=best.source,
        variant=best.variant,
        format=chosen_format,
        min_memory_usage_bytes=best.min_memory,
        fits_in_memory=fits,
    )
    logger.info(
        "Selected %s/%s (%s, %d bytes)",
        best.source.user,
        best.source.repo,
        best.variant.name if best.variant else chosen_format,
        best.min_memory,
    )
    return SelectionResult(selected=selected, diagnostics=diagnostics)
