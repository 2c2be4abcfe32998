"""Queries across all hook registries of a pass."""
from typing import List, Optional

from .hook_registry import HookRegistries, SimilarityCandidate, candidate_sort_key
from .similarity import DEFAULT_SETTINGS, SimilaritySettings, TypeCompatibility


class HookMatcher:
    """Exact, known and similar hook lookups over the four registries."""

    def __init__(self, registries: HookRegistries,
                 settings: Optional[SimilaritySettings] = None,
                 compatibility: Optional[TypeCompatibility] = None):
        self.registries = registries
        self.settings = settings or DEFAULT_SETTINGS
        self.compatibility = compatibility or TypeCompatibility()

    def is_hook(self, symbol) -> bool:
        return any(registry.is_hook(symbol) for registry in self.registries)

    def is_known_hook(self, symbol) -> bool:
        return any(registry.is_known_hook(symbol, self.compatibility) for registry in self.registries)

    def similar(self, symbol) -> List[SimilarityCandidate]:
        """Globally ranked suggestions for an unmatched signature.

        Per-registry results are concatenated in origin order, filtered by the
        threshold, re-sorted with the shared tie-break and cut to the limit.
        """
        combined: List[SimilarityCandidate] = []
        for registry in self.registries:
            combined.extend(registry.similar_to(symbol, self.settings.limit, self.settings, self.compatibility))

        ranked = [candidate for candidate in combined if candidate.score >= self.settings.threshold]
        ranked.sort(key=candidate_sort_key)
        return ranked[:self.settings.limit]
