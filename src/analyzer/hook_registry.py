"""Hook registries: read-only snapshots of known hook signatures.

Four registries (builtin, plugin, platform, deprecated) are loaded from JSON
files in the rules directory before an analysis pass and never mutated during
one. File layout::

    rules/hooks/builtin.json
    rules/hooks/plugin.json
    rules/hooks/platform.json
    rules/hooks/deprecated.json

Each file is ``{"hooks": [{"name": ..., "parameters": [...]}, ...]}``. Entries
may add ``variants`` (accepted alternative parameter lists), ``plugin`` (owning
plugin, plugin registry) and ``replacement`` (deprecated registry).
"""
import json
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .similarity import (
    DEFAULT_COMPATIBILITY,
    DEFAULT_SETTINGS,
    SimilaritySettings,
    TypeCompatibility,
    signature_score,
)
from .symbols import TypeRef
from ..utils.logger import safe_print


class HookOrigin(Enum):
    """Registry origins, in ranking order."""
    BUILTIN = 'builtin'
    PLUGIN = 'plugin'
    PLATFORM = 'platform'
    DEPRECATED = 'deprecated'

    @property
    def rank(self) -> int:
        return list(HookOrigin).index(self)


@dataclass(frozen=True)
class HookSignature:
    """One registered hook."""
    name: str
    parameter_types: Tuple[TypeRef, ...]
    origin: HookOrigin
    origin_name: Optional[str] = None
    variants: Tuple[Tuple[TypeRef, ...], ...] = ()
    replacement: Optional[str] = None

    @property
    def accepted_parameter_lists(self) -> Tuple[Tuple[TypeRef, ...], ...]:
        return (self.parameter_types,) + self.variants

    def __str__(self) -> str:
        return f"{self.name}({', '.join(str(p) for p in self.parameter_types)})"


@dataclass(frozen=True)
class SimilarityCandidate:
    signature: HookSignature
    score: float


def candidate_sort_key(candidate: SimilarityCandidate):
    """Descending score, then ascending name, then registry origin order."""
    return (-candidate.score, candidate.signature.name, candidate.signature.origin.rank)


class HookRegistry:
    """Immutable set of hook signatures from one origin."""

    def __init__(self, origin: HookOrigin, hooks: Iterable[HookSignature] = ()):
        self.origin = origin
        self._hooks = tuple(sorted(hooks, key=lambda hook: (hook.name, [str(p) for p in hook.parameter_types])))
        by_name: Dict[str, List[HookSignature]] = {}
        for hook in self._hooks:
            by_name.setdefault(hook.name, []).append(hook)
        self._by_name = {name: tuple(entries) for name, entries in by_name.items()}

    def __len__(self) -> int:
        return len(self._hooks)

    def __iter__(self) -> Iterator[HookSignature]:
        return iter(self._hooks)

    def is_hook(self, symbol) -> bool:
        """Exact match on name and parameter types."""
        parameters = tuple(symbol.parameter_types)
        return any(hook.parameter_types == parameters for hook in self._by_name.get(symbol.name, ()))

    def is_known_hook(self, symbol, compatibility: TypeCompatibility = DEFAULT_COMPATIBILITY) -> bool:
        """Name match whose parameters fit one accepted parameter list.

        A handler may declare fewer parameters than the hook passes; every
        declared position must be compatible with the hook's type there.
        """
        parameters = tuple(symbol.parameter_types)
        for hook in self._by_name.get(symbol.name, ()):
            for accepted in hook.accepted_parameter_lists:
                if len(parameters) > len(accepted):
                    continue
                if all(compatibility.compatible(mine, theirs) for mine, theirs in zip(parameters, accepted)):
                    return True
        return False

    def similar_to(self, symbol, limit: int,
                   settings: SimilaritySettings = DEFAULT_SETTINGS,
                   compatibility: TypeCompatibility = DEFAULT_COMPATIBILITY) -> List[SimilarityCandidate]:
        """Ranked non-exact entries scoring at least the threshold.

        Args:
            symbol: Anything with ``name`` and ``parameter_types``
            limit: Maximum number of candidates to return
            settings: Weights and threshold
            compatibility: Parameter type compatibility rule

        Returns:
            Up to ``limit`` SimilarityCandidate, best first
        """
        parameters = tuple(symbol.parameter_types)
        candidates = []
        for hook in self._hooks:
            if hook.name == symbol.name and hook.parameter_types == parameters:
                continue
            score = signature_score(symbol.name, parameters, hook.name, hook.parameter_types, settings, compatibility)
            if score >= settings.threshold:
                candidates.append(SimilarityCandidate(hook, score))
        candidates.sort(key=candidate_sort_key)
        return candidates[:limit]


@dataclass(frozen=True)
class HookRegistries:
    """The four registries of one analysis pass."""
    builtin: HookRegistry
    plugin: HookRegistry
    platform: HookRegistry
    deprecated: HookRegistry

    def __iter__(self) -> Iterator[HookRegistry]:
        return iter((self.builtin, self.plugin, self.platform, self.deprecated))

    def counts(self) -> Dict[HookOrigin, int]:
        return {registry.origin: len(registry) for registry in self}

    @classmethod
    def empty(cls) -> 'HookRegistries':
        return cls.from_entries()

    @classmethod
    def from_entries(cls, **entries: Sequence[dict]) -> 'HookRegistries':
        """Build registries from raw JSON-shaped entries keyed by origin value.

        Example:
            HookRegistries.from_entries(builtin=[{"name": "Init", "parameters": []}])
        """
        registries = {}
        for origin in HookOrigin:
            raw_entries = entries.get(origin.value, ())
            hooks = [hook for hook in (_parse_entry(raw, origin, '<memory>') for raw in raw_entries) if hook]
            registries[origin.value] = HookRegistry(origin, hooks)
        return cls(**registries)


def _parse_types(raw) -> Optional[Tuple[TypeRef, ...]]:
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        return None
    return tuple(TypeRef.parse(item) for item in raw)


def _parse_entry(raw, origin: HookOrigin, source: str) -> Optional[HookSignature]:
    """Validate one JSON entry; malformed entries are reported and skipped."""
    if not isinstance(raw, dict) or not isinstance(raw.get('name'), str) or not raw['name']:
        safe_print(f"[HookRegistry] WARNING: Malformed hook entry in {source}: {raw!r}. Skipping.", file=sys.stderr)
        return None

    parameters = _parse_types(raw.get('parameters', []))
    if parameters is None:
        safe_print(f"[HookRegistry] WARNING: Hook '{raw['name']}' in {source} has invalid parameters. Skipping.",
                   file=sys.stderr)
        return None

    variants = []
    for variant in raw.get('variants', []) or []:
        parsed = _parse_types(variant)
        if parsed is None:
            safe_print(f"[HookRegistry] WARNING: Ignoring invalid variant of '{raw['name']}' in {source}.",
                       file=sys.stderr)
            continue
        variants.append(parsed)

    return HookSignature(
        name=raw['name'],
        parameter_types=parameters,
        origin=origin,
        origin_name=raw.get('plugin'),
        variants=tuple(variants),
        replacement=raw.get('replacement'),
    )


def _load_registry(rules_dir: Path, origin: HookOrigin) -> HookRegistry:
    json_file = rules_dir / f"{origin.value}.json"
    if not json_file.exists():
        return HookRegistry(origin)

    try:
        with open(json_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        safe_print(f"[HookRegistry] Error decoding JSON in {json_file.name}: {e}", file=sys.stderr)
        return HookRegistry(origin)
    except OSError as e:
        safe_print(f"[HookRegistry] Error loading {json_file.name}: {e}", file=sys.stderr)
        return HookRegistry(origin)

    # DO NOT CRASH if file is malformed (e.g. is a list instead of a dict)
    if not isinstance(data, dict) or not isinstance(data.get('hooks', []), list):
        safe_print(f"[HookRegistry] WARNING: Rule file {json_file.name} is malformed "
                   f"(expected {{'hooks': [...]}}). Skipping.", file=sys.stderr)
        return HookRegistry(origin)

    hooks = [hook for hook in (_parse_entry(raw, origin, json_file.name) for raw in data.get('hooks', [])) if hook]
    return HookRegistry(origin, hooks)


def load_hook_registries(rules_dir: Path) -> HookRegistries:
    """Load all four registries from a rules directory.

    Missing files yield empty registries; a missing directory yields four
    empty registries and a warning.
    """
    rules_dir = Path(rules_dir)
    if not rules_dir.exists():
        safe_print(f"[HookRegistry] Warning: Rules directory not found: {rules_dir}", file=sys.stderr)
        return HookRegistries.empty()

    return HookRegistries(**{origin.value: _load_registry(rules_dir, origin) for origin in HookOrigin})
