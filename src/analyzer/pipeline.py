"""Decision pipeline: one verdict per method declaration.

Stages run in strict order and stop at the first terminal outcome:

1. Skip           -> no finding
2. CheckUsed      -> no finding
3. CheckCommand   -> UNUSED_AS_COMMAND (hook similarity is never queried)
4. HookSimilarity -> UNUSED_WITH_HOOK_SUGGESTIONS
5. otherwise      -> PLAIN_UNUSED
"""
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .binder import Binder
from .cancellation import CancellationToken, OperationCancelled
from .extractor import DeclarationExtractor, MethodDeclaration
from .heuristics import CommandHeuristics
from .hook_matcher import HookMatcher
from .hook_registry import HookRegistries, SimilarityCandidate
from .program import Program
from .similarity import SimilaritySettings, TypeCompatibility
from .skip_policy import AttributeCatalog, SkipPolicy
from .symbols import MethodSymbol, SourceLocation
from .usage import UsageResolver
from ..utils.logger import safe_print


class FindingVariant(Enum):
    PLAIN_UNUSED = 'plain_unused'
    UNUSED_WITH_HOOK_SUGGESTIONS = 'unused_with_hook_suggestions'
    UNUSED_AS_COMMAND = 'unused_as_command'


@dataclass(frozen=True)
class Finding:
    method: MethodSymbol
    variant: FindingVariant
    location: SourceLocation
    suggestions: Tuple[SimilarityCandidate, ...] = ()


class DecisionPipeline:
    """Per-declaration controller. Holds no mutable state; safe to share across threads."""

    def __init__(self, skip_policy: SkipPolicy, usage_resolver: UsageResolver,
                 hook_matcher: HookMatcher, command_heuristics: Optional[CommandHeuristics] = None):
        self.skip_policy = skip_policy
        self.usage_resolver = usage_resolver
        self.hook_matcher = hook_matcher
        self.command_heuristics = command_heuristics or CommandHeuristics()

    def evaluate(self, declaration: MethodDeclaration,
                 cancellation: Optional[CancellationToken] = None) -> Optional[Finding]:
        """Run all stages for one declaration.

        Returns:
            A Finding, or None when the method is exempt, used, or the pass
            was cancelled
        """
        try:
            if cancellation is not None:
                cancellation.check()

            if self.skip_policy.should_skip(declaration):
                return None

            method = declaration.symbol
            if self.usage_resolver.is_used(method, cancellation):
                return None

            if self.command_heuristics.looks_like_command(method):
                return Finding(method, FindingVariant.UNUSED_AS_COMMAND, declaration.location)

            suggestions = self.hook_matcher.similar(method)
            if suggestions:
                return Finding(method, FindingVariant.UNUSED_WITH_HOOK_SUGGESTIONS,
                               declaration.location, tuple(suggestions))

            return Finding(method, FindingVariant.PLAIN_UNUSED, declaration.location)
        except OperationCancelled:
            return None


def _evaluate_isolated(pipeline: DecisionPipeline, declaration: MethodDeclaration,
                       cancellation: Optional[CancellationToken]) -> Optional[Finding]:
    try:
        return pipeline.evaluate(declaration, cancellation)
    except Exception as e:
        # One broken declaration must not abort the rest of the pass
        safe_print(f"[DecisionPipeline] WARNING: Analysis of '{declaration.name}' "
                   f"at {declaration.location} failed: {e}", file=sys.stderr)
        return None


def analyze_declarations(declarations: Sequence[MethodDeclaration], pipeline: DecisionPipeline,
                         workers: int = 1,
                         cancellation: Optional[CancellationToken] = None) -> List[Finding]:
    """Evaluate every declaration; findings come back in declaration order.

    Args:
        declarations: Declarations to evaluate
        pipeline: Shared pipeline
        workers: Thread count (1 runs inline)
        cancellation: Optional token shared by the whole pass

    Returns:
        Findings ordered by path, line and column
    """
    ordered = sorted(declarations, key=lambda d: (d.location.path, d.location.line, d.location.column))

    if workers <= 1:
        results = [_evaluate_isolated(pipeline, d, cancellation) for d in ordered]
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(lambda d: _evaluate_isolated(pipeline, d, cancellation), ordered))

    return [finding for finding in results if finding is not None]


class AnalysisSession:
    """Everything one analysis pass needs, built from immutable snapshots."""

    def __init__(self, program: Program, registries: HookRegistries,
                 settings: Optional[SimilaritySettings] = None,
                 catalog: Optional[AttributeCatalog] = None):
        """Bind the program and wire the pipeline.

        Args:
            program: Parsed program
            registries: Hook registries loaded before the pass
            settings: Similarity weights, threshold and limit
            catalog: Decorator catalog (defaults to the built-in table)
        """
        self.program = program
        self.registries = registries
        self.binder = Binder(program)
        self.catalog = catalog or AttributeCatalog.default()
        self.declarations = DeclarationExtractor(self.binder, self.catalog).extract(program)

        self.hook_matcher = HookMatcher(registries, settings, TypeCompatibility(self.binder.type_graph))
        self.usage_resolver = UsageResolver(self.binder)
        self.pipeline = DecisionPipeline(
            SkipPolicy(self.hook_matcher),
            self.usage_resolver,
            self.hook_matcher,
            CommandHeuristics(),
        )

    def run(self, workers: int = 1, cancellation: Optional[CancellationToken] = None) -> List[Finding]:
        return analyze_declarations(self.declarations, self.pipeline, workers, cancellation)

    def declarations_named(self, name: str) -> List[MethodDeclaration]:
        """Declarations whose method name (or ``Class.method``) equals ``name``."""
        return [
            d for d in self.declarations
            if d.name == name or (d.symbol is not None and d.symbol.display_name == name)
        ]
