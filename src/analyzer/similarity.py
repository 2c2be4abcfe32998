"""Signature similarity scoring for hook suggestions.

score = name_weight * name_similarity + param_weight * param_similarity

name_similarity is one minus the case-insensitive Levenshtein distance
normalized by the longer name. param_similarity is the fraction of positions
whose types are compatible, 0 when arities differ.
"""
from dataclasses import dataclass
from typing import Optional, Sequence

import networkx as nx

from .symbols import TypeRef


# Scores are rounded so float noise never breaks a tie
SCORE_PRECISION = 6


@dataclass(frozen=True)
class SimilaritySettings:
    name_weight: float = 0.6
    param_weight: float = 0.4
    threshold: float = 0.5
    limit: int = 5


DEFAULT_SETTINGS = SimilaritySettings()


class TypeCompatibility:
    """Assignability between parameter types.

    Types are compatible when identical, when either side is ``Any``/``object``,
    or when one is a subclass of the other in the program's type graph.
    """

    def __init__(self, type_graph: Optional[nx.DiGraph] = None):
        self.type_graph = type_graph if type_graph is not None else nx.DiGraph()

    def compatible(self, left: TypeRef, right: TypeRef) -> bool:
        if left == right:
            return True
        if left.is_wildcard or right.is_wildcard:
            return True
        if left.args != right.args:
            return False
        return self._is_subclass(left.simple_name, right.simple_name) or \
            self._is_subclass(right.simple_name, left.simple_name)

    def _is_subclass(self, child: str, parent: str) -> bool:
        if child not in self.type_graph or parent not in self.type_graph:
            return False
        return nx.has_path(self.type_graph, child, parent)


DEFAULT_COMPATIBILITY = TypeCompatibility()


def levenshtein(left: str, right: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    if len(left) < len(right):
        left, right = right, left
    previous = list(range(len(right) + 1))
    for i, left_char in enumerate(left, start=1):
        current = [i]
        for j, right_char in enumerate(right, start=1):
            cost = 0 if left_char == right_char else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def name_similarity(left: str, right: str) -> float:
    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(left.lower(), right.lower()) / longest


def param_similarity(left: Sequence[TypeRef], right: Sequence[TypeRef],
                     compatibility: TypeCompatibility = DEFAULT_COMPATIBILITY) -> float:
    if len(left) != len(right):
        return 0.0
    if not left:
        return 1.0
    matches = sum(1 for a, b in zip(left, right) if compatibility.compatible(a, b))
    return matches / len(left)


def signature_score(name: str, parameter_types: Sequence[TypeRef],
                    hook_name: str, hook_parameter_types: Sequence[TypeRef],
                    settings: SimilaritySettings = DEFAULT_SETTINGS,
                    compatibility: TypeCompatibility = DEFAULT_COMPATIBILITY) -> float:
    """Weighted similarity of a method signature to a hook signature, in [0, 1]."""
    score = (settings.name_weight * name_similarity(name, hook_name)
             + settings.param_weight * param_similarity(parameter_types, hook_parameter_types, compatibility))
    return round(score, SCORE_PRECISION)
