"""Structural symbol model shared by every analysis stage.

Method identity is name + containing type + ordered parameter types. A symbol
reached through a generic instantiation (``Box[int].method``) keeps a pointer to
the declaration inside the generic class so that usage resolution can equate the
two.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple


# typing aliases collapsed to their builtin spelling
_TYPING_ALIASES = {
    'List': 'list',
    'Dict': 'dict',
    'Tuple': 'tuple',
    'Set': 'set',
    'FrozenSet': 'frozenset',
    'Type': 'type',
}

_TYPING_PREFIXES = ('typing.', 'typing_extensions.')

_WILDCARD_TYPES = {'Any', 'object'}


def _split_top_level(text: str) -> List[str]:
    """Split a comma-separated type argument list, ignoring nested brackets."""
    parts = []
    depth = 0
    current = []
    for char in text:
        if char == '[':
            depth += 1
        elif char == ']':
            depth -= 1
        if char == ',' and depth == 0:
            parts.append(''.join(current))
            current = []
        else:
            current.append(char)
    parts.append(''.join(current))
    return parts


@dataclass(frozen=True)
class TypeRef:
    """A structurally comparable type reference (``list[str]`` -> list + (str,))."""
    name: str
    args: Tuple['TypeRef', ...] = ()

    @classmethod
    def parse(cls, text: Optional[str]) -> 'TypeRef':
        """Build a TypeRef from annotation text.

        Args:
            text: Raw annotation text, or None for an unannotated parameter

        Returns:
            Normalized TypeRef (``Any`` when there is no annotation)
        """
        if text is None:
            return ANY
        cleaned = ''.join(text.split()).replace('"', '').replace("'", '')
        if not cleaned:
            return ANY
        return cls._parse_clean(cleaned)

    @classmethod
    def _parse_clean(cls, text: str) -> 'TypeRef':
        bracket = text.find('[')
        if bracket == -1 or not text.endswith(']'):
            return cls(cls._normalize_name(text))

        name = cls._normalize_name(text[:bracket])
        inner = text[bracket + 1:-1]
        args = tuple(cls._parse_clean(part) for part in _split_top_level(inner) if part)
        return cls(name, args)

    @staticmethod
    def _normalize_name(name: str) -> str:
        for prefix in _TYPING_PREFIXES:
            if name.startswith(prefix):
                name = name[len(prefix):]
                break
        return _TYPING_ALIASES.get(name, name)

    @property
    def is_wildcard(self) -> bool:
        return self.name in _WILDCARD_TYPES and not self.args

    @property
    def simple_name(self) -> str:
        return self.name.rsplit('.', 1)[-1]

    def substitute(self, substitutions: Dict[str, 'TypeRef']) -> 'TypeRef':
        """Replace type parameters (``T``) with concrete arguments."""
        if not self.args and self.name in substitutions:
            return substitutions[self.name]
        if not self.args:
            return self
        return TypeRef(self.name, tuple(arg.substitute(substitutions) for arg in self.args))

    def __str__(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}[{', '.join(str(arg) for arg in self.args)}]"


ANY = TypeRef('Any')


class MethodKind(Enum):
    """Declaration kinds; only ORDINARY methods are analyzed."""
    ORDINARY = 'ordinary'
    CONSTRUCTOR = 'constructor'
    ACCESSOR = 'accessor'
    OPERATOR = 'operator'
    OTHER = 'other'


@dataclass(frozen=True, eq=False)
class MethodSymbol:
    """Identity of a declared method.

    Equality and hashing only consider name, containing type and parameter
    types. ``is_override``, ``kind`` and ``original_definition`` are metadata.
    """
    name: str
    parameter_types: Tuple[TypeRef, ...]
    containing_type: TypeRef
    is_override: bool = False
    kind: MethodKind = MethodKind.ORDINARY
    original_definition: Optional['MethodSymbol'] = None

    def _identity(self):
        return (self.name, self.containing_type, self.parameter_types)

    def __eq__(self, other):
        if not isinstance(other, MethodSymbol):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self):
        return hash(self._identity())

    def instantiate(self, containing_type: TypeRef, substitutions: Dict[str, TypeRef]) -> 'MethodSymbol':
        """Return this declaration as seen through a generic instantiation.

        Args:
            containing_type: The instantiated type (e.g. ``Box[int]``)
            substitutions: Type parameter name -> concrete type

        Returns:
            MethodSymbol whose original_definition is the generic declaration
        """
        original = self.original_definition or self
        return replace(
            self,
            containing_type=containing_type,
            parameter_types=tuple(p.substitute(substitutions) for p in self.parameter_types),
            original_definition=original,
        )

    @property
    def display_name(self) -> str:
        return f"{self.containing_type.simple_name}.{self.name}"

    def signature_text(self) -> str:
        return f"{self.name}({', '.join(str(p) for p in self.parameter_types)})"

    def __str__(self) -> str:
        return f"{self.containing_type}.{self.signature_text()}"


@dataclass(frozen=True)
class MemberGroup:
    """Member access on a receiver whose type could not be inferred.

    Stands for every method carrying this name.
    """
    name: str


@dataclass(frozen=True)
class SourceLocation:
    path: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"


def symbols_match(reference: Optional[MethodSymbol], target: MethodSymbol) -> bool:
    """True when a resolved reference denotes the target declaration.

    A reference to a generic instantiation matches its original definition.
    """
    if not isinstance(reference, MethodSymbol):
        return False
    if reference == target:
        return True
    return reference.original_definition is not None and reference.original_definition == target
