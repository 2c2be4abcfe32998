"""Reference scanner: enumerate every syntax node that could reference a method."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Union

from tree_sitter import Node

from .binder import Binder
from .cancellation import CancellationToken
from .extractor import location_of
from .program import Program, SourceUnit
from .symbols import MemberGroup, MethodSymbol, SourceLocation


class ReferenceKind(Enum):
    DIRECT_CALL = 'direct_call'
    MEMBER_ACCESS = 'member_access'
    IDENTIFIER = 'identifier'
    DELEGATE_CAPTURE = 'delegate_capture'
    DYNAMIC_REGISTRATION = 'dynamic_registration'


@dataclass(frozen=True)
class Reference:
    """A discovered occurrence and the symbol it resolves to (if any)."""
    kind: ReferenceKind
    resolved_symbol: Optional[Union[MethodSymbol, MemberGroup]]
    location: SourceLocation
    node: Optional[Node] = field(default=None, repr=False, compare=False)
    unit: Optional[SourceUnit] = field(default=None, repr=False, compare=False)


_NODE_KINDS = {
    'call': ReferenceKind.DIRECT_CALL,
    'attribute': ReferenceKind.MEMBER_ACCESS,
    'identifier': ReferenceKind.IDENTIFIER,
    'lambda': ReferenceKind.DELEGATE_CAPTURE,
}

# Parent node types whose 'name' field is a binding, not a usage
_NAME_BINDERS = {
    'function_definition', 'class_definition', 'keyword_argument',
    'default_parameter', 'typed_default_parameter',
}

# Parents under which an identifier is never an expression
_NON_EXPRESSION_PARENTS = {
    'parameters', 'lambda_parameters', 'typed_parameter', 'dotted_name',
    'aliased_import', 'global_statement', 'nonlocal_statement',
    'list_splat_pattern', 'dictionary_splat_pattern',
}


def _same_node(left: Optional[Node], right: Node) -> bool:
    return (left is not None and left.type == right.type
            and left.start_byte == right.start_byte and left.end_byte == right.end_byte)


def is_reference_identifier(node: Node) -> bool:
    """True when an identifier is used as an expression.

    Definition names, parameters, keyword-argument names, import paths and the
    attribute slot of ``obj.attr`` are excluded.
    """
    parent = node.parent
    if parent is None:
        return True
    if parent.type == 'attribute':
        return not _same_node(parent.child_by_field_name('attribute'), node)
    if parent.type in _NAME_BINDERS:
        return not _same_node(parent.child_by_field_name('name'), node)
    return parent.type not in _NON_EXPRESSION_PARENTS


class ReferenceScanner:
    """Stateless, read-only traversal yielding Reference records.

    Safe to run concurrently over the same program; checks the cancellation
    token every CHECK_INTERVAL visited nodes.
    """

    CHECK_INTERVAL = 128

    def __init__(self, binder: Binder):
        self.binder = binder

    def scan(self, program: Program, cancellation: Optional[CancellationToken] = None) -> Iterator[Reference]:
        """Yield a Reference for every call, attribute, identifier and lambda.

        Args:
            program: Program to traverse
            cancellation: Optional token; OperationCancelled propagates to the caller

        Yields:
            Reference records in source order per unit
        """
        visited = 0
        for unit in program.units:
            stack = [unit.root]
            while stack:
                current = stack.pop()
                visited += 1
                if cancellation is not None and visited % self.CHECK_INTERVAL == 0:
                    cancellation.check()

                reference = self._reference_for(current, unit)
                if reference is not None:
                    yield reference

                stack.extend(reversed(current.children))

        if cancellation is not None:
            cancellation.check()

    def _reference_for(self, node: Node, unit: SourceUnit) -> Optional[Reference]:
        kind = _NODE_KINDS.get(node.type)
        if kind is None:
            return None
        if kind is ReferenceKind.IDENTIFIER and not is_reference_identifier(node):
            return None
        return Reference(
            kind=kind,
            resolved_symbol=self.binder.resolved_symbol_of(node, unit),
            location=location_of(node, unit.path),
            node=node,
            unit=unit,
        )
