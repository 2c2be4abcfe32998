"""Method declaration extraction from parsed syntax trees."""
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, FrozenSet, Iterator, List, Optional, Tuple
from tree_sitter import Node

from .program import Program, SourceUnit
from .skip_policy import AttributeCatalog, AttributeKind
from .symbols import MethodSymbol, SourceLocation

if TYPE_CHECKING:
    from .binder import Binder


# Parameter node types that declare a positional/keyword parameter
_PARAMETER_TYPES = {'identifier', 'typed_parameter', 'default_parameter', 'typed_default_parameter'}


def node_text(node: Optional[Node]) -> str:
    """Decode a node's source text ('' for None)."""
    if node is None:
        return ''
    return node.text.decode('utf-8', errors='ignore')


def location_of(node: Node, path: str) -> SourceLocation:
    return SourceLocation(path=path, line=node.start_point[0] + 1, column=node.start_point[1] + 1)


def enclosing(node: Node, types: Tuple[str, ...]) -> Optional[Node]:
    """Nearest ancestor whose type is in ``types``."""
    current = node.parent
    while current is not None:
        if current.type in types:
            return current
        current = current.parent
    return None


def decorator_nodes(definition: Node) -> List[Node]:
    """Decorators attached to a function/class definition."""
    parent = definition.parent
    if parent is None or parent.type != 'decorated_definition':
        return []
    return [child for child in parent.children if child.type == 'decorator']


def decorator_name(decorator: Node) -> str:
    """Dotted decorator name without call arguments (``@cmd.ChatCommand("x")`` -> ``cmd.ChatCommand``)."""
    expressions = [child for child in decorator.named_children if child.type != 'comment']
    if not expressions:
        return ''
    expression = expressions[0]
    if expression.type == 'call':
        expression = expression.child_by_field_name('function')
    return node_text(expression)


def decorator_names(definition: Node) -> Tuple[str, ...]:
    return tuple(name for name in (decorator_name(d) for d in decorator_nodes(definition)) if name)


def iter_class_methods(class_node: Node) -> Iterator[Node]:
    """Function definitions declared directly in a class body."""
    body = class_node.child_by_field_name('body')
    if body is None:
        return
    for child in body.named_children:
        if child.type == 'function_definition':
            yield child
        elif child.type == 'decorated_definition':
            definition = child.child_by_field_name('definition')
            if definition is not None and definition.type == 'function_definition':
                yield definition


def iter_classes(root: Node) -> Iterator[Tuple[Node, str]]:
    """Every class definition in a tree with its dotted qualified name.

    Classes nested in other classes are qualified by their outer class
    (``Outer.Inner``); classes nested in functions keep their plain name.
    """
    stack: List[Tuple[Node, Optional[str]]] = [(root, None)]
    while stack:
        current, outer_class = stack.pop()
        next_outer = outer_class
        if current.type == 'class_definition':
            name = node_text(current.child_by_field_name('name'))
            qualified = f"{outer_class}.{name}" if outer_class else name
            yield current, qualified
            next_outer = qualified
        elif current.type == 'function_definition':
            next_outer = None
        for child in reversed(current.children):
            stack.append((child, next_outer))


def parameter_nodes(function_node: Node) -> List[Node]:
    """Named positional/keyword parameters, excluding ``*args``/``**kwargs`` and separators."""
    parameters = function_node.child_by_field_name('parameters')
    if parameters is None:
        return []
    result = []
    for child in parameters.named_children:
        if child.type not in _PARAMETER_TYPES:
            continue
        if child.type == 'typed_parameter':
            # typed *args / **kwargs
            first = child.named_children[0] if child.named_children else None
            if first is not None and first.type != 'identifier':
                continue
        result.append(child)
    return result


def parameter_name(parameter: Node) -> str:
    if parameter.type == 'identifier':
        return node_text(parameter)
    name = parameter.child_by_field_name('name')
    if name is None and parameter.named_children:
        name = parameter.named_children[0]
    return node_text(name)


def parameter_annotation(parameter: Node) -> Optional[str]:
    if parameter.type in ('typed_parameter', 'typed_default_parameter'):
        annotation = parameter.child_by_field_name('type')
        if annotation is not None:
            return node_text(annotation)
    return None


@dataclass(frozen=True)
class MethodDeclaration:
    """A method declaration site with its normalized decorator kinds."""
    symbol: Optional[MethodSymbol]
    location: SourceLocation
    attributes: FrozenSet[AttributeKind] = frozenset()
    decorators: Tuple[str, ...] = ()
    node: Optional[Node] = field(default=None, repr=False, compare=False)

    @property
    def name(self) -> str:
        if self.symbol is not None:
            return self.symbol.name
        return node_text(self.node.child_by_field_name('name')) if self.node is not None else ''


class DeclarationExtractor:
    """Extract method declarations (class-level functions) from a program."""

    def __init__(self, binder: 'Binder', catalog: Optional[AttributeCatalog] = None):
        """Initialize extractor.

        Args:
            binder: Binding service used to build each declaration's symbol
            catalog: Decorator-name catalog (defaults to the built-in table)
        """
        self.binder = binder
        self.catalog = catalog or AttributeCatalog.default()

    def extract(self, program: Program) -> List[MethodDeclaration]:
        """Extract every method declaration in source order.

        Args:
            program: Parsed program

        Returns:
            List of MethodDeclaration, ordered by path then position
        """
        declarations = []
        for unit in program.units:
            for class_node, _ in iter_classes(unit.root):
                for method_node in iter_class_methods(class_node):
                    declarations.append(self._declaration_for(method_node, unit))

        declarations.sort(key=lambda d: (d.location.path, d.location.line, d.location.column))
        return declarations

    def _declaration_for(self, method_node: Node, unit: SourceUnit) -> MethodDeclaration:
        names = decorator_names(method_node)
        name_node = method_node.child_by_field_name('name') or method_node
        return MethodDeclaration(
            symbol=self.binder.declared_symbol_of(method_node, unit),
            location=location_of(name_node, unit.path),
            attributes=self.catalog.kinds_for(names),
            decorators=names,
            node=method_node,
        )
