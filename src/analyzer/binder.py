"""Binding service: declared symbols, reference resolution and constant folding.

Builds an immutable index of the program's classes once, then answers three
queries used by the scanner and the registration matcher:

- declared_symbol_of(node): the MethodSymbol a function definition declares
- resolved_symbol_of(node): the method a call/attribute/identifier/lambda denotes
- constant_value_of(node): compile-time value of an expression, if any

Receiver types are inferred the same way the reference tracker does it for
dead-symbol detection: ``self``/``cls``, ``super()``, class names, constructor
assignments, parameter annotations and ``self.attr = Cls()`` bindings. A
receiver that cannot be typed resolves to a MemberGroup (name-only match).
"""
import ast
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

import networkx as nx
from tree_sitter import Node

from .extractor import (
    decorator_names,
    enclosing,
    iter_class_methods,
    iter_classes,
    node_text,
    parameter_annotation,
    parameter_name,
    parameter_nodes,
)
from .program import Program, SourceUnit
from .symbols import MemberGroup, MethodKind, MethodSymbol, TypeRef


CONSTRUCTOR_NAMES = {'__init__', '__new__', '__init_subclass__', '__post_init__'}
DESTRUCTOR_NAMES = {'__del__'}
ACCESSOR_DUNDERS = {
    '__getattr__', '__getattribute__', '__setattr__', '__delattr__',
    '__get__', '__set__', '__delete__',
    '__getitem__', '__setitem__', '__delitem__',
}
PROPERTY_DECORATORS = {'property', 'cached_property', 'functools.cached_property', 'abc.abstractproperty'}
ACCESSOR_DECORATOR_SUFFIXES = ('.setter', '.getter', '.deleter')
OVERRIDE_DECORATORS = {'override', 'typing.override', 'typing_extensions.override'}
STATIC_DECORATORS = {'staticmethod'}
GENERIC_MARKERS = {'Generic', 'typing.Generic', 'Protocol', 'typing.Protocol'}

MODULE_SCOPE = -1
MAX_FOLD_DEPTH = 16

ResolvedSymbol = Union[MethodSymbol, MemberGroup]


@dataclass(frozen=True)
class ConstantValue:
    """Result of constant evaluation: ``has_value`` is False when not constant."""
    has_value: bool
    value: object = None


NO_CONSTANT = ConstantValue(False)


def method_kind(name: str, decorators: Tuple[str, ...]) -> MethodKind:
    """Classify a method by its name and decorators."""
    if name in CONSTRUCTOR_NAMES:
        return MethodKind.CONSTRUCTOR
    if name in DESTRUCTOR_NAMES:
        return MethodKind.OTHER
    for decorator in decorators:
        if decorator in PROPERTY_DECORATORS or decorator.endswith(ACCESSOR_DECORATOR_SUFFIXES):
            return MethodKind.ACCESSOR
    if name in ACCESSOR_DUNDERS:
        return MethodKind.ACCESSOR
    if name.startswith('__') and name.endswith('__') and len(name) > 4:
        return MethodKind.OPERATOR
    return MethodKind.ORDINARY


@dataclass
class ClassInfo:
    """Index entry for one class definition."""
    key: str  # module-qualified name, e.g. plugins.economics.Economics
    name: str  # qualified name within its module
    unit: SourceUnit
    node: Node = field(repr=False)
    bases: List[str] = field(default_factory=list)
    type_parameters: Tuple[str, ...] = ()
    methods: Dict[str, Node] = field(default_factory=dict, repr=False)
    constants: Dict[str, Node] = field(default_factory=dict, repr=False)
    attribute_types: Dict[str, str] = field(default_factory=dict)

    @property
    def simple_name(self) -> str:
        return self.name.rsplit('.', 1)[-1]

    @property
    def type_ref(self) -> TypeRef:
        return TypeRef(self.key, tuple(TypeRef(p) for p in self.type_parameters))


@dataclass(frozen=True)
class _Receiver:
    info: ClassInfo
    type_args: Tuple[TypeRef, ...] = ()
    skip_self: bool = False  # super() lookups start at the bases


def _collect_constants(block: Optional[Node]) -> Dict[str, Node]:
    """Names assigned exactly once at the top level of a block, mapped to their value node."""
    if block is None:
        return {}
    counts: Dict[str, int] = {}
    values: Dict[str, Node] = {}
    for statement in block.named_children:
        if statement.type != 'expression_statement':
            continue
        for assignment in statement.named_children:
            if assignment.type != 'assignment':
                continue
            left = assignment.child_by_field_name('left')
            right = assignment.child_by_field_name('right')
            if left is None or left.type != 'identifier' or right is None:
                continue
            name = node_text(left)
            counts[name] = counts.get(name, 0) + 1
            values[name] = right
    return {name: value for name, value in values.items() if counts[name] == 1}


class Binder:
    """Immutable binding service over one Program."""

    def __init__(self, program: Program):
        """Index every class, method, constant and typed variable in the program.

        Args:
            program: Parsed program (not mutated)
        """
        self.program = program

        self._classes: Dict[str, ClassInfo] = {}
        self._classes_by_unit: Dict[str, Dict[str, ClassInfo]] = {}
        self._classes_by_name: Dict[str, List[ClassInfo]] = {}
        self._class_by_node: Dict[Tuple[str, int], ClassInfo] = {}
        self._module_constants: Dict[str, Dict[str, Node]] = {}
        # (path, scope start byte) -> variable name -> annotation/constructor text
        self._scope_types: Dict[Tuple[str, int], Dict[str, str]] = {}
        # (path, class start byte) -> attribute -> type text
        self._attribute_types: Dict[Tuple[str, int], Dict[str, str]] = {}
        self._declared: Dict[Tuple[str, int], MethodSymbol] = {}
        self._mro: Dict[str, List[ClassInfo]] = {}

        # Program classes only: subclass key -> base key
        self.class_graph = nx.DiGraph()
        # Simple type names, external bases included: subclass -> base
        self.type_graph = nx.DiGraph()

        for unit in program.units:
            self._index_unit(unit)
        self._link_hierarchy()
        self._declare_methods()

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def _index_unit(self, unit: SourceUnit):
        self._module_constants[unit.path] = _collect_constants(unit.root)
        self._classes_by_unit[unit.path] = {}

        stack = [(unit.root, MODULE_SCOPE)]
        while stack:
            current, scope = stack.pop()
            if current.type == 'function_definition':
                scope = current.start_byte
                types = self._scope_types.setdefault((unit.path, scope), {})
                for parameter in parameter_nodes(current):
                    annotation = parameter_annotation(parameter)
                    if annotation:
                        types[parameter_name(parameter)] = annotation
            elif current.type == 'assignment':
                self._record_assignment(current, unit, scope)
            for child in current.children:
                stack.append((child, scope))

        for class_node, qualified_name in iter_classes(unit.root):
            self._index_class(unit, class_node, qualified_name)

    def _record_assignment(self, assignment: Node, unit: SourceUnit, scope: int):
        left = assignment.child_by_field_name('left')
        if left is None:
            return

        annotation = assignment.child_by_field_name('type')
        right = assignment.child_by_field_name('right')
        if annotation is not None:
            type_text = node_text(annotation)
        elif right is not None and right.type == 'call':
            type_text = node_text(right.child_by_field_name('function'))
        else:
            return

        if left.type == 'identifier':
            self._scope_types.setdefault((unit.path, scope), {})[node_text(left)] = type_text
        elif left.type == 'attribute':
            owner = left.child_by_field_name('object')
            if owner is None or owner.type != 'identifier' or node_text(owner) != 'self':
                return
            class_node = enclosing(assignment, ('class_definition',))
            if class_node is not None:
                attributes = self._attribute_types.setdefault((unit.path, class_node.start_byte), {})
                attributes[node_text(left.child_by_field_name('attribute'))] = type_text

    def _index_class(self, unit: SourceUnit, class_node: Node, qualified_name: str):
        bases: List[str] = []
        type_parameters: List[str] = []

        superclasses = class_node.child_by_field_name('superclasses')
        if superclasses is not None:
            for argument in superclasses.named_children:
                if argument.type in ('keyword_argument', 'comment', 'list_splat', 'dictionary_splat'):
                    continue
                if argument.type == 'subscript':
                    base = node_text(argument.child_by_field_name('value'))
                    if base in GENERIC_MARKERS:
                        type_parameters.extend(node_text(p) for p in argument.children_by_field_name('subscript'))
                    bases.append(base)
                else:
                    bases.append(node_text(argument))

        declared_parameters = class_node.child_by_field_name('type_parameters')
        if declared_parameters is not None:
            for parameter in declared_parameters.named_children:
                name = node_text(parameter).split(':', 1)[0].split('=', 1)[0].strip().lstrip('*')
                if name and name not in type_parameters:
                    type_parameters.append(name)

        info = ClassInfo(
            key=f"{unit.module}.{qualified_name}",
            name=qualified_name,
            unit=unit,
            node=class_node,
            bases=bases,
            type_parameters=tuple(type_parameters),
            constants=_collect_constants(class_node.child_by_field_name('body')),
            attribute_types=dict(self._attribute_types.get((unit.path, class_node.start_byte), {})),
        )
        for method_node in iter_class_methods(class_node):
            # Later definitions shadow earlier ones, as at runtime
            info.methods[node_text(method_node.child_by_field_name('name'))] = method_node

        self._classes[info.key] = info
        self._classes_by_unit[unit.path][qualified_name] = info
        self._classes_by_name.setdefault(info.simple_name, []).append(info)
        self._class_by_node[(unit.path, class_node.start_byte)] = info

    def _link_hierarchy(self):
        for candidates in self._classes_by_name.values():
            candidates.sort(key=lambda info: info.key)

        for info in self._classes.values():
            self.class_graph.add_node(info.key)
            self.type_graph.add_node(info.simple_name)
            for base in info.bases:
                self.type_graph.add_edge(info.simple_name, base.rsplit('.', 1)[-1])
                base_info = self._class_for_name(base, info.unit)
                if base_info is not None and base_info.key != info.key:
                    self.class_graph.add_edge(info.key, base_info.key)

        for info in self._classes.values():
            self._mro[info.key] = self._linearize(info)

    def _linearize(self, info: ClassInfo) -> List[ClassInfo]:
        """Depth-first, left-to-right base order without duplicates."""
        order: List[ClassInfo] = []
        seen = set()
        stack = [info]
        while stack:
            current = stack.pop()
            if current.key in seen:
                continue
            seen.add(current.key)
            order.append(current)
            bases = [self._classes[key] for key in self._ordered_bases(current)]
            stack.extend(reversed(bases))
        return order

    def _ordered_bases(self, info: ClassInfo) -> List[str]:
        keys = []
        for base in info.bases:
            base_info = self._class_for_name(base, info.unit)
            if base_info is not None and base_info.key != info.key and base_info.key not in keys:
                keys.append(base_info.key)
        return keys

    def _declare_methods(self):
        for info in self._classes.values():
            for method_node in iter_class_methods(info.node):
                symbol = self._build_symbol(info, method_node)
                self._declared[(info.unit.path, method_node.start_byte)] = symbol

    def _build_symbol(self, info: ClassInfo, method_node: Node) -> MethodSymbol:
        name = node_text(method_node.child_by_field_name('name'))
        decorators = decorator_names(method_node)
        parameters = parameter_nodes(method_node)
        if parameters and not STATIC_DECORATORS.intersection(decorators):
            parameters = parameters[1:]

        return MethodSymbol(
            name=name,
            parameter_types=tuple(TypeRef.parse(parameter_annotation(p)) for p in parameters),
            containing_type=info.type_ref,
            is_override=self._is_override(info, name, decorators),
            kind=method_kind(name, decorators),
        )

    def _is_override(self, info: ClassInfo, name: str, decorators: Tuple[str, ...]) -> bool:
        if OVERRIDE_DECORATORS.intersection(decorators):
            return True
        for ancestor in nx.descendants(self.class_graph, info.key):
            if name in self._classes[ancestor].methods:
                return True
        return False

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _class_for_name(self, name: str, unit: SourceUnit) -> Optional[ClassInfo]:
        if not name:
            return None
        local = self._classes_by_unit.get(unit.path, {})
        if name in local:
            return local[name]
        if name in self._classes:
            return self._classes[name]
        candidates = self._classes_by_name.get(name.rsplit('.', 1)[-1])
        return candidates[0] if candidates else None

    def _owner_class(self, function_node: Node, unit: SourceUnit) -> Optional[ClassInfo]:
        """Class a function is declared in directly, or None."""
        container = function_node.parent
        if container is not None and container.type == 'decorated_definition':
            container = container.parent
        if container is None or container.type != 'block':
            return None
        class_node = container.parent
        if class_node is None or class_node.type != 'class_definition':
            return None
        return self._class_by_node.get((unit.path, class_node.start_byte))

    def _receiver_parameter(self, function_node: Node) -> Optional[str]:
        if STATIC_DECORATORS.intersection(decorator_names(function_node)):
            return None
        parameters = parameter_nodes(function_node)
        return parameter_name(parameters[0]) if parameters else None

    def _enclosing_method_owner(self, node: Node, unit: SourceUnit) -> Tuple[Optional[ClassInfo], Optional[str]]:
        """Innermost enclosing method's class and its receiver parameter name."""
        function_node = enclosing(node, ('function_definition',))
        while function_node is not None:
            owner = self._owner_class(function_node, unit)
            if owner is not None:
                return owner, self._receiver_parameter(function_node)
            function_node = enclosing(function_node, ('function_definition',))
        return None, None

    def _scope_type(self, node: Node, name: str, unit: SourceUnit) -> Optional[str]:
        function_node = enclosing(node, ('function_definition',))
        while function_node is not None:
            found = self._scope_types.get((unit.path, function_node.start_byte), {}).get(name)
            if found:
                return found
            function_node = enclosing(function_node, ('function_definition',))
        return self._scope_types.get((unit.path, MODULE_SCOPE), {}).get(name)

    def _receiver_from_type_text(self, type_text: str, unit: SourceUnit) -> Optional[_Receiver]:
        type_ref = TypeRef.parse(type_text)
        info = self._class_for_name(type_ref.name, unit)
        if info is None:
            return None
        return _Receiver(info, type_ref.args)

    def _infer_receiver(self, node: Optional[Node], unit: SourceUnit) -> Optional[_Receiver]:
        """Infer the program class an expression evaluates to (instance or class object)."""
        if node is None:
            return None

        if node.type == 'parenthesized_expression':
            inner = [child for child in node.named_children if child.type != 'comment']
            return self._infer_receiver(inner[0], unit) if inner else None

        if node.type == 'identifier':
            name = node_text(node)
            owner, receiver_name = self._enclosing_method_owner(node, unit)
            if owner is not None and name == receiver_name:
                return _Receiver(owner)
            type_text = self._scope_type(node, name, unit)
            if type_text:
                return self._receiver_from_type_text(type_text, unit)
            info = self._class_for_name(name, unit)
            return _Receiver(info) if info is not None else None

        if node.type == 'call':
            function = node.child_by_field_name('function')
            if function is not None and function.type == 'identifier' and node_text(function) == 'super':
                owner, _ = self._enclosing_method_owner(node, unit)
                return _Receiver(owner, skip_self=True) if owner is not None else None
            # Constructor call: Cls(...) or Box[int](...)
            if function is not None and function.type in ('identifier', 'attribute', 'subscript'):
                receiver = self._infer_receiver(function, unit)
                if receiver is not None and not receiver.skip_self:
                    return receiver
            return None

        if node.type == 'subscript':
            receiver = self._infer_receiver(node.child_by_field_name('value'), unit)
            if receiver is None:
                return None
            arguments = tuple(TypeRef.parse(node_text(s)) for s in node.children_by_field_name('subscript'))
            return _Receiver(receiver.info, arguments)

        if node.type == 'attribute':
            attribute = node_text(node.child_by_field_name('attribute'))
            inner = self._infer_receiver(node.child_by_field_name('object'), unit)
            if inner is not None:
                for info in self._mro.get(inner.info.key, [inner.info]):
                    if attribute in info.attribute_types:
                        return self._receiver_from_type_text(info.attribute_types[attribute], info.unit)
                return None
            # module-qualified class reference: plugins.Economics
            info = self._class_for_name(node_text(node), unit)
            return _Receiver(info) if info is not None else None

        return None

    def _lookup_method(self, receiver: _Receiver, name: str) -> Optional[MethodSymbol]:
        order = self._mro.get(receiver.info.key, [receiver.info])
        if receiver.skip_self:
            order = order[1:]
        for info in order:
            method_node = info.methods.get(name)
            if method_node is None:
                continue
            symbol = self._declared[(info.unit.path, method_node.start_byte)]
            if receiver.type_args and info is receiver.info and info.type_parameters:
                substitutions = dict(zip(info.type_parameters, receiver.type_args))
                return symbol.instantiate(TypeRef(info.key, receiver.type_args), substitutions)
            return symbol
        return None

    # ------------------------------------------------------------------
    # Binding service API
    # ------------------------------------------------------------------

    def declared_symbol_of(self, node: Node, unit: Optional[SourceUnit] = None) -> Optional[MethodSymbol]:
        """MethodSymbol declared by a function definition, or None outside a class.

        Args:
            node: function_definition or decorated_definition node
            unit: Owning unit; when omitted every unit is tried and an
                ambiguous match yields None
        """
        if node.type == 'decorated_definition':
            node = node.child_by_field_name('definition')
            if node is None:
                return None
        name = node_text(node.child_by_field_name('name'))
        paths = [unit.path] if unit is not None else [u.path for u in self.program.units]
        found = [
            symbol for symbol in (self._declared.get((path, node.start_byte)) for path in paths)
            if symbol is not None and symbol.name == name
        ]
        # Without a unit, equal offsets in different files are ambiguous
        return found[0] if len(found) == 1 else None

    def resolved_symbol_of(self, node: Optional[Node], unit: SourceUnit) -> Optional[ResolvedSymbol]:
        """Method denoted by a call, attribute, identifier or forwarding lambda."""
        if node is None:
            return None

        if node.type == 'call':
            function = node.child_by_field_name('function')
            if function is not None and function.type in ('identifier', 'attribute'):
                return self.resolved_symbol_of(function, unit)
            return None

        if node.type == 'attribute':
            name = node_text(node.child_by_field_name('attribute'))
            receiver = self._infer_receiver(node.child_by_field_name('object'), unit)
            if receiver is None:
                return MemberGroup(name)
            # Not declared along the MRO: may be supplied by a subclass (template method)
            return self._lookup_method(receiver, name) or MemberGroup(name)

        if node.type == 'identifier':
            # Bare method names are only visible inside their class body
            scope = enclosing(node, ('function_definition', 'lambda', 'class_definition'))
            if scope is None or scope.type != 'class_definition':
                return None
            info = self._class_by_node.get((unit.path, scope.start_byte))
            if info is None:
                return None
            method_node = info.methods.get(node_text(node))
            if method_node is None:
                return None
            return self._declared.get((unit.path, method_node.start_byte))

        if node.type == 'lambda':
            return self.resolved_symbol_of(node.child_by_field_name('body'), unit)

        if node.type == 'parenthesized_expression':
            inner = [child for child in node.named_children if child.type != 'comment']
            return self.resolved_symbol_of(inner[0], unit) if inner else None

        return None

    def constant_value_of(self, node: Optional[Node], unit: SourceUnit, _depth: int = 0) -> ConstantValue:
        """Evaluate an expression as a compile-time constant.

        Folds string/number literals, implicit and ``+`` concatenation,
        single-assignment module and class constants, ``Cls.CONST``,
        ``self.CONST`` and ``<method>.__name__``.
        """
        if node is None or _depth > MAX_FOLD_DEPTH:
            return NO_CONSTANT
        depth = _depth + 1

        if node.type == 'string':
            return self._string_constant(node)

        if node.type == 'concatenated_string':
            parts = [self.constant_value_of(child, unit, depth) for child in node.named_children if child.type == 'string']
            if parts and all(p.has_value and isinstance(p.value, str) for p in parts):
                return ConstantValue(True, ''.join(p.value for p in parts))
            return NO_CONSTANT

        if node.type in ('integer', 'float', 'true', 'false', 'none'):
            try:
                return ConstantValue(True, ast.literal_eval(node_text(node)))
            except (ValueError, SyntaxError):
                return NO_CONSTANT

        if node.type == 'parenthesized_expression':
            inner = [child for child in node.named_children if child.type != 'comment']
            return self.constant_value_of(inner[0], unit, depth) if len(inner) == 1 else NO_CONSTANT

        if node.type == 'binary_operator':
            if node_text(node.child_by_field_name('operator')) != '+':
                return NO_CONSTANT
            left = self.constant_value_of(node.child_by_field_name('left'), unit, depth)
            right = self.constant_value_of(node.child_by_field_name('right'), unit, depth)
            if not (left.has_value and right.has_value):
                return NO_CONSTANT
            if isinstance(left.value, str) and isinstance(right.value, str):
                return ConstantValue(True, left.value + right.value)
            numeric = (int, float)
            if (isinstance(left.value, numeric) and isinstance(right.value, numeric)
                    and not isinstance(left.value, bool) and not isinstance(right.value, bool)):
                return ConstantValue(True, left.value + right.value)
            return NO_CONSTANT

        if node.type == 'identifier':
            name = node_text(node)
            scope = enclosing(node, ('function_definition', 'lambda', 'class_definition'))
            if scope is not None and scope.type == 'class_definition':
                info = self._class_by_node.get((unit.path, scope.start_byte))
                if info is not None and name in info.constants:
                    return self.constant_value_of(info.constants[name], unit, depth)
            value = self._module_constants.get(unit.path, {}).get(name)
            return self.constant_value_of(value, unit, depth) if value is not None else NO_CONSTANT

        if node.type == 'attribute':
            return self._attribute_constant(node, unit, depth)

        return NO_CONSTANT

    def _attribute_constant(self, node: Node, unit: SourceUnit, depth: int) -> ConstantValue:
        attribute = node_text(node.child_by_field_name('attribute'))
        owner = node.child_by_field_name('object')

        if attribute == '__name__':
            resolved = self.resolved_symbol_of(owner, unit)
            if resolved is not None:
                return ConstantValue(True, resolved.name)
            if owner is not None and owner.type in ('identifier', 'attribute'):
                info = self._class_for_name(node_text(owner), unit)
                if info is not None:
                    return ConstantValue(True, info.simple_name)
            return NO_CONSTANT

        receiver = self._infer_receiver(owner, unit)
        if receiver is None:
            return NO_CONSTANT
        for info in self._mro.get(receiver.info.key, [receiver.info]):
            if attribute in info.constants:
                return self.constant_value_of(info.constants[attribute], info.unit, depth)
        return NO_CONSTANT

    @staticmethod
    def _string_constant(node: Node) -> ConstantValue:
        if any(child.type == 'interpolation' for child in node.children):
            return NO_CONSTANT
        text = node_text(node)
        quote = min((i for i in (text.find('"'), text.find("'")) if i >= 0), default=-1)
        if quote < 0:
            return NO_CONSTANT
        prefix = text[:quote]
        if 'f' in prefix.lower():
            # f-string without placeholders is a plain literal
            text = prefix.replace('f', '').replace('F', '') + text[quote:]
        try:
            return ConstantValue(True, ast.literal_eval(text))
        except (ValueError, SyntaxError):
            return NO_CONSTANT
