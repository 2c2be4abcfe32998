"""Binder: declared symbols, receiver inference and constant folding."""
import pytest

from src.analyzer.symbols import MemberGroup, MethodKind, TypeRef


PLUGIN_SOURCE = '''
PREFIX = "Chat"
GREETING = "Hel" "lo"

class Base:
    def Greet(self):
        pass

class Plugin(Base):
    SUFFIX = "Help"
    NAME = PREFIX + SUFFIX

    def __init__(self):
        self.helper = Helper()

    def Greet(self):
        pass

    def ChatHelp(self, player: BasePlayer, args: list[str]):
        pass

    @property
    def Title(self):
        return "x"

    def __eq__(self, other):
        return True

    def __del__(self):
        pass

    @staticmethod
    def Util(value: int):
        pass

    def Run(self, other: "Helper"):
        self.helper.Assist()
        self.Greet()
        super().Greet()
        unknown.Greet()
        other.Assist()
        Helper().Assist()
        label = self.NAME
        named = self.ChatHelp.__name__
        typed = f"Cmd{self.SUFFIX}"
        plain = f"plain"

class Helper:
    def Assist(self):
        pass
'''


@pytest.fixture
def session(make_session):
    return make_session(PLUGIN_SOURCE)


def test_declared_parameter_types_skip_receiver(session, declaration_of):
    symbol = declaration_of(session, "Plugin.ChatHelp").symbol
    assert symbol.parameter_types == (TypeRef("BasePlayer"), TypeRef("list", (TypeRef("str"),)))
    assert symbol.containing_type == TypeRef("plugin.Plugin")


def test_staticmethod_keeps_first_parameter(session, declaration_of):
    symbol = declaration_of(session, "Plugin.Util").symbol
    assert symbol.parameter_types == (TypeRef("int"),)
    assert symbol.kind is MethodKind.ORDINARY


@pytest.mark.parametrize("display_name,kind", [
    ("Plugin.__init__", MethodKind.CONSTRUCTOR),
    ("Plugin.Title", MethodKind.ACCESSOR),
    ("Plugin.__eq__", MethodKind.OPERATOR),
    ("Plugin.__del__", MethodKind.OTHER),
    ("Plugin.Greet", MethodKind.ORDINARY),
])
def test_method_kinds(session, declaration_of, display_name, kind):
    assert declaration_of(session, display_name).symbol.kind is kind


def test_override_detection(session, declaration_of):
    assert declaration_of(session, "Plugin.Greet").symbol.is_override
    assert not declaration_of(session, "Base.Greet").symbol.is_override
    assert not declaration_of(session, "Plugin.ChatHelp").symbol.is_override


def test_override_decorator(make_session, declaration_of):
    session = make_session('''
    from typing import override

    class Plugin(ExternalBase):
        @override
        def OnTick(self):
            pass
    ''')
    assert declaration_of(session, "Plugin.OnTick").symbol.is_override


def test_class_graph_links_program_classes(session):
    assert session.binder.class_graph.has_edge("plugin.Plugin", "plugin.Base")
    assert session.binder.type_graph.has_edge("Plugin", "Base")


@pytest.mark.parametrize("call_text,expected", [
    ("self.helper.Assist()", "Helper.Assist"),
    ("self.Greet()", "Plugin.Greet"),
    ("super().Greet()", "Base.Greet"),
    ("other.Assist()", "Helper.Assist"),
    ("Helper().Assist()", "Helper.Assist"),
])
def test_resolves_typed_receivers(session, find_node, declaration_of, call_text, expected):
    node, unit = find_node(session.program, 'call', call_text)
    assert session.binder.resolved_symbol_of(node, unit) == declaration_of(session, expected).symbol


def test_unknown_receiver_resolves_to_member_group(session, find_node):
    node, unit = find_node(session.program, 'call', 'unknown.Greet()')
    assert session.binder.resolved_symbol_of(node, unit) == MemberGroup("Greet")


def test_generic_instantiation_resolves_to_instantiated_symbol(make_session, find_node, declaration_of):
    session = make_session('''
    from typing import Generic, TypeVar

    T = TypeVar("T")

    class Box(Generic[T]):
        def Put(self, item: T):
            pass

    class User:
        def Run(self):
            Box[int]().Put(1)
    ''')
    declared = declaration_of(session, "Box.Put").symbol
    node, unit = find_node(session.program, 'call', 'Box[int]().Put(1)')
    resolved = session.binder.resolved_symbol_of(node, unit)

    assert resolved != declared
    assert resolved.parameter_types == (TypeRef("int"),)
    assert resolved.original_definition == declared


@pytest.mark.parametrize("node_type,text,value", [
    ('binary_operator', 'PREFIX + SUFFIX', "ChatHelp"),
    ('concatenated_string', '"Hel" "lo"', "Hello"),
    ('attribute', 'self.NAME', "ChatHelp"),
    ('attribute', 'self.ChatHelp.__name__', "ChatHelp"),
    ('string', 'f"plain"', "plain"),
])
def test_constant_folding(session, find_node, node_type, text, value):
    node, unit = find_node(session.program, node_type, text)
    folded = session.binder.constant_value_of(node, unit)
    assert folded.has_value
    assert folded.value == value


def test_interpolated_string_is_not_constant(session, find_node):
    node, unit = find_node(session.program, 'string', 'f"Cmd{self.SUFFIX}"')
    assert not session.binder.constant_value_of(node, unit).has_value


def test_reassigned_name_is_not_constant(make_session, find_node):
    session = make_session('''
    NAME = "First"
    NAME = "Second"
    value = NAME + ""
    ''')
    node, unit = find_node(session.program, 'binary_operator', 'NAME + ""')
    assert not session.binder.constant_value_of(node, unit).has_value


def test_member_missing_from_receiver_mro_falls_back_to_member_group(make_session, find_node):
    session = make_session('''
    class Base:
        def Run(self):
            self.Step()

    class Impl(Base):
        def Step(self):
            pass
    ''')
    node, unit = find_node(session.program, 'call', 'self.Step()')
    assert session.binder.resolved_symbol_of(node, unit) == MemberGroup("Step")


def test_declared_symbol_lookup_is_per_unit(make_session):
    session = make_session({
        'a.py': 'class Alpha:\n    def Foo(self):\n        pass\n',
        'b.py': 'class Gamma:\n    def Foo(self):\n        pass\n',
    })
    gamma = session.program.units[1]
    method_node = gamma.root.children[0].child_by_field_name('body').children[0]

    assert session.binder.declared_symbol_of(method_node, gamma).display_name == "Gamma.Foo"
    # Identical offsets in two files cannot be told apart without the unit
    assert session.binder.declared_symbol_of(method_node) is None
