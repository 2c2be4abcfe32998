"""Decorator normalization and analysis exemptions."""
import pytest

from src.analyzer.hook_registry import HookRegistries
from src.analyzer.skip_policy import AttributeCatalog, AttributeKind


@pytest.mark.parametrize("raw,kind", [
    ("ChatCommand", AttributeKind.CHAT_COMMAND),
    ("ChatCommandAttribute", AttributeKind.CHAT_COMMAND),
    ("chat_command", AttributeKind.CHAT_COMMAND),
    ("oxide.ChatCommand", AttributeKind.CHAT_COMMAND),
    ('ChatCommand("help")', AttributeKind.CHAT_COMMAND),
    ("console_command_attribute", AttributeKind.CONSOLE_COMMAND),
    ("Command", AttributeKind.COMMAND),
    ("HookMethod", AttributeKind.HOOK_METHOD),
    ("staticmethod", None),
    ("Attribute", None),
])
def test_catalog_normalization(raw, kind):
    assert AttributeCatalog.default().kind_of(raw) is kind


def test_custom_catalog_table():
    catalog = AttributeCatalog({'Subscribe': AttributeKind.HOOK_METHOD})
    assert catalog.kinds_for(["subscribe", "property"]) == frozenset({AttributeKind.HOOK_METHOD})
    assert catalog.kind_of("ChatCommand") is None


SKIP_SOURCE = '''
class Plugin:
    def __init__(self):
        pass

    @property
    def Title(self):
        return ""

    def __str__(self):
        return ""

    @ChatCommandAttribute("help")
    def ShowHelp(self, player, command, args):
        pass

    @oxide.console_command("shop.buy")
    def Buy(self, arg):
        pass

    def OnPlayerChat(self, player: BasePlayer, message: str):
        pass

    def OnServerInitialized(self):
        pass

    def Orphan(self, value: int):
        pass


def module_helper():
    pass
'''


@pytest.fixture
def session(make_session):
    registries = HookRegistries.from_entries(
        builtin=[
            {"name": "OnPlayerChat", "parameters": ["BasePlayer", "str"]},
            {"name": "OnServerInitialized", "parameters": ["bool"]},
        ],
    )
    return make_session(SKIP_SOURCE, registries)


@pytest.mark.parametrize("display_name,reason", [
    ("Plugin.__init__", "constructor method"),
    ("Plugin.Title", "accessor method"),
    ("Plugin.__str__", "operator method"),
    ("Plugin.ShowHelp", "decorated (chat_command)"),
    ("Plugin.Buy", "decorated (console_command)"),
    ("Plugin.OnPlayerChat", "exact hook signature"),
    ("Plugin.OnServerInitialized", "known hook"),
])
def test_skip_reasons(session, declaration_of, display_name, reason):
    declaration = declaration_of(session, display_name)
    assert session.pipeline.skip_policy.reason(declaration) == reason
    assert session.pipeline.skip_policy.should_skip(declaration)


def test_ordinary_method_is_analyzed(session, declaration_of):
    declaration = declaration_of(session, "Plugin.Orphan")
    assert session.pipeline.skip_policy.reason(declaration) is None


def test_module_functions_are_not_declarations(session):
    assert "module_helper" not in [d.name for d in session.declarations]
