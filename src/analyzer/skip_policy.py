"""Pre-filter that exempts declarations from unused-method analysis."""
from enum import Enum
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, Optional

from .symbols import MethodKind

if TYPE_CHECKING:
    from .extractor import MethodDeclaration
    from .hook_matcher import HookMatcher


class AttributeKind(Enum):
    """Canonical decorator kinds recognised by the catalog."""
    COMMAND = 'command'
    CHAT_COMMAND = 'chat_command'
    CONSOLE_COMMAND = 'console_command'
    HOOK_METHOD = 'hook_method'


# Declarations carrying any of these are invoked by the host, never by code
EXEMPT_ATTRIBUTES = frozenset({
    AttributeKind.COMMAND,
    AttributeKind.CHAT_COMMAND,
    AttributeKind.CONSOLE_COMMAND,
    AttributeKind.HOOK_METHOD,
})

_ATTRIBUTE_SUFFIXES = ('_attribute', 'Attribute')


class AttributeCatalog:
    """Maps raw decorator names to canonical AttributeKind values.

    ``ChatCommand``, ``ChatCommandAttribute``, ``chat_command`` and
    ``oxide.ChatCommand`` all normalize to ``chatcommand``.
    """

    DEFAULT_TABLE = {
        'command': AttributeKind.COMMAND,
        'chatcommand': AttributeKind.CHAT_COMMAND,
        'consolecommand': AttributeKind.CONSOLE_COMMAND,
        'hookmethod': AttributeKind.HOOK_METHOD,
    }

    def __init__(self, table: Optional[Dict[str, AttributeKind]] = None):
        source = self.DEFAULT_TABLE if table is None else table
        self._table = {self.normalize(name): kind for name, kind in source.items()}

    @classmethod
    def default(cls) -> 'AttributeCatalog':
        return cls()

    @staticmethod
    def normalize(raw_name: str) -> str:
        """Terminal segment, conventional suffix stripped, lower-cased, no underscores."""
        name = raw_name.split('(', 1)[0].strip().rsplit('.', 1)[-1]
        for suffix in _ATTRIBUTE_SUFFIXES:
            if name.endswith(suffix) and len(name) > len(suffix):
                name = name[:-len(suffix)]
                break
        return name.replace('_', '').lower()

    def kind_of(self, raw_name: str) -> Optional[AttributeKind]:
        return self._table.get(self.normalize(raw_name))

    def kinds_for(self, raw_names: Iterable[str]) -> FrozenSet[AttributeKind]:
        kinds = (self.kind_of(name) for name in raw_names)
        return frozenset(kind for kind in kinds if kind is not None)


class SkipPolicy:
    """Decide which declarations are never reported."""

    def __init__(self, hook_matcher: 'HookMatcher', exempt_attributes: FrozenSet[AttributeKind] = EXEMPT_ATTRIBUTES):
        self.hook_matcher = hook_matcher
        self.exempt_attributes = exempt_attributes

    def should_skip(self, declaration: 'MethodDeclaration') -> bool:
        """Return True when the declaration is exempt from analysis.

        Exempt: unbound declarations, non-ordinary kinds (constructors,
        accessors, operators), decorator-marked commands/hooks, and signatures
        already recognised by a hook registry.
        """
        return self.reason(declaration) is not None

    def reason(self, declaration: 'MethodDeclaration') -> Optional[str]:
        """Human-readable exemption reason, or None when the method is analyzed."""
        symbol = declaration.symbol
        if symbol is None:
            return "unbound declaration"

        if symbol.kind != MethodKind.ORDINARY:
            return f"{symbol.kind.value} method"

        marked = declaration.attributes & self.exempt_attributes
        if marked:
            kinds = ', '.join(sorted(kind.value for kind in marked))
            return f"decorated ({kinds})"

        if self.hook_matcher.is_hook(symbol):
            return "exact hook signature"

        if self.hook_matcher.is_known_hook(symbol):
            return "known hook"

        return None
