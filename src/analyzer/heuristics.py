"""Name-based heuristics for unused methods."""
from .symbols import MethodSymbol


class CommandHeuristics:
    """Flags unused methods that were probably meant to be command handlers.

    Decorated commands never reach this check: the skip policy already
    exempted them.
    """

    COMMAND_MARKER = 'command'

    def looks_like_command(self, symbol: MethodSymbol) -> bool:
        return self.COMMAND_MARKER in symbol.name.lower()
