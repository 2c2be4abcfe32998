"""Dynamic registration matcher.

Commands registered by name are invisible to ordinary reference scanning::

    cmd.AddChatCommand("help", self, "ChatHelp")
    cmd.AddChatCommand("help", self, lambda arg: self.ChatHelp(arg))
    cmd.AddConsoleCommand("shop.buy", self, self.ConsoleBuy)

The third positional argument designates the target method.
"""
from typing import List, Optional

from tree_sitter import Node

from .binder import Binder
from .extractor import node_text
from .program import SourceUnit
from .symbols import MethodSymbol, symbols_match


REGISTRATION_APIS = frozenset({
    'AddConsoleCommand',
    'AddChatCommand',
    'add_console_command',
    'add_chat_command',
})

TARGET_ARGUMENT_INDEX = 2

_NON_POSITIONAL = {'keyword_argument', 'list_splat', 'dictionary_splat', 'comment'}


def callee_name(call: Node) -> str:
    """Terminal name of the invoked function (``cmd.AddChatCommand`` -> ``AddChatCommand``)."""
    function = call.child_by_field_name('function')
    if function is None:
        return ''
    if function.type == 'attribute':
        return node_text(function.child_by_field_name('attribute'))
    if function.type == 'identifier':
        return node_text(function)
    return ''


def positional_arguments(call: Node) -> List[Node]:
    arguments = call.child_by_field_name('arguments')
    if arguments is None or arguments.type != 'argument_list':
        return []
    return [child for child in arguments.named_children if child.type not in _NON_POSITIONAL]


class RegistrationMatcher:
    """Resolve name-based registration calls to their target method."""

    def __init__(self, binder: Binder, apis: frozenset = REGISTRATION_APIS):
        self.binder = binder
        self.apis = apis

    def target_argument(self, call: Node) -> Optional[Node]:
        """The argument designating the registered method, or None if not a registration."""
        if call.type != 'call' or callee_name(call) not in self.apis:
            return None
        arguments = positional_arguments(call)
        if len(arguments) <= TARGET_ARGUMENT_INDEX:
            return None
        return arguments[TARGET_ARGUMENT_INDEX]

    def matches(self, call: Node, unit: SourceUnit, method: MethodSymbol) -> bool:
        """True when this call registers ``method``.

        Strategies, in order: constant method name, single-parameter
        forwarding lambda, direct method reference.
        """
        argument = self.target_argument(call)
        if argument is None:
            return False

        constant = self.binder.constant_value_of(argument, unit)
        if constant.has_value and isinstance(constant.value, str) and constant.value == method.name:
            return True

        if argument.type == 'lambda':
            if self._lambda_arity(argument) == 1:
                forwarded = self.binder.resolved_symbol_of(argument.child_by_field_name('body'), unit)
                if symbols_match(forwarded, method):
                    return True
            return False

        return symbols_match(self.binder.resolved_symbol_of(argument, unit), method)

    @staticmethod
    def _lambda_arity(lambda_node: Node) -> int:
        parameters = lambda_node.child_by_field_name('parameters')
        if parameters is None:
            return 0
        return len([child for child in parameters.named_children if child.type != 'comment'])
