"""Message templates for unused-method findings."""
from typing import List

from ..analyzer.hook_registry import HookOrigin, SimilarityCandidate
from ..analyzer.pipeline import Finding, FindingVariant


DIAGNOSTIC_ID = "HJ003"
TITLE = "Unused method detected"
DESCRIPTION = "Methods should be used or removed to maintain clean code."

MESSAGE_FORMAT = "Method '{0}' is never used"

MESSAGE_FORMAT_WITH_HOOKS = (
    "Method '{0}' is never used.\n"
    "If you intended this to be a hook, no matching hook was found.\n"
    "Similar hooks that might match: {1}"
)

MESSAGE_FORMAT_COMMAND = (
    "Method '{0}' is never used.\n"
    "If you intended this to be a command, here are the common command signatures:\n"
    "@Command(\"name\")\n"
    "def CommandName(self, player: IPlayer, command: str, args: list[str])\n\n"
    "@ChatCommand(\"name\")\n"
    "def CommandName(self, player: BasePlayer, command: str, args: list[str])\n\n"
    "@ConsoleCommand(\"name\")\n"
    "def CommandName(self, arg: ConsoleSystem.Arg)"
)


def format_suggestion(candidate: SimilarityCandidate) -> str:
    """``OnPlayerChat(BasePlayer, str)`` plus origin details where relevant."""
    signature = candidate.signature
    text = str(signature)
    if signature.origin is HookOrigin.PLUGIN and signature.origin_name:
        text += f" (from plugin: {signature.origin_name})"
    elif signature.origin is HookOrigin.DEPRECATED:
        text += f" (deprecated, use {signature.replacement})" if signature.replacement else " (deprecated)"
    return text


def format_suggestions(candidates: List[SimilarityCandidate]) -> str:
    return ", ".join(format_suggestion(candidate) for candidate in candidates)


def format_message(finding: Finding) -> str:
    """Render one finding with its variant's template."""
    name = finding.method.name
    if finding.variant is FindingVariant.UNUSED_AS_COMMAND:
        return MESSAGE_FORMAT_COMMAND.format(name)
    if finding.variant is FindingVariant.UNUSED_WITH_HOOK_SUGGESTIONS:
        return MESSAGE_FORMAT_WITH_HOOKS.format(name, format_suggestions(list(finding.suggestions)))
    return MESSAGE_FORMAT.format(name)


def format_diagnostic(finding: Finding) -> str:
    """``path:line:col: HJ003 <message>``"""
    return f"{finding.location}: {DIAGNOSTIC_ID} {format_message(finding)}"
