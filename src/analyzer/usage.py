"""Usage resolver: does a declared method have any live reference?"""
from typing import Optional

from .binder import Binder
from .cancellation import CancellationToken
from .reference_scanner import Reference, ReferenceKind, ReferenceScanner
from .registration import RegistrationMatcher
from .symbols import MemberGroup, MethodSymbol, symbols_match


def refers_to(resolved, method: MethodSymbol) -> bool:
    """Resolved symbol matches the method (untyped member access matches by name)."""
    if isinstance(resolved, MemberGroup):
        return resolved.name == method.name
    return symbols_match(resolved, method)


class UsageResolver:
    """Combine reference scanning and registration matching into a verdict."""

    def __init__(self, binder: Binder):
        self.binder = binder
        self.program = binder.program
        self.scanner = ReferenceScanner(binder)
        self.registrations = RegistrationMatcher(binder)

    def is_used(self, method: MethodSymbol, cancellation: Optional[CancellationToken] = None) -> bool:
        """True if the method is an override or any evidence of use exists.

        Raises:
            OperationCancelled: If the token is cancelled mid-scan
        """
        if method.is_override:
            return True
        return self.evidence_for(method, cancellation) is not None

    def evidence_for(self, method: MethodSymbol,
                     cancellation: Optional[CancellationToken] = None) -> Optional[Reference]:
        """First reference or registration proving the method is used, else None.

        Overrides are not scanned here; ``is_used`` short-circuits them.
        """
        for reference in self.scanner.scan(self.program, cancellation):
            if refers_to(reference.resolved_symbol, method):
                return reference
            if (reference.kind is ReferenceKind.DIRECT_CALL
                    and self.registrations.matches(reference.node, reference.unit, method)):
                return Reference(
                    kind=ReferenceKind.DYNAMIC_REGISTRATION,
                    resolved_symbol=method,
                    location=reference.location,
                    node=reference.node,
                    unit=reference.unit,
                )
        return None
