"""Terminal-safe output with Unicode fallback.

Detects terminal encoding and provides ASCII alternatives for the icons used in
findings and warnings so non-UTF-8 terminals never crash on output.
"""
import sys
import locale
from typing import Callable


# Unicode to ASCII icon mapping
ICON_MAP = {
    '✓': '[OK]',      # check mark
    '✔': '[OK]',
    '✗': '[FAIL]',    # ballot x
    '✘': '[FAIL]',
    '⚠': '[WARN]',    # warning sign
    '→': '->',
    '⇒': '=>',
    '…': '...',
    '•': '*',
    '─': '-',
    '│': '|',
}


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding capability.

    Returns:
        str: Terminal encoding ('utf-8', 'cp1252', 'ascii', etc.)
    """
    # Try stdout encoding first
    if hasattr(sys.stdout, 'encoding') and sys.stdout.encoding:
        return sys.stdout.encoding.lower()

    # Fallback to locale
    try:
        return locale.getpreferredencoding().lower()
    except Exception:
        pass

    return 'ascii'


def is_utf8_capable() -> bool:
    """Check if the terminal can handle UTF-8 Unicode characters."""
    return detect_terminal_encoding() in ('utf-8', 'utf8', 'utf_8')


def sanitize_for_terminal(text: str) -> str:
    """Replace Unicode icons with ASCII equivalents if terminal doesn't support UTF-8.

    Args:
        text: Text potentially containing Unicode icons

    Returns:
        str: Sanitized text safe for current terminal
    """
    if is_utf8_capable():
        return text

    sanitized = text
    for unicode_char, ascii_replacement in ICON_MAP.items():
        sanitized = sanitized.replace(unicode_char, ascii_replacement)
    return sanitized


def create_safe_print() -> Callable:
    """Create a print function that automatically sanitizes output.

    Returns:
        Callable: Safe print function (accepts the same kwargs as print, e.g. file=)
    """
    def safe_print(*args, **kwargs):
        """Print with automatic Unicode sanitization."""
        sanitized_args = [sanitize_for_terminal(arg) if isinstance(arg, str) else arg for arg in args]
        print(*sanitized_args, **kwargs)

    return safe_print


# Export safe print function
safe_print = create_safe_print()
