# src/crumbline/filtering.py
"""Error filtering and traceback extraction.

This module is the single source of truth for deciding whether a captured
exception is ignored (``ignore_errors``) and for turning an exception's
traceback into the ``stacktrace`` text carried by events.
"""

import re
import traceback
from collections.abc import Iterable

IgnorePattern = str | re.Pattern[str]


def format_traceback(error: BaseException) -> str:
    """Full formatted traceback text, or "" if the error was never raised."""
    if error.__traceback__ is None:
        return ""
    return "".join(traceback.format_exception(error))


def should_ignore_error(error: BaseException, patterns: Iterable[IgnorePattern]) -> bool:
    """Determine whether an exception matches any ignore pattern.

    Matching logic:
    - str: substring of the error message or of the formatted traceback
    - compiled pattern: ``search`` against the message or the traceback
    - anything else: never matches

    Args:
        error: The exception being captured
        patterns: Configured ``ignore_errors`` entries

    Returns:
        True if the error should be dropped before assembly

    Example:
        >>> should_ignore_error(TimeoutError("connection timeout"), ["timeout"])
        True
        >>> should_ignore_error(ValueError("other failure"), ["timeout"])
        False
    """
    message = str(error)
    stack: str | None = None
    for pattern in patterns:
        if stack is None:
            stack = format_traceback(error)
        match pattern:
            case str():
                if pattern in message or pattern in stack:
                    return True
            case re.Pattern():
                if pattern.search(message) or pattern.search(stack):
                    return True
            case _:
                continue
    return False


def extract_stacktrace(error: BaseException | None) -> str | None:
    """Trimmed traceback text for an event.

    The first line (``Traceback (most recent call last):``) is dropped, the
    remaining lines are stripped of surrounding whitespace, blank lines are
    removed and the rest is rejoined with newlines.

    Returns:
        The stacktrace, or None if there is no error or it has no traceback.
    """
    if error is None:
        return None
    text = format_traceback(error)
    if not text:
        return None
    lines = text.splitlines()[1:]
    return "\n".join(stripped for line in lines if (stripped := line.strip()))
