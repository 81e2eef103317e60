"""
IDENTIFIERS
Normalisation rules shared by the builder and the query surface.
"""
import re
from typing import Any, Optional

# Reserved markers: negation queries and forced transitions at the host boundary
NOT_PREFIX = "not_"
FORCE_PREFIX = "force_"

# Transition sugar meaning "every other declared state"
ANY = "any"

_WHITESPACE = re.compile(r"\s")


def symbolize(value: Any) -> Optional[str]:
    """
    Convert a value to a normalised state identifier.

    Returns None when the value is not a string, is blank, or contains
    embedded whitespace.

        symbolize('Test')     -> 'test'
        symbolize(' Test ')   -> 'test'
        symbolize('My Test')  -> None
        symbolize('')         -> None
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text or _WHITESPACE.search(text):
        return None
    return text.lower()


def titleize(identifier: str) -> str:
    """'pending_activation' -> 'Pending Activation'"""
    words = [w for w in identifier.replace("-", "_").split("_") if w]
    return " ".join(w.capitalize() for w in words)


def unforced(identifier: str) -> str:
    """Strip a leading force_ marker."""
    if identifier.startswith(FORCE_PREFIX):
        return identifier[len(FORCE_PREFIX):]
    return identifier


def is_forced(identifier: str) -> bool:
    return identifier.startswith(FORCE_PREFIX)


def describe(value: Any) -> str:
    """Render a rejected value for an error message."""
    if value is None:
        return "'None'"
    return repr(value) if isinstance(value, str) else f"'{value}'"
