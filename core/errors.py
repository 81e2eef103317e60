"""
ERROR TAXONOMY
Configuration errors abort graph construction; runtime errors abort a single write.
"""
from typing import Any, Optional


class StateGateError(Exception):
    """
    Root of every state gate error.

    Carries the host type and attribute name so the offending
    gate can be identified from the message alone.
    """

    def __init__(self, message: str, host: Optional[str] = None, attribute: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.host = host
        self.attribute = attribute

    @property
    def kattr(self) -> str:
        """'Host#attribute' label used in messages."""
        return f"{self.host}#{self.attribute}"


# =============================================================================
# CONFIGURATION ERRORS (raised only while building a graph)
# =============================================================================

class ConfigurationError(StateGateError):
    """Raised when a configuration script is internally inconsistent."""
    pass


class DuplicateStateError(ConfigurationError):
    """Raised when a state id is declared more than once."""
    pass


class ReservedNameError(ConfigurationError):
    """Raised when a state id begins with a reserved marker."""
    pass


class RepeatedSettingError(ConfigurationError):
    """Raised when a single-use setting (default, prefix, suffix) is repeated."""
    pass


class UnknownCommandError(ConfigurationError):
    """Raised when a script contains a command the builder does not recognise."""

    def __init__(self, message: str, command: str, host: Optional[str] = None,
                 attribute: Optional[str] = None):
        super().__init__(message, host, attribute)
        self.command = command


class ConfigurationTypeError(ConfigurationError, TypeError):
    """Raised when a command argument is not identifier-like."""
    pass


# =============================================================================
# RUNTIME ERRORS (raised by the query/authorisation surface)
# =============================================================================

class InvalidStateError(StateGateError, ValueError):
    """Raised when a value does not name a declared state."""

    def __init__(self, message: str, value: Any = None, host: Optional[str] = None,
                 attribute: Optional[str] = None):
        super().__init__(message, host, attribute)
        self.value = value


class InvalidTransitionError(StateGateError, ValueError):
    """Raised when a transition is outside the authorised set."""

    def __init__(self, message: str, from_state: str, to_state: str,
                 host: Optional[str] = None, attribute: Optional[str] = None):
        super().__init__(message, host, attribute)
        self.from_state = from_state
        self.to_state = to_state


class RegistryError(StateGateError):
    """Raised on duplicate registration or lookup of an unknown gate."""
    pass
