"""
ATTRIBUTE GATE
The host-facing boundary for one gated attribute.

Hosts present raw values here, including force_ values; the gate
validates them against the StateGraph and returns what to store.
"""
from typing import Any, Optional

from core.identifiers import unforced
from core.state_machine import StateGraph


class AttributeGate:
    """
    Casts, serialises and authorises values of a gated attribute.

    Stored values never carry the force_ marker; values handed to
    authorise_write may.
    """

    def __init__(self, graph: StateGraph):
        self.graph = graph

    def cast(self, value: Any) -> str:
        """Normalise an incoming value, keeping any force_ marker."""
        return self.graph.assert_valid_state(value)

    def serialize(self, value: Any) -> str:
        """Normalise a value for storage, stripping the force_ marker."""
        return unforced(self.graph.assert_valid_state(value))

    def deserialize(self, stored: Optional[str]) -> str:
        """A missing stored value reads as the default state."""
        if stored is None:
            return self.graph.default_state
        return self.serialize(stored)

    def initial_value(self) -> str:
        return self.graph.default_state

    def authorize_write(self, current: Optional[Any], proposed: Any) -> str:
        """
        Authorise changing the attribute from current to proposed.

        Transitionless graphs only check that proposed is a declared state.
        A host without a stored value yet is treated as being in the
        default state.

        Returns:
            The value to store

        Raises:
            InvalidStateError, InvalidTransitionError
        """
        if self.graph.transitionless:
            return self.serialize(proposed)
        from_state = self.graph.default_state if current is None else current
        self.graph.assert_valid_transition(from_state, proposed)
        return self.serialize(proposed)
