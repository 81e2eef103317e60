"""
STATE GRAPH
The frozen result of a GraphBuilder run: query and transition authorisation.

A StateGraph is never mutated after construction, so a single instance
is shared by every reader without locking.
"""
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import networkx as nx

from core.errors import InvalidStateError, InvalidTransitionError
from core.identifiers import describe, is_forced, symbolize, unforced
from core.ontology import StateRecord, Transition


class StateGraph:
    """
    States, allowed transitions and scope naming for one gated attribute.

    Built by core.graph_builder.GraphBuilder; hosts call
    assert_valid_state / assert_valid_transition on every write.
    """

    def __init__(
        self,
        host: str,
        attribute: str,
        states: Mapping[str, StateRecord],
        default_state: str,
        digraph: nx.DiGraph,
        prefix: Optional[str] = None,
        suffix: Optional[str] = None,
        scopes: bool = True,
        sequential: bool = False,
        sequential_loop: bool = False,
        sequential_one_way: bool = False,
        transitionless: bool = False,
    ):
        self._host = host
        self._attribute = attribute
        self._states: Mapping[str, StateRecord] = MappingProxyType(dict(states))
        self._default = default_state
        self._digraph = digraph if nx.is_frozen(digraph) else nx.freeze(digraph)
        self._prefix = prefix
        self._suffix = suffix
        self._scopes = scopes
        self._sequential = sequential
        self._sequential_loop = sequential_loop
        self._sequential_one_way = sequential_one_way
        self._transitionless = transitionless

    # =========================================================================
    # Plain accessors
    # =========================================================================

    @property
    def host(self) -> str:
        return self._host

    @property
    def attribute(self) -> str:
        return self._attribute

    @property
    def kattr(self) -> str:
        return f"{self._host}#{self._attribute}"

    @property
    def default_state(self) -> str:
        """State assigned to newly created hosts."""
        return self._default

    @property
    def state_prefix(self) -> Optional[str]:
        """Scope name prefix including its separator, e.g. 'acct_'."""
        return self._prefix

    @property
    def state_suffix(self) -> Optional[str]:
        """Scope name suffix including its separator, e.g. '_state'."""
        return self._suffix

    @property
    def include_scopes(self) -> bool:
        return self._scopes

    @property
    def sequential(self) -> bool:
        return self._sequential

    @property
    def sequential_loop(self) -> bool:
        return self._sequential_loop

    @property
    def sequential_one_way(self) -> bool:
        return self._sequential_one_way

    @property
    def transitionless(self) -> bool:
        """
        True when no transitions were configured.

        Every state may then reach every other state and hosts should
        skip transition enforcement entirely.
        """
        return self._transitionless

    @property
    def raw_states(self) -> Mapping[str, StateRecord]:
        """Read-only mapping of state id -> StateRecord, in declaration order."""
        return self._states

    # =========================================================================
    # State queries
    # =========================================================================

    def states(self) -> List[str]:
        """State ids in declaration order."""
        return list(self._states)

    def human_states(self) -> List[str]:
        """Display labels, parallel to states()."""
        return [record.human for record in self._states.values()]

    def human_state_for(self, state: Any) -> str:
        return self._record_for(state).human

    def states_for_select(self, sort: bool = False) -> List[Tuple[str, str]]:
        """
        (label, id) pairs ready for a form select.

        Args:
            sort: order by label instead of declaration order

        Returns:
            List of (human label, state id) tuples
        """
        pairs = [(record.human, record.id) for record in self._states.values()]
        if sort:
            pairs.sort(key=lambda pair: pair[0])
        return pairs

    def assert_valid_state(self, value: Any) -> str:
        """
        Ensure a value names a declared state.

        A leading force_ marker is allowed and kept in the returned value,
        so a forced write still names a legitimate state.

            assert_valid_state('PENDING')       -> 'pending'
            assert_valid_state('force_active')  -> 'force_active'

        Returns:
            The normalised value

        Raises:
            InvalidStateError if the value is not a declared state
        """
        name = symbolize(value)
        if name is None or unforced(name) not in self._states:
            raise InvalidStateError(
                f"{describe(value)} is not a valid state for {self.kattr}.",
                value=value,
                host=self._host,
                attribute=self._attribute,
            )
        return name

    def scope_name_for_state(self, state: Any) -> str:
        return self._record_for(state).scope_name

    def next_state_for(self, state: Any) -> Optional[str]:
        """Following state in sequential mode, otherwise None."""
        return self._record_for(state).next_state

    def previous_state_for(self, state: Any) -> Optional[str]:
        """Preceding state in sequential mode, otherwise None."""
        return self._record_for(state).previous_state

    # =========================================================================
    # Transitions
    # =========================================================================

    def transitions(self) -> Dict[str, List[str]]:
        """Mapping of state id -> allowed target ids."""
        return {state: list(record.transitions_to) for state, record in self._states.items()}

    def transitions_for_state(self, state: Any) -> List[str]:
        return list(self._record_for(state).transitions_to)

    def assert_valid_transition(self, from_state: Any, to_state: Any) -> bool:
        """
        Authorise a change of the gated attribute.

        Same-state changes and force_ targets are always allowed; anything
        else must be a declared transition.

        Returns:
            True if the transition is allowed

        Raises:
            InvalidStateError if either value is not a declared state
            InvalidTransitionError if the transition is not allowed
        """
        current = unforced(self.assert_valid_state(from_state))
        target = self.assert_valid_state(to_state)

        if target == current:
            return True
        if is_forced(target):
            return True
        if target in self._states[current].transitions_to:
            return True

        raise InvalidTransitionError(
            f"{self.kattr} cannot transition from '{current}' to '{target}'.",
            from_state=current,
            to_state=target,
            host=self._host,
            attribute=self._attribute,
        )

    def authorize(self, from_state: Any, transition: Transition) -> bool:
        """assert_valid_transition for the tagged Transition value."""
        return self.assert_valid_transition(from_state, transition.as_value())

    def can_transition(self, from_state: Any, to_state: Any) -> bool:
        """
        Check a transition without raising.

        Returns:
            True if valid, False otherwise
        """
        try:
            return self.assert_valid_transition(from_state, to_state)
        except (InvalidStateError, InvalidTransitionError):
            return False

    # =========================================================================
    # Graph views
    # =========================================================================

    def directed_graph(self) -> nx.DiGraph:
        """Frozen networkx view: one node per state, one edge per transition."""
        return self._digraph

    def to_node_link_data(self) -> Dict[str, Any]:
        """JSON-compatible export of the graph and its settings."""
        return {
            'host': self._host,
            'attribute': self._attribute,
            'default_state': self._default,
            'transitionless': self._transitionless,
            'sequential': self._sequential,
            'graph': nx.node_link_data(self._digraph),
        }

    # =========================================================================
    # Private
    # =========================================================================

    def _record_for(self, state: Any) -> StateRecord:
        return self._states[unforced(self.assert_valid_state(state))]

    def __contains__(self, value: Any) -> bool:
        name = symbolize(value)
        return name is not None and name in self._states

    def __iter__(self) -> Iterator[str]:
        return iter(self._states)

    def __len__(self) -> int:
        return len(self._states)

    def __repr__(self) -> str:
        return f"<StateGraph {self.kattr} states={self.states()} default={self._default!r}>"
