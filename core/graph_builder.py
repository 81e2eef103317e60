"""
GRAPH BUILDER
Executes a configuration script and produces a validated, frozen StateGraph.

Build passes, in order (any of them may abort the build):
1. Execute commands, collecting state declarations and settings
2. Derive sequential previous/next links
3. Derive scope names from prefix/suffix
4. De-duplicate transitions
5. Assert there are enough states; resolve the default state
6. Expand a graph with no transitions to "every state to every other"
7. Expand the 'any' marker
8. Assert every transition target is a declared state
9. Assert every non-default state can be reached from another state

Nothing is returned unless every pass succeeds.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import networkx as nx

from core.errors import (
    ConfigurationError,
    ConfigurationTypeError,
    DuplicateStateError,
    RepeatedSettingError,
    ReservedNameError,
    UnknownCommandError,
)
from core.identifiers import ANY, FORCE_PREFIX, NOT_PREFIX, symbolize, titleize
from core.ontology import CommandName, ConfigCommand, SequentialFlag, StateOption, StateRecord
from core.script import ConfigScript
from core.state_machine import StateGraph

logger = logging.getLogger("GraphBuilder")


@dataclass
class _DraftState:
    """Mutable state declaration, only alive while a build is running."""
    id: str
    human: str
    transitions_to: List[str] = field(default_factory=list)
    previous_state: Optional[str] = None
    next_state: Optional[str] = None
    scope_name: str = ""


class GraphBuilder:
    """
    Turns a ConfigScript into a StateGraph for one (host, attribute) pair.

    A builder can run several builds; every build starts from a clean slate.
    """

    def __init__(self, host: Any, attribute: Any):
        self.host = host if isinstance(host, str) else getattr(host, "__name__", None)
        if not self.host:
            raise ConfigurationTypeError(f"host for a state gate must be a class or a name, got {host!r}.")
        self.attribute = symbolize(attribute)
        if self.attribute is None:
            raise ConfigurationTypeError(
                f"attribute for {self.host} must be an identifier string, got {attribute!r}.",
                host=self.host,
            )
        self._reset()

    @property
    def kattr(self) -> str:
        return f"{self.host}#{self.attribute}"

    def build(self, script: Union[ConfigScript, Iterable[ConfigCommand]]) -> StateGraph:
        """
        Execute a configuration script and run every derivation and assertion pass.

        Args:
            script: ConfigScript or an ordered iterable of ConfigCommands

        Returns:
            The frozen StateGraph

        Raises:
            ConfigurationError (or a subclass) if the script is inconsistent
        """
        commands = script.commands if isinstance(script, ConfigScript) else tuple(script)
        self._reset()
        try:
            self._exec_configuration(commands)
            self._generate_sequences()
            self._generate_scope_names()
            self._assert_uniq_transitions()
            self._assert_states_are_valid()
            self._assert_transitions_exist()
            self._assert_any_has_been_expanded()
            digraph = self._assert_all_transitions_are_states()
            self._assert_all_states_are_reachable(digraph)
        except ConfigurationError as e:
            logger.warning(f"Rejected configuration for {self.kattr}: {e}")
            raise

        graph = self._freeze(digraph)
        logger.info(
            f"Built state gate {self.kattr}: {len(graph)} states, "
            f"default={graph.default_state}, transitionless={graph.transitionless}"
        )
        return graph

    # =========================================================================
    # Command execution
    # =========================================================================

    def _reset(self):
        self._states: Dict[str, _DraftState] = {}
        self._default: Optional[str] = None
        self._prefix: Optional[str] = None
        self._suffix: Optional[str] = None
        self._scopes = True
        self._sequential = False
        self._sequential_loop = False
        self._sequential_one_way = False
        self._transitionless = False

    def _exec_configuration(self, commands: Tuple[ConfigCommand, ...]):
        handlers = {
            CommandName.STATE.value: self._cmd_state,
            CommandName.DEFAULT.value: self._cmd_default,
            CommandName.PREFIX.value: self._cmd_prefix,
            CommandName.SUFFIX.value: self._cmd_suffix,
            CommandName.MAKE_SEQUENTIAL.value: self._cmd_make_sequential,
            CommandName.NO_SCOPES.value: self._cmd_no_scopes,
        }
        for command in commands:
            handler = handlers.get(command.name) if isinstance(command.name, str) else None
            if handler is None:
                raise UnknownCommandError(
                    f"'{command.name}' is not a valid configuration option for {self.kattr}.",
                    command=command.name,
                    host=self.host,
                    attribute=self.attribute,
                )
            logger.debug(f"{self.kattr}: {command.name} {list(command.args)} {command.options}")
            handler(command)

    def _cmd_state(self, command: ConfigCommand):
        name = symbolize(self._single_arg(command, allow_options=True))
        if name is None:
            self._type_error(f"states for {self.kattr} must be identifier strings.")
        if name in self._states:
            raise DuplicateStateError(
                f"{self.kattr} '{name}' has been defined multiple times.",
                self.host, self.attribute,
            )
        for marker in (NOT_PREFIX, FORCE_PREFIX):
            if name.startswith(marker):
                raise ReservedNameError(
                    f"{self.kattr} '{name}' states cannot begin with '{marker}'.",
                    self.host, self.attribute,
                )

        known = {option.value for option in StateOption}
        unknown = sorted(str(key) for key in command.options if key not in known)
        if unknown:
            self._error(
                f"options for {self.kattr} '{name}' must be one of "
                f"{sorted(known)}, got {unknown}."
            )

        human = command.options.get(StateOption.HUMAN.value)
        if human is not None and not isinstance(human, str):
            self._type_error(f"human name for {self.kattr} '{name}' must be a string.")

        raw = command.options.get(StateOption.TRANSITIONS_TO.value)
        if raw is None:
            raw = []
        elif not isinstance(raw, (list, tuple)):
            raw = [raw]
        transitions = [symbolize(t) for t in raw]
        if None in transitions:
            self._type_error(f"transitions for {self.kattr} '{name}' must be identifier strings.")

        self._states[name] = _DraftState(id=name, human=human or titleize(name), transitions_to=transitions)

    def _cmd_default(self, command: ConfigCommand):
        name = symbolize(self._single_arg(command))
        if name is None:
            self._type_error(f"default for {self.kattr} must be an identifier string.")
        if self._default:
            raise RepeatedSettingError(
                f"default for {self.kattr} has been specified multiple times.",
                self.host, self.attribute,
            )
        self._default = name

    def _cmd_prefix(self, command: ConfigCommand):
        self._prefix = f"{self._affix(command, 'prefix', self._prefix)}_"

    def _cmd_suffix(self, command: ConfigCommand):
        self._suffix = f"_{self._affix(command, 'suffix', self._suffix)}"

    def _cmd_make_sequential(self, command: ConfigCommand):
        if command.options:
            self._error(f"make_sequential for {self.kattr} does not take keyword options.")
        known = {flag.value for flag in SequentialFlag}
        for raw in command.args:
            flag = symbolize(raw)
            if flag not in known:
                self._error(
                    f"{raw!r} is not a valid make_sequential option for {self.kattr}; "
                    f"expected {sorted(known)}."
                )
            if flag == SequentialFlag.LOOP.value:
                self._sequential_loop = True
            elif flag == SequentialFlag.ONE_WAY.value:
                self._sequential_one_way = True
        self._sequential = True

    def _cmd_no_scopes(self, command: ConfigCommand):
        if command.args or command.options:
            self._error(f"no_scopes for {self.kattr} does not take arguments.")
        self._scopes = False

    def _affix(self, command: ConfigCommand, setting: str, current: Optional[str]) -> str:
        value = symbolize(self._single_arg(command))
        if value is None:
            self._type_error(f"{setting} for {self.kattr} must be an identifier string.")
        if current:
            raise RepeatedSettingError(
                f"{setting} for {self.kattr} has been defined multiple times.",
                self.host, self.attribute,
            )
        return value

    def _single_arg(self, command: ConfigCommand, allow_options: bool = False) -> Any:
        if len(command.args) > 1:
            self._error(f"{command.name} for {self.kattr} takes a single argument.")
        if command.options and not allow_options:
            self._error(f"{command.name} for {self.kattr} does not take keyword options.")
        return command.args[0] if command.args else None

    # =========================================================================
    # Derivation passes
    # =========================================================================

    def _generate_sequences(self):
        if not self._sequential:
            return
        order = list(self._states)

        if not self._sequential_one_way:
            for previous, current in zip(order, order[1:]):
                self._states[current].previous_state = previous
                self._states[current].transitions_to.append(previous)

        for current, following in zip(order, order[1:]):
            self._states[current].next_state = following
            self._states[current].transitions_to.append(following)

        if self._sequential_loop and order:
            first, last = order[0], order[-1]
            self._states[last].next_state = first
            self._states[last].transitions_to.append(first)
            if not self._sequential_one_way:
                self._states[first].previous_state = last
                self._states[first].transitions_to.append(last)

        logger.debug(
            f"{self.kattr}: sequenced {len(order)} states "
            f"(loop={self._sequential_loop}, one_way={self._sequential_one_way})"
        )

    def _generate_scope_names(self):
        for state in self._states.values():
            state.scope_name = f"{self._prefix or ''}{state.id}{self._suffix or ''}"

    # =========================================================================
    # Assertions
    # =========================================================================

    def _assert_uniq_transitions(self):
        for state in self._states.values():
            state.transitions_to = list(dict.fromkeys(state.transitions_to))

    def _assert_states_are_valid(self):
        if not self._states:
            self._error(f"no states have been defined for {self.kattr}.")
        if len(self._states) == 1:
            self._error(f"{self.kattr} must have more than one state.")

        if self._default:
            if self._default not in self._states:
                self._error(f"default state '{self._default}' for {self.kattr} is not a defined state.")
        else:
            self._default = next(iter(self._states))

    def _assert_transitions_exist(self):
        """Without any transitions, every state may move to every other state."""
        if any(state.transitions_to for state in self._states.values()):
            return
        self._transitionless = True
        for state in self._states.values():
            state.transitions_to = self._all_except(state.id)
        logger.debug(f"{self.kattr}: no transitions configured, graph is transitionless")

    def _assert_any_has_been_expanded(self):
        for state in self._states.values():
            if state.transitions_to == [ANY]:
                state.transitions_to = self._all_except(state.id)
            elif ANY in state.transitions_to:
                self._error(
                    f"when transitioning to '{ANY}' on {self.kattr} '{state.id}', "
                    f"'{ANY}' must be the only transition."
                )

    def _assert_all_transitions_are_states(self) -> nx.DiGraph:
        digraph = nx.DiGraph()
        for state in self._states.values():
            digraph.add_node(state.id, human=state.human, scope_name=state.scope_name)
        for state in self._states.values():
            for target in state.transitions_to:
                if target not in self._states:
                    self._error(
                        f"{self.kattr} transitions from '{state.id}' to invalid state '{target}'."
                    )
                digraph.add_edge(state.id, target)
        return digraph

    def _assert_all_states_are_reachable(self, digraph: nx.DiGraph):
        """Every state except the default needs a transition from another state."""
        adrift = [
            state for state in self._states
            if state != self._default
            and not any(source != state for source in digraph.predecessors(state))
        ]
        if adrift:
            names = _to_sentence([f"'{state}'" for state in adrift])
            self._error(f"There are no state transitions leading to {self.kattr} {names}.")

    # =========================================================================
    # Helpers
    # =========================================================================

    def _freeze(self, digraph: nx.DiGraph) -> StateGraph:
        records = {
            state.id: StateRecord(
                id=state.id,
                human=state.human,
                transitions_to=tuple(state.transitions_to),
                previous_state=state.previous_state,
                next_state=state.next_state,
                scope_name=state.scope_name,
            )
            for state in self._states.values()
        }
        return StateGraph(
            host=self.host,
            attribute=self.attribute,
            states=records,
            default_state=self._default,
            digraph=nx.freeze(digraph),
            prefix=self._prefix,
            suffix=self._suffix,
            scopes=self._scopes,
            sequential=self._sequential,
            sequential_loop=self._sequential_loop,
            sequential_one_way=self._sequential_one_way,
            transitionless=self._transitionless,
        )

    def _all_except(self, state_id: str) -> List[str]:
        return [other for other in self._states if other != state_id]

    def _error(self, message: str):
        raise ConfigurationError(message, self.host, self.attribute)

    def _type_error(self, message: str):
        raise ConfigurationTypeError(message, self.host, self.attribute)


def _to_sentence(items: List[str]) -> str:
    if len(items) == 1:
        return items[0]
    return f"{', '.join(items[:-1])} and {items[-1]}"


def build_state_graph(host: Any, attribute: Any,
                      script: Union[ConfigScript, Iterable[ConfigCommand]]) -> StateGraph:
    """Module-level convenience function."""
    return GraphBuilder(host, attribute).build(script)
