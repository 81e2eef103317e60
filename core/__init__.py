"""
State Gate Core - the engine
"""
from core.errors import (
    StateGateError,
    ConfigurationError,
    ConfigurationTypeError,
    DuplicateStateError,
    ReservedNameError,
    RepeatedSettingError,
    UnknownCommandError,
    InvalidStateError,
    InvalidTransitionError,
    RegistryError,
)
from core.ontology import ConfigCommand, StateRecord, Transition
from core.script import ConfigScript
from core.state_machine import StateGraph
from core.graph_builder import GraphBuilder, build_state_graph

__all__ = [
    'StateGateError',
    'ConfigurationError',
    'ConfigurationTypeError',
    'DuplicateStateError',
    'ReservedNameError',
    'RepeatedSettingError',
    'UnknownCommandError',
    'InvalidStateError',
    'InvalidTransitionError',
    'RegistryError',
    'ConfigCommand',
    'StateRecord',
    'Transition',
    'ConfigScript',
    'StateGraph',
    'GraphBuilder',
    'build_state_graph',
]
