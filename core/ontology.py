"""
STATE GATE ONTOLOGY - The Vocabulary of the Engine

This module defines the declarative schema the engine works with:
1. ConfigCommand is the tagged command value a configuration script is made of
2. StateRecord is the frozen node of a built State Graph
3. Transition is the tagged form of a proposed value change

The builder CONSULTS this schema; it does not contain execution logic.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional, Tuple
from enum import Enum

from core.identifiers import FORCE_PREFIX, is_forced, symbolize, unforced


# =============================================================================
# ENUMS (Simple labels - behavior defined in GraphBuilder)
# =============================================================================

class CommandName(str, Enum):
    """Commands understood by the GraphBuilder."""
    STATE = "state"                      # Declare a state
    DEFAULT = "default"                  # Default state for new hosts
    PREFIX = "prefix"                    # Scope name prefix
    SUFFIX = "suffix"                    # Scope name suffix
    MAKE_SEQUENTIAL = "make_sequential"  # Link states in declaration order
    NO_SCOPES = "no_scopes"              # Disable per-state lookup helpers


class SequentialFlag(str, Enum):
    """Flags accepted by make_sequential."""
    ONE_WAY = "one_way"  # Forward links only
    LOOP = "loop"        # Wrap last -> first (and first -> last unless one_way)


class StateOption(str, Enum):
    """Options accepted by the state command."""
    HUMAN = "human"
    TRANSITIONS_TO = "transitions_to"


# =============================================================================
# CONFIGURATION COMMAND (The Unit of a Script)
# =============================================================================

class ConfigCommand(BaseModel):
    """
    One command of a configuration script.

    Arguments are recorded verbatim; the GraphBuilder validates them
    when the script is executed so every failure surfaces as a
    ConfigurationError naming the gate.
    """
    model_config = ConfigDict(frozen=True)

    name: Any = Field(description="Command tag, normally a CommandName value")
    args: Tuple[Any, ...] = Field(
        default_factory=tuple,
        description="Positional arguments"
    )
    options: Dict[Any, Any] = Field(
        default_factory=dict,
        description="Keyword options"
    )


# =============================================================================
# STATE RECORD (The Node of a Built Graph)
# =============================================================================

class StateRecord(BaseModel):
    """
    A declared state after all derivation passes have run.

    transitions_to is de-duplicated and keeps first-seen order.
    previous_state / next_state are only set in sequential mode.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Normalised state identifier")
    human: str = Field(description="Display label")
    transitions_to: Tuple[str, ...] = Field(
        default_factory=tuple,
        description="Ids this state may move to"
    )
    previous_state: Optional[str] = Field(default=None)
    next_state: Optional[str] = Field(default=None)
    scope_name: str = Field(description="prefix + id + suffix")


# =============================================================================
# TRANSITION (Tagged forced-value escape hatch)
# =============================================================================

class Transition(BaseModel):
    """
    A proposed change to the gated attribute.

    forced=True bypasses transition authorisation; the target must
    still be a declared state.
    """
    model_config = ConfigDict(frozen=True)

    target: str
    forced: bool = False

    @classmethod
    def parse(cls, value: Any) -> "Transition":
        """
        Convert the force_ string convention into the tagged value.

        The target is returned normalised where possible; values that
        cannot be normalised are kept verbatim so validation can report them.
        """
        name = symbolize(value)
        if name is None:
            return cls(target=str(value))
        return cls(target=unforced(name), forced=is_forced(name))

    def as_value(self) -> str:
        """Render back into the force_ string convention."""
        return f"{FORCE_PREFIX}{self.target}" if self.forced else self.target
