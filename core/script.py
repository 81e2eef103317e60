"""
CONFIGURATION SCRIPT
Fluent builder for the ordered command list a State Graph is built from.

    script = (
        ConfigScript()
        .state("pending", transitions_to="active", human="Pending Activation")
        .state("active", transitions_to=["suspended", "archived"])
        .state("suspended", transitions_to=["active", "archived"])
        .state("archived")
        .default("pending")
    )
"""
from typing import Any, Iterable, List, Tuple

from core.ontology import CommandName, ConfigCommand


class ConfigScript:
    """
    Records configuration commands in order.

    Nothing is validated here: the GraphBuilder interprets the
    commands in a single pass and reports every problem.
    """

    def __init__(self, commands: Iterable[ConfigCommand] = ()):
        self._commands: List[ConfigCommand] = list(commands)

    def command(self, name: Any, /, *args: Any, **options: Any) -> "ConfigScript":
        """Append an arbitrary command (used by file loaders)."""
        self._commands.append(ConfigCommand(name=name, args=args, options=options))
        return self

    def state(self, state_id: Any, /, **options: Any) -> "ConfigScript":
        return self.command(CommandName.STATE.value, state_id, **options)

    def default(self, state_id: Any = None) -> "ConfigScript":
        return self.command(CommandName.DEFAULT.value, state_id)

    def prefix(self, symbol: Any = None) -> "ConfigScript":
        return self.command(CommandName.PREFIX.value, symbol)

    def suffix(self, symbol: Any = None) -> "ConfigScript":
        return self.command(CommandName.SUFFIX.value, symbol)

    def make_sequential(self, *flags: Any) -> "ConfigScript":
        return self.command(CommandName.MAKE_SEQUENTIAL.value, *flags)

    def no_scopes(self) -> "ConfigScript":
        return self.command(CommandName.NO_SCOPES.value)

    @property
    def commands(self) -> Tuple[ConfigCommand, ...]:
        return tuple(self._commands)

    def __len__(self) -> int:
        return len(self._commands)

    def __repr__(self) -> str:
        return f"ConfigScript({len(self._commands)} commands)"
