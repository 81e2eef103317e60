"""
DEFINITIONS LOADER
Reads state gate definitions from a YAML file into configuration scripts.

    gates:
      - host: Account
        attribute: status
        states:
          - id: pending
            transitions_to: active
            human: Pending Activation
          - id: active
            transitions_to: [suspended, archived]
        default: pending
        prefix: acct
        make_sequential: [one_way, loop]
        scopes: false

A gate may list raw `commands:` ({name, args, options}) instead.
"""
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from core.errors import ConfigurationError
from core.script import ConfigScript
from infrastructure.registry import GateRegistry

logger = logging.getLogger("DefinitionsLoader")

_GATE_KEYS = {"host", "attribute", "states", "default", "prefix", "suffix",
              "make_sequential", "scopes", "commands"}

_BOOL_TAG = "tag:yaml.org,2002:bool"


class _DefinitionsYamlLoader(yaml.SafeLoader):
    """SafeLoader that reads only true/false as booleans, so on/off/yes/no stay state ids."""


_DefinitionsYamlLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _BOOL_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_DefinitionsYamlLoader.add_implicit_resolver(
    _BOOL_TAG,
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


@dataclass
class GateDefinition:
    """A gate read from a definitions file, not yet built."""
    host: str
    attribute: str
    script: ConfigScript


def load_definitions(path: Union[str, Path]) -> List[GateDefinition]:
    """
    Parse a definitions file.

    Raises:
        FileNotFoundError if the file does not exist
        ConfigurationError if the document is malformed
    """
    path = Path(path)
    with open(path, "r") as f:
        try:
            document = yaml.load(f, Loader=_DefinitionsYamlLoader) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"{path} is not valid YAML: {e}") from e

    if not isinstance(document, dict) or not isinstance(document.get("gates"), list):
        raise ConfigurationError(f"{path} must contain a 'gates' list.")

    definitions = [_parse_gate(entry, index, path) for index, entry in enumerate(document["gates"])]
    logger.info(f"Loaded {len(definitions)} gate definitions from {path}")
    return definitions


def build_registry(path: Union[str, Path], registry: Optional[GateRegistry] = None) -> GateRegistry:
    """Build every gate in a definitions file into a registry."""
    registry = registry if registry is not None else GateRegistry()
    for definition in load_definitions(path):
        registry.register(definition.host, definition.attribute, definition.script)
    return registry


def _parse_gate(entry: Any, index: int, path: Path) -> GateDefinition:
    where = f"{path} gate #{index}"
    if not isinstance(entry, dict):
        raise ConfigurationError(f"{where} must be a mapping.")
    unknown = sorted(str(key) for key in set(entry) - _GATE_KEYS)
    if unknown:
        raise ConfigurationError(f"{where} has unknown keys {unknown}.")

    host, attribute = entry.get("host"), entry.get("attribute")
    if not isinstance(host, str) or not isinstance(attribute, str):
        raise ConfigurationError(f"{where} needs string 'host' and 'attribute' keys.")

    if "commands" in entry:
        if set(entry) - {"host", "attribute", "commands"}:
            raise ConfigurationError(f"{where} cannot mix 'commands' with other settings.")
        script = _script_from_commands(entry["commands"], where)
    else:
        script = _script_from_settings(entry, where)
    return GateDefinition(host=host, attribute=attribute, script=script)


def _script_from_settings(entry: Dict[str, Any], where: str) -> ConfigScript:
    script = ConfigScript()

    states = entry.get("states") or []
    if not isinstance(states, list):
        raise ConfigurationError(f"{where} 'states' must be a list.")
    for state in states:
        if isinstance(state, str):
            script.state(state)
        elif isinstance(state, dict) and "id" in state:
            options = {str(k): v for k, v in state.items() if k != "id"}
            script.state(state["id"], **options)
        else:
            raise ConfigurationError(f"{where} has a state entry without an 'id': {state!r}.")

    if "default" in entry:
        script.default(entry["default"])
    if "prefix" in entry:
        script.prefix(entry["prefix"])
    if "suffix" in entry:
        script.suffix(entry["suffix"])

    sequential = entry.get("make_sequential")
    if sequential is True:
        script.make_sequential()
    elif isinstance(sequential, str):
        script.make_sequential(sequential)
    elif isinstance(sequential, list):
        script.make_sequential(*sequential)
    elif sequential not in (None, False):
        raise ConfigurationError(f"{where} 'make_sequential' must be true or a list of flags.")

    if entry.get("scopes", True) is False:
        script.no_scopes()
    return script


def _script_from_commands(commands: Any, where: str) -> ConfigScript:
    if not isinstance(commands, list):
        raise ConfigurationError(f"{where} 'commands' must be a list.")
    script = ConfigScript()
    for command in commands:
        if not isinstance(command, dict) or not isinstance(command.get("name"), str):
            raise ConfigurationError(f"{where} has a command without a 'name': {command!r}.")
        args = command.get("args", [])
        if not isinstance(args, list):
            args = [args]
        options = command.get("options") or {}
        if not isinstance(options, dict):
            raise ConfigurationError(f"{where} command '{command['name']}' options must be a mapping.")
        script.command(command["name"], *args, **{str(k): v for k, v in options.items()})
    return script
