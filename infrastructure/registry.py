"""
STATE GATE REGISTRY
One StateGraph per (host type, attribute) pair, owned by the composition root.

The registry is passed to whatever needs it; there is no global instance.
"""
import logging
import threading
from typing import Any, Dict, Iterable, List, Tuple, Union

from core.errors import RegistryError
from core.graph_builder import GraphBuilder
from core.identifiers import symbolize
from core.ontology import ConfigCommand
from core.script import ConfigScript
from core.state_machine import StateGraph

logger = logging.getLogger("StateGateRegistry")

GateKey = Tuple[str, str]


class GateRegistry:
    """
    Builds and holds the state graphs of a host application.

    Registration is serialised by a lock so a pair is built at most once.
    Lookups do not lock: stored graphs are immutable.
    """

    def __init__(self):
        self._gates: Dict[GateKey, StateGraph] = {}
        self._lock = threading.Lock()

    def register(self, host: Any, attribute: Any,
                 script: Union[ConfigScript, Iterable[ConfigCommand]]) -> StateGraph:
        """
        Build a graph for the pair and store it.

        Args:
            host: host class or host type name
            attribute: gated attribute name
            script: the configuration script

        Returns:
            The stored StateGraph

        Raises:
            RegistryError if the pair already has a graph
            ConfigurationError if the script is rejected (nothing is stored)
        """
        builder = GraphBuilder(host, attribute)
        key = (builder.host, builder.attribute)
        with self._lock:
            if key in self._gates:
                raise RegistryError(
                    f"a state gate is already defined for {builder.kattr}.",
                    host=builder.host,
                    attribute=builder.attribute,
                )
            graph = builder.build(script)
            self._gates[key] = graph
        logger.info(f"Registered state gate {graph.kattr}")
        return graph

    def get(self, host: Any, attribute: Any) -> StateGraph:
        key = self._key(host, attribute)
        graph = self._gates.get(key)
        if graph is None:
            raise RegistryError(
                f"no state gate is defined for {key[0]}#{key[1]}.",
                host=key[0],
                attribute=key[1],
            )
        return graph

    def gates_for(self, host: Any) -> Dict[str, StateGraph]:
        """attribute -> StateGraph for one host type."""
        name = self._host_name(host)
        return {attr: graph for (h, attr), graph in list(self._gates.items()) if h == name}

    def attributes_for(self, host: Any) -> List[str]:
        return list(self.gates_for(host))

    def __contains__(self, key: Any) -> bool:
        try:
            host, attribute = key
        except (TypeError, ValueError):
            return False
        return self._key(host, attribute) in self._gates

    def __len__(self) -> int:
        return len(self._gates)

    def __iter__(self):
        return iter(list(self._gates.values()))

    @staticmethod
    def _host_name(host: Any) -> str:
        return host if isinstance(host, str) else getattr(host, "__name__", str(host))

    def _key(self, host: Any, attribute: Any) -> GateKey:
        return (self._host_name(host), symbolize(attribute) or str(attribute))
