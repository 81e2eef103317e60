"""
Shared fixtures: configuration scripts used across the suite.
"""
import pytest

from core.graph_builder import build_state_graph
from core.script import ConfigScript


def account_script() -> ConfigScript:
    """pending -> active -> {suspended, archived}, suspended -> {active, archived}."""
    return (
        ConfigScript()
        .state("pending", transitions_to="active", human="Pending Activation")
        .state("active", transitions_to=["suspended", "archived"])
        .state("suspended", transitions_to=["active", "archived"], human="Suspended by Admin")
        .state("archived")
        .default("pending")
    )


def sequential_script(*flags) -> ConfigScript:
    return (
        ConfigScript()
        .state("a")
        .state("b")
        .state("c")
        .state("d")
        .make_sequential(*flags)
    )


@pytest.fixture
def account_graph():
    return build_state_graph("EngineTest", "status", account_script())


@pytest.fixture
def scoped_graph():
    script = account_script().prefix("my_prefix").suffix("my_suffix")
    return build_state_graph("EngineTest", "status", script)
