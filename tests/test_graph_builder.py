"""
GraphBuilder Tests
Configuration parsing, derivation passes and the consistency assertions.
"""
import logging

import pytest

from core.errors import (
    ConfigurationError,
    ConfigurationTypeError,
    DuplicateStateError,
    RepeatedSettingError,
    ReservedNameError,
    UnknownCommandError,
)
from core.graph_builder import GraphBuilder, build_state_graph
from core.ontology import ConfigCommand
from core.script import ConfigScript
from tests.conftest import account_script, sequential_script


def build(script):
    return build_state_graph("EngineTest", "status", script)


class TestSuccessfulConfiguration:
    """A full configuration with every command."""

    @pytest.fixture
    def graph(self):
        script = (
            ConfigScript()
            .state("pending", transitions_to="active", human="Pending Activation")
            .state("active", transitions_to=["suspended", "archived"])
            .state("suspended", transitions_to=["active", "archived"], human="Suspended by Admin")
            .state("archived")
            .make_sequential("one_way", "loop")
            .default("active")
            .prefix("test_prefix")
            .suffix("test_suffix")
            .no_scopes()
        )
        return build(script)

    def test_states_in_declaration_order(self, graph):
        assert graph.states() == ["pending", "active", "suspended", "archived"]

    def test_human_names(self, graph):
        assert graph.human_state_for("pending") == "Pending Activation"
        assert graph.human_state_for("suspended") == "Suspended by Admin"
        assert graph.human_state_for("archived") == "Archived"

    def test_transitions_merge_sequence_links(self, graph):
        """Sequence links are appended after declared ones and de-duplicated."""
        assert graph.transitions_for_state("pending") == ["active"]
        assert graph.transitions_for_state("active") == ["suspended", "archived"]
        assert graph.transitions_for_state("suspended") == ["active", "archived"]
        assert graph.transitions_for_state("archived") == ["pending"]

    def test_settings(self, graph):
        assert graph.sequential is True
        assert graph.sequential_one_way is True
        assert graph.sequential_loop is True
        assert graph.default_state == "active"
        assert graph.state_prefix == "test_prefix_"
        assert graph.state_suffix == "_test_suffix"
        assert graph.include_scopes is False
        assert graph.transitionless is False

    def test_host_and_attribute(self, graph):
        assert graph.host == "EngineTest"
        assert graph.attribute == "status"
        assert graph.kattr == "EngineTest#status"


class TestDefaults:

    def test_default_is_first_state(self):
        graph = build(account_script().commands[:-1])
        assert graph.default_state == "pending"

    def test_scopes_enabled_by_default(self, account_graph):
        assert account_graph.include_scopes is True
        assert account_graph.state_prefix is None
        assert account_graph.state_suffix is None

    def test_state_ids_are_normalised(self):
        graph = build(ConfigScript().state("  Pending ", transitions_to="ACTIVE").state("Active"))
        assert graph.states() == ["pending", "active"]
        assert graph.transitions_for_state("pending") == ["active"]

    def test_host_may_be_a_class(self):
        class Account:
            pass

        graph = build_state_graph(Account, "status", account_script())
        assert graph.kattr == "Account#status"

    def test_builder_accepts_command_iterables(self):
        commands = [
            ConfigCommand(name="state", args=("on",), options={"transitions_to": "off"}),
            ConfigCommand(name="state", args=("off",), options={"transitions_to": "on"}),
        ]
        graph = GraphBuilder("Switch", "power").build(commands)
        assert graph.transitions() == {"on": ["off"], "off": ["on"]}

    def test_builder_can_be_reused(self):
        builder = GraphBuilder("EngineTest", "status")
        first = builder.build(account_script())
        second = builder.build(account_script())
        assert first.states() == second.states()
        assert first is not second


class TestTransitionless:
    """No transitions configured: every state may reach every other state."""

    @pytest.fixture
    def graph(self):
        return build(
            ConfigScript()
            .state("pending", human="Pending Activation")
            .state("active")
            .state("suspended", human="Suspended by Admin")
            .state("archived")
        )

    def test_flagged_transitionless(self, graph):
        assert graph.transitionless is True

    def test_every_state_reaches_every_other(self, graph):
        for state in graph.states():
            expected = [s for s in graph.states() if s != state]
            assert graph.transitions_for_state(state) == expected


class TestAnyTransitions:

    def test_any_expands_to_all_other_states(self):
        graph = build(
            ConfigScript()
            .state("pending", transitions_to="any")
            .state("active", transitions_to="any")
            .state("suspended", transitions_to="active")
            .state("archived", transitions_to=["any"])
        )
        assert graph.transitions_for_state("pending") == ["active", "suspended", "archived"]
        assert graph.transitions_for_state("active") == ["pending", "suspended", "archived"]
        assert graph.transitions_for_state("archived") == ["pending", "active", "suspended"]
        assert graph.transitionless is False

    def test_any_mixed_with_other_transitions_fails(self):
        script = ConfigScript().state("pending", transitions_to="active").state(
            "active", transitions_to=["pending", "any"]
        )
        with pytest.raises(ConfigurationError, match="'any' must be the only transition"):
            build(script)


class TestSequential:
    """Auto-generated links between declaration-order neighbours."""

    def test_two_way_without_loop(self):
        graph = build(sequential_script())
        assert set(graph.transitions_for_state("b")) == {"a", "c"}
        assert graph.transitions_for_state("a") == ["b"]
        assert graph.transitions_for_state("d") == ["c"]
        assert "d" not in graph.transitions_for_state("a")
        assert "a" not in graph.transitions_for_state("d")

    def test_two_way_loop(self):
        graph = build(sequential_script("loop"))
        assert "a" in graph.transitions_for_state("d")
        assert "d" in graph.transitions_for_state("a")

    def test_one_way(self):
        graph = build(sequential_script("one_way"))
        assert graph.transitions_for_state("b") == ["c"]
        assert graph.transitions_for_state("d") == []

    def test_one_way_loop(self):
        graph = build(sequential_script("one_way", "loop"))
        assert graph.transitions_for_state("d") == ["a"]
        assert graph.transitions_for_state("a") == ["b"]

    def test_neighbour_links(self):
        graph = build(sequential_script("loop"))
        assert graph.next_state_for("b") == "c"
        assert graph.previous_state_for("b") == "a"
        assert graph.next_state_for("d") == "a"
        assert graph.previous_state_for("a") == "d"

    def test_one_way_has_no_previous_links(self):
        graph = build(sequential_script("one_way"))
        assert graph.previous_state_for("c") is None
        assert graph.next_state_for("c") == "d"

    def test_non_sequential_has_no_links(self, account_graph):
        assert account_graph.next_state_for("pending") is None
        assert account_graph.previous_state_for("active") is None

    def test_unknown_flag_fails(self):
        with pytest.raises(ConfigurationError, match="not a valid make_sequential option"):
            build(sequential_script("sideways"))


class TestStateCommandFailures:

    def test_non_string_state(self):
        with pytest.raises(ConfigurationTypeError, match="must be identifier strings"):
            build(ConfigScript().state(42).state("active"))

    def test_state_with_whitespace(self):
        with pytest.raises(ConfigurationTypeError):
            build(ConfigScript().state("my state").state("active"))

    def test_duplicate_state(self):
        with pytest.raises(DuplicateStateError) as exc:
            build(ConfigScript().state("active").state("active"))
        assert str(exc.value) == "EngineTest#status 'active' has been defined multiple times."

    def test_duplicate_after_normalisation(self):
        with pytest.raises(DuplicateStateError):
            build(ConfigScript().state("active").state("ACTIVE"))

    @pytest.mark.parametrize("name,marker", [("not_active", "not_"), ("force_active", "force_")])
    def test_reserved_prefixes(self, name, marker):
        with pytest.raises(ReservedNameError) as exc:
            build(ConfigScript().state(name).state("pending"))
        assert str(exc.value) == f"EngineTest#status '{name}' states cannot begin with '{marker}'."

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError, match="options for EngineTest#status 'pending'"):
            build(ConfigScript().state("pending", transition_to="active").state("active"))

    @pytest.mark.parametrize("key", ["name", "state_id", "colour"])
    def test_option_named_like_a_parameter(self, key):
        script = ConfigScript().state("pending", **{key: "x"}).state("active")
        assert script.commands[0].options == {key: "x"}
        with pytest.raises(ConfigurationError, match="options for EngineTest#status 'pending'"):
            build(script)

    def test_non_string_transition(self):
        with pytest.raises(ConfigurationTypeError, match="transitions for EngineTest#status 'pending'"):
            build(ConfigScript().state("pending", transitions_to=["active", 5]).state("active"))

    def test_non_string_human(self):
        with pytest.raises(ConfigurationTypeError, match="human name"):
            build(ConfigScript().state("pending", human=3).state("active"))


class TestSettingFailures:

    @pytest.mark.parametrize("value", [None, 5, "two words"])
    def test_default_must_be_identifier(self, value):
        with pytest.raises(ConfigurationTypeError) as exc:
            build(account_script().default(value))
        assert isinstance(exc.value, TypeError)

    def test_default_repeated(self):
        with pytest.raises(RepeatedSettingError, match="default for EngineTest#status has been specified multiple times"):
            build(account_script().default("active"))

    def test_default_must_be_declared(self):
        with pytest.raises(ConfigurationError, match="default state 'dummy'"):
            build(account_script().commands[:-1] + ConfigScript().default("dummy").commands)

    @pytest.mark.parametrize("setting", ["prefix", "suffix"])
    def test_affix_must_be_identifier(self, setting):
        script = getattr(account_script(), setting)()
        with pytest.raises(ConfigurationTypeError, match=f"{setting} for EngineTest#status must be"):
            build(script)

    @pytest.mark.parametrize("setting", ["prefix", "suffix"])
    def test_affix_repeated(self, setting):
        script = account_script()
        getattr(script, setting)("one")
        getattr(script, setting)("two")
        with pytest.raises(RepeatedSettingError, match="defined multiple times"):
            build(script)

    def test_no_scopes_takes_no_arguments(self):
        with pytest.raises(ConfigurationError):
            build(account_script().command("no_scopes", "please"))

    def test_unknown_command(self):
        with pytest.raises(UnknownCommandError) as exc:
            build(ConfigScript().state("pending").state("active").command("dummy"))
        assert exc.value.command == "dummy"
        assert "'dummy' is not a valid configuration option" in str(exc.value)

    @pytest.mark.parametrize("tag", [5, None, ["state"]])
    def test_non_string_command(self, tag):
        with pytest.raises(UnknownCommandError) as exc:
            build(ConfigScript().state("pending").state("active").command(tag))
        assert exc.value.command == tag
        assert "is not a valid configuration option for EngineTest#status" in str(exc.value)

    @pytest.mark.parametrize("script", [
        ConfigScript().state("pending").state("active").command("state", "archived", name="x"),
        ConfigScript().state("pending", state_id="active").state("active"),
        ConfigScript().state("pending").state("active").command(5),
        ConfigScript().state("pending").state("active").command("default", "pending", name="x"),
        ConfigScript([ConfigCommand(name="state", args=("pending",), options={1: "x"})]).state("active"),
    ])
    def test_malformed_scripts_are_configuration_errors(self, script):
        with pytest.raises(ConfigurationError):
            build(script)

    def test_bad_attribute(self):
        with pytest.raises(ConfigurationTypeError):
            GraphBuilder("EngineTest", None)


class TestGraphAssertions:

    def test_no_states(self):
        with pytest.raises(ConfigurationError, match="no states"):
            build(ConfigScript())

    def test_single_state(self):
        with pytest.raises(ConfigurationError, match="more than one state"):
            build(ConfigScript().state("lonely"))

    def test_transition_to_undeclared_state(self):
        script = ConfigScript().state("pending", transitions_to="active").state("active", transitions_to="archived")
        with pytest.raises(ConfigurationError) as exc:
            build(script)
        assert str(exc.value) == "EngineTest#status transitions from 'active' to invalid state 'archived'."

    def test_unreachable_state(self):
        script = (
            ConfigScript()
            .state("a", transitions_to="b")
            .state("b", transitions_to="c")
            .state("c", transitions_to="a")
            .state("d")
            .default("a")
        )
        with pytest.raises(ConfigurationError) as exc:
            build(script)
        assert str(exc.value) == "There are no state transitions leading to EngineTest#status 'd'."

    def test_several_unreachable_states(self):
        script = (
            ConfigScript()
            .state("pending", transitions_to="suspended")
            .state("active", transitions_to="suspended")
            .state("suspended", transitions_to="archived")
            .state("archived", transitions_to="pending")
            .state("deleted", transitions_to="pending")
        )
        with pytest.raises(ConfigurationError, match="'active' and 'deleted'"):
            build(script)

    def test_self_transition_does_not_make_a_state_reachable(self):
        script = (
            ConfigScript()
            .state("pending", transitions_to="active")
            .state("active", transitions_to="pending")
            .state("orphan", transitions_to="orphan")
        )
        with pytest.raises(ConfigurationError, match="'orphan'"):
            build(script)

    def test_duplicate_transitions_removed(self):
        graph = build(
            ConfigScript()
            .state("pending", transitions_to=["active", "active", "ACTIVE"])
            .state("active", transitions_to="pending")
        )
        assert graph.transitions_for_state("pending") == ["active"]

    def test_failure_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="GraphBuilder"):
            with pytest.raises(ConfigurationError):
                build(ConfigScript().state("lonely"))
        assert any("EngineTest#status" in record.message for record in caplog.records)

    def test_errors_carry_host_and_attribute(self):
        with pytest.raises(ConfigurationError) as exc:
            build(ConfigScript().state("lonely"))
        assert exc.value.host == "EngineTest"
        assert exc.value.attribute == "status"
        assert exc.value.kattr == "EngineTest#status"


SCRIPTS = {
    "account": account_script,
    "sequential": sequential_script,
    "sequential_loop": lambda: sequential_script("loop"),
    "one_way_loop": lambda: sequential_script("one_way", "loop"),
    "transitionless": lambda: ConfigScript().state("x").state("y").state("z"),
    "any": lambda: ConfigScript().state("x", transitions_to="any").state("y", transitions_to="x").state("z", transitions_to="y"),
}


@pytest.mark.parametrize("name", sorted(SCRIPTS))
class TestGraphInvariants:
    """Properties every successfully built graph satisfies."""

    def test_at_least_two_states(self, name):
        assert len(build(SCRIPTS[name]()).states()) >= 2

    def test_default_is_a_state(self, name):
        graph = build(SCRIPTS[name]())
        assert graph.default_state in graph.states()

    def test_targets_are_states(self, name):
        graph = build(SCRIPTS[name]())
        for state in graph.states():
            for target in graph.transitions_for_state(state):
                assert target in graph.states()

    def test_non_default_states_are_reachable(self, name):
        graph = build(SCRIPTS[name]())
        for state in graph.states():
            if state == graph.default_state:
                continue
            assert any(
                state in graph.transitions_for_state(other)
                for other in graph.states() if other != state
            )

    def test_no_duplicate_transitions(self, name):
        graph = build(SCRIPTS[name]())
        for targets in graph.transitions().values():
            assert len(targets) == len(set(targets))
