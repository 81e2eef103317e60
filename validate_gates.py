#!/usr/bin/env python3
"""
STATE GATE VALIDATOR

Builds every gate in a YAML definitions file and reports the result.

Usage:
    python validate_gates.py definitions.yaml
    python validate_gates.py --json definitions.yaml
    python validate_gates.py --verbose definitions.yaml
"""
import argparse
import json
import logging
import sys

from core.errors import StateGateError
from core.state_machine import StateGraph
from infrastructure.config_loader import build_registry

logger = logging.getLogger("StateGate.Validator")


def describe_graph(graph: StateGraph) -> str:
    lines = [f"{graph.kattr}"]
    lines.append(f"  default: {graph.default_state}")
    if graph.transitionless:
        lines.append("  transitionless: every state may move to every other state")
    if graph.sequential:
        lines.append(
            f"  sequential: loop={graph.sequential_loop} one_way={graph.sequential_one_way}"
        )
    for state, human in zip(graph.states(), graph.human_states()):
        targets = ", ".join(graph.transitions_for_state(state)) or "-"
        scope = f" [{graph.scope_name_for_state(state)}]" if graph.include_scopes else ""
        lines.append(f"  {state} ({human}){scope} -> {targets}")
    return "\n".join(lines)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Validate state gate definitions")
    parser.add_argument("path", help="YAML definitions file")
    parser.add_argument("--json", action="store_true", help="Print node-link JSON for every gate")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s | %(name)-20s | %(levelname)-7s | %(message)s',
        datefmt='%H:%M:%S'
    )

    try:
        registry = build_registry(args.path)
    except FileNotFoundError:
        print(f"MISSING: {args.path}", file=sys.stderr)
        return 1
    except StateGateError as e:
        print(f"INVALID: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps([graph.to_node_link_data() for graph in registry], indent=2, default=str))
    else:
        for graph in registry:
            print(describe_graph(graph))
        print(f"\n{len(registry)} state gate(s) valid.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
