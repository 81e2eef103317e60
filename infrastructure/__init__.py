"""
State Gate Infrastructure Layer
"""
from infrastructure.registry import GateRegistry
from infrastructure.attribute_gate import AttributeGate
from infrastructure.config_loader import GateDefinition, build_registry, load_definitions

__all__ = [
    'GateRegistry',
    'AttributeGate',
    'GateDefinition',
    'build_registry',
    'load_definitions',
]
