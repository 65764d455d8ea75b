"""
Core of the recompute engine: node state machine, passes and contracts.

`Graph` lives in `cascade.core.graph` and is re-exported from `cascade`;
it is not imported here because it depends on the reference operators.
"""

from .status import Status, TRANSITIONS
from .errors import (
    CascadeError,
    StructuralError,
    ShapeMismatch,
    OperatorError,
    PrecedenceError,
)
from .interface import Operator, CostGradient, AccumulateFn
from .node import Node
from .registry import (
    OperatorRegistry,
    register_operator,
    get_operator,
    create_operator,
    list_operators,
)

__all__ = [
    'Status',
    'TRANSITIONS',
    'CascadeError',
    'StructuralError',
    'ShapeMismatch',
    'OperatorError',
    'PrecedenceError',
    'Operator',
    'CostGradient',
    'AccumulateFn',
    'Node',
    'OperatorRegistry',
    'register_operator',
    'get_operator',
    'create_operator',
    'list_operators',
]
