"""
Cascade: status-driven recompute engine for trainable computation graphs.

Nodes of a directed acyclic graph hold values and deltas and move through an
explicit state machine. Forward evaluation is lazy and memoized, the backward
pass passes through nodes that cannot influence any parameter, and weight
updates are staged so they can be committed immediately or once per batch.

Example:
    >>> from cascade import Graph, Neurons, Trainer, TrainingConfig
    >>>
    >>> graph = Graph()
    >>> x = graph.add('input', 2)
    >>> h = graph.add('hidden', 1, x)
    >>> y = graph.add('output', 1, x, h)
    >>> graph.set_outputs(y)
    >>>
    >>> trainer = Trainer(graph, xor_data, TrainingConfig(max_epochs=1000))
    >>> history = trainer.train()
"""

__version__ = "0.1.0"

# ============================================================================
# CORE IMPORTS
# ============================================================================

from .core import (
    Status,
    TRANSITIONS,
    CascadeError,
    StructuralError,
    ShapeMismatch,
    OperatorError,
    PrecedenceError,
    Operator,
    CostGradient,
    AccumulateFn,
    Node,
    OperatorRegistry,
    register_operator,
    get_operator,
    create_operator,
    list_operators,
)
from .core.graph import Graph

# Operators
from .operators import BaseOperator, Neurons, Identity, BIAS_VALUE

# Training
from .training import (
    SquaredError,
    CrossEntropy,
    create_cost,
    TrainingConfig,
    TrainingResult,
    Callback,
    EarlyStoppingCallback,
    Trainer,
)

# Utilities
from .utils import (
    ExperimentConfig,
    LoggingConfig,
    load_config,
    save_config,
    validate_config,
    save_graph,
    load_graph,
    setup_logging,
)

__all__ = [
    '__version__',

    # Core
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
    'Graph',
    'OperatorRegistry',
    'register_operator',
    'get_operator',
    'create_operator',
    'list_operators',

    # Operators
    'BaseOperator',
    'Neurons',
    'Identity',
    'BIAS_VALUE',

    # Training
    'SquaredError',
    'CrossEntropy',
    'create_cost',
    'TrainingConfig',
    'TrainingResult',
    'Callback',
    'EarlyStoppingCallback',
    'Trainer',

    # Utilities
    'ExperimentConfig',
    'LoggingConfig',
    'load_config',
    'save_config',
    'validate_config',
    'save_graph',
    'load_graph',
    'setup_logging',
]
