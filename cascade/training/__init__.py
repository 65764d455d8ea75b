"""Training utilities for cascade graphs."""

# Cost functions
from .costs import (
    CostFunction,
    SquaredError,
    CrossEntropy,
    create_cost,
    COST_REGISTRY
)

# Configuration and results
from .base import TrainingConfig, TrainingResult, CallbackProtocol

# Callbacks
from .callbacks import Callback, EarlyStoppingCallback

# Trainer
from .trainer import Trainer

__all__ = [
    # Costs
    'CostFunction',
    'SquaredError',
    'CrossEntropy',
    'create_cost',
    'COST_REGISTRY',

    # Config
    'TrainingConfig',
    'TrainingResult',
    'CallbackProtocol',

    # Callbacks
    'Callback',
    'EarlyStoppingCallback',

    # Trainer
    'Trainer',
]
