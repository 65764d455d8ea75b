"""Base class for operators."""

from typing import Any, Dict

import numpy as np

from ..core.interface import AccumulateFn


class BaseOperator:
    """
    Operator with no parameters.

    Subclasses implement `evaluate` and `input_deltas`; parameterized
    operators also override `has_adjustable_parameters`, `adjust` and
    `commit_weights`.
    """

    operator_name: str = 'base'

    def initialize(self, node) -> None:
        """Called once the node and its inputs exist."""
        pass

    def evaluate(self, node, values: np.ndarray) -> None:
        raise NotImplementedError

    def input_deltas(self, node, start: int, end: int, add: AccumulateFn) -> None:
        raise NotImplementedError

    def has_adjustable_parameters(self, node) -> bool:
        return False

    def adjust(self, node, learning_rate: float) -> None:
        """Stage a parameter update (nothing to stage by default)."""
        pass

    def commit_weights(self, node) -> None:
        """Apply staged updates (nothing staged by default)."""
        pass

    def get_config(self) -> Dict[str, Any]:
        return {}

    def __repr__(self) -> str:
        args = ', '.join(
            f"{k}={v!r}" for k, v in self.get_config().items() if k != 'weights'
        )
        return f"{type(self).__name__}({args})"
