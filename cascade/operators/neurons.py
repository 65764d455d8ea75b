"""
Fully connected neurons.

Each output is activation(W @ [inputs..., BIAS_VALUE]). Updates follow the
two-phase protocol: `adjust` adds -learning_rate * gradient to a pending
buffer, `commit_weights` folds the buffer into the weights. Several adjust
calls before a commit therefore accumulate (batch gradient descent).

Example:
    >>> graph = Graph()
    >>> x = graph.add('x', 2)
    >>> y = graph.add('y', 1, x, operator=Neurons(weights=[[1.0, -1.0, 0.0]]))
    >>> graph.set_outputs(y)
    >>> graph.get_outputs([2.0, 2.0])
    array([0.5])
"""

from typing import Any, Dict, Optional, Sequence

import numpy as np

from ..core.errors import ShapeMismatch
from ..core.interface import AccumulateFn
from ..core.registry import register_operator
from .activations import get_activation
from .base import BaseOperator

BIAS_VALUE = 1.0


@register_operator('neurons')
class Neurons(BaseOperator):
    """
    Fully connected layer with a bias input and an elementwise activation.

    Args:
        activation: 'logistic' (default), 'tanh', 'linear' or 'relu'
        weights: Explicit weights of shape (size, input_width + 1), the last
            column multiplying the bias input
        init_range: Random weights are drawn from [-init_range, init_range]
        seed: Seed for the random initialization
    """

    def __init__(
        self,
        activation: str = 'logistic',
        weights: Optional[Sequence[Sequence[float]]] = None,
        init_range: float = 0.5,
        seed: Optional[int] = None
    ):
        self.activation = activation
        self._fn, self._derivative = get_activation(activation)
        self.init_range = init_range
        self.seed = seed
        self.weights = None if weights is None else np.array(weights, dtype=np.float64)
        self._pending: Optional[np.ndarray] = None

    def initialize(self, node) -> None:
        shape = (node.size, node.input_width + 1)

        if self.weights is None:
            rng = np.random.default_rng(self.seed)
            self.weights = rng.uniform(-self.init_range, self.init_range, size=shape)
        elif self.weights.shape != shape:
            raise ShapeMismatch(
                f"Weights of node '{node}' have shape {self.weights.shape}, expected {shape}",
                node=node.name,
                details={'expected': shape, 'got': self.weights.shape},
            )

        self._pending = np.zeros(shape, dtype=np.float64)

    def _augmented_inputs(self, node) -> np.ndarray:
        return np.append(node.input_values(), BIAS_VALUE)

    def _net_deltas(self, node) -> np.ndarray:
        """Gradient of the cost with respect to the pre-activation sums."""
        return node.deltas * self._derivative(node.values)

    def evaluate(self, node, values: np.ndarray) -> None:
        values[:] = self._fn(self.weights @ self._augmented_inputs(node))

    def input_deltas(self, node, start: int, end: int, add: AccumulateFn) -> None:
        contributions = self._net_deltas(node) @ self.weights[:, start:end]
        for i, value in enumerate(contributions):
            add(i, float(value))

    def has_adjustable_parameters(self, node) -> bool:
        return True

    def adjust(self, node, learning_rate: float) -> None:
        gradient = np.outer(self._net_deltas(node), self._augmented_inputs(node))
        self._pending -= learning_rate * gradient

    def commit_weights(self, node) -> None:
        self.weights += self._pending
        self._pending.fill(0.0)

    @property
    def pending(self) -> Optional[np.ndarray]:
        """Staged, uncommitted weight changes."""
        return self._pending

    def get_config(self) -> Dict[str, Any]:
        return {
            'activation': self.activation,
            'init_range': self.init_range,
            'seed': self.seed,
            'weights': None if self.weights is None else self.weights.tolist(),
        }
