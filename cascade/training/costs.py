"""
Cost functions and the gradient sources they hand to the engine.

A cost function compares a snapshot of the network outputs with targets.
`gradient_source` binds both and returns the callable the backward pass uses
to seed the deltas of output nodes.

Example:
    >>> cost = create_cost('squared_error')
    >>> outputs = graph.get_outputs([1.0, -1.0])
    >>> cost.cost(outputs, [1.0])
    0.21...
    >>> graph.backpropagate(cost.gradient_source(outputs, [1.0]))
"""

from typing import Any, Dict, Sequence

import numpy as np

from ..core.errors import ShapeMismatch
from ..core.interface import AccumulateFn, CostGradient


class CostFunction:
    """Base class for cost functions."""

    cost_name: str = 'base'

    def cost(self, outputs: Sequence[float], targets: Sequence[float]) -> float:
        raise NotImplementedError

    def derivatives(self, outputs: np.ndarray, targets: np.ndarray) -> np.ndarray:
        """Elementwise derivative of the cost with respect to the outputs."""
        raise NotImplementedError

    def derivative(
        self,
        outputs: Sequence[float],
        targets: Sequence[float],
        start: int,
        end: int,
        add: AccumulateFn
    ) -> None:
        """
        Accumulate d(cost)/d(output) over outputs[start:end].

        `add` receives indices relative to `start`.
        """
        outputs, targets = _as_arrays(outputs, targets)
        if not 0 <= start <= end <= len(outputs):
            raise ShapeMismatch(
                f"Cost derivative range [{start}, {end}) outside outputs of length {len(outputs)}",
                details={'start': start, 'end': end, 'length': len(outputs)},
            )
        values = self.derivatives(outputs[start:end], targets[start:end])
        for i, value in enumerate(values):
            add(i, float(value))

    def gradient_source(self, outputs: Sequence[float], targets: Sequence[float]) -> CostGradient:
        """Bind copies of outputs and targets into a cost gradient for `Graph.backpropagate`."""
        outputs, targets = (a.copy() for a in _as_arrays(outputs, targets))

        def cost_gradient(start: int, end: int, add: AccumulateFn) -> None:
            self.derivative(outputs, targets, start, end, add)

        return cost_gradient


class SquaredError(CostFunction):
    """Sum of squared differences: sum((o - t)^2)."""

    cost_name = 'squared_error'

    def cost(self, outputs: Sequence[float], targets: Sequence[float]) -> float:
        outputs, targets = _as_arrays(outputs, targets)
        return float(np.sum((outputs - targets) ** 2))

    def derivatives(self, outputs: np.ndarray, targets: np.ndarray) -> np.ndarray:
        return 2.0 * (outputs - targets)


class CrossEntropy(CostFunction):
    """
    Binary cross-entropy for outputs in (0, 1).

    Args:
        epsilon: Outputs are clipped to [epsilon, 1 - epsilon]
    """

    cost_name = 'cross_entropy'

    def __init__(self, epsilon: float = 1e-12):
        self.epsilon = epsilon

    def cost(self, outputs: Sequence[float], targets: Sequence[float]) -> float:
        outputs, targets = _as_arrays(outputs, targets)
        o = np.clip(outputs, self.epsilon, 1.0 - self.epsilon)
        return float(-np.sum(targets * np.log(o) + (1.0 - targets) * np.log(1.0 - o)))

    def derivatives(self, outputs: np.ndarray, targets: np.ndarray) -> np.ndarray:
        o = np.clip(outputs, self.epsilon, 1.0 - self.epsilon)
        return (o - targets) / (o * (1.0 - o))


COST_REGISTRY = {
    'squared_error': SquaredError,
    'cross_entropy': CrossEntropy,
}


def create_cost(name: str, config: Dict[str, Any] = None, **kwargs) -> CostFunction:
    """
    Create a cost function by name.

    Example:
        >>> cost = create_cost('cross_entropy', epsilon=1e-9)
    """
    name_lower = name.lower().strip()

    if name_lower not in COST_REGISTRY:
        available = ', '.join(COST_REGISTRY.keys())
        raise ValueError(f"Unknown cost: {name}. Available: {available}")

    if config is not None:
        kwargs.update(config)

    return COST_REGISTRY[name_lower](**kwargs)


def _as_arrays(outputs, targets):
    outputs = np.asarray(outputs, dtype=np.float64)
    targets = np.asarray(targets, dtype=np.float64)
    if outputs.shape != targets.shape:
        raise ShapeMismatch(
            f"Outputs and targets differ in shape: {outputs.shape} != {targets.shape}",
            details={'outputs': outputs.shape, 'targets': targets.shape},
        )
    return outputs, targets
