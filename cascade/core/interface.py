"""
Core interfaces for cascade operators.

A node delegates all numeric work to its operator. The engine decides when
each method runs; the operator decides what it computes. The protocol is
structural (duck typing): any object with these methods can drive a node,
and `cascade.operators.BaseOperator` provides no-op defaults.

Parameter updates follow a two-phase protocol: `adjust` only stages a change,
`commit_weights` applies everything staged since the last commit. The engine
chooses when to commit (immediately, or once per batch).

Example:
    >>> class Double:
    ...     operator_name = 'double'
    ...
    ...     def initialize(self, node): pass
    ...
    ...     def evaluate(self, node, values):
    ...         values[:] = 2 * node.input_values()
    ...
    ...     def input_deltas(self, node, start, end, add):
    ...         for i in range(start, end):
    ...             add(i - start, 2 * node.deltas[i])
    ...
    ...     def has_adjustable_parameters(self, node): return False
    ...     def adjust(self, node, learning_rate): pass
    ...     def commit_weights(self, node): pass
    ...     def get_config(self): return {}
"""

from typing import Protocol, Callable, Dict, Any, TYPE_CHECKING, runtime_checkable

import numpy as np

if TYPE_CHECKING:
    from .node import Node


# ============================================================================
# CALLBACK TYPES
# ============================================================================

# add(local_index, value): accumulate `value` at `local_index` of a range.
AccumulateFn = Callable[[int, float], None]

# cost_gradient(start, end, add): seed deltas for the flat output range
# [start, end). `add` takes indices relative to `start`.
CostGradient = Callable[[int, int, AccumulateFn], None]


# ============================================================================
# PROTOCOLS
# ============================================================================


@runtime_checkable
class Operator(Protocol):
    """
    Computational kernel of a node.

    All methods receive the node they act on; the node exposes
    `input_values()`, `values`, `deltas`, `inputs`, `input_size(i)` and
    `previous_inputs(i)`.
    """

    operator_name: str

    def initialize(self, node: 'Node') -> None:
        """
        Bind to a node once its inputs are known.

        Raises:
            ShapeMismatch: If the node's size or input width is unsupported
        """
        ...

    def evaluate(self, node: 'Node', values: np.ndarray) -> None:
        """Compute the node's outputs from its input values into `values`."""
        ...

    def input_deltas(
        self,
        node: 'Node',
        start: int,
        end: int,
        add: AccumulateFn
    ) -> None:
        """
        Convert `node.deltas` into contributions for one input's range.

        Args:
            node: Node whose deltas are converted
            start: First index of the range in the flattened input vector
            end: One past the last index of the range
            add: Called as add(index - start, contribution); may be called
                several times per index, contributions sum
        """
        ...

    def has_adjustable_parameters(self, node: 'Node') -> bool:
        """Whether the node's deltas must be materialized."""
        ...

    def adjust(self, node: 'Node', learning_rate: float) -> None:
        """Stage a parameter update from `node.deltas`."""
        ...

    def commit_weights(self, node: 'Node') -> None:
        """Apply every staged update."""
        ...

    def get_config(self) -> Dict[str, Any]:
        """Constructor arguments that recreate this operator."""
        ...
