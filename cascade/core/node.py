"""
Node: one computation unit of a graph.

A node owns its cached values and deltas, its lifecycle status and its
operator. Edges are plain references to other nodes of the same graph;
the graph owns every node.
"""

import threading
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import PrecedenceError
from .interface import Operator
from .status import Status


class Node:
    """
    Node in a trainable computation graph.

    Attributes:
        name: Label used in diagnostics
        index: Position in the owning graph's arena
        inputs: Nodes this node reads from (fixed at construction)
        outputs: Nodes reading from this node (frozen at validation)
        values: Current output vector
        deltas: Gradient of the cost with respect to `values`
        status: Lifecycle state, only changed through `transition`
        deltas_actually_computed: False when the last backward pass only
            passed through this node
        is_network_output: Whether `values` feed the cost directly
        output_offset: Start of this node's range in the flat output vector
        operator: Computational kernel (None for source nodes)
        adjustable: Cached relevance of the operator, set at validation
        staged: Whether the operator holds uncommitted changes
        lock: Guards status, values, deltas and the flags above

    Example:
        >>> node = Node('hidden', 3, operator=Neurons(), inputs=[source])
        >>> node.size
        3
    """

    def __init__(
        self,
        name: str,
        size: int,
        operator: Optional[Operator] = None,
        inputs: Sequence['Node'] = (),
        index: int = 0
    ):
        self.name = name
        self.index = index
        self.operator = operator
        self.inputs: Tuple['Node', ...] = tuple(inputs)
        self.outputs: Union[List['Node'], Tuple['Node', ...]] = []

        self.values = np.zeros(size, dtype=np.float64)
        self.deltas = np.zeros(size, dtype=np.float64)

        self.status = Status.INITIALIZED
        self.deltas_actually_computed = False
        self.is_network_output = False
        self.output_offset = 0
        self.adjustable = False
        self.staged = False

        self.lock = threading.RLock()

    @property
    def size(self) -> int:
        """Length of `values` and `deltas`."""
        return len(self.values)

    @property
    def is_source(self) -> bool:
        """Whether this node is fed directly from the external inputs."""
        return not self.inputs

    @property
    def input_width(self) -> int:
        """Length of the flattened input vector."""
        return sum(n.size for n in self.inputs)

    def input_size(self, i: int) -> int:
        """Size of input `i`."""
        return self.inputs[i].size

    def previous_inputs(self, i: int) -> int:
        """Offset of input `i` in the flattened input vector."""
        return sum(n.size for n in self.inputs[:i])

    def input_values(self) -> np.ndarray:
        """Concatenated values of every input, in declared order."""
        if not self.inputs:
            return np.zeros(0, dtype=np.float64)
        return np.concatenate([n.values for n in self.inputs])

    def transition(self, target: Status, pass_name: Optional[str] = None) -> None:
        """
        Move to `target`. Callers must hold `self.lock`.

        Raises:
            PrecedenceError: If the move is not in the transition table
        """
        if not self.status.can_transition_to(target):
            raise PrecedenceError(
                f"Illegal status transition for node '{self.name}': "
                f"{self.status} -> {target}",
                node=self.name,
                pass_name=pass_name,
                details={'from': self.status.value, 'to': target.value},
            )
        self.status = target

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        op = type(self.operator).__name__ if self.operator is not None else None
        return (
            f"Node(name={self.name!r}, size={self.size}, operator={op}, "
            f"inputs={[n.name for n in self.inputs]}, status={self.status})"
        )
