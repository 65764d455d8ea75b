"""Pass-through operator."""

from typing import Any, Dict

import numpy as np

from ..core.errors import ShapeMismatch
from ..core.interface import AccumulateFn
from ..core.registry import register_operator
from .base import BaseOperator


@register_operator('identity')
class Identity(BaseOperator):
    """
    Copies the concatenated inputs unchanged.

    The node's size must equal its input width. Without parameters the node
    is normally passed through during backpropagation; `force_deltas=True`
    makes it materialize its deltas anyway.
    """

    def __init__(self, force_deltas: bool = False):
        self.force_deltas = force_deltas

    def initialize(self, node) -> None:
        if node.size != node.input_width:
            raise ShapeMismatch(
                f"Identity node '{node}' has size {node.size} but input width {node.input_width}",
                node=node.name,
            )

    def evaluate(self, node, values: np.ndarray) -> None:
        values[:] = node.input_values()

    def input_deltas(self, node, start: int, end: int, add: AccumulateFn) -> None:
        for i in range(start, end):
            add(i - start, float(node.deltas[i]))

    def has_adjustable_parameters(self, node) -> bool:
        return self.force_deltas

    def get_config(self) -> Dict[str, Any]:
        return {'force_deltas': self.force_deltas}
