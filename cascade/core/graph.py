"""
Trainable computation graph.

The graph owns every node and is the boundary between the engine and the
outside world: external inputs are copied into the input nodes, outputs are
read back from the output nodes, and each training pass is started from the
designated input or output nodes.

Lifecycle:
- Construction: `add` nodes (inputs must already exist, so the graph is
  acyclic by construction), then `set_outputs`, which validates.
- Steady state: adjacency is frozen; `set_inputs`, `get_outputs`,
  `backpropagate`, `adjust_weights` and `commit_all_weights` drive the
  per-node state machines.

Example:
    >>> graph = Graph()
    >>> inputs = graph.add('input', 2)
    >>> hidden = graph.add('hidden', 1, inputs)
    >>> output = graph.add('output', 1, inputs, hidden)
    >>> graph.set_outputs(output)
    >>>
    >>> outputs = graph.get_outputs([1.0, -1.0])
    >>> outputs.shape
    (1,)
"""

import logging
from collections import deque
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from . import engine
from .errors import CascadeError, PrecedenceError, ShapeMismatch, StructuralError
from .interface import CostGradient, Operator
from .node import Node
from .registry import create_operator
from .status import Status
from ..operators.neurons import Neurons

logger = logging.getLogger(__name__)


class Graph:
    """
    Directed acyclic graph of nodes with a training boundary.

    Features:
    - Lazy, memoized forward evaluation
    - Backward delta accumulation with pass-through of irrelevant nodes
    - Immediate or deferred (batched) parameter commits
    - Serialization to and from plain dictionaries

    Example:
        >>> graph = Graph()
        >>> x = graph.add('x', 2)
        >>> y = graph.add('y', 1, x, operator=Neurons(activation='tanh'))
        >>> graph.set_outputs(y)
        >>>
        >>> outputs = graph.get_outputs([0.5, 0.25])
        >>> graph.backpropagate(SquaredError().gradient_source(outputs, [1.0]))
        >>> graph.adjust_weights(learning_rate=0.1)
    """

    def __init__(self):
        """Initialize empty graph."""
        self.nodes: List[Node] = []
        self._by_name: Dict[str, Node] = {}
        self._inputs: List[Node] = []
        self._outputs: List[Node] = []
        self._input_vector = np.zeros(0, dtype=np.float64)
        self._output_vector = np.zeros(0, dtype=np.float64)
        self._validated = False

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def add(
        self,
        name: str,
        size: int,
        *inputs: Union[Node, str],
        operator: Optional[Operator] = None
    ) -> Node:
        """
        Add a node.

        A node without inputs is a network input; its values are copied from
        the external input vector. Any other node defaults to `Neurons()`.

        Args:
            name: Unique node name
            size: Length of the node's values
            *inputs: Input nodes (or their names), already in this graph
            operator: Computational kernel (not allowed for input nodes)

        Returns:
            The new node

        Raises:
            StructuralError: If the graph is validated, the name is taken,
                the size is not positive or an input is foreign
        """
        if self._validated:
            raise StructuralError(f"Can't add node '{name}': graph structure is frozen after validation")
        if name in self._by_name:
            raise StructuralError(f"Node '{name}' already exists in graph")
        if size < 1:
            raise StructuralError(f"Node '{name}' must have a positive size, got {size}")

        resolved = [self._resolve(inp, name) for inp in inputs]

        if not resolved and operator is not None:
            raise StructuralError(f"Input node '{name}' can't have an operator")
        if resolved and operator is None:
            operator = Neurons()

        node = Node(name, size, operator=operator, inputs=resolved, index=len(self.nodes))
        if operator is not None:
            operator.initialize(node)

        for inp in resolved:
            inp.outputs.append(node)

        self.nodes.append(node)
        self._by_name[name] = node
        if not resolved:
            self._inputs.append(node)

        logger.debug("Added node %r", node)
        return node

    def _resolve(self, ref: Union[Node, str], name: str) -> Node:
        """Look up an input reference given to `add`."""
        if isinstance(ref, str):
            if ref not in self._by_name:
                raise StructuralError(f"'{name}' references non-existent node '{ref}'")
            return self._by_name[ref]
        if self._by_name.get(ref.name) is not ref:
            raise StructuralError(f"'{name}' references node '{ref.name}' from another graph")
        return ref

    def set_outputs(self, *outputs: Union[Node, str]) -> None:
        """
        Designate the network outputs and validate the graph.

        The flat output vector is the concatenation of the outputs' values in
        the given order.

        Raises:
            StructuralError: If no outputs are given or validation fails
        """
        if self._validated:
            raise StructuralError("Can't set outputs: graph structure is frozen after validation")
        if not outputs:
            raise StructuralError("Can't set outputs: no output nodes given")

        resolved = [self._resolve(out, 'outputs') for out in outputs]
        if len(set(map(id, resolved))) != len(resolved):
            raise StructuralError("Can't set outputs: an output node is listed twice")

        offset = 0
        for node in resolved:
            node.is_network_output = True
            node.output_offset = offset
            offset += node.size
        self._outputs = resolved

        self.validate()

    def validate(self) -> None:
        """
        Check the structure once and freeze adjacency.

        Raises:
            StructuralError: If there are no inputs or outputs, or a node has
                no effect on any network output
        """
        if self._validated:
            return
        if not self._inputs:
            raise StructuralError("Graph has no input nodes")
        if not self._outputs:
            raise StructuralError("Graph has no output nodes")

        for i, node in enumerate(self._inputs):
            try:
                engine.check_outputs(node)
            except CascadeError as err:
                err.add_context(f"checking outputs of network input '{node}' (#{i})")
                raise

        unreachable = [n.name for n in self.nodes if n.status is Status.INITIALIZED]
        if unreachable:
            raise StructuralError(f"Nodes unreachable from any network input: {unreachable}")

        self._input_vector = np.zeros(sum(n.size for n in self._inputs), dtype=np.float64)
        self._output_vector = np.zeros(sum(n.size for n in self._outputs), dtype=np.float64)
        self._validated = True

        logger.info(
            "Validated graph: %d nodes, input width %d, output width %d",
            len(self.nodes), self.input_size, self.output_size
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def inputs(self) -> Tuple[Node, ...]:
        """Designated input nodes, in insertion order."""
        return tuple(self._inputs)

    @property
    def outputs(self) -> Tuple[Node, ...]:
        """Designated output nodes, in output-vector order."""
        return tuple(self._outputs)

    @property
    def input_size(self) -> int:
        return sum(n.size for n in self._inputs)

    @property
    def output_size(self) -> int:
        return sum(n.size for n in self._outputs)

    @property
    def is_validated(self) -> bool:
        return self._validated

    def node(self, name: str) -> Node:
        """Get node by name."""
        if name not in self._by_name:
            raise ValueError(f"Node '{name}' not found")
        return self._by_name[name]

    def _require_validated(self, action: str) -> None:
        if not self._validated:
            raise PrecedenceError(f"Can't {action}: graph has not been validated (call set_outputs first)")

    # ------------------------------------------------------------------
    # Boundary
    # ------------------------------------------------------------------

    def set_inputs(self, values: Sequence[float]) -> None:
        """
        Copy `values` into the input nodes and invalidate what depends on them.

        Raises:
            PrecedenceError: If the graph has not been validated
            ShapeMismatch: If len(values) differs from the input width
        """
        self._require_validated('set inputs')

        values = np.asarray(values, dtype=np.float64)
        if values.ndim != 1 or len(values) != len(self._input_vector):
            raise ShapeMismatch(
                f"Can't set inputs, len(inputs) != input width "
                f"({values.size} != {len(self._input_vector)})",
                details={'expected': len(self._input_vector), 'got': int(values.size)},
            )

        self._input_vector[:] = values
        offset = 0
        for node in self._inputs:
            with node.lock:
                node.values[:] = values[offset:offset + node.size]
            offset += node.size

        for node in self._inputs:
            engine.invalidate(node)

    def evaluate(self) -> np.ndarray:
        """
        Bring every output up to date with the current inputs.

        Returns:
            Copy of the flat output vector
        """
        self._require_validated('evaluate')

        for i, out in enumerate(self._outputs):
            try:
                engine.evaluate(out)
            except CascadeError as err:
                err.add_context(f"network output '{out}' (#{i}) failed to evaluate")
                raise

        for out in self._outputs:
            start = out.output_offset
            self._output_vector[start:start + out.size] = out.values

        return self._output_vector.copy()

    def get_outputs(self, values: Sequence[float]) -> np.ndarray:
        """Set the inputs and return a copy of the resulting outputs."""
        try:
            self.set_inputs(values)
        except CascadeError as err:
            err.add_context("Couldn't get outputs; setting inputs failed")
            raise
        return self.evaluate()

    def backpropagate(self, cost_gradient: CostGradient) -> None:
        """
        Compute deltas for every node that needs them.

        Args:
            cost_gradient: Called as cost_gradient(start, end, add) for each
                output node's range of the flat output vector
        """
        self._require_validated('backpropagate')

        for i, node in enumerate(self._inputs):
            try:
                engine.get_deltas(node, cost_gradient, False)
            except CascadeError as err:
                err.add_context(f"getting deltas from network input '{node}' (#{i}) failed")
                raise

    def adjust_weights(self, learning_rate: float, defer_commit: bool = False) -> None:
        """
        Stage parameter updates from the current deltas.

        Args:
            learning_rate: Step size passed to every operator
            defer_commit: Keep the updates staged until `commit_all_weights`
        """
        self._require_validated('adjust weights')

        for i, out in enumerate(self._outputs):
            try:
                engine.adjust(out, learning_rate)
            except CascadeError as err:
                err.add_context(f"adjusting from network output '{out}' (#{i}) failed")
                raise

        if not defer_commit:
            self.commit_all_weights()

    def commit_all_weights(self) -> None:
        """Apply every staged parameter update."""
        self._require_validated('commit weights')

        for i, out in enumerate(self._outputs):
            try:
                engine.commit_weights(out)
            except CascadeError as err:
                err.add_context(f"network output '{out}' (#{i}) failed to add weights")
                raise

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize graph to dictionary.

        Returns:
            Dictionary representation suitable for YAML or JSON
        """
        nodes = []
        for node in self.nodes:
            operator = None
            if node.operator is not None:
                operator = {
                    'name': node.operator.operator_name,
                    'config': node.operator.get_config(),
                }
            nodes.append({
                'name': node.name,
                'size': node.size,
                'inputs': [inp.name for inp in node.inputs],
                'operator': operator,
            })

        return {
            'nodes': nodes,
            'outputs': [out.name for out in self._outputs],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Graph':
        """
        Deserialize graph from dictionary.

        Nodes may be listed in any order; they are added in topological
        order. The graph is validated when 'outputs' is present.

        Raises:
            StructuralError: On duplicate names, unknown inputs or cycles
        """
        specs: Dict[str, Dict[str, Any]] = {}
        for spec in data['nodes']:
            if spec['name'] in specs:
                raise StructuralError(f"Node '{spec['name']}' is defined twice")
            specs[spec['name']] = spec

        graph = cls()
        for name in _topological_order(specs):
            spec = specs[name]
            operator = None
            if spec.get('operator'):
                operator = create_operator(
                    spec['operator']['name'],
                    spec['operator'].get('config', {})
                )
            graph.add(name, spec['size'], *spec.get('inputs', []), operator=operator)

        if data.get('outputs'):
            graph.set_outputs(*data['outputs'])

        return graph

    # ------------------------------------------------------------------
    # Dunder
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        """Number of nodes in graph."""
        return len(self.nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __repr__(self) -> str:
        return (
            f"Graph("
            f"nodes={len(self.nodes)}, "
            f"inputs={[n.name for n in self._inputs]}, "
            f"outputs={[n.name for n in self._outputs]})"
        )


def _topological_order(specs: Dict[str, Dict[str, Any]]) -> List[str]:
    """
    Order node specs so that inputs come first (Kahn's algorithm).

    Ties keep declaration order.
    """
    children: Dict[str, List[str]] = {name: [] for name in specs}
    in_degree: Dict[str, int] = {}

    for name, spec in specs.items():
        inputs = spec.get('inputs', [])
        for input_name in inputs:
            if input_name not in specs:
                raise StructuralError(f"Node '{name}' references non-existent input '{input_name}'")
            children[input_name].append(name)
        in_degree[name] = len(inputs)

    queue = deque(name for name, degree in in_degree.items() if degree == 0)
    order = []

    while queue:
        name = queue.popleft()
        order.append(name)
        for child in children[name]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                queue.append(child)

    if len(order) != len(specs):
        cyclic = sorted(name for name, degree in in_degree.items() if degree > 0)
        raise StructuralError(f"Graph has cycles involving nodes: {cyclic}")

    return order
