"""
Status-driven recompute and propagation passes.

Each pass is a recursive function over nodes:

- check_outputs: one-time structural validation, recursing towards outputs
- invalidate: mark cached values stale, recursing towards outputs
- evaluate: bring values up to date, recursing towards inputs first
- get_deltas / input_deltas: accumulate deltas, recursing towards outputs
- adjust: stage parameter updates, recursing towards inputs
- commit_weights: apply staged updates, recursing towards inputs

Locking:
    A pass takes a node's lock only to read or write that node's own state
    and releases it before recursing. Contributions from other nodes are
    accumulated into buffers owned by the caller, so no thread ever holds two
    node locks at once and lock ordering cannot deadlock.

Errors:
    Kernel failures are wrapped in OperatorError. Every frame that lets an
    error through appends one line of context naming the node and edge.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import numpy as np

from .errors import CascadeError, OperatorError, PrecedenceError, ShapeMismatch, StructuralError
from .interface import AccumulateFn, CostGradient
from .node import Node
from .status import Status

logger = logging.getLogger(__name__)


# ============================================================================
# HELPERS
# ============================================================================


@contextmanager
def _guarded(node: Node, pass_name: str, source: Optional[str] = None) -> Iterator[None]:
    """Wrap a call into code outside the engine (operator or cost gradient)."""
    source = source or f"operator {type(node.operator).__name__}"
    try:
        yield
    except CascadeError as err:
        err.add_context(f"{pass_name} of node '{node}' failed in {source}")
        raise
    except Exception as err:
        raise OperatorError(
            f"{source} of node '{node}' failed during {pass_name}: {err}",
            node=node.name,
            pass_name=pass_name,
            details={'exception_class': type(err).__name__},
        ) from err


def _accumulator(buffer: np.ndarray, node: Node, pass_name: str) -> AccumulateFn:
    """Build an add(index, value) callback summing into `buffer`."""
    size = len(buffer)

    def add(index: int, value: float) -> None:
        if not 0 <= index < size:
            raise ShapeMismatch(
                f"Delta index {index} out of range [0, {size}) for node '{node}'",
                node=node.name,
                pass_name=pass_name,
                details={'index': index, 'size': size},
            )
        buffer[index] += value

    return add


# ============================================================================
# VALIDATION AND INVALIDATION
# ============================================================================


def check_outputs(node: Node) -> None:
    """
    Check that `node` and everything downstream contribute to a network output.

    Memoized: nodes past INITIALIZED are skipped. Deduplicates and freezes the
    node's outputs and caches its relevance.

    Raises:
        StructuralError: If a node has no outputs and is not a network output
    """
    with node.lock:
        if node.status is not Status.INITIALIZED:
            return

        if not node.outputs and not node.is_network_output:
            raise StructuralError(
                f"Node '{node}' has no effect on network outputs "
                f"(it has no outputs and is not a network output)",
                node=node.name,
                pass_name='validate',
            )

        node.outputs = tuple(dict.fromkeys(node.outputs))

        if node.operator is not None:
            with _guarded(node, 'validate'):
                node.adjustable = bool(node.operator.has_adjustable_parameters(node))

        node.transition(Status.CHECKED_OUTPUTS, 'validate')
        outputs = node.outputs

    for i, out in enumerate(outputs):
        try:
            check_outputs(out)
        except CascadeError as err:
            err.add_context(f"checking outputs of '{out}' (output #{i} of '{node}')")
            raise


def invalidate(node: Node) -> None:
    """
    Mark `node` and its dependents as changed.

    Stops at nodes without cached values: their outputs cannot be stale in a
    new way.
    """
    with node.lock:
        if not node.status.has_values:
            return
        node.transition(Status.CHANGED, 'invalidate')
        outputs = node.outputs

    for out in outputs:
        invalidate(out)


# ============================================================================
# FORWARD PASS
# ============================================================================


def evaluate(node: Node) -> None:
    """
    Ensure `node.values` is current given all transitive inputs.

    Raises:
        PrecedenceError: If the graph has not been validated
        OperatorError: If an operator fails on the way
    """
    with node.lock:
        if node.status is Status.INITIALIZED:
            raise PrecedenceError(
                f"Can't evaluate node '{node}': graph has not been validated",
                node=node.name,
                pass_name='evaluate',
            )
        if not node.status.needs_evaluation:
            return
        if node.is_source:
            node.transition(Status.EVALUATED, 'evaluate')
            return

    for i, inp in enumerate(node.inputs):
        try:
            evaluate(inp)
        except CascadeError as err:
            err.add_context(f"evaluating input '{inp}' (#{i}) of node '{node}'")
            raise

    with node.lock:
        # Another caller may have finished while the inputs were evaluated
        if not node.status.needs_evaluation:
            return
        with _guarded(node, 'evaluate'):
            node.operator.evaluate(node, node.values)
        node.transition(Status.EVALUATED, 'evaluate')


# ============================================================================
# BACKWARD PASS
# ============================================================================


def get_deltas(node: Node, cost_gradient: CostGradient, relevant: bool = False) -> None:
    """
    Accumulate the gradient of the cost with respect to `node.values`.

    A node is relevant when a caller needs its deltas or its operator has
    adjustable parameters. An irrelevant node does not materialize deltas;
    the request is passed on to its outputs unchanged.

    Args:
        node: Node whose deltas are requested
        cost_gradient: Seeds deltas of network outputs, see CostGradient
        relevant: Whether the caller needs this node's deltas

    Raises:
        PrecedenceError: If the node has not been evaluated (no state changes)
    """
    with node.lock:
        if not node.status.has_values:
            raise PrecedenceError(
                f"Can't get deltas of node '{node}': it has not been evaluated",
                node=node.name,
                pass_name='deltas',
            )
        relevant = relevant or node.adjustable
        if node.status.has_deltas and not (relevant and not node.deltas_actually_computed):
            return
        if node.status.has_deltas:
            logger.debug("Materializing deltas of '%s' after an earlier pass-through", node)
        outputs = node.outputs

    if not relevant:
        for i, out in enumerate(outputs):
            try:
                get_deltas(out, cost_gradient, False)
            except CascadeError as err:
                err.add_context(f"passing delta request from '{node}' to output '{out}' (#{i})")
                raise

        with node.lock:
            if node.status.has_deltas:
                return
            node.deltas_actually_computed = False
            node.transition(Status.DELTAS, 'deltas')
        return

    accumulator = np.zeros(node.size, dtype=np.float64)

    if node.is_network_output:
        add = _accumulator(accumulator, node, 'deltas')
        start = node.output_offset
        with _guarded(node, 'deltas', source='cost gradient'):
            cost_gradient(start, start + node.size, add)

    for i, out in enumerate(outputs):
        try:
            input_deltas(out, node, accumulator, cost_gradient)
        except CascadeError as err:
            err.add_context(f"getting input deltas for '{node}' from output '{out}' (#{i})")
            raise

    with node.lock:
        if node.status.has_deltas and node.deltas_actually_computed:
            return
        node.deltas[:] = accumulator
        node.deltas_actually_computed = True
        node.transition(Status.DELTAS, 'deltas')


def input_deltas(
    output_node: Node,
    target: Node,
    accumulator: np.ndarray,
    cost_gradient: CostGradient
) -> None:
    """
    Add `output_node`'s contribution to the deltas of its input `target`.

    Contributions are added into `accumulator`, never overwritten, so several
    outputs of the same node sum.

    Raises:
        PrecedenceError: If `target` is not an input of `output_node`
        ShapeMismatch: If `accumulator` does not match `target`
    """
    positions = [i for i, inp in enumerate(output_node.inputs) if inp is target]
    if not positions:
        raise PrecedenceError(
            f"Can't provide input deltas of '{output_node}' to '{target}': "
            f"'{target}' is not an input of '{output_node}'",
            node=output_node.name,
            pass_name='input deltas',
        )
    if len(accumulator) != target.size:
        raise ShapeMismatch(
            f"Accumulator for '{target}' has length {len(accumulator)}, expected {target.size}",
            node=target.name,
            pass_name='input deltas',
        )

    try:
        get_deltas(output_node, cost_gradient, True)
    except CascadeError as err:
        err.add_context(f"getting own deltas of '{output_node}' to provide input deltas to '{target}'")
        raise

    add = _accumulator(accumulator, output_node, 'input deltas')

    with output_node.lock:
        for i in positions:
            start = output_node.previous_inputs(i)
            end = start + output_node.input_size(i)
            with _guarded(output_node, 'input deltas'):
                output_node.operator.input_deltas(output_node, start, end, add)


# ============================================================================
# ADJUSTMENT AND COMMIT
# ============================================================================


def adjust(node: Node, learning_rate: float) -> None:
    """
    Stage parameter updates for `node` and every node upstream of it.

    Raises:
        PrecedenceError: If deltas have not been computed for this pass
    """
    with node.lock:
        if not node.status.has_deltas:
            raise PrecedenceError(
                f"Can't adjust node '{node}': it has not calculated deltas",
                node=node.name,
                pass_name='adjust',
            )
        if node.status.is_adjusted:
            return
        if node.is_source:
            node.transition(Status.ADJUSTED, 'adjust')
            return

        with _guarded(node, 'adjust'):
            node.operator.adjust(node, learning_rate)
        node.staged = True
        node.transition(Status.ADJUSTED, 'adjust')

    for i, inp in enumerate(node.inputs):
        try:
            adjust(inp, learning_rate)
        except CascadeError as err:
            err.add_context(f"adjusting input '{inp}' (#{i}) after adjusting '{node}'")
            raise


def commit_weights(node: Node) -> None:
    """
    Apply staged updates of `node` and every node upstream of it. Idempotent.

    Raises:
        PrecedenceError: If the node has never been evaluated
    """
    with node.lock:
        if node.status is Status.WEIGHTS_ADDED:
            return
        if node.status is Status.CHECKED_OUTPUTS:
            raise PrecedenceError(
                f"Can't commit weights of node '{node}': it has never been evaluated",
                node=node.name,
                pass_name='commit',
            )
        if node.staged:
            with _guarded(node, 'commit'):
                node.operator.commit_weights(node)
            node.staged = False
        node.transition(Status.WEIGHTS_ADDED, 'commit')

    for i, inp in enumerate(node.inputs):
        try:
            commit_weights(inp)
        except CascadeError as err:
            err.add_context(f"committing weights of input '{inp}' (#{i}) after '{node}'")
            raise
