"""Shared fixtures for cascade tests."""

import threading

import numpy as np
import pytest

from cascade import Graph, Identity, Neurons
from cascade.core.registry import OperatorRegistry
from cascade.operators import BaseOperator


# ============================================================================
# OPERATORS
# ============================================================================

class CountingSum(BaseOperator):
    """Sums its inputs into every output and counts kernel calls."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.evaluations = 0
        self.adjustments = 0
        self.commits = 0
        self._counter_lock = threading.Lock()

    def evaluate(self, node, values):
        if self.delay:
            threading.Event().wait(self.delay)
        with self._counter_lock:
            self.evaluations += 1
        values[:] = node.input_values().sum()

    def input_deltas(self, node, start, end, add):
        total = node.deltas.sum()
        for i in range(end - start):
            add(i, total)

    def has_adjustable_parameters(self, node):
        return True

    def adjust(self, node, learning_rate):
        self.adjustments += 1

    def commit_weights(self, node):
        self.commits += 1


class Failing(BaseOperator):
    """Raises from the configured method."""

    def __init__(self, where: str = 'evaluate'):
        self.where = where

    def evaluate(self, node, values):
        if self.where == 'evaluate':
            raise ValueError("kernel exploded")
        values[:] = 0.0

    def input_deltas(self, node, start, end, add):
        if self.where == 'input_deltas':
            raise ZeroDivisionError("bad delta")

    def has_adjustable_parameters(self, node):
        return True


@pytest.fixture
def counting_sum():
    """CountingSum operator class."""
    return CountingSum


@pytest.fixture
def failing():
    """Failing operator class."""
    return Failing


# ============================================================================
# REGISTRY
# ============================================================================

@pytest.fixture
def restore_registry():
    """Snapshot the operator registry and restore it after the test."""
    registry = dict(OperatorRegistry._registry)
    metadata = dict(OperatorRegistry._metadata)
    yield OperatorRegistry
    OperatorRegistry._registry.clear()
    OperatorRegistry._registry.update(registry)
    OperatorRegistry._metadata.clear()
    OperatorRegistry._metadata.update(metadata)


# ============================================================================
# GRAPHS AND DATA
# ============================================================================

@pytest.fixture
def xor_data():
    """XOR over {-1, 1} inputs with {0, 1} targets."""
    return [
        ([-1.0, -1.0], [0.0]),
        ([-1.0, 1.0], [1.0]),
        ([1.0, -1.0], [1.0]),
        ([1.0, 1.0], [0.0]),
    ]


@pytest.fixture
def xor_graph():
    """
    Factory for the classic XOR network with a shortcut connection.

    input(2) -> hidden(1); [input, hidden] -> output(1). The default weights
    already separate the four cases, which keeps the numbers of unit tests
    predictable. Use `seeded_xor_graph` to train from scratch.
    """
    def build(hidden_weights=None, output_weights=None):
        graph = Graph()
        inp = graph.add('input', 2)
        hidden = graph.add(
            'hidden', 1, inp,
            operator=Neurons(weights=hidden_weights or [[2.0, 2.0, -2.0]])
        )
        output = graph.add(
            'output', 1, inp, hidden,
            operator=Neurons(weights=output_weights or [[2.0, 2.0, -8.0, 2.0]])
        )
        graph.set_outputs(output)
        return graph

    return build


@pytest.fixture
def seeded_xor_graph():
    """Factory for the XOR network with randomly initialized weights."""
    def build(hidden_seed=1, output_seed=2):
        graph = Graph()
        inp = graph.add('input', 2)
        hidden = graph.add('hidden', 1, inp, operator=Neurons(seed=hidden_seed))
        output = graph.add('output', 1, inp, hidden, operator=Neurons(seed=output_seed))
        graph.set_outputs(output)
        return graph

    return build


@pytest.fixture
def chain_graph():
    """input(2) -> identity -> neurons(1), with the identity optionally forced relevant."""
    def build(force_deltas=False, weights=None):
        graph = Graph()
        inp = graph.add('input', 2)
        mid = graph.add('mid', 2, inp, operator=Identity(force_deltas=force_deltas))
        out = graph.add('output', 1, mid, operator=Neurons(weights=weights or [[0.5, -0.3, 0.1]]))
        graph.set_outputs(out)
        return graph

    return build


def squared_error_gradient(outputs, targets):
    """Cost gradient for sum((o - t)^2) without going through the training package."""
    outputs = np.asarray(outputs, dtype=np.float64)
    targets = np.asarray(targets, dtype=np.float64)

    def cost_gradient(start, end, add):
        for i in range(end - start):
            add(i, 2.0 * (outputs[start + i] - targets[start + i]))

    return cost_gradient


@pytest.fixture
def gradient_for():
    """Build a squared-error cost gradient from outputs and targets."""
    return squared_error_gradient
