"""
Tests for operator registry.

Tests:
- Operator registration
- Operator retrieval and creation
- Error handling
- Metadata tracking
"""

import pytest

from cascade.core.interface import Operator
from cascade.core.registry import (
    OperatorRegistry,
    register_operator,
    get_operator,
    create_operator,
    list_operators
)
from cascade.operators import BaseOperator, Identity, Neurons


# ============================================================================
# TEST FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def isolated_registry(restore_registry):
    """Every test may register freely; built-ins are restored afterwards."""
    yield restore_registry


@pytest.fixture
def scale_operator():
    """Create a sample operator class."""

    class Scale(BaseOperator):
        """Multiplies inputs by a constant."""

        def __init__(self, factor: float = 2.0):
            self.factor = factor

        def evaluate(self, node, values):
            values[:] = self.factor * node.input_values()

        def input_deltas(self, node, start, end, add):
            for i in range(start, end):
                add(i - start, self.factor * node.deltas[i])

        def get_config(self):
            return {'factor': self.factor}

    return Scale


# ============================================================================
# REGISTRATION
# ============================================================================

def test_builtins_registered():
    assert list_operators() == sorted(list_operators())
    assert 'neurons' in list_operators()
    assert 'identity' in list_operators()
    assert get_operator('neurons') is Neurons
    assert get_operator('identity') is Identity


def test_register_operator(scale_operator):
    register_operator('scale')(scale_operator)

    assert OperatorRegistry.has('scale')
    assert get_operator('scale') is scale_operator
    assert scale_operator.operator_name == 'scale'


def test_register_duplicate_error(scale_operator):
    register_operator('scale')(scale_operator)

    with pytest.raises(ValueError, match="already registered"):
        register_operator('scale')(scale_operator)


def test_register_override(scale_operator):
    register_operator('scale')(scale_operator)

    class Replacement(scale_operator):
        pass

    register_operator('scale', override=True)(Replacement)
    assert get_operator('scale') is Replacement


def test_get_unknown_lists_available():
    with pytest.raises(ValueError, match="not found") as exc_info:
        get_operator('nonexistent')
    assert 'neurons' in str(exc_info.value)


# ============================================================================
# CREATION
# ============================================================================

def test_create_operator_with_config(scale_operator):
    register_operator('scale')(scale_operator)

    op = create_operator('scale', {'factor': 3.0})

    assert isinstance(op, scale_operator)
    assert op.factor == 3.0
    assert isinstance(op, Operator)


def test_create_operator_default_config():
    op = create_operator('identity')
    assert isinstance(op, Identity)
    assert not op.force_deltas


def test_registered_operator_roundtrips_through_graph(scale_operator):
    from cascade import Graph

    register_operator('scale')(scale_operator)
    graph = Graph()
    inp = graph.add('input', 2)
    out = graph.add('out', 2, inp, operator=create_operator('scale', {'factor': -1.5}))
    graph.set_outputs(out)

    restored = Graph.from_dict(graph.to_dict())

    assert restored.node('out').operator.factor == -1.5
    assert list(restored.get_outputs([2.0, 4.0])) == [-3.0, -6.0]


# ============================================================================
# METADATA
# ============================================================================

def test_metadata(scale_operator):
    register_operator('scale')(scale_operator)

    meta = list_operators(include_metadata=True)['scale']

    assert meta['class'] == 'Scale'
    assert meta['doc'] == "Multiplies inputs by a constant."


def test_clear():
    OperatorRegistry.clear()
    assert list_operators() == []
