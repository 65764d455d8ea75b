"""Tests for node status predicates and the transition table."""

import pytest

from cascade.core.errors import PrecedenceError
from cascade.core.node import Node
from cascade.core.status import Status, TRANSITIONS


# ============================================================================
# PREDICATES
# ============================================================================

class TestPredicates:
    """Test named status predicates."""

    def test_has_values(self):
        with_values = {s for s in Status if s.has_values}
        assert with_values == {
            Status.EVALUATED, Status.DELTAS, Status.ADJUSTED, Status.WEIGHTS_ADDED
        }

    def test_has_deltas(self):
        with_deltas = {s for s in Status if s.has_deltas}
        assert with_deltas == {Status.DELTAS, Status.ADJUSTED, Status.WEIGHTS_ADDED}

    def test_is_adjusted(self):
        adjusted = {s for s in Status if s.is_adjusted}
        assert adjusted == {Status.ADJUSTED, Status.WEIGHTS_ADDED}

    def test_needs_evaluation(self):
        stale = {s for s in Status if s.needs_evaluation}
        assert stale == {
            Status.INITIALIZED, Status.CHECKED_OUTPUTS, Status.CHANGED, Status.WEIGHTS_ADDED
        }

    def test_changed_has_no_values(self):
        """A changed node is stale and must not be used for deltas."""
        assert not Status.CHANGED.has_values
        assert not Status.CHANGED.has_deltas

    def test_str_is_value(self):
        assert str(Status.WEIGHTS_ADDED) == 'weights-added'
        assert str(Status.CHECKED_OUTPUTS) == 'checked-outputs'


# ============================================================================
# TRANSITION TABLE
# ============================================================================

class TestTransitions:
    """Test the transition table."""

    def test_every_state_listed(self):
        assert set(TRANSITIONS) == set(Status)

    def test_nothing_returns_to_initialized(self):
        for targets in TRANSITIONS.values():
            assert Status.INITIALIZED not in targets

    def test_validation_only_from_initialized(self):
        sources = {s for s, targets in TRANSITIONS.items() if Status.CHECKED_OUTPUTS in targets}
        assert sources == {Status.INITIALIZED}

    @pytest.mark.parametrize('current, target', [
        (Status.INITIALIZED, Status.CHECKED_OUTPUTS),
        (Status.CHECKED_OUTPUTS, Status.EVALUATED),
        (Status.CHANGED, Status.EVALUATED),
        (Status.EVALUATED, Status.DELTAS),
        (Status.DELTAS, Status.DELTAS),
        (Status.DELTAS, Status.ADJUSTED),
        (Status.ADJUSTED, Status.WEIGHTS_ADDED),
        (Status.WEIGHTS_ADDED, Status.EVALUATED),
        (Status.ADJUSTED, Status.CHANGED),
    ])
    def test_legal_moves(self, current, target):
        assert current.can_transition_to(target)

    @pytest.mark.parametrize('current, target', [
        (Status.INITIALIZED, Status.EVALUATED),
        (Status.CHANGED, Status.DELTAS),
        (Status.CHECKED_OUTPUTS, Status.DELTAS),
        (Status.EVALUATED, Status.ADJUSTED),
        (Status.EVALUATED, Status.EVALUATED),
        (Status.WEIGHTS_ADDED, Status.ADJUSTED),
        (Status.CHECKED_OUTPUTS, Status.WEIGHTS_ADDED),
    ])
    def test_illegal_moves(self, current, target):
        assert not current.can_transition_to(target)


# ============================================================================
# NODE TRANSITIONS
# ============================================================================

def test_node_starts_initialized():
    node = Node('n', 3)
    assert node.status is Status.INITIALIZED
    assert node.values.shape == (3,)
    assert node.deltas.shape == (3,)


def test_node_transition_follows_table():
    node = Node('n', 1)
    node.transition(Status.CHECKED_OUTPUTS)
    node.transition(Status.EVALUATED)
    assert node.status is Status.EVALUATED


def test_node_illegal_transition_raises():
    node = Node('n', 1)

    with pytest.raises(PrecedenceError, match="initialized -> evaluated") as exc_info:
        node.transition(Status.EVALUATED, 'evaluate')

    assert exc_info.value.node == 'n'
    assert exc_info.value.pass_name == 'evaluate'
    assert node.status is Status.INITIALIZED
