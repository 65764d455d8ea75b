"""
Per-node lifecycle states for the recompute engine.

Every node moves through the same cycle for the lifetime of its graph:

    INITIALIZED -> CHECKED_OUTPUTS -> (CHANGED) -> EVALUATED -> DELTAS
        -> ADJUSTED -> WEIGHTS_ADDED -> EVALUATED -> ...

States are compared through named predicates and an explicit transition
table rather than by ordering, so every legal move is listed in one place.

Example:
    >>> Status.EVALUATED.has_values
    True
    >>> Status.WEIGHTS_ADDED.needs_evaluation
    True
    >>> Status.INITIALIZED.can_transition_to(Status.EVALUATED)
    False
"""

from enum import Enum
from typing import Dict, FrozenSet


class Status(Enum):
    """
    Lifecycle state of a node.

    Attributes:
        INITIALIZED: Structurally created, not yet validated
        CHECKED_OUTPUTS: Validated to contribute to a network output
        CHANGED: Inputs mutated since the last evaluation; values are stale
        EVALUATED: Values reflect the current inputs
        DELTAS: Deltas reflect the current backward pass
        ADJUSTED: Parameter updates staged for the current pass
        WEIGHTS_ADDED: Staged parameter updates committed
    """
    INITIALIZED = "initialized"
    CHECKED_OUTPUTS = "checked-outputs"
    CHANGED = "changed"
    EVALUATED = "evaluated"
    DELTAS = "deltas"
    ADJUSTED = "adjusted"
    WEIGHTS_ADDED = "weights-added"

    @property
    def has_values(self) -> bool:
        """Whether cached values were computed (possibly before a weight commit)."""
        return self in _HAS_VALUES

    @property
    def has_deltas(self) -> bool:
        """Whether deltas were produced for the current backward pass."""
        return self in _HAS_DELTAS

    @property
    def is_adjusted(self) -> bool:
        """Whether the adjustment pass already visited this node."""
        return self in _IS_ADJUSTED

    @property
    def needs_evaluation(self) -> bool:
        """Whether a forward pass must recompute this node."""
        return self in _NEEDS_EVALUATION

    def can_transition_to(self, target: 'Status') -> bool:
        """Check a move against the transition table."""
        return target in TRANSITIONS[self]

    def __str__(self) -> str:
        return self.value


_HAS_VALUES: FrozenSet[Status] = frozenset({
    Status.EVALUATED,
    Status.DELTAS,
    Status.ADJUSTED,
    Status.WEIGHTS_ADDED,
})

_HAS_DELTAS: FrozenSet[Status] = frozenset({
    Status.DELTAS,
    Status.ADJUSTED,
    Status.WEIGHTS_ADDED,
})

_IS_ADJUSTED: FrozenSet[Status] = frozenset({
    Status.ADJUSTED,
    Status.WEIGHTS_ADDED,
})

_NEEDS_EVALUATION: FrozenSet[Status] = frozenset({
    Status.INITIALIZED,
    Status.CHECKED_OUTPUTS,
    Status.CHANGED,
    Status.WEIGHTS_ADDED,
})


# Legal moves, keyed by the current status.
TRANSITIONS: Dict[Status, FrozenSet[Status]] = {
    Status.INITIALIZED: frozenset({Status.CHECKED_OUTPUTS}),
    Status.CHECKED_OUTPUTS: frozenset({Status.EVALUATED}),
    Status.CHANGED: frozenset({Status.EVALUATED, Status.WEIGHTS_ADDED}),
    Status.EVALUATED: frozenset({
        Status.CHANGED, Status.DELTAS, Status.WEIGHTS_ADDED,
    }),
    Status.DELTAS: frozenset({
        Status.CHANGED, Status.DELTAS, Status.ADJUSTED, Status.WEIGHTS_ADDED,
    }),
    Status.ADJUSTED: frozenset({
        Status.CHANGED, Status.DELTAS, Status.WEIGHTS_ADDED,
    }),
    Status.WEIGHTS_ADDED: frozenset({
        Status.CHANGED, Status.DELTAS, Status.EVALUATED,
    }),
}

_missing = set(Status) - set(TRANSITIONS)
if _missing:
    raise RuntimeError(f"Transition table is missing states: {sorted(s.value for s in _missing)}")
