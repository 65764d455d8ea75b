"""
Error taxonomy for the recompute engine.

- StructuralError: the graph itself is invalid (no path to an output,
  cycles, unreachable nodes). Raised at construction/validation time.
- ShapeMismatch: a vector has the wrong length or an index falls outside
  its range.
- OperatorError: a computational kernel failed. Always chained to the
  kernel's original exception.
- PrecedenceError: a pass was requested out of order (deltas before
  evaluation, input deltas over an edge that does not exist, ...).

Every recursive frame that lets an error through adds one line of context,
so a failure deep in the graph names the path back to its entry point.

Example:
    >>> try:
    ...     graph.get_outputs([0.0, 1.0, 2.0])
    ... except ShapeMismatch as err:
    ...     print(err)
"""

from typing import Any, Dict, List, Optional


class CascadeError(Exception):
    """
    Base class for engine errors.

    Args:
        message: Short description of the failure
        node: Name of the node where the failure originated
        pass_name: Pass in progress ('validate', 'evaluate', 'deltas', ...)
        details: Structured data useful for diagnosis
    """

    def __init__(
        self,
        message: str,
        *,
        node: Optional[str] = None,
        pass_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.node = node
        self.pass_name = pass_name
        self.details: Dict[str, Any] = dict(details or {})
        self.context: List[str] = []

    def add_context(self, note: str) -> 'CascadeError':
        """Append one layer of context and return the same error."""
        self.context.append(note)
        return self

    def __str__(self) -> str:
        lines = [self.message]
        lines.extend(f"  <- {note}" for note in self.context)
        return '\n'.join(lines)


class StructuralError(CascadeError):
    """Graph structure is invalid."""


class ShapeMismatch(CascadeError):
    """Vector length or range bounds do not match."""


class OperatorError(CascadeError):
    """A node's operator failed."""


class PrecedenceError(CascadeError):
    """A pass was requested before its prerequisites."""
