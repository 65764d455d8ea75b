"""
Global operator registry with zero magic.

Operators register themselves via decorator.
Lookup is explicit - no auto-discovery, no side effects.
"""

from typing import Dict, Type, Callable, Any, Optional
import inspect

from .interface import Operator


class OperatorRegistry:
    """
    Global registry for all operators.

    Design principles:
    - Explicit registration (decorator)
    - Fast lookup (O(1) dict access)
    - Clear errors (helpful messages)

    Example:
        >>> from cascade.core.registry import OperatorRegistry, register_operator
        >>>
        >>> @register_operator('double')
        >>> class Double(BaseOperator):
        ...     pass
        >>>
        >>> # Later, get the class
        >>> double_cls = OperatorRegistry.get('double')
        >>> op = double_cls()
    """

    # Name -> Class
    _registry: Dict[str, Type] = {}

    # Track registration metadata for debugging
    _metadata: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def register(cls, name: str, override: bool = False) -> Callable:
        """
        Register an operator class.

        Args:
            name: Unique operator name
            override: Allow overriding an existing operator (default: False)

        Returns:
            Decorator function

        Raises:
            ValueError: If operator already registered and override=False
        """
        def decorator(operator_cls: Type) -> Type:
            if name in cls._registry and not override:
                existing = cls._registry[name]
                raise ValueError(
                    f"Operator '{name}' already registered. "
                    f"Existing: {existing.__module__}.{existing.__name__}. "
                    f"Use override=True to replace."
                )

            cls._registry[name] = operator_cls
            operator_cls.operator_name = name

            cls._metadata[name] = {
                'module': operator_cls.__module__,
                'class': operator_cls.__name__,
                'doc': inspect.getdoc(operator_cls),
            }

            return operator_cls

        return decorator

    @classmethod
    def get(cls, name: str) -> Type:
        """
        Get registered operator class.

        Raises:
            ValueError: If operator not found
        """
        if name not in cls._registry:
            available = sorted(cls._registry.keys())
            raise ValueError(
                f"Operator '{name}' not found. "
                f"Available operators: {available}"
            )

        return cls._registry[name]

    @classmethod
    def has(cls, name: str) -> bool:
        """Check if operator is registered."""
        return name in cls._registry

    @classmethod
    def list_operators(cls, include_metadata: bool = False):
        """
        List registered operators.

        Args:
            include_metadata: If True, return dict with metadata

        Returns:
            Sorted list of names, or dict of name -> metadata
        """
        if include_metadata:
            return dict(cls._metadata)
        return sorted(cls._registry.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear registry (mainly for testing)."""
        cls._registry.clear()
        cls._metadata.clear()


# Convenience function (more readable than OperatorRegistry.register)
def register_operator(name: str, override: bool = False) -> Callable:
    """
    Register an operator (convenience wrapper).

    Example:
        >>> @register_operator('double')
        >>> class Double(BaseOperator):
        ...     def evaluate(self, node, values):
        ...         values[:] = 2 * node.input_values()
    """
    return OperatorRegistry.register(name, override)


def get_operator(name: str) -> Type:
    """Get operator class (convenience wrapper)."""
    return OperatorRegistry.get(name)


def create_operator(name: str, config: Optional[Dict[str, Any]] = None) -> Operator:
    """
    Create operator instance from config.

    Args:
        name: Operator name
        config: Configuration dictionary (passed as **kwargs)

    Returns:
        Instantiated operator

    Example:
        >>> op = create_operator('neurons', {'activation': 'tanh', 'seed': 0})
    """
    operator_cls = OperatorRegistry.get(name)
    return operator_cls(**(config or {}))


def list_operators(include_metadata: bool = False):
    """List registered operator names (or name -> metadata)."""
    return OperatorRegistry.list_operators(include_metadata)
