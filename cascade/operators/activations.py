"""
Elementwise activation functions.

Each entry pairs the function with its derivative expressed in terms of the
function's output, which is what a node caches in `values`.
"""

from typing import Callable, Dict, Tuple

import numpy as np

ActivationFn = Callable[[np.ndarray], np.ndarray]


def logistic(z: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-np.clip(z, -500.0, 500.0)))


def logistic_derivative(y: np.ndarray) -> np.ndarray:
    return y * (1.0 - y)


def tanh_derivative(y: np.ndarray) -> np.ndarray:
    return 1.0 - y * y


def linear(z: np.ndarray) -> np.ndarray:
    return z


def linear_derivative(y: np.ndarray) -> np.ndarray:
    return np.ones_like(y)


def relu(z: np.ndarray) -> np.ndarray:
    return np.maximum(z, 0.0)


def relu_derivative(y: np.ndarray) -> np.ndarray:
    return (y > 0.0).astype(y.dtype)


ACTIVATIONS: Dict[str, Tuple[ActivationFn, ActivationFn]] = {
    'logistic': (logistic, logistic_derivative),
    'tanh': (np.tanh, tanh_derivative),
    'linear': (linear, linear_derivative),
    'relu': (relu, relu_derivative),
}


def get_activation(name: str) -> Tuple[ActivationFn, ActivationFn]:
    """
    Get (function, derivative-from-output) pair by name.

    Raises:
        ValueError: If the activation is unknown
    """
    if name not in ACTIVATIONS:
        raise ValueError(
            f"Unknown activation '{name}'. "
            f"Available activations: {sorted(ACTIVATIONS)}"
        )
    return ACTIVATIONS[name]
