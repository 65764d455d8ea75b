"""
Reference operators.

Importing this package registers every built-in operator by name:

- 'neurons': fully connected layer with bias and activation
- 'identity': pass-through of the concatenated inputs
"""

from .base import BaseOperator
from .neurons import Neurons, BIAS_VALUE
from .identity import Identity
from .activations import ACTIVATIONS, get_activation

__all__ = [
    'BaseOperator',
    'Neurons',
    'Identity',
    'BIAS_VALUE',
    'ACTIVATIONS',
    'get_activation',
]
