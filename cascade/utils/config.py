"""
Configuration management for cascade experiments.

This module provides configuration classes and utilities:
- LoggingConfig: Log level and destinations
- ExperimentConfig: Graph description, training and logging in one place
- YAML loading/saving for experiments and for trained graphs

Example:
    >>> from cascade.utils import load_config
    >>>
    >>> config = load_config('configs/xor.yaml')
    >>> graph = config.build_graph()
    >>> trainer = Trainer(graph, data, config.training)
"""

import logging
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from ..core.graph import Graph
from ..core.errors import CascadeError
from ..training.base import TrainingConfig

logger = logging.getLogger(__name__)

_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


# ============================================================================
# LOGGING CONFIGURATION
# ============================================================================

@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Args:
        level: Level name passed to `setup_logging`
        log_dir: Directory for log files (None disables file logging)
        colored: Use colored console output
    """

    level: str = 'INFO'
    log_dir: Union[str, None] = None
    colored: bool = True

    def __post_init__(self):
        self.level = self.level.upper()
        if self.level not in _LEVELS:
            raise ValueError(f"Unknown logging level: {self.level}. Available: {', '.join(_LEVELS)}")


# ============================================================================
# EXPERIMENT CONFIGURATION
# ============================================================================

@dataclass
class ExperimentConfig:
    """
    Complete experiment configuration.

    Args:
        graph: Graph description in the `Graph.to_dict` format
        training: Training configuration
        logging: Logging configuration
        name: Experiment name
        description: Experiment description

    Example:
        >>> config = ExperimentConfig(
        ...     graph={
        ...         'nodes': [
        ...             {'name': 'input', 'size': 2},
        ...             {'name': 'output', 'size': 1, 'inputs': ['input'],
        ...              'operator': {'name': 'neurons', 'config': {'activation': 'tanh'}}},
        ...         ],
        ...         'outputs': ['output'],
        ...     },
        ...     training=TrainingConfig(max_epochs=500),
        ...     name='tiny'
        ... )
    """

    graph: Dict[str, Any]
    training: TrainingConfig = field(default_factory=TrainingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Metadata
    name: str = "experiment"
    description: str = ""

    def build_graph(self) -> Graph:
        """Build a validated graph from the description."""
        return Graph.from_dict(self.graph)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'graph': self.graph,
            'training': self.training.to_dict(),
            'logging': asdict(self.logging),
            'name': self.name,
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'ExperimentConfig':
        """Create from dictionary."""
        if 'graph' not in config_dict:
            raise ValueError("Experiment config needs a 'graph' section")

        return cls(
            graph=config_dict['graph'],
            training=TrainingConfig.from_dict(config_dict.get('training') or {}),
            logging=LoggingConfig(**(config_dict.get('logging') or {})),
            name=config_dict.get('name', 'experiment'),
            description=config_dict.get('description', ''),
        )


# ============================================================================
# YAML UTILITIES
# ============================================================================

def load_config(config_path: str) -> ExperimentConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML config file

    Returns:
        ExperimentConfig instance
    """
    with open(config_path, 'r') as f:
        config_dict = yaml.safe_load(f)

    if not isinstance(config_dict, dict):
        raise ValueError(f"Config file {config_path} does not contain a mapping")

    return ExperimentConfig.from_dict(config_dict)


def save_config(config: ExperimentConfig, config_path: str):
    """
    Save configuration to YAML file.

    Example:
        >>> save_config(config, 'configs/my_config.yaml')
    """
    Path(config_path).parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)

    logger.info(f"Config saved to: {config_path}")


def save_graph(graph: Graph, path: str):
    """
    Save a graph, trained weights included, to YAML.

    Example:
        >>> save_graph(trainer.graph, 'runs/xor/graph.yaml')
        >>> restored = load_graph('runs/xor/graph.yaml')
    """
    Path(path).parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        yaml.safe_dump(graph.to_dict(), f, default_flow_style=None, sort_keys=False)

    logger.info(f"Graph saved to: {path}")


def load_graph(path: str) -> Graph:
    """Load a graph written by `save_graph`."""
    with open(path, 'r') as f:
        data = yaml.safe_load(f)

    return Graph.from_dict(data)


# ============================================================================
# VALIDATION
# ============================================================================

def validate_config(config: ExperimentConfig) -> List[str]:
    """
    Validate experiment configuration.

    Args:
        config: Configuration to validate

    Returns:
        List of validation issues (empty if all OK)

    Example:
        >>> issues = validate_config(config)
        >>> for issue in issues:
        ...     print(f"Warning: {issue}")
    """
    issues = []

    try:
        graph = config.build_graph()
    except (CascadeError, ValueError, KeyError, TypeError) as err:
        issues.append(f"graph cannot be built: {err}")
        graph = None

    if graph is not None and not graph.is_validated:
        issues.append("graph has no outputs")

    training = config.training
    if training.learning_rate > 10.0:
        issues.append(f"learning_rate ({training.learning_rate}) is very high")
    if training.max_epochs == 0:
        issues.append("max_epochs is 0, nothing will be trained")
    if training.cost == 'cross_entropy' and graph is not None:
        for out in graph.outputs:
            activation = getattr(out.operator, 'activation', None)
            if activation not in (None, 'logistic'):
                issues.append(
                    f"cross_entropy expects outputs in (0, 1) but '{out}' uses {activation}"
                )

    return issues
