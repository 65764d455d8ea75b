"""
Utilities: configuration and logging.

Example:
    >>> from cascade.utils import load_config, setup_logging
    >>>
    >>> config = load_config("configs/xor.yaml")
    >>> setup_logging(level=config.logging.level, log_dir=config.logging.log_dir)
"""

from .config import (
    LoggingConfig,
    ExperimentConfig,
    load_config,
    save_config,
    validate_config,
    save_graph,
    load_graph
)

from .logging import (
    ColoredFormatter,
    setup_logging,
    format_time
)

__all__ = [
    # Config
    'LoggingConfig',
    'ExperimentConfig',
    'load_config',
    'save_config',
    'validate_config',
    'save_graph',
    'load_graph',

    # Logging
    'ColoredFormatter',
    'setup_logging',
    'format_time',
]
