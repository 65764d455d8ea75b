"""
Logging setup for cascade applications.

Library modules log through `logging.getLogger(__name__)` and never install
handlers themselves; everything lives under the 'cascade' logger. The CLI
and scripts call `setup_logging` once, usually with the values of a
`LoggingConfig`.

Example:
    >>> from cascade.utils import setup_logging
    >>>
    >>> logger = setup_logging(level='DEBUG', log_dir='logs')
    >>> logger.debug('Evaluating node hidden')
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import click

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name with click styles."""

    LEVEL_COLORS = {
        'DEBUG': 'cyan',
        'INFO': 'green',
        'WARNING': 'yellow',
        'ERROR': 'red',
        'CRITICAL': 'magenta',
    }

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelname)
        if color is None:
            return super().format(record)
        # File handlers may share the record
        styled = logging.makeLogRecord(record.__dict__)
        styled.levelname = click.style(record.levelname, fg=color)
        return super().format(styled)


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown logging level: {level}")
    return resolved


def setup_logging(
    name: str = 'cascade',
    log_dir: Optional[str] = None,
    level: Union[int, str] = logging.INFO,
    console: bool = True,
    file: bool = True,
    colored: bool = True
) -> logging.Logger:
    """
    Install console and file handlers on the `name` logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        name: Logger name ('cascade' covers every library module)
        log_dir: Directory for a timestamped `{name}_YYYYmmdd_HHMMSS.log`
        level: Logging level, as a number or a name such as 'DEBUG'
        console: Log to stdout
        file: Log to a file (only when log_dir is given)
        colored: Color level names on the console

    Returns:
        Configured logger

    Raises:
        ValueError: If `level` names no logging level
    """
    level = _resolve_level(level)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        formatter_cls = ColoredFormatter if colored else logging.Formatter
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(formatter_cls(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

    if file and log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        log_file = directory / f"{name}_{datetime.now():%Y%m%d_%H%M%S}.log"

        handler = logging.FileHandler(log_file)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

        logger.info("Logging to file: %s", log_file)

    return logger


def format_time(seconds: float) -> str:
    """
    Format a training duration.

    Example:
        >>> format_time(4.2)
        '4.2s'
        >>> format_time(3725.5)
        '1h 02m 05s'
    """
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    return f"{minutes}m {secs:02d}s"
