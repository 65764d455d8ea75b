"""Base classes and protocols for training."""

from typing import Protocol, Dict, Any, Optional
from dataclasses import dataclass, field, asdict, fields


class CallbackProtocol(Protocol):
    """Protocol for training callbacks."""

    def on_train_begin(self, trainer: 'Trainer') -> None:
        """Called at the start of training."""
        ...

    def on_train_end(self, trainer: 'Trainer') -> None:
        """Called at the end of training."""
        ...

    def on_epoch_begin(self, trainer: 'Trainer', epoch: int) -> None:
        """Called at the start of each epoch."""
        ...

    def on_epoch_end(self, trainer: 'Trainer', epoch: int, result: 'TrainingResult') -> None:
        """Called at the end of each epoch."""
        ...


@dataclass
class TrainingConfig:
    """
    Configuration for training.

    Attributes:
        max_epochs: Passes over the training data
        learning_rate: Step size handed to every operator
        batch_size: Samples per weight commit; above 1 adjustments are
            staged and committed once per batch
        shuffle: Shuffle sample order every epoch
        seed: Seed for shuffling
        cost: Cost function name (see cascade.training.costs)
        cost_config: Extra arguments for the cost function
        threshold: A sample is correct when every output is within
            `threshold` of its target
        log_every: Log a summary every N epochs (0 disables)
        progress_bar: Show a tqdm progress bar

    Example:
        >>> config = TrainingConfig(
        ...     max_epochs=1000,
        ...     learning_rate=1.0,
        ...     batch_size=4
        ... )
    """

    # Schedule
    max_epochs: int = 1000
    learning_rate: float = 1.0
    batch_size: int = 1
    shuffle: bool = False
    seed: Optional[int] = None

    # Cost
    cost: str = 'squared_error'
    cost_config: Dict[str, Any] = field(default_factory=dict)
    threshold: float = 0.5

    # Reporting
    log_every: int = 100
    progress_bar: bool = False

    def __post_init__(self):
        """Validate configuration."""
        if self.max_epochs < 0:
            raise ValueError(f"max_epochs must be >= 0, got {self.max_epochs}")
        if self.learning_rate <= 0:
            raise ValueError(f"learning_rate must be positive, got {self.learning_rate}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.threshold <= 0:
            raise ValueError(f"threshold must be positive, got {self.threshold}")
        if self.log_every < 0:
            raise ValueError(f"log_every must be >= 0, got {self.log_every}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'TrainingConfig':
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})


@dataclass
class TrainingResult:
    """
    Summary of one pass over a dataset.

    Attributes:
        epoch: Zero-based epoch index
        average_cost: Mean cost per sample
        percent_correct: Share of correct samples, in percent
        is_test: True for held-out data, False for training data
    """

    epoch: int
    average_cost: float
    percent_correct: float
    is_test: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)
