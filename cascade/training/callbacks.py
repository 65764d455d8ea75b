"""Training callbacks for monitoring and control."""

import logging
from typing import Optional

from .base import TrainingResult

logger = logging.getLogger(__name__)


class Callback:
    """Base callback class."""

    def on_train_begin(self, trainer) -> None:
        """Called at the start of training."""
        pass

    def on_train_end(self, trainer) -> None:
        """Called at the end of training."""
        pass

    def on_epoch_begin(self, trainer, epoch: int) -> None:
        """Called at the start of each epoch."""
        pass

    def on_epoch_end(self, trainer, epoch: int, result: TrainingResult) -> None:
        """Called at the end of each epoch."""
        pass


class EarlyStoppingCallback(Callback):
    """
    Stop training when the training cost is low enough or stops improving.

    Args:
        target_cost: Stop once the average cost drops below this value
        patience: Stop after this many epochs without improvement
        min_delta: Minimum decrease that counts as an improvement

    Example:
        >>> trainer = Trainer(graph, data, callbacks=[EarlyStoppingCallback(target_cost=1e-3)])
    """

    def __init__(
        self,
        target_cost: Optional[float] = None,
        patience: Optional[int] = None,
        min_delta: float = 0.0
    ):
        if target_cost is None and patience is None:
            raise ValueError("EarlyStoppingCallback needs target_cost or patience")
        self.target_cost = target_cost
        self.patience = patience
        self.min_delta = min_delta
        self.best_cost = float('inf')
        self.wait = 0

    def on_train_begin(self, trainer) -> None:
        self.best_cost = float('inf')
        self.wait = 0

    def on_epoch_end(self, trainer, epoch: int, result: TrainingResult) -> None:
        if self.target_cost is not None and result.average_cost < self.target_cost:
            logger.info(
                "Early stopping at epoch %d: cost %.6f below target %.6f",
                epoch, result.average_cost, self.target_cost
            )
            trainer.should_stop = True
            return

        if self.patience is None:
            return

        if result.average_cost < self.best_cost - self.min_delta:
            self.best_cost = result.average_cost
            self.wait = 0
        else:
            self.wait += 1
            if self.wait >= self.patience:
                logger.info("Early stopping at epoch %d: no improvement for %d epochs", epoch, self.wait)
                trainer.should_stop = True
