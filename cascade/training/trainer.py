"""Trainer driving a graph through forward, backward and adjustment passes."""

import logging
import queue
import threading
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np
from tqdm import tqdm

from ..core.errors import PrecedenceError, ShapeMismatch
from ..core.graph import Graph
from .base import TrainingConfig, TrainingResult, CallbackProtocol
from .costs import create_cost

logger = logging.getLogger(__name__)

Sample = Tuple[np.ndarray, np.ndarray]

_DONE = object()


class Trainer:
    """
    Trainer for cascade graphs.

    Each step sets the inputs, evaluates the outputs, backpropagates the
    cost gradient and adjusts the weights. With `batch_size > 1` the
    adjustments are staged and committed once per batch.

    Training can run on the caller's thread (`train`) or on a worker thread
    that hands results to the caller through a queue (`stream`).

    Example:
        >>> data = [([-1, -1], [0]), ([-1, 1], [1]), ([1, -1], [1]), ([1, 1], [0])]
        >>> trainer = Trainer(graph, data, TrainingConfig(max_epochs=1000))
        >>> for result in trainer.stream():
        ...     print(result.epoch, result.average_cost)
    """

    def __init__(
        self,
        graph: Graph,
        train_data: Sequence[Tuple[Sequence[float], Sequence[float]]],
        config: Optional[TrainingConfig] = None,
        test_data: Optional[Sequence[Tuple[Sequence[float], Sequence[float]]]] = None,
        callbacks: Optional[List[CallbackProtocol]] = None
    ):
        """
        Initialize trainer.

        Args:
            graph: Validated graph to train
            train_data: Sequence of (inputs, targets) pairs
            config: Training configuration
            test_data: Held-out (inputs, targets) pairs, evaluated every epoch
            callbacks: List of callbacks (optional)

        Raises:
            PrecedenceError: If the graph has not been validated
            ShapeMismatch: If a sample does not fit the graph
        """
        if not graph.is_validated:
            raise PrecedenceError("Can't train: graph has not been validated")

        self.graph = graph
        self.config = config or TrainingConfig()
        self.callbacks = callbacks or []
        self.cost_fn = create_cost(self.config.cost, self.config.cost_config)

        self.train_data = self._prepare(train_data, 'training')
        self.test_data = self._prepare(test_data, 'test') if test_data else []
        if not self.train_data:
            raise ValueError("Can't train without training data")

        self.rng = np.random.default_rng(self.config.seed)
        self.history: List[TrainingResult] = []
        self.epoch = 0
        self.should_stop = False

    def _prepare(self, data, label: str) -> List[Sample]:
        """Convert samples to arrays and check them against the graph."""
        samples = []
        for i, (inputs, targets) in enumerate(data):
            inputs = np.asarray(inputs, dtype=np.float64)
            targets = np.asarray(targets, dtype=np.float64)
            if inputs.shape != (self.graph.input_size,) or targets.shape != (self.graph.output_size,):
                raise ShapeMismatch(
                    f"{label} sample #{i} has shapes {inputs.shape} -> {targets.shape}, "
                    f"graph expects ({self.graph.input_size},) -> ({self.graph.output_size},)",
                    details={'sample': i},
                )
            samples.append((inputs, targets))
        return samples

    def _is_correct(self, outputs: np.ndarray, targets: np.ndarray) -> bool:
        return bool(np.all(np.abs(outputs - targets) < self.config.threshold))

    def train_step(
        self,
        inputs: Sequence[float],
        targets: Sequence[float],
        defer_commit: bool = False
    ) -> Tuple[float, bool]:
        """
        Run one sample through the graph and adjust the weights.

        Returns:
            (cost, correct) measured before the adjustment
        """
        outputs = self.graph.get_outputs(inputs)
        cost = self.cost_fn.cost(outputs, targets)

        self.graph.backpropagate(self.cost_fn.gradient_source(outputs, targets))
        self.graph.adjust_weights(self.config.learning_rate, defer_commit=defer_commit)

        return cost, self._is_correct(outputs, np.asarray(targets, dtype=np.float64))

    def train_epoch(self) -> TrainingResult:
        """Make one pass over the training data."""
        order = np.arange(len(self.train_data))
        if self.config.shuffle:
            self.rng.shuffle(order)

        batched = self.config.batch_size > 1
        total_cost = 0.0
        correct = 0

        for n, idx in enumerate(order, start=1):
            inputs, targets = self.train_data[idx]
            cost, ok = self.train_step(inputs, targets, defer_commit=batched)
            total_cost += cost
            correct += ok

            if batched and (n % self.config.batch_size == 0 or n == len(order)):
                self.graph.commit_all_weights()

        return TrainingResult(
            epoch=self.epoch,
            average_cost=total_cost / len(order),
            percent_correct=100.0 * correct / len(order),
        )

    def evaluate_dataset(self, data: Sequence[Sample]) -> Tuple[float, float]:
        """
        Evaluate without training.

        Returns:
            (average cost, percent correct)
        """
        total_cost = 0.0
        correct = 0
        for inputs, targets in data:
            outputs = self.graph.get_outputs(inputs)
            total_cost += self.cost_fn.cost(outputs, targets)
            correct += self._is_correct(outputs, targets)
        return total_cost / len(data), 100.0 * correct / len(data)

    def train(self, results: Optional[queue.Queue] = None) -> List[TrainingResult]:
        """
        Main training loop.

        Args:
            results: If given, every result is also put on this queue

        Returns:
            Results of this call, training and test interleaved
        """
        self.should_stop = False
        produced: List[TrainingResult] = []

        def record(result: TrainingResult) -> None:
            produced.append(result)
            self.history.append(result)
            if results is not None:
                results.put(result)

        for callback in self.callbacks:
            callback.on_train_begin(self)

        pbar = tqdm(
            total=self.config.max_epochs,
            initial=self.epoch,
            desc="Training",
            disable=not self.config.progress_bar
        )

        try:
            while self.epoch < self.config.max_epochs:
                epoch = self.epoch

                for callback in self.callbacks:
                    callback.on_epoch_begin(self, epoch)

                result = self.train_epoch()
                record(result)

                if self.test_data:
                    avg, percent = self.evaluate_dataset(self.test_data)
                    record(TrainingResult(epoch=epoch, average_cost=avg, percent_correct=percent, is_test=True))

                for callback in self.callbacks:
                    callback.on_epoch_end(self, epoch, result)

                pbar.update(1)
                pbar.set_postfix(cost=f"{result.average_cost:.4f}", correct=f"{result.percent_correct:.0f}%")

                if self.config.log_every and (epoch + 1) % self.config.log_every == 0:
                    logger.info(
                        "Epoch %d: average cost %.6f, %.1f%% correct",
                        epoch + 1, result.average_cost, result.percent_correct
                    )

                self.epoch += 1
                if self.should_stop:
                    logger.info("Training stopped after epoch %d", epoch + 1)
                    break
        finally:
            pbar.close()
            for callback in self.callbacks:
                callback.on_train_end(self)

        return produced

    def stream(self) -> Iterator[TrainingResult]:
        """
        Train on a worker thread and yield results as they are produced.

        Closing the iterator early asks the worker to stop after the current
        epoch. An error raised by the worker is re-raised here once the
        results produced before it have been yielded.
        """
        results: queue.Queue = queue.Queue()
        errors: List[Exception] = []

        def produce() -> None:
            try:
                self.train(results)
            except Exception as err:
                errors.append(err)
            finally:
                results.put(_DONE)

        worker = threading.Thread(target=produce, name='cascade-trainer', daemon=True)
        worker.start()

        try:
            while True:
                item = results.get()
                if item is _DONE:
                    break
                yield item
        finally:
            if worker.is_alive():
                self.should_stop = True
            worker.join()

        if errors:
            raise errors[0]
