"""Comprehensive tests for trainer module."""

import logging
import queue

import numpy as np
import pytest

from cascade import Graph
from cascade.core.errors import OperatorError, PrecedenceError, ShapeMismatch
from cascade.training import (
    Callback,
    EarlyStoppingCallback,
    SquaredError,
    Trainer,
    TrainingConfig,
    TrainingResult,
)


# ============================================================================
# FIXTURES
# ============================================================================

class RecordingCallback(Callback):
    """Records every hook call."""

    def __init__(self):
        self.events = []

    def on_train_begin(self, trainer):
        self.events.append('train_begin')

    def on_train_end(self, trainer):
        self.events.append('train_end')

    def on_epoch_begin(self, trainer, epoch):
        self.events.append(('epoch_begin', epoch))

    def on_epoch_end(self, trainer, epoch, result):
        self.events.append(('epoch_end', epoch, result.is_test))


def _weights(graph):
    return {node.name: node.operator.weights.copy() for node in graph if node.operator is not None}


def _manual_batches(graph, data, batch_size, learning_rate):
    cost = SquaredError()
    for n, (inputs, targets) in enumerate(data, start=1):
        outputs = graph.get_outputs(inputs)
        graph.backpropagate(cost.gradient_source(outputs, targets))
        graph.adjust_weights(learning_rate, defer_commit=True)
        if n % batch_size == 0 or n == len(data):
            graph.commit_all_weights()


# ============================================================================
# TEST CONFIG
# ============================================================================

def test_training_config_defaults():
    config = TrainingConfig()

    assert config.max_epochs == 1000
    assert config.learning_rate == 1.0
    assert config.batch_size == 1
    assert config.cost == 'squared_error'
    assert config.threshold == 0.5


@pytest.mark.parametrize('kwargs', [
    {'max_epochs': -1},
    {'learning_rate': 0.0},
    {'batch_size': 0},
    {'threshold': 0.0},
    {'log_every': -5},
])
def test_training_config_validation(kwargs):
    with pytest.raises(ValueError):
        TrainingConfig(**kwargs)


def test_training_config_dict_roundtrip():
    config = TrainingConfig(max_epochs=10, cost='cross_entropy', cost_config={'epsilon': 1e-6})
    data = config.to_dict()
    data['unknown_key'] = 'ignored'

    restored = TrainingConfig.from_dict(data)

    assert restored == config


def test_training_result_to_dict():
    result = TrainingResult(epoch=3, average_cost=0.25, percent_correct=75.0)
    assert result.to_dict() == {
        'epoch': 3, 'average_cost': 0.25, 'percent_correct': 75.0, 'is_test': False
    }


# ============================================================================
# TEST TRAINER SETUP
# ============================================================================

def test_trainer_requires_validated_graph(xor_data):
    graph = Graph()
    graph.add('input', 2)

    with pytest.raises(PrecedenceError):
        Trainer(graph, xor_data)


def test_trainer_checks_sample_shapes(xor_graph):
    with pytest.raises(ShapeMismatch, match="training sample #1"):
        Trainer(xor_graph(), [([0.0, 0.0], [0.0]), ([0.0], [1.0])])

    with pytest.raises(ShapeMismatch, match="test sample #0"):
        Trainer(xor_graph(), [([0.0, 0.0], [0.0])], test_data=[([0.0, 0.0], [1.0, 0.0])])


def test_trainer_requires_data(xor_graph):
    with pytest.raises(ValueError, match="without training data"):
        Trainer(xor_graph(), [])


# ============================================================================
# TEST TRAINING
# ============================================================================

def test_train_step_measures_before_update(xor_graph):
    graph = xor_graph()
    trainer = Trainer(graph, [([1.0, 1.0], [0.0])])
    outputs = graph.get_outputs([1.0, 1.0])

    cost, correct = trainer.train_step([1.0, 1.0], [0.0])

    assert cost == pytest.approx(float(outputs[0] ** 2))
    assert correct
    assert graph.get_outputs([1.0, 1.0])[0] < outputs[0]


@pytest.mark.parametrize('seeds', [(1, 2), (2, 3), (3, 4)])
def test_xor_converges_from_random_init(seeded_xor_graph, xor_data, seeds):
    graph = seeded_xor_graph(*seeds)
    trainer = Trainer(graph, xor_data, TrainingConfig(max_epochs=1000, learning_rate=1.0))
    initial_cost, _ = trainer.evaluate_dataset(trainer.train_data)

    history = trainer.train()

    assert len(history) == 1000
    assert trainer.epoch == 1000

    final_cost, percent = trainer.evaluate_dataset(trainer.train_data)
    assert percent == 100.0
    assert final_cost < initial_cost
    assert final_cost < 0.1
    for inputs, targets in xor_data:
        assert abs(graph.get_outputs(inputs)[0] - targets[0]) < 0.5


def test_presolved_xor_stays_solved(xor_graph, xor_data):
    graph = xor_graph()
    trainer = Trainer(graph, xor_data, TrainingConfig(max_epochs=1000, learning_rate=1.0))
    initial_cost, _ = trainer.evaluate_dataset(trainer.train_data)

    history = trainer.train()

    assert history[-1].percent_correct == 100.0
    final_cost, percent = trainer.evaluate_dataset(trainer.train_data)
    assert percent == 100.0
    assert final_cost < initial_cost


@pytest.mark.parametrize('batch_size', [2, 3, 4])
def test_batched_training_matches_deferred_commits(xor_graph, xor_data, batch_size):
    trained, manual = xor_graph(), xor_graph()
    config = TrainingConfig(max_epochs=1, batch_size=batch_size, learning_rate=0.5)

    Trainer(trained, xor_data, config).train()
    _manual_batches(manual, xor_data, batch_size, 0.5)

    for name, weights in _weights(manual).items():
        np.testing.assert_allclose(trained.node(name).operator.weights, weights)
    for node in trained:
        assert not node.staged


def test_full_batch_is_order_independent(xor_graph, xor_data):
    plain, shuffled = xor_graph(), xor_graph()
    Trainer(plain, xor_data, TrainingConfig(max_epochs=3, batch_size=4)).train()
    Trainer(shuffled, xor_data, TrainingConfig(max_epochs=3, batch_size=4, shuffle=True, seed=0)).train()

    for name, weights in _weights(plain).items():
        np.testing.assert_allclose(shuffled.node(name).operator.weights, weights)


def test_test_data_interleaved(xor_graph, xor_data):
    trainer = Trainer(xor_graph(), xor_data, TrainingConfig(max_epochs=3), test_data=xor_data)

    history = trainer.train()

    assert [r.is_test for r in history] == [False, True] * 3
    assert [r.epoch for r in history] == [0, 0, 1, 1, 2, 2]


def test_results_put_on_queue(xor_graph, xor_data):
    trainer = Trainer(xor_graph(), xor_data, TrainingConfig(max_epochs=4))
    results = queue.Queue()

    history = trainer.train(results)

    assert [results.get_nowait() for _ in range(4)] == history
    assert results.empty()


def test_train_resumes_from_current_epoch(xor_graph, xor_data):
    trainer = Trainer(xor_graph(), xor_data, TrainingConfig(max_epochs=3))
    trainer.train()
    trainer.config.max_epochs = 5

    resumed = trainer.train()

    assert [r.epoch for r in resumed] == [3, 4]
    assert len(trainer.history) == 5


def test_logs_progress(xor_graph, xor_data, caplog):
    caplog.set_level(logging.INFO, logger='cascade')
    trainer = Trainer(xor_graph(), xor_data, TrainingConfig(max_epochs=4, log_every=2))

    trainer.train()

    messages = [r.getMessage() for r in caplog.records if r.name == 'cascade.training.trainer']
    assert len(messages) == 2
    assert messages[0].startswith("Epoch 2: average cost")


# ============================================================================
# TEST CALLBACKS
# ============================================================================

def test_callback_order(xor_graph, xor_data):
    callback = RecordingCallback()
    trainer = Trainer(xor_graph(), xor_data, TrainingConfig(max_epochs=2), callbacks=[callback])

    trainer.train()

    assert callback.events == [
        'train_begin',
        ('epoch_begin', 0), ('epoch_end', 0, False),
        ('epoch_begin', 1), ('epoch_end', 1, False),
        'train_end',
    ]


def test_early_stopping_target_cost(xor_graph, xor_data):
    stopper = EarlyStoppingCallback(target_cost=0.1)
    trainer = Trainer(xor_graph(), xor_data, TrainingConfig(max_epochs=500), callbacks=[stopper])

    history = trainer.train()

    assert len(history) == 1
    assert trainer.epoch == 1


def test_early_stopping_patience(xor_graph, xor_data):
    stopper = EarlyStoppingCallback(patience=3, min_delta=1.0)
    trainer = Trainer(xor_graph(), xor_data, TrainingConfig(max_epochs=500), callbacks=[stopper])

    history = trainer.train()

    assert len(history) == 4


def test_early_stopping_needs_a_criterion():
    with pytest.raises(ValueError):
        EarlyStoppingCallback()


# ============================================================================
# TEST STREAMING
# ============================================================================

def test_stream_yields_every_result(xor_graph, xor_data):
    trainer = Trainer(xor_graph(), xor_data, TrainingConfig(max_epochs=5), test_data=xor_data)

    streamed = list(trainer.stream())

    assert len(streamed) == 10
    assert streamed == trainer.history


def test_stream_closed_early_stops_worker(xor_graph, xor_data):
    trainer = Trainer(xor_graph(), xor_data, TrainingConfig(max_epochs=1_000_000))

    stream = trainer.stream()
    first = next(stream)
    stream.close()

    assert first.epoch == 0
    assert trainer.should_stop
    assert trainer.epoch < 1_000_000


def test_stream_reraises_worker_error(failing, xor_data):
    graph = Graph()
    inp = graph.add('input', 2)
    graph.set_outputs(graph.add('bad', 1, inp, operator=failing('evaluate')))
    trainer = Trainer(graph, xor_data, TrainingConfig(max_epochs=3))

    with pytest.raises(OperatorError, match="kernel exploded"):
        list(trainer.stream())
