"""
Demo: Train the XOR network while a consumer thread watches the results.

The trainer runs on a worker thread and streams one result per epoch; this
script is the consumer and prints progress as it arrives.

Run: python scripts/train_xor.py [--epochs 1000] [--batch-size 1]
"""

import argparse
import time
import logging

from cascade import Graph, Neurons, Trainer, TrainingConfig, save_graph, setup_logging
from cascade.utils.logging import format_time

XOR = [
    ([-1.0, -1.0], [0.0]),
    ([-1.0, 1.0], [1.0]),
    ([1.0, -1.0], [1.0]),
    ([1.0, 1.0], [0.0]),
]


def build_graph(seed=None):
    """input(2) -> hidden(1); [input, hidden] -> output(1)."""
    graph = Graph()
    inp = graph.add('input', 2)
    hidden = graph.add('hidden', 1, inp, operator=Neurons(seed=seed))
    output = graph.add('output', 1, inp, hidden, operator=Neurons(seed=None if seed is None else seed + 1))
    graph.set_outputs(output)
    return graph


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument('--epochs', type=int, default=1000)
    parser.add_argument('--learning-rate', type=float, default=1.0)
    parser.add_argument('--batch-size', type=int, default=1)
    parser.add_argument('--seed', type=int, default=1)
    parser.add_argument('--save', help='Write the trained graph to this YAML file')
    args = parser.parse_args()

    logger = setup_logging('cascade', level=logging.INFO)

    print("=" * 70)
    print("XOR Training Demo")
    print("=" * 70)

    graph = build_graph(args.seed)
    config = TrainingConfig(
        max_epochs=args.epochs,
        learning_rate=args.learning_rate,
        batch_size=args.batch_size,
        log_every=0,
        progress_bar=True
    )
    trainer = Trainer(graph, XOR, config)

    start = time.perf_counter()
    report_every = max(1, args.epochs // 10)
    for result in trainer.stream():
        if (result.epoch + 1) % report_every == 0:
            logger.info(
                "epoch %5d | cost %.6f | correct %5.1f%%",
                result.epoch + 1, result.average_cost, result.percent_correct
            )

    print("\nResults:")
    for inputs, targets in XOR:
        outputs = graph.get_outputs(inputs)
        print(f"   {inputs} -> {outputs[0]:.4f} (target {targets[0]:.0f})")
    print(f"\nTrained in {format_time(time.perf_counter() - start)}")

    if args.save:
        save_graph(graph, args.save)


if __name__ == "__main__":
    main()
