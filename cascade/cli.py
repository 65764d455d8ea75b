"""
Cascade CLI - train and inspect computation graphs from YAML.

Run: cascade --help

Data files are YAML mappings with a 'train' list and an optional 'test'
list of [inputs, targets] pairs:

    train:
      - [[-1, -1], [0]]
      - [[-1, 1], [1]]
"""

import sys
import time

import click
import yaml

from . import __version__
from .core.errors import CascadeError
from .core.registry import list_operators
from .training.trainer import Trainer
from .utils.config import load_config, save_graph, validate_config
from .utils.logging import setup_logging, format_time

# Failures caused by the user's files or settings, reported without a traceback
USER_ERRORS = (CascadeError, ValueError, TypeError, yaml.YAMLError)


def _load_data(path):
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise click.ClickException(f"Failed to load data from {path}: {err}")
    if not isinstance(data, dict) or not data.get('train'):
        raise click.ClickException(f"{path} needs a non-empty 'train' list")
    return data['train'], data.get('test') or None


@click.group()
@click.version_option(version=__version__)
def cascade():
    """
    Cascade: status-driven recompute engine for trainable graphs.

    Build a graph from a YAML experiment file, train it on a dataset and
    save the learned weights.
    """


@cascade.command()
@click.argument('config', type=click.Path(exists=True))
@click.option('--data', '-d', type=click.Path(exists=True), required=True,
              help='YAML file with train/test samples')
@click.option('--save', '-s', type=click.Path(), help='Write the trained graph here')
@click.option('--epochs', '-e', type=int, help='Override max_epochs')
@click.option('--dry-run', is_flag=True, help='Validate config and data without training')
def train(config, data, save, epochs, dry_run):
    """Train a graph from an experiment configuration file."""
    try:
        experiment = load_config(config)
    except USER_ERRORS as err:
        raise click.ClickException(f"Failed to load config: {err}")
    if epochs is not None:
        experiment.training.max_epochs = epochs

    setup_logging(
        level=experiment.logging.level,
        log_dir=experiment.logging.log_dir,
        colored=experiment.logging.colored
    )

    click.echo()
    click.secho(f"🚀 Training {experiment.name}", fg='bright_blue', bold=True)
    click.echo("   " + "─" * 50)

    train_data, test_data = _load_data(data)

    try:
        graph = experiment.build_graph()
        trainer = Trainer(graph, train_data, experiment.training, test_data=test_data)
    except USER_ERRORS as err:
        raise click.ClickException(str(err))

    click.secho("   Graph:       ", fg='white', dim=True, nl=False)
    click.secho(repr(graph), fg='cyan')
    click.secho("   Samples:     ", fg='white', dim=True, nl=False)
    click.secho(f"{len(trainer.train_data)} train, {len(trainer.test_data)} test", fg='yellow')
    click.echo()

    if dry_run:
        click.secho("✅ Configuration is valid! (dry run)", fg='green')
        return

    start = time.perf_counter()

    last_train = last_test = None
    try:
        for result in trainer.stream():
            if result.is_test:
                last_test = result
            else:
                last_train = result
    except USER_ERRORS as err:
        raise click.ClickException(f"Training failed after {trainer.epoch} epoch(s): {err}")

    click.echo()
    click.secho("✅ Training complete!", fg='green', bold=True)
    if last_train is not None:
        click.echo(
            f"   Epochs: {trainer.epoch} │ Cost: {last_train.average_cost:.6f} │ "
            f"Correct: {last_train.percent_correct:.1f}%"
        )
    if last_test is not None:
        click.echo(
            f"   Test cost: {last_test.average_cost:.6f} │ "
            f"Test correct: {last_test.percent_correct:.1f}%"
        )
    click.secho(f"   Time: {format_time(time.perf_counter() - start)}", fg='white', dim=True)

    if save:
        save_graph(graph, save)
        click.secho(f"   Graph saved to: {save}", fg='white', dim=True)
    click.echo()


@cascade.command()
@click.argument('config', type=click.Path(exists=True))
@click.option('--verbose', '-v', is_flag=True, help='Show the parsed configuration')
def validate(config, verbose):
    """Validate an experiment configuration file."""
    click.echo()
    click.secho("🔍 Validating Configuration", fg='cyan', bold=True)
    click.echo("   " + "─" * 50)

    try:
        experiment = load_config(config)
    except USER_ERRORS as err:
        click.secho(f"❌ Failed to load config: {err}", fg='red', bold=True)
        sys.exit(1)

    issues = validate_config(experiment)
    for issue in issues:
        click.secho(f"   ⚠️  {issue}", fg='yellow')

    if issues:
        click.secho(f"❌ {len(issues)} issue(s) found", fg='red', bold=True)
        sys.exit(1)

    click.secho("✅ Configuration is valid!", fg='green', bold=True)
    if verbose:
        click.echo()
        click.echo(yaml.safe_dump(experiment.to_dict(), default_flow_style=False, sort_keys=False))


@cascade.group()
def registry():
    """Inspect the operator registry."""


@registry.command('list')
@click.option('--detailed', '-d', is_flag=True, help='Show module and docstring')
def registry_list(detailed):
    """List all registered operators."""
    click.echo()
    click.secho("📦 Registered Operators", fg='cyan', bold=True)
    click.echo("   " + "─" * 50)

    if detailed:
        for name, meta in list_operators(include_metadata=True).items():
            click.secho(f"   {name:<15}", fg='bright_cyan', nl=False)
            click.echo(f" {meta['module']}.{meta['class']}")
            if meta.get('doc'):
                click.secho(f"      └─ {meta['doc'].strip().splitlines()[0]}", fg='white', dim=True)
    else:
        for name in list_operators():
            click.echo(f"   • {name}")
    click.echo()


@cascade.command()
def info():
    """Show version information."""
    click.secho(f"cascade {__version__}", fg='cyan', bold=True)
    click.echo(f"Python {sys.version_info.major}.{sys.version_info.minor}")


def main():
    cascade()


if __name__ == '__main__':
    main()
