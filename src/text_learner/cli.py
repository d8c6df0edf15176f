"""Command-line interface for text-learner.

Provides ``train``, ``evaluate``, ``cross-validate``, ``classify``,
``partition`` and ``export-state`` commands with rich terminal output using
the ``click`` and ``rich`` libraries.

Usage::

    text-learner evaluate --dataset samples.json
    text-learner cross-validate --folds 10 --positive-label spam samples.csv
    text-learner train --save classifier.json
    text-learner classify --model classifier.json "The court affirms."
"""

from __future__ import annotations

import functools
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .classifier import ClassifierBuilder, available_classifiers
from .dataset import load_dataset
from .errors import LearnerError
from .learner import DEFAULT_CLASSIFIER_FILE, Learner, LearnerConfig
from .serialization import from_string
from .stats import StatsReport

console = Console()


def _configure_logging(level: str) -> None:
    """Route library log records through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _parse_params(params: tuple[str, ...]) -> dict[str, Any]:
    """Turn ``key=value`` pairs into constructor kwargs (values parsed as JSON when possible)."""
    parsed: dict[str, Any] = {}
    for item in params:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected key=value, got {item!r}", param_hint="--param")
        try:
            parsed[key] = json.loads(raw)
        except json.JSONDecodeError:
            parsed[key] = raw
    return parsed


def _fail(exc: Exception) -> None:
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(1)


def learner_options(func: Callable) -> Callable:
    """Options shared by every command that builds a :class:`Learner`."""

    @click.option("--dataset", "-d", "dataset_path", type=click.Path(exists=True, path_type=Path),
                  default=None, help="Dataset file (.json, .jsonl, .csv). Defaults to the bundled corpus.")
    @click.option("--train-split", type=float, default=0.8, show_default=True,
                  help="Fraction of the dataset used for training.")
    @click.option("--classifier", "-c", "classifier_name", type=click.Choice(available_classifiers()),
                  default="naive_bayes", show_default=True, help="Classifier to use.")
    @click.option("--param", "-p", "params", multiple=True,
                  help="Classifier parameter as key=value (repeatable).")
    @click.option("--positive-label", default=None,
                  help="Category behind the pooled counts (default: first category).")
    @click.option("--shuffle/--no-shuffle", default=False, show_default=True,
                  help="Shuffle the dataset before the train/test cut.")
    @click.option("--seed", type=int, default=None, help="Seed for --shuffle.")
    @functools.wraps(func)
    def wrapper(dataset_path, train_split, classifier_name, params, positive_label,
                shuffle, seed, **kwargs):
        try:
            config = LearnerConfig(
                dataset=load_dataset(dataset_path) if dataset_path else None,
                train_split=train_split,
                classifier=ClassifierBuilder(classifier_name, _parse_params(params)),
                positive_label=positive_label,
                shuffle=shuffle,
                seed=seed,
            )
            learner = Learner(config)
        except (LearnerError, OSError, ValueError, TypeError) as e:
            _fail(e)
        return func(learner=learner, **kwargs)

    return wrapper


@click.group()
@click.version_option(package_name="text-learner")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"],
              case_sensitive=False), default="WARNING", show_default=True,
              help="Logging threshold.")
@click.option("--verbose", "-v", is_flag=True, help="Shortcut for --log-level INFO.")
def main(log_level: str, verbose: bool) -> None:
    """Text classifier experiment harness.

    Train a classifier on a labeled dataset, evaluate it on a held-out
    split, cross-validate it, and save it for reuse.
    """
    _configure_logging("INFO" if verbose and log_level.upper() == "WARNING" else log_level)


@main.command()
@learner_options
@click.option("--save", "-s", type=click.Path(path_type=Path), default=DEFAULT_CLASSIFIER_FILE,
              show_default=True, help="Where to write the trained classifier.")
def train(learner: Learner, save: Path) -> None:
    """Train on the training split and save the classifier.

    Example: text-learner train --dataset samples.json --save model.json
    """
    with console.status("[bold blue]Training...", spinner="dots"):
        try:
            learner.train()
            learner.serialize_and_save_classifier(save)
        except (LearnerError, ValueError) as e:
            _fail(e)
    console.print(
        f"[green]Trained on {len(learner.train_set)} samples.[/] Classifier saved to {save}"
    )


@main.command()
@learner_options
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.option("--verbose-level", type=int, default=0, help="2 logs each misclassified sample.")
def evaluate(learner: Learner, output: str, verbose_level: int) -> None:
    """Train on the training split and score the test split.

    Example: text-learner evaluate --train-split 0.75
    """
    with console.status("[bold blue]Evaluating...", spinner="dots"):
        try:
            report = learner.eval(log=True, verbose_level=verbose_level)
        except (LearnerError, ValueError) as e:
            _fail(e)

    if output == "json":
        click.echo(json.dumps(learner.get_stats(), indent=2))
    else:
        _render_report(report, title=f"Evaluation ({len(learner.test_set)} test samples)")
        _render_confusion(report)


@main.command("cross-validate")
@learner_options
@click.option("--folds", "-k", type=int, default=5, show_default=True, help="Number of folds.")
@click.option("--verbose-level", type=int, default=0,
              help="1 logs per-fold stats, 2 also logs misclassifications.")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
def cross_validate(learner: Learner, folds: int, verbose_level: int, output: str) -> None:
    """Run k-fold cross-validation and report macro and micro averages.

    Example: text-learner cross-validate --folds 10
    """
    with console.status("[bold blue]Cross-validating...", spinner="dots") as status:

        def on_fold(index, split):
            status.update(
                f"[bold blue]Fold {index + 1}/{folds}: training on {len(split.train)} "
                f"samples, testing {len(split.test)}..."
            )

        try:
            result = learner.cross_validate(folds, verbose_level=verbose_level, log=True,
                                            on_fold=on_fold)
        except (LearnerError, ValueError) as e:
            _fail(e)

    if output == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    table = Table(title=f"{folds}-fold cross-validation ({len(learner.dataset)} samples)")
    table.add_column("Metric", style="cyan")
    table.add_column("Macro avg", justify="right")
    table.add_column("Micro avg", justify="right")
    for name in ("accuracy", "precision", "recall", "f1", "specificity"):
        table.add_row(
            name.title(),
            f"{getattr(result.macro_avg, name):.4f}",
            f"{getattr(result.micro_avg, name):.4f}",
        )
    console.print(table)
    _render_confusion(result.micro_avg)


@main.command()
@click.argument("text")
@click.option("--model", "-m", type=click.Path(exists=True, path_type=Path),
              default=DEFAULT_CLASSIFIER_FILE, show_default=True,
              help="Saved classifier file.")
def classify(text: str, model: Path) -> None:
    """Classify TEXT with a saved classifier.

    Example: text-learner classify "This lease agreement..." --model classifier.json
    """
    try:
        classifier = from_string(model.read_text(encoding="utf-8"))
        label = classifier.classify(text)
    except (LearnerError, OSError, RuntimeError) as e:
        _fail(e)
    click.echo(label)


@main.command()
@learner_options
def partition(learner: Learner) -> None:
    """Show per-category sample counts in the train and test splits."""
    table = Table(title="Category partition")
    table.add_column("Category", style="cyan")
    table.add_column("Overall", justify="right")
    table.add_column("Train", justify="right")
    table.add_column("Test", justify="right")
    for category, counts in learner.get_category_partition().items():
        table.add_row(category, str(counts["overall"]), str(counts["train"]), str(counts["test"]))
    console.print(table)


@main.command("export-state")
@learner_options
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--folds", "-k", type=int, default=0,
              help="Also cross-validate with this many folds before exporting.")
def export_state(learner: Learner, path: Path, folds: int) -> None:
    """Train, evaluate and write the full learner state to PATH as JSON."""
    with console.status("[bold blue]Training...", spinner="dots"):
        try:
            learner.eval()
            if folds:
                learner.cross_validate(folds)
            path.write_text(json.dumps(learner.to_json(), indent=2), encoding="utf-8")
        except (LearnerError, OSError, ValueError) as e:
            _fail(e)
    console.print(f"[dim]Learner state saved to {path}[/]")


# ------------------------------------------------------------------
# Rich rendering helpers
# ------------------------------------------------------------------

def _render_report(report: StatsReport, title: str) -> None:
    """Render overall and per-category stats as rich tables."""
    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    for name in ("accuracy", "precision", "recall", "f1", "specificity"):
        table.add_row(name.title(), f"{getattr(report, name):.4f}")
    table.add_row("TP / TN / FP / FN", f"{report.tp} / {report.tn} / {report.fp} / {report.fn}")
    console.print(table)

    if report.per_category:
        per_cat = Table(title="Per category")
        per_cat.add_column("Category", style="cyan")
        for name in ("Precision", "Recall", "F1"):
            per_cat.add_column(name, justify="right")
        for category, stats in report.per_category.items():
            per_cat.add_row(
                str(category),
                f"{stats['precision']:.4f}",
                f"{stats['recall']:.4f}",
                f"{stats['f1']:.4f}",
            )
        console.print(per_cat)


def _render_confusion(report: StatsReport) -> None:
    """Render the confusion matrix (rows: actual, columns: predicted)."""
    if not report.confusion:
        return
    labels = list(report.confusion)
    table = Table(title="Confusion matrix (actual \\ predicted)", show_lines=False)
    table.add_column("", style="cyan")
    for label in labels:
        table.add_column(str(label), justify="right")
    for actual in labels:
        row = report.confusion[actual]
        table.add_row(
            str(actual),
            *(
                f"[bold]{row.get(p, 0)}[/]" if p == actual else str(row.get(p, 0))
                for p in labels
            ),
        )
    console.print(table)
    console.print()


if __name__ == "__main__":
    main()
