#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Main entry point for Treelib - Decision Tree Builder
Command line interface to build, resume, inspect and apply tree models.

[main -> typer app -> dependent functions are setup_logging_from_config, load_configuration, DataLoader, builders]
"""

import os
import sys
import logging
from pathlib import Path
from typing import List, Optional

import typer

script_dir = Path(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, str(script_dir))

from analytics.evaluation import Evaluation
from data.data_loader import DataLoader
from engine.execution_engine import ExecutionEngine
from export.model_saver import ModelSaver
from models.cart_tree_builder import CARTTreeBuilder
from models.errors import TreeBuilderError
from models.id3_tree_builder import ID3TreeBuilder
from models.random_forest import FOREST_MODEL_TYPE, RandomForestBuilder
from models.tree_builder import TreeBuilder
from utils.config import load_configuration, set_config_value
from utils.logging_utils import log_exception, log_system_info, setup_logging_from_config

logger = logging.getLogger(__name__)

app = typer.Typer(help="Treelib decision tree and random forest builder")

BUILDERS = {
    'id3': ID3TreeBuilder,
    'cart': CARTTreeBuilder
}


def _setup(config_path: Optional[Path], verbose: bool):
    config = load_configuration(config_path)
    if verbose:
        set_config_value(config, 'logging.level', 'DEBUG')
    setup_logging_from_config(config)
    if verbose:
        log_system_info()
    engine = ExecutionEngine(config)
    return config, engine, DataLoader(config, engine)


def _builder_class(name: str):
    try:
        return BUILDERS[name.lower()]
    except KeyError:
        raise typer.BadParameter(f"Unknown builder '{name}', use one of {sorted(BUILDERS)}")


def _write_predictions(predictions: List, output: Optional[Path]):
    lines = [str(p) for p in predictions]
    if output is None:
        for line in lines:
            typer.echo(line)
        return
    output.write_text("\n".join(lines) + "\n", encoding='utf-8')
    typer.echo(f"Wrote {len(lines)} predictions to {output}")


@app.command()
def train(data: Path = typer.Argument(..., help="Training file or directory"),
          output: Path = typer.Option(Path("tree.json"), help="Where to write the model"),
          builder: str = typer.Option("id3", help="Builder family: id3 or cart"),
          target: str = typer.Option("", help="Target feature (default: last column)"),
          features: Optional[List[str]] = typer.Option(None, "--feature", help="Predictor feature, repeatable"),
          names: Optional[str] = typer.Option(None, help="Comma separated feature names"),
          minsplit: Optional[int] = typer.Option(None),
          threshold: Optional[float] = typer.Option(None),
          max_depth: Optional[int] = typer.Option(None),
          maximum_complexity: Optional[float] = typer.Option(None),
          max_levels: Optional[int] = typer.Option(None, help="Stop after this many levels"),
          config_path: Optional[Path] = typer.Option(None, "--config", help="Configuration file"),
          verbose: bool = typer.Option(False, "--verbose", "-v")):
    """
    Build a decision tree and write it to a JSON file
    """
    config, engine, loader = _setup(config_path, verbose)

    try:
        dataset, _ = loader.load_file(data)
        tree_builder: TreeBuilder = _builder_class(builder)(config, engine)
        tree_builder.set_parameters(minsplit=minsplit, threshold=threshold, max_depth=max_depth,
                                    maximum_complexity=maximum_complexity)
        tree_builder.checkpoint_path = tree_builder.checkpoint_path or str(output)
        tree_builder.set_training_data(dataset)
        if names:
            tree_builder.set_feature_names([n.strip() for n in names.split(',')])

        model = tree_builder.build_tree(target, features or None, max_levels=max_levels)
        tree_builder.write_model_to_file(str(output))
    except (TreeBuilderError, OSError) as e:
        logger.error(f"Training failed: {e}", exc_info=True)
        raise typer.Exit(code=1)

    typer.echo(str(model))
    typer.echo(f"{model!r} written to {output}")


@app.command()
def resume(data: Path = typer.Argument(..., help="Training file or directory"),
           model_path: Path = typer.Argument(..., help="Incomplete model file"),
           builder: Optional[str] = typer.Option(None, help="Builder family (default: the model's own)"),
           max_levels: Optional[int] = typer.Option(None, help="Stop after this many more levels"),
           config_path: Optional[Path] = typer.Option(None, "--config", help="Configuration file"),
           verbose: bool = typer.Option(False, "--verbose", "-v")):
    """
    Continue building an incomplete model
    """
    config, engine, loader = _setup(config_path, verbose)

    try:
        if builder is None:
            saved = ModelSaver(config).load_model(str(model_path))
            if saved is None:
                raise typer.Exit(code=1)
            builder = saved.builder_type or 'id3'
            logger.info(f"Resuming with the {builder} builder recorded in {model_path}")

        dataset, _ = loader.load_file(data)
        tree_builder: TreeBuilder = _builder_class(builder)(config, engine)
        tree_builder.checkpoint_path = tree_builder.checkpoint_path or str(model_path)
        model = tree_builder.continue_from_incomplete_model(dataset, str(model_path), max_levels=max_levels)
        tree_builder.write_model_to_file(str(model_path))
    except (TreeBuilderError, OSError) as e:
        logger.error(f"Resume failed: {e}", exc_info=True)
        raise typer.Exit(code=1)

    typer.echo(f"{model!r} written to {model_path}")


@app.command()
def forest(data: Path = typer.Argument(..., help="Training file or directory"),
           output: Path = typer.Option(Path("forest.json"), help="Where to write the forest"),
           trees: Optional[int] = typer.Option(None, help="Number of trees"),
           builder: str = typer.Option("id3", help="Builder family: id3 or cart"),
           target: str = typer.Option("", help="Target feature (default: last column)"),
           no_bootstrap: bool = typer.Option(False, help="Train every tree on the full data"),
           config_path: Optional[Path] = typer.Option(None, "--config", help="Configuration file"),
           verbose: bool = typer.Option(False, "--verbose", "-v")):
    """
    Build a random forest and write it to a JSON file
    """
    config, engine, loader = _setup(config_path, verbose)

    try:
        dataset, _ = loader.load_file(data)
        forest_builder = RandomForestBuilder(config, engine)
        if trees is not None:
            forest_builder.set_number_of_trees(trees)
        if no_bootstrap:
            forest_builder.use_bootstrap = False
        forest_builder.set_training_data(dataset)
        result = forest_builder.build_forest(_builder_class(builder), y_feature=target)
    except (TreeBuilderError, ValueError) as e:
        log_exception(e, logger)
        raise typer.Exit(code=1)

    if not result.save(str(output), config):
        raise typer.Exit(code=1)
    typer.echo(f"{result!r} written to {output}")


@app.command()
def predict(model_path: Path = typer.Argument(..., help="Model or forest file"),
            data: Path = typer.Argument(..., help="Testing file or directory"),
            output: Optional[Path] = typer.Option(None, help="Write predictions here instead of stdout"),
            metric: Optional[str] = typer.Option(None, help="Evaluate against the target the model was trained on"),
            config_path: Optional[Path] = typer.Option(None, "--config", help="Configuration file"),
            verbose: bool = typer.Option(False, "--verbose", "-v")):
    """
    Predict the target of every record of a dataset
    """
    config, engine, loader = _setup(config_path, verbose)
    saver = ModelSaver(config)

    dataset, _ = loader.load_file(data)

    forest_model = None
    if saver.model_type(str(model_path)) == FOREST_MODEL_TYPE:
        forest_model = saver.load_forest(str(model_path))

    if forest_model is not None:
        forest_model.engine = engine
        predictions = forest_model.predict(dataset, loader.delimiter)
        y_index = forest_model.trees[0].y_index if forest_model.trees else -1
    else:
        tree_builder = ID3TreeBuilder(config, engine)
        try:
            tree_builder.load_model_from_file(str(model_path))
        except TreeBuilderError as e:
            logger.error(f"Can not load model: {e}")
            raise typer.Exit(code=1)
        predictions = tree_builder.predict(dataset, loader.delimiter)
        y_index = tree_builder.tree_model.y_index

    _write_predictions(predictions.collect(), output)

    if metric:
        score = Evaluation(metric).evaluate(predictions, loader.target_values(dataset, y_index))
        typer.echo(f"{metric}: {score:.6f}")


@app.command()
def show(model_path: Path = typer.Argument(..., help="Model file"),
         config_path: Optional[Path] = typer.Option(None, "--config", help="Configuration file")):
    """
    Print the structure of a tree model
    """
    config = load_configuration(config_path)
    model = ModelSaver(config).load_model(str(model_path))
    if model is None:
        raise typer.Exit(code=1)
    typer.echo(str(model))
    typer.echo(repr(model))


def main():
    app()


if __name__ == "__main__":
    main()
