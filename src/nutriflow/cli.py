#!/usr/bin/env python3
"""Command-line interface for nutriflow ingestion and recipe scaling."""

import argparse
import json
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from nutriflow.data_layer.ingredient_store import IngredientStore
from nutriflow.data_layer.models import DatasetSource
from nutriflow.data_layer.pipeline_config import PipelineConfig, PipelineConfigLoader
from nutriflow.ingestion.pipeline import seed_datasets
from nutriflow.ingestion.reconciler import CalorieReconciler
from nutriflow.nutrition.recipe_scaler import RecipeScalingEngine
from nutriflow.output.formatters import (
    format_scaling_json_string,
    format_scaling_markdown,
    format_seed_report,
)
from nutriflow.providers.ingredient_cache import IngredientCache
from nutriflow.providers.ingredient_provider import RecipeLine, StoreIngredientProvider


DEFAULT_CONFIG_PATH = "config/pipeline.yaml"


class IngredientLineRequest(BaseModel):
    name: str = Field(min_length=1)
    amount: float = Field(ge=0)
    unit: str = "g"
    is_optional: bool = False
    notes: str = ""


class ScaleRequest(BaseModel):
    """Recipe scaling request read from a JSON file."""
    title: str = "Scaled Recipe"
    servings: int = Field(gt=0)
    target_calories_per_serving: Optional[float] = Field(default=None, gt=0)
    ingredients: List[IngredientLineRequest] = Field(default_factory=list)


def load_config(path: Optional[str]) -> PipelineConfig:
    """Load config from path; the default path is optional, an explicit one is not."""
    if path is None:
        default = Path(DEFAULT_CONFIG_PATH)
        return PipelineConfigLoader(str(default) if default.exists() else None).load()
    return PipelineConfigLoader(path).load()


def open_store(config: PipelineConfig) -> IngredientStore:
    store = IngredientStore.from_url(config.database_url)
    store.create_schema()
    return store


def install_cancel_handler(cancel_event: threading.Event):
    """First Ctrl-C stops pipelines after the current object; the second aborts.

    Returns:
        The previous SIGINT handler, for restoring
    """
    def handle(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        print("\nCancelling; flushing pending batches...", file=sys.stderr)
        cancel_event.set()

    return signal.signal(signal.SIGINT, handle)


def cmd_seed(args, config: PipelineConfig) -> int:
    datasets: Dict[DatasetSource, str] = dict(config.datasets)
    for source in DatasetSource.ingestion_sources():
        path = getattr(args, source.value)
        if path:
            datasets[source] = path

    if not datasets:
        print("Error: no dataset files given (use --foundation/--legacy/--survey/--branded "
              "or the datasets section of the config)", file=sys.stderr)
        return 2

    store = open_store(config)
    cancel_event = threading.Event()
    previous_handler = install_cancel_handler(cancel_event)

    print(f"Seeding {len(datasets)} dataset(s) into {config.database_url}...", file=sys.stderr)
    try:
        report = seed_datasets(
            store,
            datasets,
            reseed=args.reseed,
            max_workers=config.max_workers,
            cancel_event=cancel_event,
            chunk_size=config.chunk_size,
            batch_size=config.batch_size,
            progress_every=config.progress_every,
        )
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    for line in format_seed_report(report):
        print(line, file=sys.stderr)
    if report.failed:
        return 1
    if cancel_event.is_set():
        return 130
    return 0


def cmd_clear(args, config: PipelineConfig) -> int:
    store = open_store(config)
    deleted = store.clear(DatasetSource.ingestion_sources())
    print(f"Deleted {deleted} ingested ingredients", file=sys.stderr)
    return 0


def cmd_reconcile(args, config: PipelineConfig) -> int:
    store = open_store(config)
    threshold = args.threshold if args.threshold is not None else config.kj_threshold
    try:
        reconciler = CalorieReconciler(store, threshold=threshold)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    report = reconciler.reconcile(dry_run=args.dry_run)
    verb = "Would correct" if args.dry_run else "Corrected"
    print(f"{verb} {report.corrected} ingredient(s) above {threshold:.0f} kcal", file=sys.stderr)
    return 0


def cmd_scale(args, config: PipelineConfig) -> int:
    request_path = Path(args.recipe)
    if not request_path.exists():
        print(f"Error: Recipe file not found: {request_path}", file=sys.stderr)
        return 1

    try:
        request = ScaleRequest.model_validate(json.loads(request_path.read_text()))
    except (ValueError, ValidationError) as e:
        print(f"Error: Invalid recipe file {request_path}:\n{e}", file=sys.stderr)
        return 1

    store = open_store(config)
    provider = StoreIngredientProvider(
        store,
        IngredientCache(
            max_entries=config.cache_max_entries,
            ttl_seconds=config.cache_ttl_seconds,
        ),
    )
    inputs = provider.build_inputs([
        RecipeLine(
            name=line.name,
            amount=line.amount,
            unit=line.unit,
            is_optional=line.is_optional,
            notes=line.notes,
        )
        for line in request.ingredients
    ])

    engine = RecipeScalingEngine()
    target = args.target if args.target is not None else request.target_calories_per_serving
    if args.factor is not None:
        result = engine.scale_by_factor(inputs, request.servings, args.factor)
    else:
        result = engine.scale(inputs, request.servings, target)

    if args.output == "json":
        print(format_scaling_json_string(result))
    else:
        print(format_scaling_markdown(result, title=request.title))

    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nutriflow",
        description="Ingest USDA FoodData Central exports and scale recipe nutrition"
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=str,
        default=None,
        help=f"Path to pipeline YAML config (default: {DEFAULT_CONFIG_PATH} if present)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    seed = subparsers.add_parser("seed", parents=[common], help="Stream dataset files into the ingredient store")
    for source in DatasetSource.ingestion_sources():
        seed.add_argument(
            f"--{source.value}",
            type=str,
            default=None,
            metavar="FILE",
            help=f"Path to the {source.value} foods JSON export"
        )
    seed.add_argument(
        "--reseed",
        action="store_true",
        help="Delete previously ingested ingredients before seeding"
    )
    seed.set_defaults(handler=cmd_seed)

    clear = subparsers.add_parser("clear", parents=[common], help="Delete all ingested ingredients")
    clear.set_defaults(handler=cmd_clear)

    reconcile = subparsers.add_parser("reconcile", parents=[common], help="Fix kJ values stored as kcal")
    reconcile.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Calories above which a value is treated as kJ (default: from config)"
    )
    reconcile.add_argument(
        "--dry-run",
        action="store_true",
        help="Report corrections without writing them"
    )
    reconcile.set_defaults(handler=cmd_reconcile)

    scale = subparsers.add_parser("scale", parents=[common], help="Scale a recipe JSON file")
    scale.add_argument("recipe", type=str, help="Path to recipe request JSON")
    mode = scale.add_mutually_exclusive_group()
    mode.add_argument(
        "--target",
        type=float,
        default=None,
        help="Target calories per serving (overrides the request file)"
    )
    mode.add_argument(
        "--factor",
        type=float,
        default=None,
        help="Scale every ingredient by this factor"
    )
    scale.add_argument(
        "--output",
        choices=["markdown", "json"],
        default="markdown",
        help="Output format: markdown (default) or json"
    )
    scale.set_defaults(handler=cmd_scale)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: Cannot load config: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return args.handler(args, config)
    except KeyboardInterrupt:
        print("Aborted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
