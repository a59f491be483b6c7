"""Command line entry point for sigmanet training runs."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable

from sigmanet.data import available_datasets
from sigmanet.training import pipelines


def _format_result(result) -> str:
    payload = {
        "epochs": result.epochs,
        "updates": result.updates,
        "accuracy": result.accuracy,
        "checkpoint": result.checkpoint_path,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
    }
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="digits-sigmoid",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument(
        "--dataset",
        choices=sorted(available_datasets()),
        help="Override the dataset used by the run",
    )
    parser.add_argument(
        "--hidden",
        type=int,
        nargs="+",
        help="Hidden layer sizes, e.g. --hidden 64 64",
    )
    parser.add_argument("--epochs", type=int, help="Number of epochs")
    parser.add_argument("--batch-size", type=int, help="Mini-batch size")
    parser.add_argument("--lr", type=float, help="Learning rate")
    parser.add_argument("--seed", type=int, help="Seed for weight initialisation")
    parser.add_argument("--run-dir", type=Path, help="Directory for checkpoints and metrics")
    parser.add_argument(
        "--enable-plots", action="store_true", help="Write matplotlib metric curves"
    )
    parser.add_argument(
        "--evaluate",
        type=Path,
        metavar="CHECKPOINT",
        help="Score an existing checkpoint on the dataset's test split and exit",
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> dict:
    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = pipelines.read_config_file(args.config)
        if {"data", "model", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = pipelines.merge_config(config, override)

    train_cfg = config.setdefault("train", {})
    if args.dataset:
        config["data"] = {"name": args.dataset, "options": {}}
        config.setdefault("model", {}).pop("d_in", None)
        config["model"].pop("d_out", None)
        train_cfg["checkpoint_hint"] = args.dataset
    if args.hidden is not None:
        config.setdefault("model", {})["hidden"] = list(args.hidden)
    if args.epochs is not None:
        train_cfg["epochs"] = int(args.epochs)
    if args.batch_size is not None:
        train_cfg["batch_size"] = int(args.batch_size)
    if args.lr is not None:
        train_cfg["lr"] = float(args.lr)
    if args.seed is not None:
        train_cfg["seed"] = int(args.seed)
    if args.run_dir is not None:
        train_cfg["run_dir"] = str(args.run_dir)
    if args.enable_plots:
        train_cfg["enable_plots"] = True
    return config


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = resolve_config(args)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    if args.evaluate:
        scores = pipelines.evaluate_checkpoint(args.evaluate, config)
        print(json.dumps(scores, sort_keys=True))
        return

    result = pipelines.run_pipeline(config)
    print(_format_result(result))


if __name__ == "__main__":
    main()
