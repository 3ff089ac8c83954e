"""Command line entry point for the HANA check service.

Usage:
    checkservice                      Install the watcher if needed, then converge
    checkservice run --config FILE    Same, with an explicit configuration file
    checkservice setup                Only install the systemd watcher and exit
    checkservice status               Print the current snapshot without changing anything
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import yaml
from pydantic import ValidationError

from .constants import CONFIG_DIR_ENV, CONFIG_FILENAME, DEFAULT_CONFIG_DIR
from .converge.runner import build_runner
from .models import CheckServiceConfig
from .storage import ConfigRepository

DEFAULT_CONFIG_PATH = Path(os.environ.get(CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR)) / CONFIG_FILENAME


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="checkservice",
        description="Start SAP HANA and its dependent services in order.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["run", "setup", "status"],
        default="run",
        help="run (default): install if needed and converge; setup: install only; "
        "status: inspect only",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help=f"configuration file (default: {DEFAULT_CONFIG_PATH} when present)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def load_config(path: Optional[Path]) -> CheckServiceConfig:
    """Load ``path`` (must exist) or fall back to defaults when none was given."""
    if path is not None:
        return ConfigRepository.for_file(path).load_config()
    return ConfigRepository.for_file(DEFAULT_CONFIG_PATH).load_or_default()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValidationError, yaml.YAMLError) as exc:
        print(f"ERROR: invalid configuration: {exc}", file=sys.stderr)
        return 2

    exec_args: List[str] = []
    if args.config is not None:
        exec_args = ["--config", str(args.config.resolve())]
    runner = build_runner(config, exec_args=exec_args)

    if args.command == "status":
        snapshot = runner.inspector.snapshot()
        for line in runner.inspector.summarize(snapshot):
            print(line)
        return 0 if snapshot.converged else 1

    outcome = runner.setup() if args.command == "setup" else runner.run()
    print(outcome.message)
    return outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
