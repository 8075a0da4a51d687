"""Command-line entrypoint: enumerate matchings of a point file and export them."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from .config import MAX_MATCHINGS
from .engine import Engine, EngineError
from .export import EXPORT_FORMATS
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flip-matching",
        description="Enumerate non-crossing matchings with one free point and build their flip graph.",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--points", help="Text file with one 'x y' grid coordinate per line.")
    source.add_argument("--random", type=int, metavar="N", help="Generate N random grid points.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for --random.")
    parser.add_argument("--max-matchings", type=int, default=MAX_MATCHINGS)
    parser.add_argument("--export", metavar="PATH", help="Write the enumerated matchings here.")
    parser.add_argument("--format", choices=EXPORT_FORMATS, default="json")
    parser.add_argument("--flip-graph", metavar="PATH", help="Write the flip graph as JSON here.")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default=None)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(getattr(logging, args.log_level), args.log_file)

    engine = Engine(max_matchings=args.max_matchings, rng=args.seed)
    engine.register_status_listener(logger.info)

    try:
        if args.points:
            loaded = engine.load_points(args.points)
        else:
            loaded = engine.generate_random_points(args.random)
        if not loaded:
            return 1

        result = engine.generate_all_matchings()
        if not result:
            return 1

        if args.export:
            engine.export_saved_states(args.export, args.format)
        if args.flip_graph:
            engine.save_flip_graph(args.flip_graph)
    except EngineError as exc:
        logger.error("%s", exc)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
