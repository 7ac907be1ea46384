"""
Command-line entry point.

Modes:
    blank             empty diagram (sentinel cells only)
    file PATH         diagram from a point file
    random COUNT      diagram from seeded random points
"""

import argparse
import logging
import sys
from typing import List, Optional

import structlog

from .config import settings
from .core.diagram import Diagram
from .core.point_sources import PointFileError, random_points, read_points_file

logger = structlog.get_logger()


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Route structlog through stdlib logging with the configured renderer."""
    level = (level or settings.log_level).upper()
    fmt = (fmt or settings.log_format).lower()

    logging.basicConfig(format="%(message)s", stream=sys.stderr,
                        level=getattr(logging, level, logging.INFO), force=True)

    renderer = (structlog.processors.JSONRenderer() if fmt == "json"
                else structlog.dev.ConsoleRenderer(colors=False))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--output", "-o", help="Render the diagram to this image file")
    common.add_argument("--validate", action="store_true",
                        help="Check the diagram's graph invariants after construction")

    parser = argparse.ArgumentParser(
        prog="py-voronoi",
        description="Build a Voronoi diagram by incremental insertion")
    parser.add_argument("--log-level", help="Override the configured log level")
    parser.add_argument("--log-format", choices=["console", "json"],
                        help="Override the configured log format")

    modes = parser.add_subparsers(dest="mode", required=True)

    blank = modes.add_parser("blank", parents=[common], help="Empty diagram")
    blank.add_argument("--size", type=float, default=settings.default_plane_size,
                       help="Plane size")

    from_file = modes.add_parser("file", parents=[common], help="Diagram from a point file")
    from_file.add_argument("path", help="Point file: plane size, then one 'x y' per line")

    rand = modes.add_parser("random", parents=[common], help="Diagram from random points")
    rand.add_argument("count", type=_non_negative_int, nargs="?",
                      default=settings.default_random_count, help="Number of points")
    rand.add_argument("--size", type=float, default=settings.default_plane_size,
                      help="Plane size")
    rand.add_argument("--seed", type=int, help="Random seed")

    return parser


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid count: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"count must be non-negative: {text!r}")
    return value


def build_diagram(args: argparse.Namespace) -> Diagram:
    """Create the diagram selected by the parsed arguments."""
    if args.mode == "blank":
        return Diagram(args.size)
    if args.mode == "file":
        parsed = read_points_file(args.path)
        return Diagram(parsed.size, points=parsed.points)
    if args.mode == "random":
        points = random_points(args.count, args.size, seed=args.seed)
        return Diagram(args.size, points=points)
    raise ValueError(f"Unknown mode: {args.mode}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.log_format)

    try:
        diagram = build_diagram(args)
    except PointFileError as e:
        logger.error("Invalid point file", error=str(e))
        return 1

    stats = diagram.stats
    logger.info("Diagram ready", mode=args.mode, size=diagram.size(),
                cells=len(diagram.real_cells()), duplicates=stats.duplicates,
                degenerate=stats.degenerate, hash_misses=stats.hash_misses,
                search_steps=stats.search_steps)

    status = 0
    if args.validate:
        problems = diagram.validate()
        for problem in problems:
            logger.warning("Invariant violated", problem=problem)
        if problems:
            status = 1
        else:
            logger.info("Diagram invariants hold")

    if args.output:
        from .visualizer import render_diagram
        render_diagram(diagram, args.output,
                       title=f"{len(diagram.real_cells())} cells")

    return status


if __name__ == "__main__":
    sys.exit(main())
