"""
Point sources feeding a diagram: seeded random points and point files.

Point file format:

    600            <- plane size (positive number)
    12.5 40        <- one "x y" pair per line, whitespace separated
    300 300.25

Points outside [0, size] on either axis are skipped and reported. Blank
lines are ignored.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
import structlog

from .geometry import Point

logger = structlog.get_logger()


class PointFileError(ValueError):
    """Raised when a point file cannot be read or parsed."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


@dataclass
class PointFile:
    """Contents of a parsed point file."""
    size: float
    points: List[Point] = field(default_factory=list)
    ignored: List[Tuple[int, Point]] = field(default_factory=list)


def random_points(count: int, size: float, seed: Optional[int] = None) -> np.ndarray:
    """
    Generate uniformly distributed points in [0, size) x [0, size).

    Args:
        count: Number of points
        size: Plane edge length
        seed: Seed for reproducible output

    Returns:
        Array of shape (count, 2)
    """
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    rng = np.random.default_rng(seed)
    return rng.random((count, 2)) * size


def parse_points(lines, source: str = "<string>") -> PointFile:
    """Parse point file lines; see the module docstring for the format."""
    numbered = ((n, line.strip()) for n, line in enumerate(lines, start=1))
    content = [(n, line) for n, line in numbered if line]
    if not content:
        raise PointFileError(f"{source} is empty, expected plane size on first line", 1)

    size_line, size_text = content[0]
    try:
        size = float(size_text)
    except ValueError:
        raise PointFileError(
            f"expected plane size, got {size_text!r}", size_line) from None
    if not size > 0:
        raise PointFileError(f"plane size must be positive, got {size_text!r}", size_line)

    parsed = PointFile(size=size)
    for line_number, text in content[1:]:
        parts = text.split()
        try:
            x, y = float(parts[0]), float(parts[1])
        except (IndexError, ValueError):
            raise PointFileError(
                f"expected 'x y' coordinates, got {text!r}", line_number) from None

        point = Point(x, y)
        if 0.0 <= x <= size and 0.0 <= y <= size:
            parsed.points.append(point)
        else:
            parsed.ignored.append((line_number, point))
            logger.warning("Ignored point outside plane", source=source,
                           line=line_number, x=x, y=y)

    return parsed


def read_points_file(path: Union[str, Path]) -> PointFile:
    """
    Read a point file from disk.

    Raises:
        PointFileError: If the file is unreadable or malformed
    """
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise PointFileError(f"cannot read {path}: {e}") from e

    logger.info("Reading points", path=str(path))
    parsed = parse_points(text.splitlines(), source=str(path))
    logger.info("Points read", path=str(path), size=parsed.size,
                points=len(parsed.points), ignored=len(parsed.ignored))
    return parsed
