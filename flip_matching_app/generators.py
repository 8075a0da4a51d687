"""Random grid point sets paired into a non-crossing partial matching."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Union

import numpy as np

from .config import RANDOM_MAX_ATTEMPTS, GridConfig
from .geometry import Point, Segment, would_create_collinearity, would_cross

logger = logging.getLogger(__name__)

Seed = Union[int, np.random.Generator, None]


@dataclass
class GenerationResult:
    points: list[Point] = field(default_factory=list)
    segments: list[Segment] = field(default_factory=list)
    requested: int = 0
    attempts: int = 0

    @property
    def exhausted(self) -> bool:
        """True when the attempt budget ran out before ``requested`` points."""

        return len(self.points) < self.requested

    @property
    def free_point(self) -> Point | None:
        if len(self.points) % 2 == 1:
            return self.points[-1]
        return None


def interior_positions(grid: GridConfig) -> list[Point]:
    """Grid nodes strictly inside the board."""

    g = grid.grid_size
    return [
        Point(i * g, j * g)
        for i in range(1, grid.columns - 1)
        for j in range(1, grid.rows - 1)
    ]


def generate_random_points(
    count: int,
    grid: GridConfig | None = None,
    rng: Seed = None,
    max_attempts: int = RANDOM_MAX_ATTEMPTS,
) -> GenerationResult:
    """Place up to ``count`` random grid points in general position.

    Points are drawn from the shuffled interior grid nodes, falling back to
    uniform draws once those run out. A candidate is skipped if it repeats a
    point or is collinear with two accepted points. Every second accepted
    point is joined to the previous one, and skipped if that segment would
    cross an earlier one. The loop gives up after ``max_attempts`` draws and
    returns whatever it has.

    Args:
        count: Number of points requested.
        grid: Board geometry; defaults to :class:`GridConfig`.
        rng: Seed or generator passed to :func:`numpy.random.default_rng`.
        max_attempts: Upper bound on candidate draws.
    """

    grid = grid if grid is not None else GridConfig()
    if count < 0:
        raise ValueError("count must be non-negative.")

    positions = interior_positions(grid)
    if count > len(positions):
        raise ValueError(
            f"Cannot generate {count} points; the board has {len(positions)} positions."
        )

    generator = np.random.default_rng(rng)
    order = generator.permutation(len(positions))
    pool = [positions[int(i)] for i in order]

    result = GenerationResult(requested=count)
    taken: set[Point] = set()

    while len(result.points) < count and result.attempts < max_attempts:
        result.attempts += 1

        if pool:
            candidate = pool.pop()
        else:
            candidate = Point(
                int(generator.integers(1, grid.columns)) * grid.grid_size,
                int(generator.integers(1, grid.rows)) * grid.grid_size,
            )

        if candidate in taken:
            continue
        if would_create_collinearity(candidate, result.points):
            continue

        if len(result.points) % 2 == 1:
            segment = Segment(result.points[-1], candidate)
            if would_cross(segment, result.segments):
                continue
            result.segments.append(segment)

        result.points.append(candidate)
        taken.add(candidate)

    if result.exhausted:
        logger.info(
            "Random generation stopped at %d of %d points after %d attempts.",
            len(result.points),
            count,
            result.attempts,
        )
    return result
