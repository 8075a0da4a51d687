"""Board geometry and algorithm limits shared by the engine and its solvers."""

from __future__ import annotations

from dataclasses import dataclass

GRID_SIZE: int = 20
CANVAS_WIDTH: int = 1200
CANVAS_HEIGHT: int = 700

MAX_MATCHINGS: int = 5000
HISTORY_LIMIT: int = 20
COLLINEAR_TOLERANCE: float = 1e-4
RANDOM_MAX_ATTEMPTS: int = 20000

MIN_SCALE: float = 0.3
MAX_SCALE: float = 5.0
ZOOM_STEP: float = 1.1


@dataclass(frozen=True)
class GridConfig:
    """Drawing board dimensions in pixels plus the grid pitch."""

    grid_size: int = GRID_SIZE
    width: int = CANVAS_WIDTH
    height: int = CANVAS_HEIGHT

    def __post_init__(self) -> None:
        if self.grid_size <= 0:
            raise ValueError("grid_size must be positive.")
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Board dimensions must be positive.")

    @property
    def rows(self) -> int:
        """Number of grid rows; saved records flip y against this value."""

        return self.height // self.grid_size

    @property
    def columns(self) -> int:
        return self.width // self.grid_size
