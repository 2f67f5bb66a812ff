"""
Occupancy Grid

Dense walkability map over the operating water area.

Features:
- World <-> grid coordinate transforms (always clamped into the grid)
- Budgeted, resumable construction (a few hundred cells per tick)
- Full or windowed obstacle refresh against an obstacle field

The walkability arena is a numpy boolean array indexed [x, y]. It is
owned by the grid; planners only read it through is_walkable().
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from ..core.config import GridConfig, OperatingArea
from ..core.errors import ConfigurationError
from ..interface.sensor_interface import IObstacleField

logger = logging.getLogger(__name__)

GridCell = Tuple[int, int]


@dataclass(frozen=True)
class Cell:
    """Snapshot of one grid cell."""
    x: int
    y: int
    walkable: bool
    world_position: Tuple[float, float, float]


@dataclass(frozen=True)
class ViewBounds:
    """World-space rectangle limiting a refresh pass."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float


class OccupancyGrid:
    """
    Walkability grid for the global and local planners.

    Cell (0, 0) has its corner at the grid origin, which sits at the
    operating area centre minus half its size.

    Usage:
        grid = OccupancyGrid(area, obstacle_field, cell_size=1.0)

        # Once per tick until ready:
        grid.build_step(200)

        cell = grid.world_to_grid((3.2, -1.5))
        if grid.is_walkable(cell):
            ...

        # Something moved in view: re-mark only that window
        grid.refresh(ViewBounds(-5, -5, 5, 5))
    """

    def __init__(
        self,
        area: Optional[OperatingArea],
        obstacle_field: Optional[IObstacleField] = None,
        cell_size: float = 1.0,
        detection_margin: float = 0.1,
        view_margin_cells: int = 5
    ):
        """
        Args:
            area: Operating area (required)
            obstacle_field: Static obstacle query; None means open water
            cell_size: Cell edge length in meters
            detection_margin: Added to half a cell when probing obstacles
            view_margin_cells: Cells added around a windowed refresh

        Raises:
            ConfigurationError: area missing or cell_size not positive
        """
        if area is None:
            raise ConfigurationError("operating_area", "grid needs the water area bounds")
        if cell_size <= 0:
            raise ConfigurationError("cell_size", f"must be positive, got {cell_size}")

        self.area = area
        self.obstacle_field = obstacle_field
        self.cell_size = float(cell_size)
        self.detection_margin = detection_margin
        self.view_margin_cells = view_margin_cells

        self._half_cell = self.cell_size / 2.0
        self._walkable: Optional[np.ndarray] = None
        self._build_index = 0
        self._ready = False

        self._derive_dimensions()
        self._walkable = np.zeros((self.width, self.height), dtype=bool)
        logger.info("[Grid] Building %dx%d grid, origin (%.2f, %.2f)",
                    self.width, self.height, self.origin_x, self.origin_y)

    @classmethod
    def from_config(cls, config: GridConfig,
                    obstacle_field: Optional[IObstacleField] = None) -> 'OccupancyGrid':
        return cls(
            config.operating_area,
            obstacle_field,
            cell_size=config.cell_size,
            detection_margin=config.detection_margin,
            view_margin_cells=config.view_margin_cells
        )

    def _derive_dimensions(self):
        size_x, size_y = self.area.size
        center_x, center_y = self.area.center
        self.width = int(math.ceil(size_x / self.cell_size))
        self.height = int(math.ceil(size_y / self.cell_size))
        self.origin_x = center_x - size_x / 2.0
        self.origin_y = center_y - size_y / 2.0
        self.surface_height = self.area.surface_height

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def total_cells(self) -> int:
        return self.width * self.height

    @property
    def build_progress(self) -> float:
        """Fraction of cells initialised (0.0 - 1.0)."""
        return self._build_index / self.total_cells if self.total_cells else 1.0

    def build_step(self, budget: int) -> bool:
        """
        Initialise up to budget more cells.

        Cells are visited in order index = x * height + y. When the last
        cell is initialised the obstacles are marked with a full refresh.

        Args:
            budget: Maximum number of cells to initialise in this call

        Returns:
            True once the grid is ready, False while work remains
        """
        if self._ready:
            return True

        total = self.total_cells
        end = min(self._build_index + max(0, int(budget)), total)
        if end > self._build_index:
            flat = self._walkable.reshape(-1)
            flat[self._build_index:end] = True
            self._build_index = end

        if self._build_index >= total:
            self._ready = True
            self.refresh()
            logger.info("[Grid] Grid ready: %dx%d, %d walkable cells",
                        self.width, self.height, self.walkable_count())
            return True
        return False

    def build(self):
        """Build the whole grid at once (offline use and tests)."""
        while not self.build_step(self.total_cells):
            pass

    def reset(self):
        """
        Re-derive dimensions from the area and rebuild every cell.

        The arena is reused when the dimensions did not change.
        """
        old_shape = (self.width, self.height)
        self._derive_dimensions()
        if self._walkable is None or old_shape != (self.width, self.height):
            self._walkable = np.zeros((self.width, self.height), dtype=bool)

        self._walkable.fill(True)
        self._build_index = self.total_cells
        self._ready = True
        self.refresh()
        logger.info("[Grid] Grid reset and obstacles re-marked")

    # ------------------------------------------------------------------
    # Obstacle marking
    # ------------------------------------------------------------------

    def refresh(self, view_bounds: Optional[ViewBounds] = None) -> int:
        """
        Recompute walkability from the obstacle field.

        Args:
            view_bounds: Restrict to this world rectangle (expanded by
                view_margin_cells). None refreshes the whole grid.

        Returns:
            Number of cells whose walkability changed
        """
        if not self._ready:
            logger.debug("[Grid] Refresh skipped, grid still building")
            return 0

        if view_bounds is None:
            x0, x1, y0, y1 = 0, self.width, 0, self.height
        else:
            lo_x, lo_y = self.world_to_grid((view_bounds.min_x, view_bounds.min_y))
            hi_x, hi_y = self.world_to_grid((view_bounds.max_x, view_bounds.max_y))
            margin = self.view_margin_cells
            x0 = max(0, min(lo_x, hi_x) - margin)
            x1 = min(self.width, max(lo_x, hi_x) + margin + 1)
            y0 = max(0, min(lo_y, hi_y) - margin)
            y1 = min(self.height, max(lo_y, hi_y) + margin + 1)

        radius = self._half_cell + self.detection_margin
        changed = 0
        for x in range(x0, x1):
            cx = self.origin_x + x * self.cell_size + self._half_cell
            for y in range(y0, y1):
                cy = self.origin_y + y * self.cell_size + self._half_cell
                walkable = True
                if self.obstacle_field is not None:
                    walkable = not self.obstacle_field.occupied(cx, cy, radius)
                if walkable != self._walkable[x, y]:
                    self._walkable[x, y] = walkable
                    changed += 1

        logger.debug("[Grid] Refresh x[%d:%d] y[%d:%d], %d cells changed",
                     x0, x1, y0, y1, changed)
        return changed

    def set_walkable(self, cell: GridCell, walkable: bool):
        """Mark a single cell. Out-of-range cells are ignored."""
        if self.in_bounds(cell):
            self._walkable[cell[0], cell[1]] = walkable

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def in_bounds(self, cell: GridCell) -> bool:
        return 0 <= cell[0] < self.width and 0 <= cell[1] < self.height

    def clamp_cell(self, cell: GridCell) -> GridCell:
        x = min(max(int(cell[0]), 0), self.width - 1)
        y = min(max(int(cell[1]), 0), self.height - 1)
        return x, y

    def world_to_grid(self, position: Sequence[float]) -> GridCell:
        """
        Convert a world position to the containing cell.

        Positions outside the area map to the nearest edge cell.
        """
        x = math.floor((position[0] - self.origin_x) / self.cell_size)
        y = math.floor((position[1] - self.origin_y) / self.cell_size)
        return self.clamp_cell((x, y))

    def grid_to_world(self, cell: GridCell) -> Tuple[float, float, float]:
        """Centre of the (clamped) cell at the surface height."""
        x, y = self.clamp_cell(cell)
        return (
            self.origin_x + x * self.cell_size + self._half_cell,
            self.origin_y + y * self.cell_size + self._half_cell,
            self.surface_height
        )

    def clamp_world(self, position: Sequence[float]) -> Tuple[float, float]:
        """Clamp a world position onto the band of cell centres."""
        lo_x = self.origin_x + self._half_cell
        hi_x = self.origin_x + (self.width - 1) * self.cell_size + self._half_cell
        lo_y = self.origin_y + self._half_cell
        hi_y = self.origin_y + (self.height - 1) * self.cell_size + self._half_cell
        return (
            min(max(position[0], lo_x), hi_x),
            min(max(position[1], lo_y), hi_y)
        )

    def is_walkable(self, cell: GridCell) -> bool:
        if not self._ready or not self.in_bounds(cell):
            return False
        return bool(self._walkable[cell[0], cell[1]])

    def cell(self, x: int, y: int) -> Cell:
        x, y = self.clamp_cell((x, y))
        return Cell(x, y, bool(self._walkable[x, y]), self.grid_to_world((x, y)))

    def walkable_count(self) -> int:
        return int(np.count_nonzero(self._walkable))

    def walkable_array(self) -> np.ndarray:
        """Copy of the walkability arena, indexed [x, y]."""
        return self._walkable.copy()
