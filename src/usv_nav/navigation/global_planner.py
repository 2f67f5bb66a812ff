"""
Global Path Planner - A* Algorithm

Finds the lowest-cost cell sequence between two cells of the occupancy
grid under 8-connected movement.

- Orthogonal step costs 1 cell, diagonal step costs sqrt(2) cells
- Octile distance heuristic (exact lower bound for this movement model),
  inflated by 1.0001 only to break ties between equal-f nodes
- Open set is an indexed binary heap with decrease-key
- Per-cell search state lives in grid-sized arrays that are reset, not
  reallocated, at the start of every search

References:
- Red Blob Games A* tutorial: https://www.redblobgames.com/pathfinding/a-star/
- Nav2 NavFn Planner (ROS2 uses this same approach)
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..core.config import GlobalPlannerConfig
from ..core.errors import ConfigurationError
from ..mapping.occupancy_grid import GridCell, OccupancyGrid
from .priority_queue import IndexedPriorityQueue

logger = logging.getLogger(__name__)

SQRT2 = math.sqrt(2.0)

# 8-directional neighbours, fixed order
NEIGHBOR_OFFSETS = (
    (-1, -1), (0, -1), (1, -1),
    (-1, 0),           (1, 0),
    (-1, 1),  (0, 1),  (1, 1),
)


class PathStatus(Enum):
    """Outcome of a planning request."""
    FOUND = "found"
    NO_VALID_START = "no_valid_start"
    UNREACHABLE_GOAL = "unreachable_goal"
    INTERNAL_INCONSISTENCY = "internal_inconsistency"
    GRID_NOT_READY = "grid_not_ready"


@dataclass
class PathResult:
    """Result of find_path() / plan(). Failures carry an empty path."""
    status: PathStatus
    path: List[GridCell] = field(default_factory=list)
    cost: float = float('inf')
    start: Optional[GridCell] = None
    goal: Optional[GridCell] = None
    nodes_expanded: int = 0

    @property
    def ok(self) -> bool:
        return self.status == PathStatus.FOUND


def octile_distance(a: GridCell, b: GridCell, cell_size: float = 1.0) -> float:
    """Shortest 8-connected distance between two cells on open water."""
    dx = abs(a[0] - b[0])
    dy = abs(a[1] - b[1])
    return (dx + dy + (SQRT2 - 2.0) * min(dx, dy)) * cell_size


class GlobalPlanner:
    """
    A* global path planner on the occupancy grid.

    Usage:
        planner = GlobalPlanner(grid)

        result = planner.plan(start=(x0, y0), goal=(x1, y1))
        if result.ok:
            waypoints = planner.path_to_world(result.path)
        else:
            print(result.status)
    """

    def __init__(self, grid: Optional[OccupancyGrid],
                 config: Optional[GlobalPlannerConfig] = None):
        if grid is None:
            raise ConfigurationError("grid", "global planner needs an occupancy grid")

        self.grid = grid
        self.config = config or GlobalPlannerConfig()

        self._open = IndexedPriorityQueue()
        self._shape: Tuple[int, int] = (0, 0)
        self._g_cost: Optional[np.ndarray] = None
        self._f_cost: Optional[np.ndarray] = None
        self._parent: Optional[np.ndarray] = None
        self._closed: Optional[np.ndarray] = None
        self._in_open: Optional[np.ndarray] = None
        self._ensure_storage()

    # ------------------------------------------------------------------
    # Search node storage
    # ------------------------------------------------------------------

    def _ensure_storage(self):
        """Allocate per-cell search arrays when the grid size changes."""
        shape = (self.grid.width, self.grid.height)
        if shape == self._shape and self._g_cost is not None:
            return

        self._shape = shape
        self._g_cost = np.full(shape, np.inf, dtype=np.float64)
        self._f_cost = np.full(shape, np.inf, dtype=np.float64)
        self._parent = np.full(shape + (2,), -1, dtype=np.int32)
        self._closed = np.zeros(shape, dtype=bool)
        self._in_open = np.zeros(shape, dtype=bool)

    def _reset_nodes(self):
        self._ensure_storage()
        self._g_cost.fill(np.inf)
        self._f_cost.fill(np.inf)
        self._parent.fill(-1)
        self._closed.fill(False)
        self._in_open.fill(False)
        self._open.clear()

    # ------------------------------------------------------------------
    # Costs
    # ------------------------------------------------------------------

    def heuristic(self, a: GridCell, b: GridCell) -> float:
        """Octile distance (world units) with the tie-breaking inflation."""
        return octile_distance(a, b, self.grid.cell_size) * self.config.heuristic_inflation

    def step_cost(self, a: GridCell, b: GridCell) -> float:
        diagonal = a[0] != b[0] and a[1] != b[1]
        return (SQRT2 if diagonal else 1.0) * self.grid.cell_size

    def path_cost(self, path: Sequence[GridCell]) -> float:
        """Total movement cost of a cell path."""
        return sum(self.step_cost(path[i - 1], path[i]) for i in range(1, len(path)))

    def path_to_world(self, path: Sequence[GridCell]) -> List[Tuple[float, float]]:
        """Cell centres of a path as (x, y) world waypoints."""
        result = []
        for cell in path:
            x, y, _ = self.grid.grid_to_world(cell)
            result.append((x, y))
        return result

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan(self, start: Sequence[float], goal: Sequence[float]) -> PathResult:
        """
        Plan between two world positions.

        Both positions are clamped into the grid. A blocked start is moved
        to the nearest walkable cell within start_search_radius rings. A
        blocked goal fails unless correct_goal is enabled.

        Args:
            start: (x, y) world position of the vehicle
            goal: (x, y) world position of the target

        Returns:
            PathResult (never raises for search failures)
        """
        if not self.grid.ready:
            logger.warning("[A*] Grid not ready, planning skipped")
            return PathResult(PathStatus.GRID_NOT_READY)

        start_cell = self.grid.world_to_grid(self.grid.clamp_world(start))
        goal_cell = self.grid.world_to_grid(self.grid.clamp_world(goal))
        logger.debug("[A*] Request start %s goal %s", start_cell, goal_cell)

        valid_start = self.find_valid_cell(start_cell, self.config.start_search_radius)
        if valid_start is None:
            logger.error("[A*] No walkable start within %d rings of %s",
                         self.config.start_search_radius, start_cell)
            return PathResult(PathStatus.NO_VALID_START, start=start_cell, goal=goal_cell)
        if valid_start != start_cell:
            logger.info("[A*] Start corrected %s -> %s", start_cell, valid_start)

        if self.config.correct_goal:
            valid_goal = self.find_valid_cell(goal_cell, self.config.goal_search_radius)
            if valid_goal is None:
                logger.error("[A*] No walkable goal within %d rings of %s",
                             self.config.goal_search_radius, goal_cell)
                return PathResult(PathStatus.UNREACHABLE_GOAL, start=valid_start, goal=goal_cell)
            if valid_goal != goal_cell:
                logger.info("[A*] Goal corrected %s -> %s", goal_cell, valid_goal)
            goal_cell = valid_goal

        return self.find_path(valid_start, goal_cell)

    def find_valid_cell(self, cell: GridCell, max_radius: int) -> Optional[GridCell]:
        """
        Nearest walkable cell by square rings around cell.

        Ring r is only searched when ring r-1 had no walkable cell. Each
        ring is scanned top edge, right edge, bottom edge, left edge.

        Returns:
            The cell itself if walkable, a substitute, or None
        """
        if self.grid.is_walkable(cell):
            return cell

        cx, cy = cell
        for r in range(1, max_radius + 1):
            for candidate in self._ring(cx, cy, r):
                if self.grid.is_walkable(candidate):
                    return candidate
        return None

    @staticmethod
    def _ring(cx: int, cy: int, r: int):
        # Top edge, left to right
        for dx in range(-r, r + 1):
            yield cx + dx, cy - r
        # Right edge, downwards
        for dy in range(-r + 1, r + 1):
            yield cx + r, cy + dy
        # Bottom edge, right to left
        for dx in range(r - 1, -r - 1, -1):
            yield cx + dx, cy + r
        # Left edge, upwards
        for dy in range(r - 1, -r, -1):
            yield cx - r, cy + dy

    def find_path(self, start: GridCell, goal: GridCell) -> PathResult:
        """
        A* search between two cells.

        Args:
            start: Walkable start cell
            goal: Goal cell

        Returns:
            PathResult with the cell path (start and goal inclusive)
        """
        grid = self.grid
        if not grid.is_walkable(start):
            return PathResult(PathStatus.NO_VALID_START, start=start, goal=goal)
        if not grid.is_walkable(goal):
            logger.warning("[A*] Goal %s is not walkable", goal)
            return PathResult(PathStatus.UNREACHABLE_GOAL, start=start, goal=goal)

        self._reset_nodes()
        g_cost = self._g_cost
        f_cost = self._f_cost
        parent = self._parent
        closed = self._closed
        in_open = self._in_open
        open_set = self._open

        straight = grid.cell_size
        diagonal = SQRT2 * grid.cell_size
        no_corner_cutting = not self.config.allow_corner_cutting

        sx, sy = start
        g_cost[sx, sy] = 0.0
        f_cost[sx, sy] = self.heuristic(start, goal)
        in_open[sx, sy] = True
        open_set.push(start, f_cost[sx, sy])

        expanded = 0
        while open_set:
            current, _ = open_set.pop()
            cx, cy = current
            in_open[cx, cy] = False
            closed[cx, cy] = True
            expanded += 1

            if current == goal:
                return self._finish(start, goal, expanded)

            current_g = g_cost[cx, cy]
            for dx, dy in NEIGHBOR_OFFSETS:
                nx, ny = cx + dx, cy + dy
                if not (0 <= nx < grid.width and 0 <= ny < grid.height):
                    continue
                if closed[nx, ny] or not grid.is_walkable((nx, ny)):
                    continue

                is_diagonal = dx != 0 and dy != 0
                if is_diagonal and no_corner_cutting:
                    if not grid.is_walkable((cx + dx, cy)) or not grid.is_walkable((cx, cy + dy)):
                        continue

                tentative = current_g + (diagonal if is_diagonal else straight)
                if tentative >= g_cost[nx, ny]:
                    continue

                neighbor = (nx, ny)
                g_cost[nx, ny] = tentative
                f = tentative + self.heuristic(neighbor, goal)
                f_cost[nx, ny] = f
                parent[nx, ny] = (cx, cy)

                if in_open[nx, ny]:
                    open_set.decrease_key(neighbor, f)
                else:
                    in_open[nx, ny] = True
                    open_set.push(neighbor, f)

        logger.warning("[A*] No path from %s to %s (%d nodes expanded)",
                       start, goal, expanded)
        return PathResult(PathStatus.UNREACHABLE_GOAL, start=start, goal=goal,
                          nodes_expanded=expanded)

    def _finish(self, start: GridCell, goal: GridCell, expanded: int) -> PathResult:
        path = self._reconstruct_path(goal)
        if not path or path[0] != start:
            logger.error("[A*] Path reconstruction failed for %s -> %s", start, goal)
            return PathResult(PathStatus.INTERNAL_INCONSISTENCY, start=start, goal=goal,
                              nodes_expanded=expanded)

        cost = float(self._g_cost[goal[0], goal[1]])
        logger.info("[A*] Path found: %d cells, cost %.2f, %d nodes expanded",
                    len(path), cost, expanded)
        return PathResult(PathStatus.FOUND, path=path, cost=cost, start=start,
                          goal=goal, nodes_expanded=expanded)

    def _reconstruct_path(self, goal: GridCell) -> List[GridCell]:
        """
        Follow parent links from goal back to the start.

        Returns an empty list if the chain revisits a cell or runs
        longer than the number of cells in the grid.
        """
        limit = self.grid.total_cells
        path: List[GridCell] = []
        seen = set()
        current = goal

        while current[0] != -1:
            if current in seen:
                logger.error("[A*] Cycle in parent chain at %s", current)
                return []
            seen.add(current)
            path.append(current)
            if len(path) > limit:
                logger.error("[A*] Parent chain longer than the grid, aborting")
                return []

            px, py = self._parent[current[0], current[1]]
            current = (int(px), int(py))

        path.reverse()
        return path
