"""
USV Navigator

Tick-driven orchestration of grid construction, global planning and
local planning.

Each tick, in order:
1. While the grid is still building: initialise build_budget cells and
   hold position.
2. If a re-plan is due: plan from the current position to the goal and
   swap in the new path on success. On failure the old path is kept.
3. Run the local planner and return its command.

Usage:
    navigator = USVNavigator.from_config(config, environment, sensor)
    navigator.set_goal((12.0, 4.0))

    while running:
        cmd = navigator.tick(now, vessel.pose, vessel.speed)
        vessel.apply(cmd, dt)
"""

import logging
import math
from enum import Enum
from typing import List, Optional, Sequence

from ..core.config import NavigatorConfig, USVConfig
from ..core.errors import ConfigurationError
from ..interface.sensor_interface import (
    IActionProposer, IObstacleField, IRangeSensor, Point, Pose, VelocityCommand
)
from ..mapping.occupancy_grid import OccupancyGrid, ViewBounds
from .global_planner import GlobalPlanner, PathResult
from .local_planner import LocalPlanMode, LocalPlanner, LocalPlanResult
from .replanner import ReplanScheduler

logger = logging.getLogger(__name__)


class NavigationState(Enum):
    """Current navigator state."""
    BUILDING = "building"       # grid under construction
    IDLE = "idle"               # no goal
    NAVIGATING = "navigating"
    ARRIVED = "arrived"


class USVNavigator:
    """
    Glue between the grid, the planners and the sensor.

    All work happens synchronously inside tick(). The current path is
    only ever replaced by a complete new one.
    """

    def __init__(
        self,
        grid: Optional[OccupancyGrid],
        global_planner: Optional[GlobalPlanner],
        local_planner: Optional[LocalPlanner],
        sensor: Optional[IRangeSensor],
        proposer: Optional[IActionProposer] = None,
        config: Optional[NavigatorConfig] = None
    ):
        """
        Args:
            grid: Occupancy grid (required)
            global_planner: A* planner on that grid (required)
            local_planner: Reactive planner (required)
            sensor: Range sensor (required)
            proposer: Baseline command source, None lets the dynamic
                window drive in open water too
            config: Navigator configuration

        Raises:
            ConfigurationError: a required collaborator is missing
        """
        for name, dependency in (("grid", grid), ("global_planner", global_planner),
                                 ("local_planner", local_planner), ("sensor", sensor)):
            if dependency is None:
                raise ConfigurationError(name, "navigator cannot run without it")

        self.grid = grid
        self.global_planner = global_planner
        self.local_planner = local_planner
        self.sensor = sensor
        self.proposer = proposer
        self.config = config or NavigatorConfig()

        self.scheduler = ReplanScheduler(self.config.replan_delay)

        self._goal: Optional[Point] = None
        self._path: List[Point] = []
        self._now = 0.0
        self._state = NavigationState.BUILDING if not grid.ready else NavigationState.IDLE

        self.last_result: Optional[LocalPlanResult] = None
        self.last_plan: Optional[PathResult] = None
        self.ticks = 0
        self.avoidance_ticks = 0
        self.plans_failed = 0

        if self.config.goal is not None:
            self.set_goal(self.config.goal)

    @classmethod
    def from_config(cls, config: USVConfig, obstacle_field: Optional[IObstacleField],
                    sensor: Optional[IRangeSensor],
                    proposer: Optional[IActionProposer] = None) -> 'USVNavigator':
        """Build the grid and both planners from a USVConfig."""
        grid = OccupancyGrid.from_config(config.grid, obstacle_field)
        return cls(
            grid,
            GlobalPlanner(grid, config.global_planner),
            LocalPlanner(grid, config.local_planner),
            sensor,
            proposer,
            config.navigator
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def grid_ready(self) -> bool:
        return self.grid.ready

    @property
    def path_available(self) -> bool:
        return bool(self._path)

    @property
    def current_path(self) -> List[Point]:
        return list(self._path)

    @property
    def goal(self) -> Optional[Point]:
        return self._goal

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def arrived(self) -> bool:
        return self._state == NavigationState.ARRIVED

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def set_goal(self, goal: Sequence[float], now: Optional[float] = None):
        """Set a new goal and request a planning pass."""
        self._goal = (float(goal[0]), float(goal[1]))
        if self.grid.ready:
            self._state = NavigationState.NAVIGATING
        logger.info("[Nav] Goal set to (%.2f, %.2f)", self._goal[0], self._goal[1])
        self.request_replan("goal", self._now if now is None else now)

    def request_replan(self, reason: str, now: float) -> bool:
        return self.scheduler.request(reason, now)

    def notify_collision(self, now: float) -> bool:
        logger.warning("[Nav] Collision reported at t=%.2f", now)
        return self.request_replan("collision", now)

    def notify_map_changed(self, now: float, view_bounds: Optional[ViewBounds] = None) -> bool:
        """Re-mark obstacles (optionally only around view_bounds), then re-plan."""
        changed = self.grid.refresh(view_bounds)
        logger.info("[Nav] Map changed, %d cells updated", changed)
        return self.request_replan("map_changed", now)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self, now: float, pose: Pose, velocity: float) -> VelocityCommand:
        """
        Run one control tick.

        Args:
            now: Current time in seconds
            pose: (x, y, theta) vehicle pose
            velocity: Current forward speed (m/s)

        Returns:
            VelocityCommand to apply until the next tick
        """
        self._now = now
        self.ticks += 1

        if not self.grid.ready:
            self._state = NavigationState.BUILDING
            if self.grid.build_step(self.config.build_budget):
                self._state = NavigationState.NAVIGATING if self._goal else NavigationState.IDLE
            return VelocityCommand.stop()

        if self._goal is None:
            self._state = NavigationState.IDLE
            return VelocityCommand.stop()

        if self.scheduler.due(now):
            self._replan(pose)

        distance = math.hypot(self._goal[0] - pose[0], self._goal[1] - pose[1])
        if distance < self.config.arrival_radius:
            if self._state != NavigationState.ARRIVED:
                logger.info("[Nav] Arrived at goal (%.2fm)", distance)
            self._state = NavigationState.ARRIVED
            return VelocityCommand.stop()

        self._state = NavigationState.NAVIGATING
        result = self.local_planner.step(pose, velocity, self._path, self._goal,
                                         self.sensor, self.proposer)
        self.last_result = result
        if result.mode in (LocalPlanMode.AVOIDING, LocalPlanMode.RETURNING):
            self.avoidance_ticks += 1
        return result.command

    def _replan(self, pose: Pose):
        reason = self.scheduler.reason
        result = self.global_planner.plan(pose[:2], self._goal)
        self.scheduler.complete()
        self.last_plan = result

        if result.ok:
            self._path = self.global_planner.path_to_world(result.path)
            self.local_planner.reset_tracking()
            logger.info("[Nav] New path (%s): %d waypoints, cost %.2f",
                        reason, len(self._path), result.cost)
        else:
            self.plans_failed += 1
            logger.warning("[Nav] Planning (%s) failed: %s, keeping previous path",
                           reason, result.status.value)
