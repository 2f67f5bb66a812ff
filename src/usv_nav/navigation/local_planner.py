"""
Local Path Planner - Dynamic Window with right-of-way rules

Reacts to obstacles the global plan does not know about (other vessels,
drifting objects) while tracking waypoints of the global path.

The idea:
1. Take every (speed, rate of turn) pair from a small fixed candidate set
2. Predict the pose reached after a short horizon
3. Score the prediction: clearance, progress to the waypoint,
   right-of-way behaviour (head-on, crossing from either side), smoothness
4. Keep the best one (first candidate wins ties)

Rates of turn are in deg/s and positive to starboard. Relative bearings
are positive to starboard as well.

References:
- "The Dynamic Window Approach to Collision Avoidance" (Fox, Burgard, Thrun, 1997)
- COLREGs Part B, Section II (conduct of vessels in sight of one another)
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from ..core.config import LocalPlannerConfig
from ..core.errors import ConfigurationError
from ..interface.sensor_interface import (
    IActionProposer, IRangeSensor, ObstacleObservation, Point, Pose, VelocityCommand
)
from ..mapping.occupancy_grid import OccupancyGrid

logger = logging.getLogger(__name__)


class EncounterType(Enum):
    """Right-of-way situation relative to one obstacle."""
    HEAD_ON = "head_on"
    STAND_ON = "stand_on"       # obstacle on our starboard side, we keep course
    GIVE_WAY = "give_way"       # obstacle on our port side, we turn to starboard
    NONE = "none"               # astern sector


class LocalPlanMode(Enum):
    PROPOSER = "proposer"               # baseline proposer in charge
    DYNAMIC_WINDOW = "dynamic_window"   # no hazard, no proposer
    AVOIDING = "avoiding"               # hazard admitted
    RETURNING = "returning"             # hazard gone, still off the global path


@dataclass
class LocalPlanResult:
    """Output of one local planning step."""
    command: VelocityCommand
    mode: LocalPlanMode
    obstacles: List[ObstacleObservation] = field(default_factory=list)
    waypoint: Optional[Point] = None
    score: Optional[float] = None       # None when the proposer decided


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def normalize_degrees(angle: float) -> float:
    """Wrap an angle to (-180, 180]."""
    angle = math.fmod(angle, 360.0)
    if angle > 180.0:
        angle -= 360.0
    elif angle <= -180.0:
        angle += 360.0
    return angle


def relative_bearing(pose: Pose, point: Sequence[float]) -> float:
    """Bearing of point from pose in degrees, positive to starboard."""
    absolute = math.atan2(point[1] - pose[1], point[0] - pose[0])
    return normalize_degrees(math.degrees(pose[2] - absolute))


def point_segment_distance(p: Sequence[float], a: Sequence[float], b: Sequence[float]) -> float:
    """Distance from p to the segment a-b."""
    abx, aby = b[0] - a[0], b[1] - a[1]
    length_sq = abx * abx + aby * aby
    if length_sq == 0.0:
        return math.hypot(p[0] - a[0], p[1] - a[1])

    t = ((p[0] - a[0]) * abx + (p[1] - a[1]) * aby) / length_sq
    t = _clamp(t, 0.0, 1.0)
    return math.hypot(p[0] - (a[0] + t * abx), p[1] - (a[1] + t * aby))


class LocalPlanner:
    """
    Reactive local planner.

    Usage:
        local = LocalPlanner(grid)

        # In control loop:
        result = local.step(
            pose=(x, y, theta),
            velocity=current_speed,
            path=waypoints,
            goal=goal,
            sensor=lidar
        )
        vessel.apply(result.command)
    """

    def __init__(self, grid: Optional[OccupancyGrid],
                 config: Optional[LocalPlannerConfig] = None):
        if grid is None:
            raise ConfigurationError("grid", "local planner needs an occupancy grid")

        self.grid = grid
        self.config = config or LocalPlannerConfig()
        self._validate()

        self.candidates: List[Tuple[float, float]] = [
            (float(v), float(w))
            for v in self.config.linear_options
            for w in self.config.angular_options
        ]
        if (0.0, 0.0) not in self.candidates:
            logger.debug("[Local] Adding zero/zero to the candidate set")
            self.candidates.append((0.0, 0.0))

        self.avoiding = False
        self._path: Optional[List[Point]] = None
        self._waypoint_index = 0

    def _validate(self):
        cfg = self.config
        if cfg.horizon_steps < 1 or cfg.horizon <= 0:
            raise ConfigurationError("horizon", "horizon and horizon_steps must be positive")
        if cfg.safe_distance <= 0 or cfg.colregs_safe_distance <= 0:
            raise ConfigurationError("safe_distance", "safety distances must be positive")
        if cfg.max_linear <= 0 or cfg.max_angular <= 0:
            raise ConfigurationError("max_linear", "velocity limits must be positive")

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict_motion(self, pose: Pose, linear: float, angular: float) -> Pose:
        """
        Pose after the prediction horizon for a constant command.

        Each sub-step turns first, then moves along the new heading.
        """
        x, y, theta = pose
        dt = self.config.horizon / self.config.horizon_steps
        turn = -math.radians(angular) * dt

        for _ in range(self.config.horizon_steps):
            theta += turn
            x += linear * math.cos(theta) * dt
            y += linear * math.sin(theta) * dt

        return x, y, theta

    # ------------------------------------------------------------------
    # Scores (each in [0, 1], higher is better)
    # ------------------------------------------------------------------

    def clearance_score(self, pose: Pose, obstacles: Sequence[ObstacleObservation]) -> float:
        if not obstacles:
            return 1.0
        safe = self.config.safe_distance
        total = 0.0
        for obs in obstacles:
            dist = math.hypot(obs.point[0] - pose[0], obs.point[1] - pose[1])
            total += _clamp(dist / safe, 0.0, 1.0)
        return total / len(obstacles)

    def progress_score(self, pose: Pose, waypoint: Optional[Point]) -> float:
        if waypoint is None:
            return 0.0
        dist = math.hypot(waypoint[0] - pose[0], waypoint[1] - pose[1])
        return _clamp(1.0 - dist / (2.0 * self.config.safe_distance), 0.0, 1.0)

    def classify_encounter(self, bearing: float, obstacle_speed: float) -> EncounterType:
        cfg = self.config
        if abs(bearing) < cfg.head_on_bearing and obstacle_speed >= cfg.head_on_min_speed:
            return EncounterType.HEAD_ON
        if 0.0 < bearing < cfg.crossing_bearing:
            return EncounterType.STAND_ON
        if -cfg.crossing_bearing < bearing < 0.0:
            return EncounterType.GIVE_WAY
        return EncounterType.NONE

    def right_of_way_score(self, pose: Pose, angular: float,
                           obstacles: Sequence[ObstacleObservation]) -> float:
        """
        Product over obstacles of how well the turn fits the encounter.

        Head-on: turn at head_on_avoid_rate (port by default).
        Obstacle to starboard: we are stand-on and hold course.
        Obstacle to port: we give way with a starboard turn.
        Inside colregs_safe_distance the factor shrinks with distance.
        """
        cfg = self.config
        score = 1.0
        for obs in obstacles:
            bearing = relative_bearing(pose, obs.point)
            encounter = self.classify_encounter(bearing, obs.speed)

            if encounter == EncounterType.HEAD_ON:
                factor = _clamp(1.0 - abs(angular - cfg.head_on_avoid_rate) / 90.0, 0.3, 1.0)
            elif encounter == EncounterType.STAND_ON:
                factor = _clamp(1.0 - abs(angular) / cfg.stand_on_turn_limit, 0.4, 1.0)
            elif encounter == EncounterType.GIVE_WAY:
                factor = _clamp(1.0 - abs(angular - cfg.port_crossing_avoid_rate) / 60.0, 0.3, 1.0)
            else:
                factor = 1.0

            dist = math.hypot(obs.point[0] - pose[0], obs.point[1] - pose[1])
            if dist < cfg.colregs_safe_distance:
                factor *= dist / cfg.colregs_safe_distance
            score *= factor
        return score

    def smoothness_score(self, linear: float, angular: float, current_linear: float) -> float:
        cfg = self.config
        speed_term = 1.0 - abs(linear - current_linear) / cfg.max_linear
        turn_term = 1.0 - abs(angular) / cfg.max_angular
        return (speed_term + turn_term) / 2.0

    def score_candidate(self, pose: Pose, linear: float, angular: float,
                        current_linear: float, waypoint: Optional[Point],
                        obstacles: Sequence[ObstacleObservation]) -> float:
        cfg = self.config
        predicted = self.predict_motion(pose, linear, angular)
        return (
            cfg.clearance_weight * self.clearance_score(predicted, obstacles) +
            cfg.progress_weight * self.progress_score(predicted, waypoint) +
            cfg.right_of_way_weight * self.right_of_way_score(predicted, angular, obstacles) +
            cfg.smoothness_weight * self.smoothness_score(linear, angular, current_linear)
        )

    def dynamic_window(self, pose: Pose, current_linear: float,
                       waypoint: Optional[Point],
                       obstacles: Sequence[ObstacleObservation]) -> Tuple[VelocityCommand, float]:
        """Best candidate command and its score."""
        best = (0.0, 0.0)
        best_score = -float('inf')

        for linear, angular in self.candidates:
            score = self.score_candidate(pose, linear, angular, current_linear,
                                         waypoint, obstacles)
            if score > best_score:
                best_score = score
                best = (linear, angular)

        return VelocityCommand(best[0], best[1]), best_score

    # ------------------------------------------------------------------
    # Obstacles and waypoints
    # ------------------------------------------------------------------

    def detect_obstacles(self, sensor: Optional[IRangeSensor]) -> List[ObstacleObservation]:
        """
        Finish the sensor sweep and admit close returns over open water.

        Returns on non-walkable cells are static obstacles the global
        path already avoids.
        """
        if sensor is None:
            return []

        sensor.complete_scan()
        admitted = []
        for obs in sensor.observations():
            if obs.distance >= self.config.safe_distance:
                continue
            if not self.grid.is_walkable(self.grid.world_to_grid(obs.point)):
                continue
            admitted.append(obs)
        return admitted

    def reset_tracking(self):
        """Restart waypoint tracking from the first waypoint."""
        self._path = None
        self._waypoint_index = 0

    @property
    def waypoint_index(self) -> int:
        return self._waypoint_index

    def track_waypoint(self, position: Sequence[float],
                       path: Optional[Sequence[Point]],
                       goal: Optional[Point]) -> Optional[Point]:
        """
        Current waypoint, advancing past those already reached.

        Without a path the goal itself is tracked.
        """
        if not path:
            return goal

        # An equal copy of the tracked path is the same path
        points = [(p[0], p[1]) for p in path]
        if points != self._path:
            self._path = points
            self._waypoint_index = 0

        threshold = self.config.arrival_threshold
        while self._waypoint_index < len(path) - 1:
            wp = path[self._waypoint_index]
            if math.hypot(wp[0] - position[0], wp[1] - position[1]) >= threshold:
                break
            self._waypoint_index += 1

        wp = path[self._waypoint_index]
        return wp[0], wp[1]

    def is_close_to_path(self, position: Sequence[float],
                         path: Optional[Sequence[Point]]) -> bool:
        if not path or len(path) < 2:
            return True
        best = min(
            point_segment_distance(position, path[i], path[i + 1])
            for i in range(len(path) - 1)
        )
        return best < self.config.return_threshold

    # ------------------------------------------------------------------
    # Step
    # ------------------------------------------------------------------

    def step(self, pose: Pose, velocity: float,
             path: Optional[Sequence[Point]], goal: Optional[Point],
             sensor: Optional[IRangeSensor],
             proposer: Optional[IActionProposer] = None) -> LocalPlanResult:
        """
        One local planning step.

        Args:
            pose: (x, y, theta) current pose
            velocity: Current forward speed (m/s)
            path: Global path as world waypoints, may be empty
            goal: Final goal in world frame
            sensor: Range sensor, None means nothing sensed
            proposer: Baseline command source for hazard-free ticks

        Returns:
            LocalPlanResult
        """
        waypoint = self.track_waypoint(pose, path, goal)
        obstacles = self.detect_obstacles(sensor)

        if obstacles:
            if not self.avoiding:
                logger.info("[Local] %d obstacle(s) within %.1fm, avoiding",
                            len(obstacles), self.config.safe_distance)
            self.avoiding = True
            command, score = self.dynamic_window(pose, velocity, waypoint, obstacles)
            return LocalPlanResult(command, LocalPlanMode.AVOIDING, obstacles, waypoint, score)

        if self.avoiding:
            if self.is_close_to_path(pose, path):
                logger.info("[Local] Back on the global path")
                self.avoiding = False
            else:
                command, score = self.dynamic_window(pose, velocity, waypoint, obstacles)
                return LocalPlanResult(command, LocalPlanMode.RETURNING, obstacles, waypoint, score)

        if proposer is not None:
            command = proposer.propose(pose, velocity, waypoint)
            return LocalPlanResult(command, LocalPlanMode.PROPOSER, obstacles, waypoint)

        command, score = self.dynamic_window(pose, velocity, waypoint, obstacles)
        return LocalPlanResult(command, LocalPlanMode.DYNAMIC_WINDOW, obstacles, waypoint, score)
