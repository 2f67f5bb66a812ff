"""
Action Proposers

Baseline command sources used by the local planner when no hazard is
admitted:

- WaypointFollower: steer straight at the tracked waypoint
- DiscreteActionProposer: adapter for a policy that picks one of three
  discrete actions (forward, port turn, starboard turn)
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from ..interface.sensor_interface import IActionProposer, Point, Pose, VelocityCommand
from .local_planner import relative_bearing

logger = logging.getLogger(__name__)


@dataclass
class FollowerConfig:
    """Waypoint follower configuration."""
    max_linear: float = 1.5             # m/s
    max_angular: float = 45.0           # deg/s
    turn_gain: float = 1.0              # deg/s of rate of turn per degree of heading error
    align_tolerance: float = 10.0       # degrees, full speed below this error
    turn_speed_ratio: float = 0.5       # speed fraction at 90+ degrees of error


class WaypointFollower(IActionProposer):
    """
    Proportional heading controller towards the tracked waypoint.

    Usage:
        follower = WaypointFollower()
        cmd = follower.propose(pose, speed, waypoint)
    """

    def __init__(self, config: Optional[FollowerConfig] = None):
        self.config = config or FollowerConfig()

    def propose(self, pose: Pose, velocity: float,
                waypoint: Optional[Point]) -> VelocityCommand:
        if waypoint is None:
            return VelocityCommand.stop()

        cfg = self.config
        error = relative_bearing(pose, waypoint)
        angular = max(-cfg.max_angular, min(cfg.max_angular, cfg.turn_gain * error))

        if abs(error) <= cfg.align_tolerance:
            linear = cfg.max_linear
        else:
            ratio = max(cfg.turn_speed_ratio, math.cos(math.radians(min(abs(error), 90.0))))
            linear = cfg.max_linear * ratio

        return VelocityCommand(linear, angular)


# Discrete policy actions
ACTION_FORWARD = 0
ACTION_PORT = 1
ACTION_STARBOARD = 2

PolicyFn = Callable[[Pose, float, Optional[Point]], int]


class DiscreteActionProposer(IActionProposer):
    """
    Maps a discrete policy decision to a velocity command.

    0: forward at max_linear
    1: turn to port at -turn_rate, 70% speed
    2: turn to starboard at +turn_rate, 70% speed

    Usage:
        proposer = DiscreteActionProposer(policy=model.act)
    """

    def __init__(self, policy: PolicyFn, max_linear: float = 1.5,
                 turn_rate: float = 30.0, turn_speed_ratio: float = 0.7):
        self.policy = policy
        self.max_linear = max_linear
        self.turn_rate = turn_rate
        self.turn_speed_ratio = turn_speed_ratio

    def command_for(self, action: int) -> VelocityCommand:
        if action == ACTION_FORWARD:
            return VelocityCommand(self.max_linear, 0.0)
        if action == ACTION_PORT:
            return VelocityCommand(self.max_linear * self.turn_speed_ratio, -self.turn_rate)
        if action == ACTION_STARBOARD:
            return VelocityCommand(self.max_linear * self.turn_speed_ratio, self.turn_rate)
        raise ValueError(f"unknown discrete action {action!r}")

    def propose(self, pose: Pose, velocity: float,
                waypoint: Optional[Point]) -> VelocityCommand:
        action = int(self.policy(pose, velocity, waypoint))
        logger.debug("[Policy] Action %d", action)
        return self.command_for(action)
