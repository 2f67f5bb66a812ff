"""
Abstract interfaces for the planner's collaborators.

These interfaces define the contract that real (hardware) and simulated
implementations must respect. The planners only hold references to
them, so a simulated sensor and a real one are interchangeable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

Pose = Tuple[float, float, float]       # (x, y, theta), theta CCW from +x in radians
Point = Tuple[float, float]


@dataclass(frozen=True)
class VelocityCommand:
    """Motion command produced once per control tick."""
    linear: float       # m/s forward
    angular: float      # rate of turn, deg/s (positive = starboard)

    @classmethod
    def stop(cls) -> 'VelocityCommand':
        return cls(0.0, 0.0)


@dataclass(frozen=True)
class ObstacleObservation:
    """One sensed return. Lives for a single tick."""
    bearing_index: int
    distance: float                     # meters
    point: Point                        # world position of the hit
    velocity: Point = (0.0, 0.0)        # m/s, finite difference estimate

    @property
    def speed(self) -> float:
        return float(np.hypot(self.velocity[0], self.velocity[1]))


class IRangeSensor(ABC):
    """
    Per-bearing range sensor (LiDAR / radar style).

    A sweep covers sample_count bearings. scan() may cast only part of
    a sweep; complete_scan() guarantees every bearing is fresh before
    the arrays are read.
    """

    @property
    @abstractmethod
    def sample_count(self) -> int:
        """Number of bearings per sweep."""
        pass

    @abstractmethod
    def scan(self) -> bool:
        """Advance the sweep. Returns True when a sweep was completed."""
        pass

    @abstractmethod
    def complete_scan(self):
        """Finish the current sweep so every bearing is populated."""
        pass

    @abstractmethod
    def distances(self) -> np.ndarray:
        """Distance per bearing, shape (n,)."""
        pass

    @abstractmethod
    def points(self) -> np.ndarray:
        """World hit point per bearing, shape (n, 2)."""
        pass

    @abstractmethod
    def velocities(self) -> np.ndarray:
        """Estimated velocity of the surface hit per bearing, shape (n, 2)."""
        pass

    def observations(self) -> List[ObstacleObservation]:
        """Bundle the per-bearing arrays into observation records."""
        distances = self.distances()
        points = self.points()
        velocities = self.velocities()
        return [
            ObstacleObservation(
                bearing_index=i,
                distance=float(distances[i]),
                point=(float(points[i, 0]), float(points[i, 1])),
                velocity=(float(velocities[i, 0]), float(velocities[i, 1]))
            )
            for i in range(len(distances))
        ]


class IObstacleField(ABC):
    """Presence query used to mark static obstacles on the grid."""

    @abstractmethod
    def occupied(self, x: float, y: float, radius: float) -> bool:
        """True if any obstacle lies within radius of (x, y)."""
        pass


class IActionProposer(ABC):
    """Baseline steering source used when no hazard is admitted."""

    @abstractmethod
    def propose(self, pose: Pose, velocity: float,
                waypoint: Optional[Point]) -> VelocityCommand:
        """
        Propose a command.

        Args:
            pose: Current (x, y, theta)
            velocity: Current forward velocity (m/s)
            waypoint: Tracked waypoint in world frame, or None

        Returns:
            VelocityCommand
        """
        pass
