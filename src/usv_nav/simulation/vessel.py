"""
Cinematique simple du navire simule.

Modele unicycle: le cap tourne au taux de giration commande (deg/s,
positif vers tribord), puis le navire avance le long du nouveau cap.
"""

import math
from dataclasses import dataclass
from typing import Optional

from ..interface.sensor_interface import Pose, VelocityCommand
from .environment import Environment


@dataclass
class VesselConfig:
    """Limites du navire simule."""
    max_linear: float = 1.5             # m/s
    max_angular: float = 45.0           # deg/s
    max_accel: Optional[float] = None   # m/s^2, None = reponse immediate
    radius: float = 0.5                 # metres, pour les collisions


class SimulatedVessel:
    """
    Navire simule pilote par VelocityCommand.

    Usage:
        vessel = SimulatedVessel(-12.0, 0.0, theta=0.0)
        vessel.apply(VelocityCommand(1.0, 15.0), dt=0.1)
        x, y, theta = vessel.pose
    """

    def __init__(self, x: float = 0.0, y: float = 0.0, theta: float = 0.0,
                 config: Optional[VesselConfig] = None):
        self.x = float(x)
        self.y = float(y)
        self.theta = float(theta)
        self.speed = 0.0
        self.config = config or VesselConfig()
        self.distance_travelled = 0.0

    @property
    def pose(self) -> Pose:
        return self.x, self.y, self.theta

    def apply(self, command: VelocityCommand, dt: float):
        """Applique une commande pendant dt secondes."""
        cfg = self.config
        target = max(0.0, min(cfg.max_linear, command.linear))
        angular = max(-cfg.max_angular, min(cfg.max_angular, command.angular))

        if cfg.max_accel is None:
            self.speed = target
        else:
            step = cfg.max_accel * dt
            self.speed += max(-step, min(step, target - self.speed))

        self.theta -= math.radians(angular) * dt
        self.theta = math.atan2(math.sin(self.theta), math.cos(self.theta))

        self.x += self.speed * math.cos(self.theta) * dt
        self.y += self.speed * math.sin(self.theta) * dt
        self.distance_travelled += self.speed * dt

    def collides(self, environment: Environment) -> bool:
        """Contact avec un obstacle fixe ou mobile."""
        return environment.occupied(self.x, self.y, self.config.radius, include_dynamic=True)
