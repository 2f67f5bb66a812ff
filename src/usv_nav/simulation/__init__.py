"""
Module de simulation pour tester sur PC sans materiel.

Composants:
- Environment: plan d'eau virtuel avec obstacles fixes et navires
- SimulatedRangeSensor: capteur de distance 360 deg sur l'environnement
- SimulatedVessel: cinematique simple du navire
"""

from .environment import (
    Environment, Obstacle, ObstacleType,
    create_harbor_env, create_crossing_env, create_random_env
)
from .range_sensor import SimulatedRangeSensor
from .vessel import SimulatedVessel, VesselConfig

__all__ = [
    'Environment',
    'Obstacle',
    'ObstacleType',
    'create_harbor_env',
    'create_crossing_env',
    'create_random_env',
    'SimulatedRangeSensor',
    'SimulatedVessel',
    'VesselConfig',
]
