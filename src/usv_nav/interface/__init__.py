"""
Abstract interfaces for sensors, obstacle queries and action sources.

These interfaces let the same planning code run against the simulated
water area or real equipment.
"""

from .sensor_interface import (
    IRangeSensor,
    IObstacleField,
    IActionProposer,
    ObstacleObservation,
    VelocityCommand,
    Pose,
    Point,
)

__all__ = [
    # Interfaces
    'IRangeSensor',
    'IObstacleField',
    'IActionProposer',
    # Data
    'ObstacleObservation',
    'VelocityCommand',
    'Pose',
    'Point',
]
